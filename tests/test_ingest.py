import asyncio

import httpx
import pytest

from docchat.core.exceptions import UnsupportedInputError
from docchat.db.store import InMemoryDocumentStore
from docchat.ingest.extract import (
    clean_html,
    decode_text,
    extract_file_content,
    extract_title,
    fetch_url_content,
    file_extension,
    markdown_to_text,
)
from docchat.ingest.pipeline import ingest_file, ingest_url

PAGE = """<html><head><title>Tide &amp; Currents</title>
<style>body { color: red; }</style>
<script>var tracking = "<b>ignored</b>";</script></head>
<body><h1>Tides</h1><p>The moon pulls the oceans.</p></body></html>"""


def _client(response: httpx.Response) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(lambda request: response))


def test_file_extension_is_lowercase() -> None:
    assert file_extension("Report.PDF") == "pdf"
    assert file_extension("notes") == ""


def test_decode_text_falls_back_to_latin1() -> None:
    assert decode_text("café".encode("utf-8")) == "café"
    assert decode_text(b"caf\xe9!") == "caf\u00e9!"


def test_txt_content_is_kept_verbatim() -> None:
    assert extract_file_content("notes.txt", b"line one\n\nline two") == "line one\n\nline two"


def test_markdown_is_reduced_to_text() -> None:
    markdown = (
        "# Title\n\n"
        "Some **bold** and _italic_ text with a [link](https://example.com).\n\n"
        "- first item\n"
        "- second item\n\n"
        "> quoted snake_case_name\n"
    )
    text = markdown_to_text(markdown)

    assert text.startswith("Title\n\nSome bold and italic text with a link.")
    assert "first item\nsecond item" in text
    assert "quoted snake_case_name" in text
    assert "#" not in text and "**" not in text and "](" not in text


def test_unsupported_format_is_rejected() -> None:
    with pytest.raises(UnsupportedInputError):
        extract_file_content("slides.pptx", b"binary")


def test_html_cleaning_and_title() -> None:
    assert extract_title(PAGE) == "Tide & Currents"
    text = clean_html(PAGE)
    assert text == "Tide & Currents Tides The moon pulls the oceans."


def test_fetch_url_content() -> None:
    response = httpx.Response(200, headers={"content-type": "text/html; charset=utf-8"}, text=PAGE)
    page = asyncio.run(fetch_url_content("https://example.com/tides", http_client=_client(response)))

    assert page.title == "Tide & Currents"
    assert "The moon pulls the oceans." in page.content
    assert "tracking" not in page.content


def test_fetch_rejects_non_http_urls() -> None:
    with pytest.raises(UnsupportedInputError):
        asyncio.run(fetch_url_content("ftp://example.com/file"))


def test_fetch_rejects_binary_content() -> None:
    response = httpx.Response(200, headers={"content-type": "application/pdf"}, content=b"%PDF")
    with pytest.raises(UnsupportedInputError):
        asyncio.run(fetch_url_content("https://example.com/doc.pdf", http_client=_client(response)))


def test_fetch_maps_http_errors() -> None:
    response = httpx.Response(404, text="missing")
    with pytest.raises(UnsupportedInputError):
        asyncio.run(fetch_url_content("https://example.com/missing", http_client=_client(response)))


def test_ingest_file_chunks_and_remembers_document(settings) -> None:
    store = InMemoryDocumentStore()
    content = "\n\n".join(f"Paragraph {i} " + "word " * 50 for i in range(10))

    document = asyncio.run(ingest_file("long.txt", content.encode("utf-8"), store, settings))

    assert document.extension == "txt"
    assert len(document.chunks) > 1
    assert all(len(chunk) <= settings.chunk_size for chunk in document.chunks)
    assert asyncio.run(store.get_last_processed_id()) == document.id


def test_ingest_empty_file_is_rejected(settings) -> None:
    with pytest.raises(UnsupportedInputError):
        asyncio.run(ingest_file("empty.txt", b"   \n", InMemoryDocumentStore(), settings))


def test_ingest_url_names_document_after_title(settings) -> None:
    store = InMemoryDocumentStore()
    response = httpx.Response(200, headers={"content-type": "text/html"}, text=PAGE)

    document = asyncio.run(
        ingest_url("https://example.com/tides", store, settings=settings, http_client=_client(response))
    )

    assert document.name == "Tide & Currents"
    assert document.extension == "html"
    assert document.source == "https://example.com/tides"


def test_ingest_url_without_title_uses_path(settings) -> None:
    response = httpx.Response(200, headers={"content-type": "text/plain"}, text="Plain body text.")

    document = asyncio.run(
        ingest_url(
            "https://example.com/docs/guide/",
            InMemoryDocumentStore(),
            settings=settings,
            http_client=_client(response),
        )
    )

    assert document.name == "guide"
    assert document.content == "Plain body text."
