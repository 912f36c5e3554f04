"""Plain-text extraction for uploaded files and fetched web pages."""

from __future__ import annotations

import html
import io
import re
from dataclasses import dataclass
from pathlib import PurePath
from urllib.parse import urlparse

import httpx
import structlog
from pdfminer.high_level import extract_text as pdf_extract_text

from docchat.core.exceptions import UnsupportedInputError

logger = structlog.get_logger(__name__)

SUPPORTED_EXTENSIONS = ("pdf", "txt", "md")

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

_TITLE = re.compile(r"<title[^>]*>([^<]+)</title>", re.IGNORECASE)
_SCRIPT = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_STYLE = re.compile(r"<style\b[^<]*(?:(?!</style>)<[^<]*)*</style>", re.IGNORECASE)
_TAG = re.compile(r"<[^>]+>")
_SPACES = re.compile(r"\s+")

_MD_FENCE = re.compile(r"^[ \t]*(```|~~~).*$", re.MULTILINE)
_MD_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_MD_LINK = re.compile(r"\[([^\]]+)\]\([^)]*\)")
_MD_HEADING = re.compile(r"^[ \t]{0,3}#{1,6}[ \t]*", re.MULTILINE)
_MD_SETEXT = re.compile(r"^[ \t]*(=+|-+)[ \t]*$", re.MULTILINE)
_MD_QUOTE = re.compile(r"^[ \t]*>[ \t]?", re.MULTILINE)
_MD_LIST = re.compile(r"^([ \t]*)(?:[-*+]|\d+[.)])[ \t]+", re.MULTILINE)
_MD_EMPHASIS = re.compile(r"(?<!\w)(\*\*|__|\*|_|~~)(?=\S)(.+?)(?<=\S)\1(?!\w)")
_MD_CODE = re.compile(r"`([^`]*)`")


@dataclass
class PageContent:
    url: str
    title: str
    content: str


def file_extension(filename: str) -> str:
    return PurePath(filename).suffix.lower().lstrip(".")


def decode_text(data: bytes) -> str:
    for encoding in ("utf-8", "utf-16"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    return data.decode("latin-1")


def extract_pdf_text(data: bytes) -> str:
    try:
        text = pdf_extract_text(io.BytesIO(data)) or ""
    except Exception as exc:
        logger.error("pdf_extraction_failed", error=str(exc))
        raise UnsupportedInputError("PDF file could not be read.") from exc
    pages = [page.strip() for page in text.split("\f")]
    return "\n\n".join(page for page in pages if page)


def markdown_to_text(markdown: str) -> str:
    """Strip markdown syntax, keeping the readable text and paragraph breaks."""
    text = html.unescape(_TAG.sub(" ", markdown))
    text = _MD_FENCE.sub("", text)
    text = _MD_IMAGE.sub(r"\1", text)
    text = _MD_LINK.sub(r"\1", text)
    text = _MD_SETEXT.sub("", text)
    text = _MD_HEADING.sub("", text)
    text = _MD_QUOTE.sub("", text)
    text = _MD_LIST.sub(r"\1", text)
    text = _MD_CODE.sub(r"\1", text)
    text = _MD_EMPHASIS.sub(r"\2", text)
    return text.strip()


def extract_file_content(filename: str, data: bytes) -> str:
    """Return the plain text of an uploaded ``pdf``, ``txt`` or ``md`` file."""
    extension = file_extension(filename)
    if extension == "pdf":
        return extract_pdf_text(data)
    if extension == "txt":
        return decode_text(data)
    if extension == "md":
        return markdown_to_text(decode_text(data))
    raise UnsupportedInputError(f"Unsupported file format: {extension or filename}")


def extract_title(page: str) -> str:
    match = _TITLE.search(page)
    return html.unescape(match.group(1)).strip() if match else ""


def clean_html(page: str) -> str:
    content = _SCRIPT.sub("", page)
    content = _STYLE.sub("", content)
    content = _TAG.sub(" ", content)
    content = html.unescape(content)
    return _SPACES.sub(" ", content).strip()


def validate_url(url: str) -> str:
    url = url.strip()
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise UnsupportedInputError("URL must start with http:// or https://")
    return url


async def fetch_url_content(
    url: str,
    http_client: httpx.AsyncClient | None = None,
    timeout: float = 30.0,
) -> PageContent:
    """Download a web page and reduce it to its title and visible text."""
    url = validate_url(url)
    client = http_client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
    try:
        response = await client.get(url, headers={"User-Agent": USER_AGENT})
        response.raise_for_status()
    except httpx.HTTPError as exc:
        logger.error("url_fetch_failed", url=url, error=str(exc))
        raise UnsupportedInputError(f"Could not fetch URL content: {exc}") from exc
    finally:
        if http_client is None:
            await client.aclose()

    content_type = response.headers.get("content-type", "")
    if "text/html" not in content_type and "text/plain" not in content_type:
        raise UnsupportedInputError(
            "URL is not a web page. Only HTML and text pages are supported."
        )

    body = response.text
    if "text/html" in content_type:
        page = PageContent(url=url, title=extract_title(body), content=clean_html(body))
    else:
        page = PageContent(url=url, title="", content=body.strip())

    logger.info("url_fetched", url=url, chars=len(page.content))
    return page
