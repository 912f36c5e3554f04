import asyncio
from datetime import datetime, timedelta, timezone

from docchat.db.models import Document
from docchat.db.store import InMemoryDocumentStore, row_to_document


def _doc(name: str, minutes_ago: int = 0) -> Document:
    return Document(
        name=name,
        content=f"content of {name}",
        extension="txt",
        chunks=[f"content of {name}"],
        created_at=datetime.now(timezone.utc) - timedelta(minutes=minutes_ago),
    )


def test_save_and_list_newest_first() -> None:
    async def runner():
        store = InMemoryDocumentStore()
        await store.save(_doc("old.txt", minutes_ago=10))
        await store.save(_doc("new.txt"))
        return [doc.name for doc in await store.get_all()]

    assert asyncio.run(runner()) == ["new.txt", "old.txt"]


def test_duplicate_name_is_renamed() -> None:
    async def runner():
        store = InMemoryDocumentStore()
        first = await store.save(_doc("report.txt"))
        second = await store.save(_doc("report.txt"))
        return first, second

    first, second = asyncio.run(runner())
    assert first.name == "report.txt"
    assert second.name.startswith("report.txt (")
    assert second.id != first.id


def test_resaving_updates_in_place() -> None:
    async def runner():
        store = InMemoryDocumentStore()
        document = await store.save(_doc("report.txt"))
        document.summary = "cached summary"
        await store.save(document)
        return await store.get_all()

    documents = asyncio.run(runner())
    assert len(documents) == 1
    assert documents[0].name == "report.txt"
    assert documents[0].summary == "cached summary"


def test_delete_clears_last_processed_marker() -> None:
    async def runner():
        store = InMemoryDocumentStore()
        document = await store.save(_doc("a.txt"))
        await store.save_last_processed_id(document.id)
        await store.delete(document.id)
        await store.delete("missing")
        return await store.get_by_id(document.id), await store.get_last_processed_id()

    assert asyncio.run(runner()) == (None, None)


def test_clear_removes_everything() -> None:
    async def runner():
        store = InMemoryDocumentStore()
        document = await store.save(_doc("a.txt"))
        await store.save(_doc("b.txt"))
        await store.save_last_processed_id(document.id)
        await store.clear()
        return await store.get_all(), await store.get_last_processed_id()

    assert asyncio.run(runner()) == ([], None)


def test_row_to_document_decodes_json_chunks() -> None:
    created = datetime(2024, 1, 1, tzinfo=timezone.utc)
    document = row_to_document(
        {
            "id": "abc",
            "name": "page",
            "content": "text",
            "extension": "html",
            "chunks": '["one", "two"]',
            "summary": None,
            "source": "https://example.com/page",
            "created_at": created,
        }
    )
    assert document.chunks == ["one", "two"]
    assert document.display_source == "https://example.com/page"
    assert document.created_at == created
