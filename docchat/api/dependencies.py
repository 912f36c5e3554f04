from functools import lru_cache

from docchat.core.config import Settings, get_settings
from docchat.core.settings_store import load_api_settings
from docchat.db.client import get_pool
from docchat.db.store import DocumentStore, InMemoryDocumentStore, PostgresDocumentStore
from docchat.llm.base import GenerationBackend
from docchat.llm.factory import create_backend
from docchat.rag.session import ChatSession


def get_effective_settings() -> Settings:
    return get_settings().with_api_settings(load_api_settings())


def build_backend() -> GenerationBackend:
    return create_backend(get_effective_settings())


@lru_cache
def get_store() -> DocumentStore:
    if get_settings().database_url:
        return PostgresDocumentStore(get_pool)
    return InMemoryDocumentStore()


@lru_cache
def get_session() -> ChatSession:
    return ChatSession(backend=build_backend(), store=get_store())
