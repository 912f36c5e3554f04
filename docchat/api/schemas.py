from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

from docchat.db.models import Document, Message


class DocumentSummary(BaseModel):
    id: str
    name: str
    extension: str
    source: str
    chunk_count: int
    created_at: datetime
    has_summary: bool

    @classmethod
    def from_document(cls, document: Document) -> DocumentSummary:
        return cls(
            id=document.id,
            name=document.name,
            extension=document.extension,
            source=document.display_source,
            chunk_count=len(document.chunks),
            created_at=document.created_at,
            has_summary=bool(document.summary),
        )


class DocumentDetail(DocumentSummary):
    content: str
    chunks: list[str]
    summary: str | None = None

    @classmethod
    def from_document(cls, document: Document) -> DocumentDetail:
        summary = DocumentSummary.from_document(document)
        return cls(
            **summary.model_dump(),
            content=document.content,
            chunks=list(document.chunks),
            summary=document.summary,
        )


class UrlImportRequest(BaseModel):
    url: str = Field(..., min_length=1, max_length=2048)
    name: str = Field("", max_length=255)


class BindDocumentRequest(BaseModel):
    document_id: str = Field(..., min_length=1)


class MessageSchema(BaseModel):
    id: str
    role: Literal["user", "assistant", "system"]
    content: str
    created_at: datetime

    @classmethod
    def from_message(cls, message: Message) -> MessageSchema:
        return cls(
            id=message.id,
            role=message.role,
            content=message.content,
            created_at=message.created_at,
        )


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)


class ChatResponse(BaseModel):
    message: MessageSchema


class SummaryResponse(BaseModel):
    document_id: str
    summary: str


class TopicsResponse(BaseModel):
    document_id: str
    topics: list[str]


class ApiSettingsResponse(BaseModel):
    provider: Literal["local", "openai"]
    model: str
    temperature: float
    has_api_key: bool


class SettingsCheckResponse(BaseModel):
    ok: bool


class HealthResponse(BaseModel):
    status: str


class ReadinessResponse(BaseModel):
    status: str
    database: str
    llm_provider: str
    model_loaded: bool
    document_id: str | None = None


class ErrorResponse(BaseModel):
    detail: str
