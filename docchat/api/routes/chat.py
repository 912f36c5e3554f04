import asyncio
import json

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse

from docchat.api.dependencies import get_session
from docchat.api.schemas import (
    BindDocumentRequest,
    ChatRequest,
    ChatResponse,
    DocumentSummary,
    MessageSchema,
)
from docchat.core.exceptions import UnsupportedInputError
from docchat.rag.session import ChatSession

router = APIRouter(prefix="/api/v1/chat", tags=["chat"])


def _require_text(message: str) -> str:
    if not message.strip():
        raise UnsupportedInputError("Message must not be empty.")
    return message


@router.post("/document", response_model=DocumentSummary)
async def bind_document(
    request: BindDocumentRequest,
    session: ChatSession = Depends(get_session),
):
    document = await session.open_document(request.document_id)
    return DocumentSummary.from_document(document)


@router.get("/messages", response_model=list[MessageSchema])
async def list_messages(session: ChatSession = Depends(get_session)):
    return [MessageSchema.from_message(m) for m in session.messages]


@router.post("", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    session: ChatSession = Depends(get_session),
):
    answer = await session.send_message(_require_text(request.message))
    return ChatResponse(message=MessageSchema.from_message(answer))


@router.post("/stream")
async def chat_stream(
    request: ChatRequest,
    session: ChatSession = Depends(get_session),
):
    text = _require_text(request.message)
    session.check_ready()

    queue: asyncio.Queue = asyncio.Queue()

    async def produce():
        try:
            return await session.send_message(text, queue.put)
        finally:
            await queue.put(None)

    async def event_generator():
        task = asyncio.create_task(produce())
        try:
            while True:
                delta = await queue.get()
                if delta is None:
                    break
                yield {"event": "token", "data": delta}

            answer = await task
            payload = MessageSchema.from_message(answer).model_dump(mode="json")
            yield {"event": "message", "data": json.dumps(payload, ensure_ascii=False)}
            yield {"event": "done", "data": ""}
        finally:
            if not task.done():
                task.cancel()

    return EventSourceResponse(event_generator())
