from fastapi import APIRouter, Depends

from docchat.api.dependencies import get_session
from docchat.api.schemas import SummaryResponse, TopicsResponse
from docchat.core.exceptions import DocumentNotBoundError
from docchat.rag.session import ChatSession

router = APIRouter(prefix="/api/v1/analysis", tags=["analysis"])


def _document_id(session: ChatSession) -> str:
    if session.document is None:
        raise DocumentNotBoundError()
    return session.document.id


@router.post("/summary", response_model=SummaryResponse)
async def summarize(refresh: bool = False, session: ChatSession = Depends(get_session)):
    document_id = _document_id(session)
    summary = await session.summarize(refresh=refresh)
    return SummaryResponse(document_id=document_id, summary=summary)


@router.post("/topics", response_model=TopicsResponse)
async def key_topics(session: ChatSession = Depends(get_session)):
    document_id = _document_id(session)
    topics = await session.key_topics()
    return TopicsResponse(document_id=document_id, topics=topics)
