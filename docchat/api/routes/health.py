from fastapi import APIRouter, Depends

from docchat.api.dependencies import get_session
from docchat.api.schemas import HealthResponse, ReadinessResponse
from docchat.core.config import get_settings
from docchat.db.client import check_db_connection
from docchat.rag.session import ChatSession

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def liveness():
    return HealthResponse(status="ok")


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness(session: ChatSession = Depends(get_session)):
    settings = get_settings()
    if settings.database_url:
        db_ok = await check_db_connection()
        database = "connected" if db_ok else "disconnected"
    else:
        db_ok = True
        database = "in_memory"

    model_loaded = session.backend.is_model_loaded()
    document = session.document
    return ReadinessResponse(
        status="ok" if db_ok and model_loaded else "degraded",
        database=database,
        llm_provider=session.backend.provider,
        model_loaded=model_loaded,
        document_id=document.id if document is not None else None,
    )
