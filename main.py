from contextlib import asynccontextmanager

import logging

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from docchat.api.dependencies import get_session
from docchat.api.routes import analysis, chat, documents, health, settings
from docchat.core.config import get_settings
from docchat.core.exceptions import DocChatError
from docchat.db.client import close_pool
from docchat.middleware.error_handler import docchat_exception_handler

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_settings = get_settings()
    log_level = getattr(logging, app_settings.log_level.upper(), logging.INFO)
    structlog.configure(
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
    )
    session = get_session()
    logger.info(
        "starting_app",
        environment=app_settings.environment,
        llm_provider=session.backend.provider,
    )
    try:
        document = await session.open_last_document()
    except DocChatError as exc:
        logger.warning("last_document_unavailable", error=exc.message)
    else:
        if document is not None:
            logger.info("last_document_reopened", document_id=document.id)
    session.start_warm_up()
    yield
    await session.close()
    await close_pool()
    logger.info("app_shutdown")


app = FastAPI(
    title="Document Chat API",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(DocChatError, docchat_exception_handler)

app.include_router(health.router)
app.include_router(documents.router)
app.include_router(chat.router)
app.include_router(analysis.router)
app.include_router(settings.router)
