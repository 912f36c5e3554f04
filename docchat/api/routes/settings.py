from fastapi import APIRouter, Depends

from docchat.api.dependencies import build_backend, get_session
from docchat.api.schemas import ApiSettingsResponse, SettingsCheckResponse
from docchat.core.settings_store import (
    ApiSettings,
    check_api_settings,
    load_api_settings,
    save_api_settings,
)
from docchat.rag.session import ChatSession

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])


def _to_response(settings: ApiSettings) -> ApiSettingsResponse:
    return ApiSettingsResponse(
        provider=settings.provider,
        model=settings.model,
        temperature=settings.temperature,
        has_api_key=bool(settings.api_key),
    )


@router.get("", response_model=ApiSettingsResponse)
async def get_api_settings():
    return _to_response(load_api_settings())


@router.put("", response_model=ApiSettingsResponse)
async def update_api_settings(
    settings: ApiSettings,
    session: ChatSession = Depends(get_session),
):
    save_api_settings(settings)
    backend = build_backend()
    await session.replace_backend(backend)
    session.start_warm_up()
    return _to_response(settings)


@router.post("/check", response_model=SettingsCheckResponse)
async def check_settings(settings: ApiSettings):
    return SettingsCheckResponse(ok=await check_api_settings(settings))
