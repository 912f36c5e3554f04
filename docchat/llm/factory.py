from docchat.core.config import Settings, get_settings
from docchat.core.exceptions import BackendNotFoundError
from docchat.llm.base import GenerationBackend


def create_backend(settings: Settings | None = None) -> GenerationBackend:
    """Instantiate the configured generation backend."""
    settings = settings or get_settings()
    provider = settings.llm_provider

    if provider == "openai":
        from docchat.llm.openai_backend import OpenAIBackend
        return OpenAIBackend(settings)

    if provider == "local":
        from docchat.llm.local import LocalBackend
        return LocalBackend(settings)

    raise BackendNotFoundError(provider)
