from fastapi import Request

from app.core.config import Settings, get_settings


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was built with (falls back to the env cache)."""
    settings = getattr(request.app.state, "settings", None)
    return settings if settings is not None else get_settings()
