"""Administrative endpoints (``X-Admin-Token`` gated)."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.core.auth import require_admin_token
from app.core.config import Settings
from app.core.dependencies import get_app_settings
from app.core.feature_flags import is_recaptcha_enabled, resolve_captcha_state, toggle_recaptcha
from app.services.contact.contracts import RecaptchaToggleResponse

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin_token)])


def _toggle_state(settings: Settings) -> dict:
    body = RecaptchaToggleResponse(
        recaptcha_enabled=is_recaptcha_enabled(settings),
        state=resolve_captcha_state(settings).value,
    )
    return body.model_dump(by_alias=True)


@router.get("/toggle-recaptcha")
async def get_recaptcha_state(settings: Settings = Depends(get_app_settings)):
    return _toggle_state(settings)


@router.post("/toggle-recaptcha")
async def flip_recaptcha(settings: Settings = Depends(get_app_settings)):
    enabled = toggle_recaptcha(settings)
    logger.warning("reCAPTCHA %s by admin", "enabled" if enabled else "disabled")
    return _toggle_state(settings)
