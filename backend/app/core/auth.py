import hmac
import logging

from fastapi import Depends, Header, HTTPException

from app.core.config import Settings
from app.core.dependencies import get_app_settings

logger = logging.getLogger(__name__)


def require_admin_token(
    x_admin_token: str = Header(None, alias="X-Admin-Token"),
    settings: Settings = Depends(get_app_settings),
) -> None:
    """Gate administrative endpoints behind the shared ``ADMIN_TOKEN``.

    With no token configured the admin surface does not exist (404), and a
    wrong token gets the same answer so the endpoint cannot be probed.
    """
    if not settings.admin_token:
        raise HTTPException(404, "Not found")

    if not x_admin_token or not hmac.compare_digest(x_admin_token, settings.admin_token):
        logger.warning("Admin endpoint: invalid or missing token")
        raise HTTPException(404, "Not found")
