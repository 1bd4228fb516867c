"""reCAPTCHA ``siteverify`` client."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from .errors import CaptchaFailed, CaptchaUnavailable

logger = logging.getLogger(__name__)

RECAPTCHA_VERIFY_URL = "https://www.google.com/recaptcha/api/siteverify"
DEFAULT_MIN_SCORE = 0.5


class RecaptchaVerifier:
    def __init__(
        self,
        secret: str,
        *,
        verify_url: str = RECAPTCHA_VERIFY_URL,
        min_score: float = DEFAULT_MIN_SCORE,
        timeout_seconds: float = 5.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._secret = secret
        self._verify_url = verify_url
        self._min_score = min_score
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def verify(self, token: str, client_ip: Optional[str]) -> None:
        """Accept or raise.

        ``CaptchaFailed`` is a verdict on the client's token;
        ``CaptchaUnavailable`` means we could not get a verdict at all.
        """
        if not self._secret:
            logger.error("reCAPTCHA enabled but RECAPTCHA_SECRET is not set")
            raise CaptchaUnavailable()

        form = {"secret": self._secret, "response": token}
        if client_ip:
            form["remoteip"] = client_ip

        try:
            async with httpx.AsyncClient(timeout=self._timeout_seconds, transport=self._transport) as client:
                resp = await client.post(self._verify_url, data=form)
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            logger.error("reCAPTCHA request failed: %s", exc.__class__.__name__)
            raise CaptchaUnavailable() from exc
        except ValueError as exc:
            logger.error("reCAPTCHA returned a non-JSON body")
            raise CaptchaUnavailable() from exc

        if not isinstance(data, dict):
            logger.error("reCAPTCHA returned an unexpected payload type")
            raise CaptchaUnavailable()

        if data.get("success") is not True:
            logger.info("reCAPTCHA rejected token: error-codes=%s", data.get("error-codes", []))
            raise CaptchaFailed()

        score = data.get("score")
        if score is not None:
            if not isinstance(score, (int, float)) or isinstance(score, bool):
                logger.error("reCAPTCHA returned a non-numeric score")
                raise CaptchaUnavailable()
            if score < self._min_score:
                logger.info("reCAPTCHA score too low: %.2f < %.2f", score, self._min_score)
                raise CaptchaFailed()
