from __future__ import annotations

import logging

import httpx

from sso.application.ports.captcha_port import CaptchaPort
from sso.domain.exceptions import CaptchaVerificationFailedError


logger = logging.getLogger(__name__)


class RecaptchaClient(CaptchaPort):
    """reCAPTCHA v3 siteverify; a token passes on success, score and action."""

    def __init__(
        self,
        *,
        secret: str,
        verify_url: str,
        min_score: float,
        timeout_seconds: float,
        client: httpx.Client | None = None,
    ):
        self._secret = secret
        self._verify_url = verify_url
        self._min_score = min_score
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def verify(self, *, token: str, action: str) -> bool:
        if not token:
            return False
        try:
            response = self._client.post(
                self._verify_url,
                data={"secret": self._secret, "response": token},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("captcha: verification request failed error=%s", exc)
            raise CaptchaVerificationFailedError(cause=exc) from exc

        success = bool(payload.get("success"))
        score = float(payload.get("score") or 0.0)
        returned_action = payload.get("action")
        if not success or score <= self._min_score or returned_action != action:
            logger.info(
                "captcha: rejected action=%s returned_action=%s score=%s",
                action,
                returned_action,
                score,
            )
            return False
        return True
