"""Out-of-band delivery of password reset codes through an HTTP mail relay."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

RESET_CODE_SUBJECT = "Your password reset code"


class MailDeliveryError(Exception):
    """Raised when a message cannot be handed to the mail relay."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def _is_mail_configured(settings: Settings) -> bool:
    return bool(settings.MAIL_API_URL and settings.MAIL_API_URL.strip())


def _headers(settings: Settings) -> dict[str, str]:
    headers = {"Accept": "application/json", "Content-Type": "application/json"}
    if settings.MAIL_API_TOKEN is not None:
        token = settings.MAIL_API_TOKEN.get_secret_value()
        if token.strip():
            headers["Authorization"] = f"Bearer {token}"
    return headers


def _reset_code_message(email: str, code: str, settings: Settings) -> dict[str, Any]:
    text = (
        f"Your password reset code is {code}.\n"
        f"It expires in {settings.RESET_CODE_EXPIRE_MINUTES} minutes.\n"
        "If you did not request a password reset, you can ignore this email."
    )
    return {
        "from": settings.MAIL_FROM,
        "to": [email],
        "subject": RESET_CODE_SUBJECT,
        "text": text,
    }


def send_reset_code(email: str, code: str, settings: Settings) -> None:
    """
    Deliver a reset code to `email`.

    Without MAIL_API_URL, dev skips delivery with a warning and prod raises
    MailDeliveryError. Relay errors (network, non-2xx) raise MailDeliveryError.
    """
    if not _is_mail_configured(settings):
        if settings.APP_ENV == "dev":
            logger.warning("MAIL_API_URL is not set; reset code not delivered (dev).")
            return
        raise MailDeliveryError("Mail delivery is not configured.")

    payload = _reset_code_message(email, code, settings)
    try:
        with httpx.Client(timeout=settings.MAIL_REQUEST_TIMEOUT_SEC) as client:
            resp = client.post(settings.MAIL_API_URL, json=payload, headers=_headers(settings))
    except httpx.TimeoutException as e:
        raise MailDeliveryError("Mail relay timed out.") from e
    except httpx.HTTPError as e:
        raise MailDeliveryError(f"Mail relay unreachable: {e!s}") from e

    if resp.status_code >= 400:
        raise MailDeliveryError(
            f"Mail relay returned {resp.status_code}", status_code=resp.status_code
        )
    logger.info("Reset code handed to mail relay", extra={"relay_status": resp.status_code})
