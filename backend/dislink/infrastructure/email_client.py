"""Email Clients: invitation delivery with retry, backoff, and error mapping.

Invariants:
    - Rate limits (429): exponential backoff with jitter, respects Retry-After header
    - Transient errors (5xx, connection, timeout): max_retries with exponential backoff
    - Client errors (4xx except 429): immediate failure, no retry
    - All failures mapped to EmailDispatchError (core/errors.py)

Design Decisions:
    - LoggingMailer is the development default: it renders the email into the
      log so the registration link can be followed locally
    - ±25% jitter on backoff: prevents thundering herd on shared rate limits
"""

import asyncio
import logging
import random

import httpx

from dislink.config import Settings
from dislink.core.errors import EmailDispatchError
from dislink.core.format_invitation import InvitationEmail

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = frozenset({429, 500, 502, 503, 504})


class LoggingMailer:
    """Writes the email to the log instead of sending it."""

    async def send(self, email: InvitationEmail) -> None:
        logger.info(
            f"Invitation email (not sent, log provider) to {email.to}: "
            f"{email.subject}\n{email.body}",
            extra={"provider": "log"},
        )


class SendGridMailer:
    """Sends through the SendGrid v3 mail API."""

    def __init__(
        self,
        api_key: str,
        from_address: str,
        from_name: str,
        base_url: str = "https://api.sendgrid.com",
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 10_000,
        timeout_seconds: int = 10,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout_seconds,
            headers={"Authorization": f"Bearer {api_key}"},
            transport=transport,
        )
        self.from_address = from_address
        self.from_name = from_name
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def send(self, email: InvitationEmail) -> None:
        payload = self._build_payload(email)
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.post("/v3/mail/send", json=payload)
            except (httpx.TimeoutException, httpx.NetworkError) as e:
                await self._backoff_or_raise(attempt, "connection", str(e), None)
                continue

            if response.status_code < 300:
                logger.info(
                    f"Invitation email sent to {email.to}",
                    extra={"attempt": attempt, "provider": "sendgrid"},
                )
                return
            if response.status_code in _RETRYABLE_STATUS:
                retry_after = _retry_after_ms(response)
                error_type = "rate_limit" if response.status_code == 429 else "server_error"
                await self._backoff_or_raise(
                    attempt, error_type, response.text, retry_after,
                )
                continue
            raise EmailDispatchError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                "client_error",
            )

    async def aclose(self) -> None:
        await self.client.aclose()

    def _build_payload(self, email: InvitationEmail) -> dict:
        return {
            "personalizations": [{"to": [{"email": email.to}]}],
            "from": {"email": self.from_address, "name": self.from_name},
            "subject": email.subject,
            "content": [{"type": "text/plain", "value": email.body}],
        }

    async def _backoff_or_raise(
        self, attempt: int, error_type: str, detail: str, retry_after_ms: int | None,
    ) -> None:
        if attempt >= self.max_retries:
            raise EmailDispatchError(
                f"Max retries exceeded: {detail[:200]}", error_type,
                retry_after_ms=retry_after_ms,
            )
        delay = retry_after_ms if retry_after_ms is not None else self._calculate_backoff(attempt)
        logger.warning(
            f"Email provider {error_type}, retrying in {delay}ms",
            extra={"attempt": attempt, "provider": "sendgrid"},
        )
        await asyncio.sleep(delay / 1000)

    def _calculate_backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = self.base_delay_ms * (2 ** attempt)
        jitter = delay * 0.25 * (2 * random.random() - 1)
        return min(int(delay + jitter), self.max_delay_ms)


def _retry_after_ms(response: httpx.Response) -> int | None:
    value = response.headers.get("retry-after")
    if value is None:
        return None
    try:
        return int(float(value) * 1000)
    except ValueError:
        return None


def build_mailer(settings: Settings) -> LoggingMailer | SendGridMailer:
    """Pick the mailer named by settings.email_provider."""
    if settings.email_provider == "sendgrid":
        return SendGridMailer(
            api_key=settings.sendgrid_api_key,
            from_address=settings.email_from_address,
            from_name=settings.email_from_name,
            base_url=settings.sendgrid_base_url,
            max_retries=settings.email_max_retries,
            base_delay_ms=settings.email_base_delay_ms,
            max_delay_ms=settings.email_max_delay_ms,
            timeout_seconds=settings.email_timeout_seconds,
        )
    if settings.email_provider != "log":
        logger.warning(
            f"Unknown email_provider '{settings.email_provider}', using log provider",
        )
    return LoggingMailer()
