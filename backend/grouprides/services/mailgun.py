"""
Transactional email via the Mailgun HTTP API.

Requires MAILGUN_API_KEY, MAILGUN_DOMAIN and MAILGUN_FROM_EMAIL (see config.Settings).
If not configured, send() no-ops (log and return False). send() never raises.
"""
import logging

import httpx

from grouprides.config import settings

logger = logging.getLogger(__name__)


class MailgunConfig:
    """API key, sending domain and from-address for Mailgun."""

    __slots__ = ("api_key", "domain", "from_email", "from_name", "base_url")

    def __init__(
        self,
        *,
        api_key: str | None = None,
        domain: str | None = None,
        from_email: str | None = None,
        from_name: str | None = None,
        base_url: str | None = None,
    ) -> None:
        self.api_key = (api_key if api_key is not None else settings.mailgun_api_key).strip()
        self.domain = (domain if domain is not None else settings.mailgun_domain).strip()
        self.from_email = (from_email if from_email is not None else settings.mailgun_from_email).strip()
        self.from_name = (from_name or settings.mailgun_from_name).strip()
        self.base_url = (base_url or settings.mailgun_base_url).rstrip("/")

    def is_configured(self) -> bool:
        return bool(self.api_key and self.domain and self.from_email)

    def messages_url(self) -> str:
        return f"{self.base_url}/v3/{self.domain}/messages"

    def from_header(self) -> str:
        return f'"{self.from_name}" <{self.from_email}>'


class MailgunGateway:
    """Outbound email sender: send(to, subject, html) -> bool."""

    def __init__(self, config: MailgunConfig | None = None, *, timeout: float = 10.0) -> None:
        self._config = config or MailgunConfig()
        self._timeout = timeout

    @property
    def config(self) -> MailgunConfig:
        return self._config

    def is_configured(self) -> bool:
        return self._config.is_configured()

    def send(self, to: str, subject: str, html: str) -> bool:
        """
        Send one HTML email. Returns True on a 2xx from Mailgun; False on missing config,
        missing recipient, network error or non-2xx.
        """
        if not self._config.is_configured():
            logger.warning("Missing Mailgun configuration; skipping email send")
            return False
        to = (to or "").strip()
        if not to:
            logger.warning("Attempted to send email without a recipient")
            return False
        data = {
            "from": self._config.from_header(),
            "to": to,
            "subject": subject,
            "html": html,
        }
        try:
            with httpx.Client(timeout=self._timeout) as c:
                r = c.post(self._config.messages_url(), data=data, auth=("api", self._config.api_key))
        except Exception as e:
            logger.error("Error sending email to %s: %s", to, e)
            return False
        if not r.is_success:
            logger.error("Mailgun returned %s for %s: %s", r.status_code, to, (r.text[:500] if r.text else ""))
            return False
        logger.info("Email sent to %s: %s", to, subject)
        return True


_default_gateway: MailgunGateway | None = None


def get_gateway() -> MailgunGateway:
    global _default_gateway
    if _default_gateway is None:
        _default_gateway = MailgunGateway()
    return _default_gateway
