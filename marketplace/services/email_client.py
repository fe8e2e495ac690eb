# marketplace/services/email_client.py
import requests

from marketplace.utils.retry import http_retry
from marketplace.utils.settings import EMAIL_API_URL, EMAIL_API_KEY, EMAIL_FROM
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class EmailClient:
    """Klient HTTP do transactional email API. Bez EMAIL_API_URL tylko loguje."""

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        sender: str | None = None,
        timeout: int = 5,
    ):
        self.api_url = (api_url if api_url is not None else EMAIL_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else EMAIL_API_KEY
        self.sender = sender or EMAIL_FROM
        self.timeout = timeout

    @http_retry()
    def send(self, to: str, subject: str, html: str) -> bool:
        if not self.api_url:
            logger.info(f"[EMAIL] to={to} subject={subject!r} (EMAIL_API_URL not set, not sent)")
            return False

        logger.info(f"EmailClient POST {self.api_url} to={to}")
        resp = requests.post(
            self.api_url,
            json={"from": self.sender, "to": [to], "subject": subject, "html": html},
            headers={"Authorization": f"Bearer {self.api_key}"},
            timeout=self.timeout,
        )
        resp.raise_for_status()
        return True
