from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Callable, Protocol

import httpx

from bakery.core.config import Settings, get_settings
from bakery.domain.analytics.revenue import load_timezone
from bakery.domain.errors import DownstreamError
from bakery.notifications.payloads import NotificationPayload
from bakery.notifications.templates import DEFAULT_TEMPLATES, RenderedEmail, ensure_template_name, render

logger = logging.getLogger(__name__)

TemplateLoader = Callable[[str], "str | None"]


@dataclass
class NotificationResult:
    template_name: str
    recipient: str
    backend: str
    message_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "template_name": self.template_name,
            "recipient": self.recipient,
            "backend": self.backend,
            "message_id": self.message_id,
        }


@dataclass
class SentEmail:
    template_name: str
    recipient: str
    subject: str
    html: str
    payload: NotificationPayload


class NotificationDispatcher(Protocol):
    backend_name: str

    def send(self, template_name: str, recipient: str, payload: NotificationPayload) -> NotificationResult:
        ...


def load_stored_template(name: str) -> str | None:
    from bakery.persistence.pg import session_scope
    from bakery.persistence.store import SqlOrderStore

    with session_scope() as session:
        return SqlOrderStore(session).get_template(name)


class _RenderingDispatcher:
    def __init__(self, settings: Settings | None = None, template_loader: TemplateLoader | None = None):
        self.settings = settings or get_settings()
        self.template_loader = template_loader or load_stored_template

    def _template_html(self, template_name: str) -> str:
        try:
            stored = self.template_loader(template_name)
        except Exception as exc:
            logger.warning("email template lookup failed for %s, using default: %s", template_name, exc)
            stored = None
        return stored or DEFAULT_TEMPLATES[template_name]

    def render(self, template_name: str, payload: NotificationPayload) -> RenderedEmail:
        ensure_template_name(template_name)
        return render(
            template_name,
            self._template_html(template_name),
            payload,
            tz=load_timezone(self.settings.display_timezone),
            currency_symbol=self.settings.currency_symbol,
        )


class LogNotificationDispatcher(_RenderingDispatcher):
    """Renders and records emails instead of sending them."""

    backend_name = "log"

    def __init__(self, settings: Settings | None = None, template_loader: TemplateLoader | None = None):
        super().__init__(settings, template_loader)
        self.sent: list[SentEmail] = []
        self._lock = threading.Lock()

    def send(self, template_name: str, recipient: str, payload: NotificationPayload) -> NotificationResult:
        email = self.render(template_name, payload)
        with self._lock:
            self.sent.append(
                SentEmail(
                    template_name=template_name,
                    recipient=recipient,
                    subject=email.subject,
                    html=email.html,
                    payload=payload,
                )
            )
        logger.info("email %s to %s: %s", template_name, recipient, email.subject)
        return NotificationResult(template_name=template_name, recipient=recipient, backend=self.backend_name)

    def sent_to(self, recipient: str) -> list[SentEmail]:
        with self._lock:
            return [item for item in self.sent if item.recipient == recipient]

    def clear(self) -> None:
        with self._lock:
            self.sent.clear()


class ResendEmailDispatcher(_RenderingDispatcher):
    backend_name = "resend"

    def __init__(self, settings: Settings | None = None, template_loader: TemplateLoader | None = None):
        super().__init__(settings, template_loader)
        self.base_url = self.settings.resend_base_url.rstrip("/")
        self.timeout = max(1, self.settings.resend_timeout_seconds)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.resend_api_key or ''}",
        }

    def _request(self, method: str, path: str, *, json_body: dict[str, Any]) -> dict[str, Any]:
        url = f"{self.base_url}{path}"
        with httpx.Client(timeout=self.timeout) as client:
            response = client.request(method, url, headers=self._headers(), json=json_body)
        response.raise_for_status()
        payload = response.json()
        if isinstance(payload, dict):
            return payload
        return {"result": payload}

    def send(self, template_name: str, recipient: str, payload: NotificationPayload) -> NotificationResult:
        if not self.settings.resend_api_key:
            raise DownstreamError("resend api key is not configured")
        email = self.render(template_name, payload)
        try:
            raw = self._request(
                "POST",
                "/emails",
                json_body={
                    "from": self.settings.resend_from_email,
                    "to": [recipient],
                    "subject": email.subject,
                    "html": email.html,
                },
            )
        except httpx.HTTPError as exc:
            raise DownstreamError(f"email send failed for {template_name}: {exc}") from exc
        message_id = raw.get("id")
        return NotificationResult(
            template_name=template_name,
            recipient=recipient,
            backend=self.backend_name,
            message_id=str(message_id) if message_id else None,
        )


def build_dispatcher(settings: Settings | None = None) -> NotificationDispatcher:
    cfg = settings or get_settings()
    if cfg.notification_backend == "resend":
        return ResendEmailDispatcher(cfg)
    return LogNotificationDispatcher(cfg)


@lru_cache(maxsize=1)
def get_dispatcher() -> NotificationDispatcher:
    return build_dispatcher()
