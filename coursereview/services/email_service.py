"""
coursereview/services/email_service.py
Fire-and-forget outbound email

Delivery is a side effect of account and selection workflows, never part
of their outcome: SMTP runs in a worker thread under a hard timeout, and
timeouts or transport failures are logged and reported as False.
"""
import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Any, Callable, Dict, Optional

from coursereview.config import settings
from coursereview.services.email_templates import EmailTemplateKind, render_email

logger = logging.getLogger(__name__)

Transport = Callable[[EmailMessage], None]


class EmailDispatcher:
    """
    Sends templated emails over SMTP.

    A custom transport (a blocking callable taking an EmailMessage) can be
    supplied in place of SMTP.
    """

    def __init__(
        self,
        host: Optional[str] = None,
        port: int = 465,
        user: Optional[str] = None,
        password: Optional[str] = None,
        sender: Optional[str] = None,
        use_ssl: bool = True,
        timeout_seconds: float = 10,
        transport: Optional[Transport] = None,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender or user or "noreply@example.com"
        self.use_ssl = use_ssl
        self.timeout_seconds = timeout_seconds
        self._transport = transport or self._send_smtp
        self._custom_transport = transport is not None

    @classmethod
    def from_settings(cls) -> "EmailDispatcher":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            user=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            sender=settings.SMTP_FROM,
            use_ssl=settings.SMTP_USE_SSL,
            timeout_seconds=settings.EMAIL_TIMEOUT_SECONDS,
        )

    @property
    def enabled(self) -> bool:
        return self.host is not None or self._custom_transport

    def build_message(self, recipient: str, kind: EmailTemplateKind, variables: Dict[str, Any]) -> EmailMessage:
        rendered = render_email(kind, variables)
        msg = EmailMessage()
        msg["Subject"] = rendered.subject
        msg["From"] = self.sender
        msg["To"] = recipient
        msg.set_content(rendered.text_body)
        msg.add_alternative(rendered.html_body, subtype="html")
        return msg

    def _send_smtp(self, msg: EmailMessage) -> None:
        if self.use_ssl:
            with smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout_seconds) as server:
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)
        else:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds) as server:
                server.starttls()
                if self.user and self.password:
                    server.login(self.user, self.password)
                server.send_message(msg)

    async def dispatch(
        self,
        recipient: str,
        template_kind: EmailTemplateKind,
        variables: Dict[str, Any],
    ) -> bool:
        """
        Render and send one email. Returns True when delivered.

        Never raises for delivery problems. An unknown template kind is a
        programming error and raises ValueError.
        """
        kind = EmailTemplateKind(template_kind)
        if not self.enabled:
            logger.warning(f"[EMAIL SKIPPED] SMTP not configured; {kind.value} email to {recipient} not sent")
            return False

        msg = self.build_message(recipient, kind, variables)
        loop = asyncio.get_running_loop()
        try:
            await asyncio.wait_for(
                loop.run_in_executor(None, self._transport, msg),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(
                f"[EMAIL TIMEOUT] {kind.value} email to {recipient} exceeded {self.timeout_seconds}s"
            )
            return False
        except Exception as e:
            logger.error(
                f"[EMAIL FAILED] {kind.value} email to {recipient}: {type(e).__name__}: {e}",
                exc_info=e,
            )
            return False

        logger.info(f"[EMAIL SENT] {kind.value} email to {recipient}")
        return True


_dispatcher: Optional[EmailDispatcher] = None


def get_email_dispatcher() -> EmailDispatcher:
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = EmailDispatcher.from_settings()
    return _dispatcher
