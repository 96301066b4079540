"""
Outbound mail: SMTP transport and submission dispatcher.

The transport is a process-wide, stateless connector created once at startup
(see app.main) and handed to handlers through a FastAPI dependency. It keeps
no per-request state, so concurrent requests share it safely.

Public API:
  MailTransport          - protocol: async send(OutboundMessage)
  SmtpMailTransport      - aiosmtplib implementation
  build_mime_message()   - OutboundMessage → email.message.EmailMessage
  format_sender()        - 'Brand <address>', quoted when needed
  single_line()          - header-safe value (whitespace and line breaks collapsed)
  dispatch_submission()  - send to internal staff and, optionally, the client
"""

import asyncio
import logging
import mimetypes
from email.message import EmailMessage
from email.utils import formataddr, formatdate, make_msgid
from typing import Optional, Protocol, Sequence

import aiosmtplib

from app.config import MailSettings
from app.models.attachment import NormalizedAttachment
from app.models.outbound import OutboundMessage

logger = logging.getLogger(__name__)

_FALLBACK_CONTENT_TYPE = "application/octet-stream"


class MailDeliveryError(RuntimeError):
    """The mail transport could not deliver a message."""


class MailTransport(Protocol):
    async def send(self, message: OutboundMessage) -> None:
        ...


# ---------------------------------------------------------------------------
# MIME rendering
# ---------------------------------------------------------------------------

def single_line(value: str) -> str:
    """Collapse all whitespace, line breaks included, to single spaces."""
    return " ".join(value.split())


def format_sender(brand_name: str, address: str) -> str:
    return formataddr((single_line(brand_name), address))


def _split_content_type(attachment: NormalizedAttachment) -> tuple[str, str]:
    content_type = (
        attachment.content_type
        or mimetypes.guess_type(attachment.filename)[0]
        or _FALLBACK_CONTENT_TYPE
    )
    maintype, _, subtype = content_type.partition("/")
    if not subtype:
        return "application", "octet-stream"
    return maintype, subtype


def build_mime_message(message: OutboundMessage) -> EmailMessage:
    """Render an OutboundMessage as an HTML email with attachments."""
    mime = EmailMessage()
    mime["From"] = single_line(message.from_address)
    mime["To"] = ", ".join(single_line(address) for address in message.to)
    mime["Subject"] = single_line(message.subject)
    mime["Date"] = formatdate(localtime=True)
    mime["Message-ID"] = make_msgid()
    if message.reply_to:
        mime["Reply-To"] = single_line(message.reply_to)

    mime.set_content(message.html, subtype="html")

    for attachment in message.attachments:
        maintype, subtype = _split_content_type(attachment)
        mime.add_attachment(
            attachment.content,
            maintype=maintype,
            subtype=subtype,
            filename=attachment.filename,
        )
    return mime


# ---------------------------------------------------------------------------
# SMTP transport
# ---------------------------------------------------------------------------

class SmtpMailTransport:
    """Sends OutboundMessages through an SMTP account with aiosmtplib."""

    def __init__(self, settings: MailSettings):
        self.settings = settings

    async def send(self, message: OutboundMessage) -> None:
        settings = self.settings
        if not settings.username or not settings.password:
            raise MailDeliveryError(
                "SMTP credentials are not configured (EMAIL_USER / EMAIL_PASS)"
            )

        mime = build_mime_message(message)
        try:
            await aiosmtplib.send(
                mime,
                hostname=settings.host,
                port=settings.port,
                username=settings.username,
                password=settings.password,
                use_tls=settings.use_tls,
                start_tls=not settings.use_tls,
                timeout=settings.timeout,
            )
        except aiosmtplib.SMTPException as exc:
            raise MailDeliveryError(f"SMTP send failed: {exc}") from exc

        logger.info(
            f"Email sent to {len(message.to)} recipient(s) via {settings.host} "
            f"({len(message.attachments)} attachment(s))"
        )


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------

async def dispatch_submission(
    transport: MailTransport,
    *,
    sender: str,
    subject: str,
    html: str,
    attachments: Sequence[NormalizedAttachment],
    internal_recipients: Sequence[str],
    reply_to: Optional[str] = None,
    client_email: Optional[str] = None,
    client_attachments: bool = True,
) -> None:
    """
    Send a submission to internal staff and, when given, to the client.

    The internal copy carries ``reply_to`` (the submitter) so staff can answer
    the submitter directly, whether or not a client copy is sent. The client
    copy goes to ``client_email`` when given and has no Reply-To. Both sends run
    concurrently and this coroutine returns only after every send settled.
    If any send failed, the first failure is re-raised: the caller sees one
    outcome for the whole submission, never a partial success.

    Raises:
        Whatever the transport raised (typically MailDeliveryError).
    """
    messages: list[OutboundMessage] = []
    if internal_recipients:
        messages.append(
            OutboundMessage(
                from_address=sender,
                to=list(internal_recipients),
                subject=subject,
                html=html,
                attachments=list(attachments),
                reply_to=reply_to or None,
            )
        )
    if client_email:
        messages.append(
            OutboundMessage(
                from_address=sender,
                to=[client_email],
                subject=subject,
                html=html,
                attachments=list(attachments) if client_attachments else [],
            )
        )

    results = await asyncio.gather(
        *(transport.send(message) for message in messages),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, BaseException)]
    for failure in failures:
        logger.error(f"Send failed: {failure}")
    if failures:
        raise failures[0]
