"""
Outbound email model, transport-agnostic.

One OutboundMessage is built per send target (internal staff list, client)
and handed to a MailTransport; only the transport knows about MIME and SMTP.
"""

from typing import Optional

from pydantic import BaseModel

from app.models.attachment import NormalizedAttachment


class OutboundMessage(BaseModel):
    from_address: str        # display name + address, e.g. 'Energy Planner <info@...>'
    to: list[str]
    subject: str
    html: str
    attachments: list[NormalizedAttachment] = []
    reply_to: Optional[str] = None
