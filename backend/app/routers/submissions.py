"""
Form submission router.

Every module in app.modules.MODULES is registered here as a POST route backed
by the same handler:

  received → validated → normalized + composed → dispatched → responded

Responses (all endpoints):
  200  {"ok": true,  "message": "Email inviata"}
  400  {"ok": false, "message": "Campi obbligatori mancanti", "error": "..."}
  500  {"ok": false, "message": "Errore invio email",          "error": "..."}

Nothing is retried or queued: a failed request is reported and forgotten.

Endpoints:
  GET  /api/modules - registered form modules (no recipient addresses)
  POST <module.path> for each module, e.g. /api/sendEmail, /api/forms/fotovoltaico
"""

import json
import logging
from typing import Any, Union

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from app.config import get_brand_name, get_mail_settings
from app.models.submission import ContractSubmission, Submission, SubmissionResponse
from app.modules import COMPOSER_CONTRACT, INFO_ADDRESS, MODULES, FormModule
from app.services.attachment_normalizer import (
    attachment_input_from_submission,
    has_attachment_content,
    normalize_attachments,
)
from app.services.mailer import (
    MailTransport,
    SmtpMailTransport,
    dispatch_submission,
    format_sender,
)
from app.services.message_composer import compose_contract_html, compose_submission_html
from app.services.recipients import resolve_recipients

logger = logging.getLogger(__name__)

router = APIRouter()

SUCCESS_MESSAGE = "Email inviata"
VALIDATION_MESSAGE = "Campi obbligatori mancanti"
INVALID_BODY_MESSAGE = "Richiesta non valida"
FAILURE_MESSAGE = "Errore invio email"


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------

def get_mail_transport(request: Request) -> MailTransport:
    """
    Return the process-wide mail transport.

    Normally created by the application lifespan; built on first use when the
    app runs without it (e.g. a TestClient used outside a ``with`` block).
    """
    transport = getattr(request.app.state, "mail_transport", None)
    if transport is None:
        transport = SmtpMailTransport(get_mail_settings())
        request.app.state.mail_transport = transport
    return transport


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _respond(status_code: int, ok: bool, message: str, error: str | None = None) -> JSONResponse:
    body = SubmissionResponse(ok=ok, message=message, error=error)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def _missing_fields(submission: Any, required: tuple[str, ...]) -> list[str]:
    missing = []
    for field in required:
        value = getattr(submission, field, None)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(field)
    return missing


def _sender_for(module: FormModule) -> str:
    address = get_mail_settings().sender_address or INFO_ADDRESS
    return format_sender(module.brand_name or get_brand_name(), address)


def _compose(module: FormModule, submission: Union[Submission, ContractSubmission]) -> str:
    if module.composer == COMPOSER_CONTRACT:
        return compose_contract_html(submission)
    return compose_submission_html(submission, title=module.title)


# ---------------------------------------------------------------------------
# Generic handler
# ---------------------------------------------------------------------------

async def handle_submission(
    module: FormModule,
    payload: Any,
    transport: MailTransport,
) -> JSONResponse:
    """
    Validate, normalize, compose and dispatch one submission for ``module``.

    Validation failures return 400 before anything else runs. Any exception
    after validation (undecodable attachment, missing recipient config,
    transport failure) is logged and returned as a 500 carrying the error
    text.
    """
    if not isinstance(payload, dict):
        logger.warning(f"[{module.key}] Rejected non-object body")
        return _respond(400, False, INVALID_BODY_MESSAGE, "Request body must be a JSON object")

    model = ContractSubmission if module.composer == COMPOSER_CONTRACT else Submission
    try:
        submission = model.model_validate(payload)
    except ValidationError as exc:
        logger.warning(f"[{module.key}] Rejected invalid body: {exc.error_count()} error(s)")
        return _respond(400, False, INVALID_BODY_MESSAGE, str(exc))

    attachment_input = attachment_input_from_submission(submission)
    missing = _missing_fields(submission, module.required_fields)
    if module.require_attachment and not has_attachment_content(attachment_input):
        missing.append("attachment")
    if missing:
        logger.warning(f"[{module.key}] Missing required fields: {missing}")
        return _respond(
            400, False, VALIDATION_MESSAGE, f"Missing required fields: {', '.join(missing)}"
        )

    try:
        attachments = normalize_attachments(
            attachment_input,
            fallback_filename=module.attachment_fallback,
            group_fallbacks=module.group_fallbacks,
            force_content_type=module.force_content_type,
        )
        html = _compose(module, submission)
        recipients = resolve_recipients(module)
        submitter = "".join(submission.email.split())
        client_email = submitter if module.client_copy else None

        logger.info(
            f"[{module.key}] Dispatching submission: {len(attachments)} attachment(s), "
            f"{len(recipients)} internal recipient(s), client copy={bool(client_email)}"
        )
        await dispatch_submission(
            transport,
            sender=_sender_for(module),
            subject=module.subject_for(submission.name.strip()),
            html=html,
            attachments=attachments,
            internal_recipients=recipients,
            reply_to=submitter,
            client_email=client_email,
            client_attachments=module.client_copy_attachments,
        )
    except Exception as exc:
        logger.exception(f"[{module.key}] Submission failed: {exc}")
        return _respond(500, False, FAILURE_MESSAGE, str(exc))

    return _respond(200, True, SUCCESS_MESSAGE)


# ---------------------------------------------------------------------------
# Route registration
# ---------------------------------------------------------------------------

def _make_endpoint(module: FormModule):
    async def endpoint(
        request: Request,
        transport: MailTransport = Depends(get_mail_transport),
    ) -> JSONResponse:
        try:
            payload = await request.json()
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning(f"[{module.key}] Rejected body that is not valid JSON")
            return _respond(400, False, INVALID_BODY_MESSAGE, "Request body must be valid JSON")
        return await handle_submission(module, payload, transport)

    endpoint.__name__ = f"submit_{module.key.replace('-', '_')}"
    return endpoint


for _module in MODULES:
    router.add_api_route(
        _module.path,
        _make_endpoint(_module),
        methods=["POST"],
        response_model=SubmissionResponse,
        summary=f"Relay a '{_module.key}' form submission",
        tags=["submissions"],
    )


@router.get("/api/modules")
async def list_modules():
    """List registered form modules. Recipient addresses are not exposed."""
    return [
        {
            "key": module.key,
            "path": module.path,
            "subject_prefix": module.subject_prefix,
            "client_copy": module.client_copy,
            "require_attachment": module.require_attachment,
            "required_fields": list(module.required_fields),
        }
        for module in MODULES
    ]
