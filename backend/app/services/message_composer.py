"""
HTML composition for relayed submissions.

Public API:
  format_timestamp(moment=None) -> str
  compose_submission_html(submission, title=...) -> str
  compose_contract_html(contract) -> str

Labels are Italian, matching the forms. Every user value is HTML-escaped.
Optional fields are omitted entirely when absent or blank, never rendered as
empty rows.
"""

import html
from datetime import datetime
from typing import Iterable, Optional

from app.models.submission import ContractSubmission, Submission

PLACEHOLDER = "-"

_WRAPPER_STYLE = "font-family: Arial, Helvetica, sans-serif; color: #222; font-size: 14px;"
_SECTION_STYLE = "margin: 16px 0 6px 0; font-size: 15px; color: #1b5e20;"
_LABEL_STYLE = "padding: 4px 12px 4px 0; color: #555; vertical-align: top;"
_VALUE_STYLE = "padding: 4px 0; font-weight: 600;"


def format_timestamp(moment: Optional[datetime] = None) -> str:
    """Format a timestamp the way it-IT locale does: 19/10/2026, 20:25:03."""
    moment = moment or datetime.now()
    return moment.strftime("%d/%m/%Y, %H:%M:%S")


def _present(value: Optional[str]) -> bool:
    return value is not None and str(value).strip() != ""


def _escape(value: str) -> str:
    return html.escape(str(value).strip())


def _line(label: str, value: str) -> str:
    return f"<p><strong>{label}:</strong> {value}</p>"


def compose_submission_html(
    submission: Submission,
    title: str = "Nuova richiesta dal sito",
    moment: Optional[datetime] = None,
) -> str:
    """
    Render the standard notification body.

    Nome and Email are always present (a dash stands in for missing values);
    Telefono and Messaggio appear only when given. Multi-line messages keep
    their line breaks.
    """
    name = _escape(submission.name) if _present(submission.name) else PLACEHOLDER
    email = _escape(submission.email) if _present(submission.email) else PLACEHOLDER

    lines = [
        _line("Nome", name),
        _line("Email", email),
    ]
    if _present(submission.phone):
        lines.append(_line("Telefono", _escape(submission.phone)))
    if _present(submission.message):
        lines.append(
            _line("Messaggio", _escape(submission.message).replace("\n", "<br>"))
        )
    lines.append(_line("Data", format_timestamp(moment)))

    body = "\n    ".join(lines)
    return (
        f'<div style="{_WRAPPER_STYLE}">\n'
        f"    <h2>{html.escape(title)}</h2>\n"
        f"    {body}\n"
        f"</div>"
    )


# ---------------------------------------------------------------------------
# Contract submissions
# ---------------------------------------------------------------------------

def _section(title: str, rows: Iterable[tuple[str, Optional[str]]]) -> str:
    """Render a titled table of the present rows, or "" when none are."""
    rendered = [
        f'<tr><td style="{_LABEL_STYLE}">{label}</td>'
        f'<td style="{_VALUE_STYLE}">{_escape(value)}</td></tr>'
        for label, value in rows
        if _present(value)
    ]
    if not rendered:
        return ""
    return (
        f'<h3 style="{_SECTION_STYLE}">{title}</h3>\n'
        f'<table style="border-collapse: collapse;">\n'
        + "\n".join(rendered)
        + "\n</table>"
    )


def compose_contract_html(
    contract: ContractSubmission,
    moment: Optional[datetime] = None,
) -> str:
    """Render the full contract notification, one section per data block."""
    beneficiary = contract.beneficiary
    company = contract.company
    address = contract.address
    supply = contract.supply

    sections = []
    if beneficiary:
        sections.append(_section("Beneficiario", [
            ("Nome", beneficiary.first_name),
            ("Cognome", beneficiary.last_name),
            ("Codice fiscale", beneficiary.fiscal_code),
            ("Data di nascita", beneficiary.birth_date),
            ("Luogo di nascita", beneficiary.birth_place),
            ("Telefono", beneficiary.phone),
        ]))
    if company:
        sections.append(_section("Azienda", [
            ("Ragione sociale", company.company_name),
            ("Partita IVA", company.vat_number),
            ("Codice fiscale", company.fiscal_code),
            ("Legale rappresentante", company.legal_representative),
            ("PEC", company.pec),
            ("Codice SDI", company.sdi_code),
        ]))
    if address:
        street = " ".join(
            p.strip() for p in (address.street, address.street_number) if _present(p)
        )
        sections.append(_section("Indirizzo", [
            ("Via", street),
            ("CAP", address.postal_code),
            ("Comune", address.city),
            ("Provincia", address.province),
        ]))
    if supply:
        sections.append(_section("Fornitura", [
            ("POD", supply.pod),
            ("PDR", supply.pdr),
            ("Fornitore attuale", supply.supplier),
            ("Consumo annuo", supply.annual_consumption),
        ]))
    sections.append(_section("Contatti e pagamento", [
        ("Email", contract.email),
        ("IBAN", contract.iban),
        ("Intestatario IBAN", contract.iban_holder),
        ("Note", contract.notes),
    ]))

    heading = _escape(contract.name) if _present(contract.name) else PLACEHOLDER
    body = "\n".join(s for s in sections if s)
    return (
        f'<div style="{_WRAPPER_STYLE}">\n'
        f"<h2>Nuovo contratto: {heading}</h2>\n"
        f"{body}\n"
        f"{_line('Data', format_timestamp(moment))}\n"
        f"</div>"
    )
