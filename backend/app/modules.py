"""
Form module table.

Every submission endpoint is one FormModule row consumed by the generic
handler in app.routers.submissions. Endpoints differ only in the data below:
which fields are required, which HTML is composed, where the notification
goes, and whether the submitter receives a copy.

Recipient overrides: a module with a ``config_key`` reads
``<CONFIG_KEY>_RECIPIENTS`` (then INTERNAL_RECIPIENTS, then EMAIL_TO) before
using ``default_recipients``. Modules without a config_key always use their
defaults.
"""

from dataclasses import dataclass, field
from typing import Optional

INFO_ADDRESS = "info@energyplanner.it"
CONTRACTS_ADDRESS = "contratti@energyplanner.it"

COMPOSER_BASIC = "basic"
COMPOSER_CONTRACT = "contract"


@dataclass(frozen=True)
class FormModule:
    key: str
    path: str
    default_recipients: tuple[str, ...]
    subject_template: str = "Nuova richiesta da {name}"
    subject_prefix: Optional[str] = None
    config_key: Optional[str] = None
    required_fields: tuple[str, ...] = ("name", "email")
    require_attachment: bool = False
    client_copy: bool = False
    client_copy_attachments: bool = True
    attachment_fallback: str = "allegato.pdf"
    group_fallbacks: dict[str, str] = field(default_factory=dict, hash=False)
    force_content_type: Optional[str] = None
    brand_name: Optional[str] = None
    composer: str = COMPOSER_BASIC
    title: str = "Nuova richiesta dal sito"

    def subject_for(self, name: str) -> str:
        subject = self.subject_template.format(name=" ".join(name.split()))
        if self.subject_prefix:
            return f"[{self.subject_prefix}] {subject}"
        return subject


def _form_module(slug: str, prefix: str, config_key: str, recipients: tuple[str, ...], **kwargs) -> FormModule:
    """Per-business-form module: resolved recipients plus a client copy."""
    return FormModule(
        key=slug,
        path=f"/api/forms/{slug}",
        default_recipients=recipients,
        subject_prefix=prefix,
        config_key=config_key,
        client_copy=True,
        title=f"Nuova richiesta {prefix}",
        **kwargs,
    )


MODULES: tuple[FormModule, ...] = (
    # Job application form: one CV attachment, staff only.
    FormModule(
        key="candidatura",
        path="/api/sendEmail",
        default_recipients=(INFO_ADDRESS,),
        subject_template="Nuova candidatura da {name}",
        attachment_fallback="curriculum.pdf",
        require_attachment=True,
        title="Nuova candidatura",
    ),
    # Same form, multiple documents, always delivered as PDF.
    FormModule(
        key="candidatura-pdf",
        path="/api/sendEmailPdf",
        default_recipients=(INFO_ADDRESS,),
        subject_template="Nuova candidatura da {name}",
        attachment_fallback="documento.pdf",
        require_attachment=True,
        force_content_type="application/pdf",
        title="Nuova candidatura",
    ),
    FormModule(
        key="contatti",
        path="/api/contact",
        default_recipients=(INFO_ADDRESS,),
        subject_template="Nuovo messaggio da {name}",
        client_copy=True,
        title="Nuovo messaggio dal sito",
    ),
    FormModule(
        key="richieste-interne",
        path="/api/internal",
        default_recipients=(INFO_ADDRESS, "commerciale@energyplanner.it"),
        config_key="RICHIESTE_INTERNE",
    ),
    _form_module(
        "fotovoltaico", "Fotovoltaico", "FOTOVOLTAICO",
        ("fotovoltaico@energyplanner.it", INFO_ADDRESS),
    ),
    _form_module(
        "luce-gas", "Luce e Gas", "LUCE_GAS",
        ("lucegas@energyplanner.it", INFO_ADDRESS),
    ),
    _form_module(
        "efficienza-energetica", "Efficienza Energetica", "EFFICIENZA_ENERGETICA",
        ("efficienza@energyplanner.it",),
    ),
    _form_module(
        "comunita-energetiche", "Comunità Energetiche", "COMUNITA_ENERGETICHE",
        ("cer@energyplanner.it",),
        brand_name="Energy Planner CER",
        client_copy_attachments=False,
    ),
    _form_module(
        "partner", "Diventa Partner", "PARTNER",
        ("partner@energyplanner.it",),
        client_copy_attachments=False,
    ),
    # Long-form supply contract with identity documents.
    FormModule(
        key="contratto",
        path="/api/contracts/submit",
        default_recipients=(CONTRACTS_ADDRESS,),
        subject_template="Nuovo contratto da {name}",
        required_fields=("name", "email", "iban"),
        client_copy=True,
        client_copy_attachments=True,
        composer=COMPOSER_CONTRACT,
        group_fallbacks={
            "documentoIdentita": "documento_identita.pdf",
            "visuraCatastale": "visura_catastale.pdf",
            "firma": "firma.png",
            "bolletta": "bolletta.pdf",
        },
    ),
)


def get_module(key: str) -> FormModule:
    for module in MODULES:
        if module.key == key:
            return module
    raise KeyError(f"Unknown form module {key!r}")
