"""
Pydantic models for form submissions and relay responses.

Models:
  Submission          - generic lead/application form body
  Beneficiary         - natural person block of a contract submission
  Company             - business block of a contract submission
  Address             - supply/registered address
  Supply              - energy supply details (POD/PDR, supplier)
  ContractSubmission  - long-form contract body (identity, IBAN, documents)
  SubmissionResponse  - JSON body returned by every submission endpoint
"""

from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field


# ---------------------------------------------------------------------------
# Generic submission
# ---------------------------------------------------------------------------

class Submission(BaseModel):
    """
    A generic form submission.

    Field names follow the current forms (name/email/phone/message); the
    Italian names used by older forms (nome/telefono/messaggio) are accepted
    as aliases. Module-specific extra fields are kept, not rejected.
    """
    model_config = {"extra": "allow", "populate_by_name": True}

    name: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("name", "nome")
    )
    email: Optional[str] = None
    phone: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("phone", "telefono")
    )
    message: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("message", "messaggio")
    )

    # Attachment inputs stay raw here; the normalizer parses their shape.
    attachment: Any = None
    attachments: Any = Field(
        default=None, validation_alias=AliasChoices("attachments", "allegati")
    )
    attachment_groups: Any = Field(
        default=None,
        validation_alias=AliasChoices("attachmentGroups", "attachment_groups"),
    )

    # Legacy flat single attachment: {"allegato": "<base64>", "filename": "cv.pdf"}
    allegato: Optional[str] = None
    filename: Optional[str] = None


# ---------------------------------------------------------------------------
# Contract submission
# ---------------------------------------------------------------------------

class Beneficiary(BaseModel):
    model_config = {"extra": "ignore", "populate_by_name": True}

    first_name: Optional[str] = Field(default=None, alias="firstName")
    last_name: Optional[str] = Field(default=None, alias="lastName")
    fiscal_code: Optional[str] = Field(default=None, alias="fiscalCode")
    birth_date: Optional[str] = Field(default=None, alias="birthDate")
    birth_place: Optional[str] = Field(default=None, alias="birthPlace")
    phone: Optional[str] = None

    @property
    def full_name(self) -> Optional[str]:
        parts = [p.strip() for p in (self.first_name, self.last_name) if p and p.strip()]
        return " ".join(parts) or None


class Company(BaseModel):
    model_config = {"extra": "ignore", "populate_by_name": True}

    company_name: Optional[str] = Field(default=None, alias="companyName")
    vat_number: Optional[str] = Field(default=None, alias="vatNumber")
    fiscal_code: Optional[str] = Field(default=None, alias="fiscalCode")
    legal_representative: Optional[str] = Field(default=None, alias="legalRepresentative")
    pec: Optional[str] = None
    sdi_code: Optional[str] = Field(default=None, alias="sdiCode")


class Address(BaseModel):
    model_config = {"extra": "ignore", "populate_by_name": True}

    street: Optional[str] = None
    street_number: Optional[str] = Field(default=None, alias="streetNumber")
    city: Optional[str] = None
    province: Optional[str] = None
    postal_code: Optional[str] = Field(default=None, alias="postalCode")


class Supply(BaseModel):
    model_config = {"extra": "ignore", "populate_by_name": True}

    pod: Optional[str] = None
    pdr: Optional[str] = None
    supplier: Optional[str] = None
    annual_consumption: Optional[str] = Field(default=None, alias="annualConsumption")


class ContractSubmission(BaseModel):
    """
    Long-form contract submission.

    The identity is either a company (companyName) or a natural person
    (beneficiary first/last name); ``name`` resolves to whichever is present,
    preferring the company. Documents arrive as named attachment groups.
    """
    model_config = {"extra": "allow", "populate_by_name": True}

    beneficiary: Optional[Beneficiary] = None
    company: Optional[Company] = None
    address: Optional[Address] = None
    supply: Optional[Supply] = None
    email: Optional[str] = None
    iban: Optional[str] = None
    iban_holder: Optional[str] = Field(default=None, alias="ibanHolder")
    notes: Optional[str] = None
    attachment_groups: Any = Field(
        default=None,
        validation_alias=AliasChoices("attachmentGroups", "attachment_groups", "allegati"),
    )

    @property
    def name(self) -> Optional[str]:
        if self.company and self.company.company_name and self.company.company_name.strip():
            return self.company.company_name.strip()
        if self.beneficiary:
            return self.beneficiary.full_name
        return None


# ---------------------------------------------------------------------------
# Response
# ---------------------------------------------------------------------------

class SubmissionResponse(BaseModel):
    """Body returned by every submission endpoint."""
    ok: bool
    message: str
    error: Optional[str] = None
