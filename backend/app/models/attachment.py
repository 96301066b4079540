"""
Attachment models.

Forms send attachments in several shapes: a single descriptor object, a list
of descriptors, or a mapping of named groups (e.g. "documentoIdentita",
"visuraCatastale") each holding a single descriptor or a list. The raw JSON
is parsed into one of the tagged variants below before normalization, so the
normalizer never has to guess the shape from field presence.
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field


# Keys that carry base64 content, in priority order. "allegato" is the field
# name used by the first version of the application form.
CONTENT_KEYS = ("base64", "content", "contentBase64", "allegato")

# Any of these keys marks a dict as a descriptor rather than a group map.
DESCRIPTOR_KEYS = frozenset(
    CONTENT_KEYS + ("filename", "contentType", "content_type")
)


class AttachmentDescriptor(BaseModel):
    """A raw attachment descriptor as received from a form."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    filename: Optional[str] = None
    base64: Any = None
    content: Any = None
    content_base64: Any = Field(default=None, alias="contentBase64")
    allegato: Any = None
    content_type: Optional[str] = Field(default=None, alias="contentType")

    @classmethod
    def from_raw(cls, raw: dict) -> "AttachmentDescriptor":
        data = dict(raw)
        # Accept the snake_case spelling alongside contentType.
        if "content_type" in data and "contentType" not in data:
            data["contentType"] = data.pop("content_type")
        if not isinstance(data.get("contentType"), str):
            data.pop("contentType", None)
        if not isinstance(data.get("filename"), str):
            data.pop("filename", None)
        return cls.model_validate(data)

    def raw_content(self) -> Union[str, bytes, None]:
        """Return the first present content value (str or bytes), or None."""
        for value in (self.base64, self.content, self.content_base64, self.allegato):
            if isinstance(value, (str, bytes)):
                return value
        return None


class SingleAttachment(BaseModel):
    kind: Literal["single"] = "single"
    descriptor: AttachmentDescriptor


class AttachmentList(BaseModel):
    kind: Literal["list"] = "list"
    descriptors: list[AttachmentDescriptor] = []


GroupEntry = Annotated[
    Union[SingleAttachment, AttachmentList], Field(discriminator="kind")
]


class AttachmentGroupMap(BaseModel):
    kind: Literal["groups"] = "groups"
    groups: dict[str, GroupEntry] = {}


AttachmentInput = Annotated[
    Union[SingleAttachment, AttachmentList, AttachmentGroupMap],
    Field(discriminator="kind"),
]


class NormalizedAttachment(BaseModel):
    """A canonical attachment: decoded bytes ready to hand to the mail layer."""

    filename: str
    content: bytes          # always decoded, never base64 text
    content_type: Optional[str] = None
