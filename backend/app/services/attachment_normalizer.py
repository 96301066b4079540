"""
Attachment normalizer.

Turns the attachment shapes accepted from forms into an ordered list of
NormalizedAttachment (filename, decoded bytes, optional content type).

Two steps:
  1. parse_attachment_input(raw)  - raw JSON → SingleAttachment |
                                    AttachmentList | AttachmentGroupMap
  2. normalize_attachments(input) - variant → list[NormalizedAttachment]

Both steps are pure: the same input always produces the same output, and
normalizing the dumped output of a previous run gives the same list again
(bytes content is passed through untouched).

Descriptors without a recognized content field are dropped silently.

Content is decoded here rather than at send time: text that is not base64
raises AttachmentDecodeError during normalization, so a submission with a
broken attachment fails before any message is sent.
"""

import base64
import binascii
import re
from pathlib import PurePosixPath
from typing import Any, Optional, Union

from app.models.attachment import (
    DESCRIPTOR_KEYS,
    AttachmentDescriptor,
    AttachmentGroupMap,
    AttachmentInput,
    AttachmentList,
    NormalizedAttachment,
    SingleAttachment,
)

DEFAULT_FALLBACK_FILENAME = "allegato.pdf"

# Only the types the forms actually upload; anything else is left for the
# mail layer to guess.
_CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
}

_DATA_URL_PREFIX = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


class AttachmentDecodeError(ValueError):
    """Raised when attachment content is not decodable base64."""


# ---------------------------------------------------------------------------
# Step 1: shape parsing
# ---------------------------------------------------------------------------

def _is_descriptor(value: dict) -> bool:
    return any(key in value for key in DESCRIPTOR_KEYS)


def _parse_entry(raw: Any) -> Union[SingleAttachment, AttachmentList, None]:
    if isinstance(raw, dict):
        return SingleAttachment(descriptor=AttachmentDescriptor.from_raw(raw))
    if isinstance(raw, list):
        return AttachmentList(
            descriptors=[
                AttachmentDescriptor.from_raw(item)
                for item in raw
                if isinstance(item, dict)
            ]
        )
    return None


def parse_attachment_input(raw: Any, *, as_groups: bool = False) -> Optional[AttachmentInput]:
    """
    Parse raw attachment JSON into a tagged variant.

    A dict is a single descriptor when it carries any descriptor key
    (filename, a content key, contentType); otherwise it is read as a group
    map. ``as_groups=True`` forces the group-map reading, for fields that are
    always keyed by group name. Returns None for absent/unusable input.
    """
    if raw is None:
        return None

    if isinstance(raw, dict) and (as_groups or not _is_descriptor(raw)):
        groups = {}
        for name, entry in raw.items():
            parsed = _parse_entry(entry)
            if parsed is not None:
                groups[str(name)] = parsed
        return AttachmentGroupMap(groups=groups)

    return _parse_entry(raw)


def _descriptors_of(entry: Union[SingleAttachment, AttachmentList]) -> list[AttachmentDescriptor]:
    if isinstance(entry, SingleAttachment):
        return [entry.descriptor]
    return list(entry.descriptors)


def has_attachment_content(attachment_input: Optional[AttachmentInput]) -> bool:
    """True when at least one descriptor carries non-empty content. Nothing is decoded."""
    if attachment_input is None:
        return False
    if isinstance(attachment_input, AttachmentGroupMap):
        entries = list(attachment_input.groups.values())
    else:
        entries = [attachment_input]
    return any(
        descriptor.raw_content()
        for entry in entries
        for descriptor in _descriptors_of(entry)
    )


def attachment_input_from_submission(submission: Any) -> Optional[AttachmentInput]:
    """
    Pick the attachment source of a submission.

    Order: attachmentGroups, attachments, attachment, then the legacy flat
    ``allegato`` + ``filename`` pair from the original application form.
    """
    groups = getattr(submission, "attachment_groups", None)
    if groups is not None:
        return parse_attachment_input(groups, as_groups=True)

    for field in ("attachments", "attachment"):
        value = getattr(submission, field, None)
        if value is not None:
            return parse_attachment_input(value)

    legacy = getattr(submission, "allegato", None)
    if legacy is not None:
        return SingleAttachment(
            descriptor=AttachmentDescriptor(
                allegato=legacy, filename=getattr(submission, "filename", None)
            )
        )
    return None


# ---------------------------------------------------------------------------
# Step 2: normalization
# ---------------------------------------------------------------------------

def decode_content(value: Union[str, bytes]) -> bytes:
    """
    Decode base64 content leniently.

    Bytes pass through unchanged. Strings may carry a ``data:...;base64,``
    prefix, embedded whitespace and missing padding. Raises
    AttachmentDecodeError when the text still cannot be decoded.
    """
    if isinstance(value, bytes):
        return value

    text = _WHITESPACE.sub("", _DATA_URL_PREFIX.sub("", value.strip()))
    text += "=" * (-len(text) % 4)
    try:
        return base64.b64decode(text, validate=False)
    except (binascii.Error, ValueError) as exc:
        raise AttachmentDecodeError(f"Invalid base64 attachment content: {exc}") from exc


def infer_content_type(filename: str) -> Optional[str]:
    return _CONTENT_TYPES.get(PurePosixPath(filename).suffix.lower())


def _indexed_filename(fallback: str, index: int) -> str:
    """file.pdf, 2 → file_2.pdf"""
    path = PurePosixPath(fallback)
    return f"{path.stem}_{index}{path.suffix}"


def _normalize_group(
    descriptors: list[AttachmentDescriptor],
    fallback_filename: str,
    force_content_type: Optional[str],
) -> list[NormalizedAttachment]:
    usable = [d for d in descriptors if d.raw_content() is not None]
    unnamed_total = sum(1 for d in usable if not (d.filename and d.filename.strip()))

    result: list[NormalizedAttachment] = []
    unnamed_seen = 0
    for descriptor in usable:
        filename = (descriptor.filename or "").strip()
        if not filename:
            unnamed_seen += 1
            filename = (
                _indexed_filename(fallback_filename, unnamed_seen)
                if unnamed_total > 1
                else fallback_filename
            )

        content_type = (
            force_content_type
            or descriptor.content_type
            or infer_content_type(filename)
        )
        result.append(
            NormalizedAttachment(
                filename=filename,
                content=decode_content(descriptor.raw_content()),
                content_type=content_type,
            )
        )
    return result


def normalize_attachments(
    attachment_input: Optional[AttachmentInput],
    fallback_filename: str = DEFAULT_FALLBACK_FILENAME,
    group_fallbacks: Optional[dict[str, str]] = None,
    force_content_type: Optional[str] = None,
) -> list[NormalizedAttachment]:
    """
    Normalize a parsed attachment input into canonical attachments.

    Args:
        attachment_input: Output of parse_attachment_input (None → []).
        fallback_filename: Name for unnamed descriptors outside named groups.
        group_fallbacks: Per-group fallback names; a group without an entry
            falls back to ``<group>.pdf``.
        force_content_type: Overrides every descriptor's content type.

    Returns:
        Attachments in input order, groups flattened in mapping order.

    Raises:
        AttachmentDecodeError: content present but not decodable.
    """
    if attachment_input is None:
        return []

    if isinstance(attachment_input, AttachmentGroupMap):
        group_fallbacks = group_fallbacks or {}
        result: list[NormalizedAttachment] = []
        for name, entry in attachment_input.groups.items():
            fallback = group_fallbacks.get(name) or f"{name}.pdf"
            result.extend(
                _normalize_group(_descriptors_of(entry), fallback, force_content_type)
            )
        return result

    return _normalize_group(
        _descriptors_of(attachment_input), fallback_filename, force_content_type
    )
