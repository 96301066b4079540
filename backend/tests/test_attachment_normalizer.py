"""
Attachment normalizer tests.

Coverage:
  - parse_attachment_input: single / list / group-map variants
  - attachment_input_from_submission: source precedence, legacy allegato field
  - normalize_attachments: decoding, content-type inference and override,
    fallback filenames and collision numbering, dropped descriptors,
    idempotence
  - decode_content: lenient base64, AttachmentDecodeError
"""

import base64

import pytest

from app.models.attachment import (
    AttachmentGroupMap,
    AttachmentList,
    SingleAttachment,
)
from app.models.submission import ContractSubmission, Submission
from app.services.attachment_normalizer import (
    AttachmentDecodeError,
    attachment_input_from_submission,
    decode_content,
    has_attachment_content,
    infer_content_type,
    normalize_attachments,
    parse_attachment_input,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

PDF_BYTES = b"%PDF-1.4\nfake pdf body\n%%EOF"
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake png"


def _b64(content: bytes) -> str:
    return base64.b64encode(content).decode()


def _normalize(raw, **kwargs):
    return normalize_attachments(parse_attachment_input(raw), **kwargs)


# ===========================================================================
# Shape parsing
# ===========================================================================

class TestParseAttachmentInput:

    def test_none_is_absent(self):
        assert parse_attachment_input(None) is None

    def test_descriptor_dict_is_single(self):
        parsed = parse_attachment_input({"filename": "doc.pdf", "base64": _b64(PDF_BYTES)})
        assert isinstance(parsed, SingleAttachment)
        assert parsed.descriptor.filename == "doc.pdf"

    def test_list_is_list_variant(self):
        parsed = parse_attachment_input([{"base64": "AAAA"}, {"content": "AAAA"}])
        assert isinstance(parsed, AttachmentList)
        assert len(parsed.descriptors) == 2

    def test_non_dict_list_entries_are_dropped(self):
        parsed = parse_attachment_input([{"base64": "AAAA"}, "junk", 42, None])
        assert isinstance(parsed, AttachmentList)
        assert len(parsed.descriptors) == 1

    def test_dict_without_descriptor_keys_is_group_map(self):
        parsed = parse_attachment_input({
            "documentoIdentita": {"base64": "AAAA"},
            "firma": [{"base64": "AAAA"}],
        })
        assert isinstance(parsed, AttachmentGroupMap)
        assert list(parsed.groups) == ["documentoIdentita", "firma"]
        assert isinstance(parsed.groups["documentoIdentita"], SingleAttachment)
        assert isinstance(parsed.groups["firma"], AttachmentList)

    def test_as_groups_forces_group_reading(self):
        # A group literally named "filename" would otherwise look like a descriptor.
        parsed = parse_attachment_input({"filename": [{"base64": "AAAA"}]}, as_groups=True)
        assert isinstance(parsed, AttachmentGroupMap)
        assert "filename" in parsed.groups

    def test_unusable_scalar_is_absent(self):
        assert parse_attachment_input("not an attachment") is None


class TestAttachmentInputFromSubmission:

    def test_groups_take_precedence_over_list(self):
        submission = Submission.model_validate({
            "name": "Mario",
            "email": "mario@example.com",
            "attachmentGroups": {"firma": {"base64": "AAAA"}},
            "attachments": [{"base64": "AAAA"}],
        })
        assert isinstance(attachment_input_from_submission(submission), AttachmentGroupMap)

    def test_allegati_alias_is_read_as_attachments(self):
        submission = Submission.model_validate({"allegati": [{"base64": "AAAA"}]})
        assert isinstance(attachment_input_from_submission(submission), AttachmentList)

    def test_single_attachment_field(self):
        submission = Submission.model_validate({"attachment": {"filename": "cv.pdf", "base64": "AAAA"}})
        assert isinstance(attachment_input_from_submission(submission), SingleAttachment)

    def test_legacy_flat_allegato_and_filename(self):
        submission = Submission.model_validate({
            "nome": "Mario",
            "email": "mario@example.com",
            "allegato": _b64(PDF_BYTES),
            "filename": "cv.pdf",
        })
        result = normalize_attachments(attachment_input_from_submission(submission))
        assert len(result) == 1
        assert result[0].filename == "cv.pdf"
        assert result[0].content == PDF_BYTES

    def test_no_attachment_fields(self):
        submission = Submission.model_validate({"name": "Mario", "email": "m@example.com"})
        assert attachment_input_from_submission(submission) is None

    def test_contract_submission_groups(self):
        contract = ContractSubmission.model_validate({
            "email": "m@example.com",
            "allegati": {"bolletta": {"base64": "AAAA"}},
        })
        assert isinstance(attachment_input_from_submission(contract), AttachmentGroupMap)


# ===========================================================================
# Normalization
# ===========================================================================

class TestNormalizeAttachments:

    def test_absent_input_gives_empty_list(self):
        assert normalize_attachments(None) == []

    def test_round_trip_pdf_descriptor(self):
        result = _normalize({"filename": "doc.pdf", "base64": _b64(PDF_BYTES)})

        assert len(result) == 1
        assert result[0].filename == "doc.pdf"
        assert result[0].content == PDF_BYTES
        assert result[0].content_type == "application/pdf"

    @pytest.mark.parametrize("key", ["base64", "content", "contentBase64", "allegato"])
    def test_every_content_key_is_accepted(self, key):
        result = _normalize([{"filename": "doc.pdf", key: _b64(PDF_BYTES)}])
        assert [a.content for a in result] == [PDF_BYTES]

    def test_first_present_content_key_wins(self):
        result = _normalize({
            "filename": "doc.pdf",
            "base64": _b64(b"first"),
            "content": _b64(b"second"),
        })
        assert result[0].content == b"first"

    def test_descriptor_without_content_is_dropped(self):
        result = _normalize([
            {"filename": "empty.pdf"},
            {"filename": "ok.pdf", "base64": _b64(PDF_BYTES)},
            {"filename": "bad.pdf", "content": {"type": "Buffer"}},
        ])
        assert [a.filename for a in result] == ["ok.pdf"]

    def test_content_type_inferred_from_extension(self):
        result = _normalize([
            {"filename": "a.PDF", "base64": "AAAA"},
            {"filename": "b.jpg", "base64": "AAAA"},
            {"filename": "c.jpeg", "base64": "AAAA"},
            {"filename": "d.png", "base64": "AAAA"},
            {"filename": "e.docx", "base64": "AAAA"},
        ])
        assert [a.content_type for a in result] == [
            "application/pdf",
            "image/jpeg",
            "image/jpeg",
            "image/png",
            None,
        ]

    def test_explicit_content_type_wins_over_extension(self):
        result = _normalize([
            {"filename": "scan.pdf", "base64": "AAAA", "contentType": "image/tiff"},
            {"filename": "scan2.pdf", "base64": "AAAA", "content_type": "image/gif"},
        ])
        assert [a.content_type for a in result] == ["image/tiff", "image/gif"]

    def test_forced_content_type_wins_over_everything(self):
        result = _normalize(
            [{"filename": "scan.jpg", "base64": "AAAA", "contentType": "image/jpeg"}],
            force_content_type="application/pdf",
        )
        assert result[0].content_type == "application/pdf"

    def test_single_unnamed_descriptor_gets_plain_fallback(self):
        result = _normalize({"base64": "AAAA"}, fallback_filename="file.pdf")
        assert result[0].filename == "file.pdf"
        assert result[0].content_type == "application/pdf"

    def test_colliding_fallbacks_are_numbered_in_order(self):
        result = _normalize(
            [{"base64": _b64(b"one")}, {"base64": _b64(b"two")}],
            fallback_filename="file.pdf",
        )
        assert [a.filename for a in result] == ["file_1.pdf", "file_2.pdf"]
        assert [a.content for a in result] == [b"one", b"two"]

    def test_named_descriptors_do_not_consume_numbers(self):
        result = _normalize(
            [{"base64": "AAAA"}, {"filename": "named.pdf", "base64": "AAAA"}, {"base64": "AAAA"}],
            fallback_filename="file.pdf",
        )
        assert [a.filename for a in result] == ["file_1.pdf", "named.pdf", "file_2.pdf"]

    def test_blank_filename_counts_as_missing(self):
        result = _normalize({"filename": "   ", "base64": "AAAA"}, fallback_filename="cv.pdf")
        assert result[0].filename == "cv.pdf"

    def test_groups_use_their_own_fallbacks_and_keep_order(self):
        raw = {
            "documentoIdentita": [{"base64": _b64(b"front")}, {"base64": _b64(b"back")}],
            "firma": {"base64": _b64(PNG_BYTES)},
            "altro": {"base64": _b64(b"x")},
        }
        result = _normalize(
            raw,
            group_fallbacks={
                "documentoIdentita": "documento_identita.pdf",
                "firma": "firma.png",
            },
        )

        assert [a.filename for a in result] == [
            "documento_identita_1.pdf",
            "documento_identita_2.pdf",
            "firma.png",
            "altro.pdf",
        ]
        assert result[2].content_type == "image/png"
        assert result[2].content == PNG_BYTES

    def test_numbering_is_per_group(self):
        raw = {
            "a": [{"base64": "AAAA"}, {"base64": "AAAA"}],
            "b": [{"base64": "AAAA"}, {"base64": "AAAA"}],
        }
        result = _normalize(raw, group_fallbacks={"a": "file.pdf", "b": "file.pdf"})
        assert [a.filename for a in result] == [
            "file_1.pdf", "file_2.pdf", "file_1.pdf", "file_2.pdf",
        ]

    def test_normalizing_twice_gives_same_result(self):
        raw = [{"base64": _b64(b"one")}, {"filename": "x.png", "base64": _b64(PNG_BYTES)}]
        assert _normalize(raw) == _normalize(raw)

    def test_normalizing_normalized_output_is_stable(self):
        first = _normalize({"filename": "doc.pdf", "base64": _b64(PDF_BYTES)})
        second = _normalize([a.model_dump() for a in first])
        assert second == first

    def test_input_is_not_mutated(self):
        raw = [{"base64": "AAAA", "content_type": "image/png"}]
        _normalize(raw)
        assert raw == [{"base64": "AAAA", "content_type": "image/png"}]


class TestDecodeContent:

    def test_bytes_pass_through(self):
        assert decode_content(b"raw") == b"raw"

    def test_missing_padding_is_restored(self):
        encoded = _b64(b"ab").rstrip("=")
        assert decode_content(encoded) == b"ab"

    def test_data_url_prefix_and_whitespace_are_stripped(self):
        encoded = "data:application/pdf;base64," + _b64(PDF_BYTES)[:8] + "\n" + _b64(PDF_BYTES)[8:]
        assert decode_content(encoded) == PDF_BYTES

    def test_undecodable_text_raises(self):
        with pytest.raises(AttachmentDecodeError):
            decode_content("A")

    def test_decode_error_is_a_value_error(self):
        assert issubclass(AttachmentDecodeError, ValueError)


class TestInferContentType:

    def test_unknown_extension(self):
        assert infer_content_type("archive.zip") is None

    def test_no_extension(self):
        assert infer_content_type("README") is None


class TestHasAttachmentContent:

    def test_absent_input(self):
        assert has_attachment_content(None) is False

    def test_descriptor_with_content(self):
        assert has_attachment_content(parse_attachment_input({"base64": "AAAA"})) is True

    def test_descriptor_without_content(self):
        assert has_attachment_content(parse_attachment_input({"filename": "cv.pdf"})) is False

    def test_empty_content_does_not_count(self):
        assert has_attachment_content(parse_attachment_input({"base64": ""})) is False

    def test_empty_list(self):
        assert has_attachment_content(parse_attachment_input([])) is False

    def test_any_group_with_content(self):
        parsed = parse_attachment_input({"firma": [], "bolletta": {"content": "AAAA"}})
        assert has_attachment_content(parsed) is True

    def test_undecodable_content_still_counts(self):
        # Presence only; decoding happens during normalization.
        assert has_attachment_content(parse_attachment_input({"base64": "A"})) is True
