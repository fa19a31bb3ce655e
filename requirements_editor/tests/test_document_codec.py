"""
Tests: Document codec — canonical encoding and tolerant decoding.

Run with:
    pytest requirements_editor/tests/test_document_codec.py -v
"""

import pytest

from requirements_editor.models.errors import DocumentDecodeError
from requirements_editor.models.schemas import RequirementPayload
from requirements_editor.services.document_codec import decode, encode
from requirements_editor.tests.conftest import S1_PAYLOAD


def _payload(**overrides) -> RequirementPayload:
    data = dict(S1_PAYLOAD)
    data.update(overrides)
    return RequirementPayload.from_submission(data)


class TestEncode:
    def test_login_document_is_canonical(self):
        assert encode(_payload()) == (
            "---\n"
            "id: PX-FNC-AUTH-LOGIN-00010\n"
            "name: Login\n"
            "type: Functional\n"
            "priority: High\n"
            "status: Draft\n"
            "tags: [auth, login]\n"
            "---\n"
            "\n"
            "# PX-FNC-AUTH-LOGIN-00010: Login\n"
            "\n"
            "User can log in."
        )

    def test_optional_keys_follow_fixed_order(self):
        text = encode(_payload(
            links='[{"type": "depends-on", "target": "R2"}, {"target": "BLK-7"}]',
            allocated_to="BLK-1",
            stakeholder="Security team",
            source="Workshop 3",
            verification_method="Test",
        ))
        header = text.split("---\n")[1]
        assert header.splitlines() == [
            "id: PX-FNC-AUTH-LOGIN-00010",
            "name: Login",
            "type: Functional",
            "priority: High",
            "status: Draft",
            "verification_method: Test",
            "source: Workshop 3",
            "stakeholder: Security team",
            "tags: [auth, login]",
            "allocated_to: [BLK-1]",
            "links:",
            "- {type: depends-on, target: R2}",
            "- {type: related, target: BLK-7}",
        ]

    def test_absent_optionals_are_omitted(self):
        text = encode(_payload(tags=None, source="  ", verification_method=""))
        for key in ("tags", "source", "stakeholder", "verification_method", "links", "allocated_to"):
            assert f"\n{key}:" not in text

    def test_encoding_is_byte_stable(self):
        assert encode(_payload()) == encode(_payload())

    def test_long_names_are_not_wrapped(self):
        name = "A requirement name " * 20
        text = encode(_payload(name=name.strip()))
        assert f"name: {name.strip()}\n" in text

    def test_body_line_endings_normalised(self):
        text = encode(_payload(description_md="Line one.\r\nLine two."))
        assert "\r" not in text
        assert text.endswith("Line one.\nLine two.")


class TestDecode:
    def test_round_trip_recovers_payload(self):
        payload = _payload(links="R2, R3", verification_method="N/A", allocated_to=["BLK-1", "BLK-2"])
        assert decode(encode(payload)).to_payload() == payload

    def test_reencoding_a_canonical_document_is_identity(self):
        text = encode(_payload(description_md="First.\n\nSecond paragraph.\n"))
        assert encode(decode(text).to_payload()) == text

    def test_body_excludes_generated_heading(self):
        doc = decode(encode(_payload()))
        assert doc.body == "User can log in."
        assert doc.header["id"] == "PX-FNC-AUTH-LOGIN-00010"
        assert doc.header["tags"] == ["auth", "login"]

    def test_text_without_fence_is_all_body(self):
        doc = decode("# Notes\n\nNo header here.")
        assert doc.header == {}
        assert doc.body == "# Notes\n\nNo header here."

    def test_text_before_fence_makes_everything_body(self):
        text = "\n---\nid: R1\nname: Login\n---\n\nBody"
        doc = decode(text)
        assert doc.header == {}
        assert doc.body == text

    def test_heading_kept_when_it_does_not_match_header(self):
        doc = decode("---\nid: R1\nname: Login\n---\n\n# Something else\n\nBody")
        assert doc.body == "# Something else\n\nBody"

    def test_crlf_document_decodes(self):
        doc = decode("---\r\nid: R1\r\nname: Login\r\n---\r\n\r\n# R1: Login\r\n\r\nBody")
        assert doc.header == {"id": "R1", "name": "Login"}
        assert doc.body == "Body"

    def test_empty_header_is_empty_mapping(self):
        assert decode("---\n---\n\nBody").header == {}

    def test_unterminated_header_raises(self):
        with pytest.raises(DocumentDecodeError, match="closing fence"):
            decode("---\nid: R1\nname: Login\n\n# R1: Login\n")

    def test_non_mapping_header_raises(self):
        with pytest.raises(DocumentDecodeError, match="mapping"):
            decode("---\n- just\n- a list\n---\n\nBody")

    def test_invalid_yaml_raises(self):
        with pytest.raises(DocumentDecodeError, match="Malformed"):
            decode("---\nid: [R1\n---\n\nBody")

    def test_invalid_header_cannot_become_payload(self):
        doc = decode("---\nid: R1\nname: Login\ntype: Sideways\npriority: High\nstatus: Draft\n---\n\nBody")
        with pytest.raises(DocumentDecodeError):
            doc.to_payload()
