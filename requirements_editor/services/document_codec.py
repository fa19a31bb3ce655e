"""
Document Codec — canonical on-disk form of a requirement.

    ---
    id: PX-FNC-AUTH-LOGIN-00010
    name: Login
    type: Functional
    priority: High
    status: Draft
    tags: [auth, login]
    ---

    # PX-FNC-AUTH-LOGIN-00010: Login

    User can log in.

The ingestion job parses this exact format into the mirror database, so
encode() must be byte-stable: same payload, same bytes. Header keys are
emitted in a fixed order; optional keys only when present; list-valued keys
always as sequences.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import yaml
from pydantic import ValidationError

from requirements_editor.models.errors import DocumentDecodeError, DocumentEncodeError
from requirements_editor.models.schemas import RequirementPayload

logger = logging.getLogger(__name__)

FENCE = "---"

# Header key order in the canonical form
HEADER_KEYS = (
    "id",
    "name",
    "type",
    "priority",
    "status",
    "verification_method",
    "source",
    "stakeholder",
    "tags",
    "allocated_to",
    "links",
)

_NO_WRAP = 1 << 30


@dataclass
class DecodedDocument:
    """Result of decode(): the structured header and the prose body."""

    header: dict[str, Any] = field(default_factory=dict)
    body: str = ""

    def to_payload(self) -> RequirementPayload:
        """Rebuild the requirement payload this document was encoded from."""
        data = {key: value for key, value in self.header.items() if key in HEADER_KEYS}
        data["description_md"] = self.body
        try:
            return RequirementPayload.model_validate(data)
        except ValidationError as exc:
            raise DocumentDecodeError(
                f"Header does not describe a valid requirement: {exc.error_count()} error(s)"
            ) from exc


# ── Encoding ─────────────────────────────────────────────


def build_header(payload: RequirementPayload) -> dict[str, Any]:
    """Header mapping in canonical key order, absent optionals omitted."""
    header: dict[str, Any] = {
        "id": payload.id,
        "name": payload.name,
        "type": payload.type.value,
        "priority": payload.priority.value,
        "status": payload.status.value,
    }
    if payload.verification_method is not None:
        header["verification_method"] = payload.verification_method.value
    if payload.source:
        header["source"] = payload.source
    if payload.stakeholder:
        header["stakeholder"] = payload.stakeholder
    if payload.tags:
        header["tags"] = list(payload.tags)
    if payload.allocated_to:
        header["allocated_to"] = list(payload.allocated_to)
    if payload.links:
        header["links"] = [{"type": link.type, "target": link.target} for link in payload.links]
    return header


def heading(requirement_id: str, name: str) -> str:
    return f"# {requirement_id}: {name}"


def encode(payload: RequirementPayload) -> str:
    """Serialise a payload to the canonical document text."""
    try:
        header_text = yaml.safe_dump(
            build_header(payload),
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=None,
            width=_NO_WRAP,
        )
    except yaml.YAMLError as exc:
        raise DocumentEncodeError(f"Could not serialise header for {payload.id}: {exc}") from exc

    return (
        f"{FENCE}\n"
        f"{header_text}"
        f"{FENCE}\n"
        f"\n"
        f"{heading(payload.id, payload.name)}\n"
        f"\n"
        f"{payload.description_md}"
    )


# ── Decoding ─────────────────────────────────────────────


def decode(text: str) -> DecodedDocument:
    """
    Split a document into header and body.

    The header fence must be the very first line; any other text in front
    of it, blank lines included, makes the whole text body. An opened but
    unterminated header, invalid YAML, or a header that is not a mapping
    raises DocumentDecodeError.
    """
    text = text.replace("\r\n", "\n")
    lines = text.split("\n")

    if lines[0].rstrip() != FENCE:
        return DecodedDocument(header={}, body=text)

    closing = next(
        (i for i in range(1, len(lines)) if lines[i].rstrip() == FENCE),
        None,
    )
    if closing is None:
        raise DocumentDecodeError("Header block is not terminated by a closing fence")

    header_text = "\n".join(lines[1:closing])
    try:
        header = yaml.safe_load(header_text)
    except yaml.YAMLError as exc:
        raise DocumentDecodeError(f"Malformed header: {exc}") from exc
    if header is None:
        header = {}
    if not isinstance(header, dict):
        raise DocumentDecodeError(
            f"Header must be a mapping, got {type(header).__name__}"
        )

    rest = lines[closing + 1:]
    if rest and rest[0] == "":
        rest = rest[1:]

    req_id, name = header.get("id"), header.get("name")
    if rest and req_id is not None and name is not None and rest[0] == heading(str(req_id), str(name)):
        rest = rest[1:]
        if rest and rest[0] == "":
            rest = rest[1:]

    return DecodedDocument(header=header, body="\n".join(rest))
