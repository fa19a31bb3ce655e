"""
Reusable data schemas exchanged between the API, the services and the codec.

The requirement payload is normalised exactly once, here, when it is
validated: tag/allocation strings become sequences, every accepted shape of
`links` becomes a list of RequirementLink. Downstream code only ever sees the
normalised shape.
"""

from __future__ import annotations

import json
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .enums import Priority, RequirementType, Status, VerificationMethod
from .errors import RequirementValidationError

DEFAULT_LINK_TYPE = "related"

REQUIRED_FIELDS = ("id", "name", "type", "priority", "status", "description_md")


# ── Normalisation helpers ────────────────────────────────


def split_list(value: Any) -> list[str]:
    """Comma-joined string or sequence → ordered list of trimmed non-empty strings."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(v) for v in value if v is not None]
    else:
        raise ValueError("must be a comma-separated string or a list of strings")
    return [item.strip() for item in items if item.strip()]


def normalize_links(value: Any) -> list[RequirementLink]:
    """
    Funnel every accepted `links` shape into a list of RequirementLink.

    Accepted: JSON array string, JSON object string, a single object,
    a list of objects/strings, or a comma-joined string of targets.
    """
    if value is None:
        return []
    if isinstance(value, RequirementLink):
        return [value]
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return []
        if text[0] in "[{":
            try:
                parsed = json.loads(text)
            except json.JSONDecodeError as exc:
                raise ValueError(f"contains invalid JSON ({exc.msg})") from exc
            return normalize_links(parsed)
        return [RequirementLink(target=target) for target in split_list(text)]
    if isinstance(value, dict):
        link = _link_from_mapping(value)
        return [link] if link else []
    if isinstance(value, (list, tuple)):
        links: list[RequirementLink] = []
        for item in value:
            if isinstance(item, RequirementLink):
                links.append(item)
            elif isinstance(item, dict):
                link = _link_from_mapping(item)
                if link:
                    links.append(link)
            elif isinstance(item, str) and item.strip():
                links.append(RequirementLink(target=item.strip()))
            elif item is not None and not isinstance(item, str):
                raise ValueError("each link must be an object with 'type' and 'target'")
        return links
    raise ValueError("must be a JSON array, an object or a comma-separated string")


def _link_from_mapping(data: dict[str, Any]) -> RequirementLink | None:
    target = str(data.get("target") or "").strip()
    if not target:
        return None
    link_type = str(data.get("type") or "").strip() or DEFAULT_LINK_TYPE
    return RequirementLink(type=link_type, target=target)


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


# ── Requirement payload ──────────────────────────────────


class RequirementLink(BaseModel):
    """A typed relationship from one requirement to another entity."""

    model_config = ConfigDict(frozen=True)

    type: str = DEFAULT_LINK_TYPE
    target: str


class RequirementPayload(BaseModel):
    """A requirement as submitted by the editor UI, after normalisation."""

    id: str
    name: str
    type: RequirementType
    priority: Priority
    status: Status
    description_md: str
    tags: list[str] = []
    links: list[RequirementLink] = []
    source: Optional[str] = None
    stakeholder: Optional[str] = None
    verification_method: Optional[VerificationMethod] = None
    allocated_to: list[str] = []

    @field_validator("id", "name", mode="before")
    @classmethod
    def _single_line(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if "\n" in value or "\r" in value:
                raise ValueError("must be a single line")
        return value

    @field_validator("tags", "allocated_to", mode="before")
    @classmethod
    def _split(cls, value: Any) -> list[str]:
        return split_list(value)

    @field_validator("links", mode="before")
    @classmethod
    def _links(cls, value: Any) -> list[RequirementLink]:
        return normalize_links(value)

    @field_validator("source", "stakeholder", "verification_method", mode="before")
    @classmethod
    def _optional(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("description_md")
    @classmethod
    def _lf(cls, value: str) -> str:
        return value.replace("\r\n", "\n").replace("\r", "\n")

    @classmethod
    def from_submission(cls, data: dict[str, Any]) -> RequirementPayload:
        """
        Validate a raw submission body.
        Raises RequirementValidationError listing every offending field.
        """
        if not isinstance(data, dict):
            raise RequirementValidationError("Request body must be a JSON object.")

        missing = [
            key for key in REQUIRED_FIELDS
            if data.get(key) is None
            or (isinstance(data.get(key), str) and not data[key].strip())
        ]
        if missing:
            raise RequirementValidationError(
                f"Missing required fields: {', '.join(missing)}.",
                fields=missing,
            )

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            fields: list[str] = []
            details: list[str] = []
            for err in exc.errors():
                loc = ".".join(str(part) for part in err["loc"])
                if loc not in fields:
                    fields.append(loc)
                details.append(f"{loc}: {err['msg']}")
            raise RequirementValidationError(
                f"Invalid requirement payload ({'; '.join(details)}).",
                fields=fields,
            ) from exc


# ── Auth principal ───────────────────────────────────────


class UserPrincipal(BaseModel):
    """The authenticated operator, as decoded from the bearer token."""

    username: str
    name: Optional[str] = None
    email: Optional[str] = None
    github_id: Optional[int] = None

    @property
    def display_name(self) -> str:
        return self.name or self.username

    @property
    def commit_email(self) -> str:
        return self.email or f"{self.username}@users.noreply.github.com"


# ── Review platform ──────────────────────────────────────


class ReviewRequest(BaseModel):
    """An open pull request on the hosting platform."""

    url: str
    number: int


# ── Orchestrator outcome ─────────────────────────────────


class SubmissionResult(BaseModel):
    branch: str
    review_url: str
    file_path: str
    review_number: int = 0
    empty_commit: bool = False


class SourceDocument(BaseModel):
    """A canonical requirement file as it exists on the default branch."""

    model_config = ConfigDict(populate_by_name=True)

    file_path: str = Field(alias="filePath")
    header: dict[str, Any] = {}
    body: str = ""


# ── Relationship graph ───────────────────────────────────


class GraphNode(BaseModel):
    id: str
    name: Optional[str] = None
    type: Optional[str] = None
    status: Optional[str] = None


class GraphLink(BaseModel):
    source: str
    target: str
    type: Optional[str] = None


class GraphData(BaseModel):
    nodes: list[GraphNode] = []
    links: list[GraphLink] = []
