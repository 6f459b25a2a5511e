"""
Data Models for the Bluesky Poster

This module contains the data classes shared by the facet extractor,
the session lifecycle and the publishing service. Facets and post records
are built on the atproto SDK models, which own their JSON wire shapes.
"""

import json
import threading
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Optional, Sequence, Tuple, Union

from atproto import models
from pydantic import BaseModel, ValidationError

from config import settings
from utils.exceptions import RecordFormatError
from utils.helpers import format_timestamp, parse_timestamp


# =============================================================================
# Session
# =============================================================================

@dataclass
class Session:
    """One authenticated identity and its current credential pair."""
    did: str                           # Stable account identifier, never reassigned
    handle: str                        # Mutable display handle
    access_jwt: str
    refresh_jwt: str
    email: Optional[str] = None
    email_confirmed: bool = False
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Session":
        """
        Build a session from a createSession response payload.

        Args:
            payload: Decoded JSON with did, handle, accessJwt, refreshJwt and
                optionally email, emailConfirmed.

        Returns:
            Session: The new session.

        Raises:
            RecordFormatError: If a required field is missing.
        """
        try:
            return cls(
                did=payload["did"],
                handle=payload["handle"],
                access_jwt=payload["accessJwt"],
                refresh_jwt=payload["refreshJwt"],
                email=payload.get("email"),
                email_confirmed=bool(payload.get("emailConfirmed", False)),
            )
        except KeyError as e:
            raise RecordFormatError(f"Session payload is missing {e.args[0]!r}") from e


@dataclass(frozen=True)
class SessionRenewal:
    """The identity and tokens returned by a refreshSession call."""
    did: str
    handle: str
    access_jwt: str
    refresh_jwt: str

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "SessionRenewal":
        try:
            return cls(
                did=payload["did"],
                handle=payload["handle"],
                access_jwt=payload["accessJwt"],
                refresh_jwt=payload["refreshJwt"],
            )
        except KeyError as e:
            raise RecordFormatError(f"Renewal payload is missing {e.args[0]!r}") from e


@dataclass(frozen=True)
class TokenInfo:
    """Diagnostic view of one decoded token: either a payload or an error."""
    payload: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def exp(self) -> Optional[int]:
        if not self.payload:
            return None
        value = self.payload.get("exp")
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return None


@dataclass(frozen=True)
class SessionDescription:
    """Diagnostic view of both tokens of a session."""
    access: TokenInfo
    refresh: TokenInfo


# =============================================================================
# Rich Text Facets
# =============================================================================

# Feature variants, tagged on the wire by their $type
Link = models.AppBskyRichtextFacet.Link
Mention = models.AppBskyRichtextFacet.Mention
Hashtag = models.AppBskyRichtextFacet.Tag

Feature = Union[Link, Mention, Hashtag]

Facet = models.AppBskyRichtextFacet.Main
SelfLabels = models.ComAtprotoLabelDefs.SelfLabels


def to_wire(model: BaseModel) -> Dict[str, Any]:
    """Dump an SDK model to its JSON shape, leaving out unset fields."""
    return model.model_dump(by_alias=True, exclude_none=True)


def check_facet(facet: Facet, text_length: Optional[int] = None) -> None:
    """
    Check a facet's byte range and features.

    Args:
        facet: The facet to check
        text_length: UTF-8 length of the text the facet belongs to (optional)

    Raises:
        RecordFormatError: If the range is inverted, negative or past the
            end of the text, or the facet has no features.
    """
    start, end = facet.index.byte_start, facet.index.byte_end
    if start < 0 or end < start:
        raise RecordFormatError(f"Invalid facet range {start}..{end}")
    if text_length is not None and end > text_length:
        raise RecordFormatError(f"Facet range {start}..{end} runs past the end of the text ({text_length} bytes)")
    if not facet.features:
        raise RecordFormatError("A facet needs at least one feature")


def make_facet(byte_start: int, byte_end: int, features: Sequence[Feature]) -> Facet:
    """
    Build a facet over the given UTF-8 byte range.

    Raises:
        RecordFormatError: If the range or features are invalid.
    """
    try:
        facet = Facet(
            features=list(features),
            index=models.AppBskyRichtextFacet.ByteSlice(byteStart=byte_start, byteEnd=byte_end),
        )
    except ValidationError as e:
        raise RecordFormatError(f"Invalid facet {byte_start}..{byte_end}: {e}") from e
    check_facet(facet)
    return facet


def make_self_labels(values: Iterable[str]) -> SelfLabels:
    return SelfLabels(values=[models.ComAtprotoLabelDefs.SelfLabel(val=value) for value in values])


# =============================================================================
# Post Records
# =============================================================================

# Top-level key order of a serialized post record
RECORD_KEYS = ("$type", "createdAt", "text", "facets", "langs", "tags", "labels")


@dataclass(frozen=True)
class PostRecord:
    """The publishable unit handed to the transport."""
    text: str
    created_at: datetime
    facets: Optional[Tuple[Facet, ...]] = None
    langs: Optional[Tuple[str, ...]] = None
    tags: Optional[Tuple[str, ...]] = None
    labels: Optional[SelfLabels] = None

    def __post_init__(self):
        text_length = len(self.text.encode("utf-8", errors="surrogatepass"))
        for facet in self.facets or ():
            check_facet(facet, text_length)

    @property
    def created_at_iso(self) -> str:
        return format_timestamp(self.created_at)

    def to_model(self) -> models.AppBskyFeedPost.Record:
        """
        Build the SDK record model.

        Raises:
            RecordFormatError: If the record breaks the lexicon's limits.
        """
        try:
            return models.AppBskyFeedPost.Record(
                created_at=self.created_at_iso,
                text=self.text,
                facets=list(self.facets) if self.facets else None,
                langs=list(self.langs) if self.langs else None,
                tags=list(self.tags) if self.tags else None,
                labels=self.labels or None,
            )
        except ValidationError as e:
            raise RecordFormatError(f"Invalid post record: {e}") from e

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the record shape, omitting fields that have no value."""
        dumped = to_wire(self.to_model())
        return {key: dumped[key] for key in RECORD_KEYS if key in dumped}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "PostRecord":
        """
        Parse a serialized post record.

        Raises:
            RecordFormatError: If the payload is not a well-formed post record.
        """
        record_type = payload.get("$type")
        if record_type != settings.POST_RECORD_TYPE:
            raise RecordFormatError(f"Not a post record: $type={record_type!r}")
        try:
            record = models.AppBskyFeedPost.Record.model_validate(payload)
        except ValidationError as e:
            raise RecordFormatError(f"Malformed post record: {e}") from e

        try:
            created_at = parse_timestamp(record.created_at)
        except (ValueError, TypeError, AttributeError) as e:
            raise RecordFormatError(f"Malformed post record createdAt: {e}") from e

        return cls(
            text=record.text,
            created_at=created_at,
            facets=tuple(record.facets) if record.facets else None,
            langs=tuple(record.langs) if record.langs else None,
            tags=tuple(record.tags) if record.tags else None,
            labels=record.labels or None,
        )

    @classmethod
    def from_json(cls, data: str) -> "PostRecord":
        try:
            payload = json.loads(data)
        except json.JSONDecodeError as e:
            raise RecordFormatError(f"Post record is not valid JSON: {e}") from e
        if not isinstance(payload, dict):
            raise RecordFormatError("Post record must be a JSON object")
        return cls.from_dict(payload)


@dataclass(frozen=True)
class PostRef:
    """Reference to a record created on the server."""
    uri: str
    cid: str
    raw: Optional[Dict[str, Any]] = field(default=None, compare=False)
