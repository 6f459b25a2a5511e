"""
Facet Service Module

This module finds mentions, links and hashtags in post text and turns them
into rich text facets. Facet offsets index the UTF-8 encoding of the text,
so every character offset found by the patterns below is converted to a
byte offset before it leaves this module.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, List, Optional, Sequence

from pydantic import ValidationError

from data.models import (
    Facet, Hashtag, Link, Mention, PostRecord, make_facet, make_self_labels
)
from utils.exceptions import InvalidPostError, RecordFormatError
from utils.logger import get_logger

logger = get_logger(__name__)

# Combining diacritical mark blocks; the stdlib \w class does not include them
_MARKS = "\u0300-\u036f\u1ab0-\u1aff\u1dc0-\u1dff\u20d0-\u20ff\ufe20-\ufe2f"

MENTION_PATTERN = re.compile(
    r"(?<!\w)"
    r"(@(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)+[a-zA-Z](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)"
)

LINK_PATTERN = re.compile(
    r"(?<!\w)"
    r"((?i:https?://(?:www\.)?)[-a-zA-Z0-9@:%._+~#=]{1,256}\.[a-zA-Z0-9()]{1,6}\b"
    r"(?:[-a-zA-Z0-9()@:%_+.~#?&/=]*[-a-zA-Z0-9@%_+~#/=])?)"
)

# A letter first, then at most 59 more; a longer run is not a hashtag at all
HASHTAG_PATTERN = re.compile(
    rf"\B#((?:[^\W\d_]|[{_MARKS}])[\w{_MARKS}]{{0,59}})(?![\w{_MARKS}])"
)


@dataclass(frozen=True)
class MentionSpan:
    start: int                         # Byte offset of "@"
    end: int
    handle: str                        # Without the leading "@"


@dataclass(frozen=True)
class LinkSpan:
    start: int
    end: int
    url: str


@dataclass(frozen=True)
class HashtagSpan:
    start: int                         # Byte offset of "#"
    end: int
    tag: str                           # Without the leading "#"


def _utf8_len(text: str) -> int:
    return len(text.encode("utf-8", errors="surrogatepass"))


class _ByteOffsets:
    """Converts character offsets of one text into UTF-8 byte offsets."""

    def __init__(self, text: str):
        self._text = text

    def __call__(self, char_offset: int) -> int:
        return _utf8_len(self._text[:char_offset])


def parse_mentions(text: str) -> List[MentionSpan]:
    """
    Find every handle mention in the text.

    Args:
        text: The post text

    Returns:
        List[MentionSpan]: Mentions in text order, with byte offsets.
    """
    to_bytes = _ByteOffsets(text)
    return [
        MentionSpan(
            start=to_bytes(match.start(1)),
            end=to_bytes(match.end(1)),
            handle=match.group(1)[1:],
        )
        for match in MENTION_PATTERN.finditer(text)
    ]


def parse_links(text: str) -> List[LinkSpan]:
    """
    Find every http(s) link in the text.

    Args:
        text: The post text

    Returns:
        List[LinkSpan]: Links in text order, with byte offsets.
    """
    to_bytes = _ByteOffsets(text)
    return [
        LinkSpan(start=to_bytes(match.start(1)), end=to_bytes(match.end(1)), url=match.group(1))
        for match in LINK_PATTERN.finditer(text)
    ]


def parse_hashtags(text: str) -> List[HashtagSpan]:
    """
    Find every hashtag in the text.

    The span covers the "#" and the tag; the tag text does not include "#".

    Args:
        text: The post text

    Returns:
        List[HashtagSpan]: Hashtags in text order, with byte offsets.
    """
    to_bytes = _ByteOffsets(text)
    return [
        HashtagSpan(start=to_bytes(match.start()), end=to_bytes(match.end()), tag=match.group(1))
        for match in HASHTAG_PATTERN.finditer(text)
    ]


def literal_handle(handle: str) -> Optional[str]:
    """Mention resolver that uses the handle text itself as the identifier."""
    return handle


class FacetExtractor:
    """
    Extracts rich text facets from post text.

    Holds no per-call state; one instance can be shared between threads.
    """

    def __init__(self, resolve_handle: Optional[Callable[[str], Optional[str]]] = None):
        """
        Initialize the extractor.

        Args:
            resolve_handle: Maps a handle (without "@") to the DID used in the
                mention feature. Returning None drops that mention. Defaults to
                using the handle text as is.
        """
        self.resolve_handle = resolve_handle or literal_handle

    def extract(self, text: str) -> List[Facet]:
        """
        Extract facets from text: mentions, then links, then hashtags.

        Every match becomes its own facet spanning exactly the matched bytes.

        Args:
            text: The post text

        Returns:
            List[Facet]: The facets, empty when nothing matched.
        """
        facets: List[Facet] = []

        for span in parse_mentions(text):
            did = self.resolve_handle(span.handle)
            if not did:
                logger.warning(f"Could not resolve mention @{span.handle}, leaving it as plain text")
                continue
            facets.append(make_facet(span.start, span.end, [Mention(did=did)]))

        for span in parse_links(text):
            facets.append(make_facet(span.start, span.end, [Link(uri=span.url)]))

        for span in parse_hashtags(text):
            facets.append(make_facet(span.start, span.end, [Hashtag(tag=span.tag)]))

        return facets

    def build_post_record(
        self,
        text: str,
        langs: Optional[Sequence[str]] = None,
        tags: Optional[Iterable[str]] = None,
        labels: Optional[Iterable[str]] = None,
        created_at: Optional[datetime] = None,
    ) -> PostRecord:
        """
        Assemble a post record with facets extracted from its text.

        Args:
            text: The post text
            langs: Language tags (optional)
            tags: Additional free-text tags (optional)
            labels: Self-applied content label values (optional)
            created_at: Creation time, defaults to now in UTC

        Returns:
            PostRecord: The record ready to publish.

        Raises:
            InvalidPostError: If the text is empty or the record breaks the
                post lexicon's limits.
        """
        if not text:
            raise InvalidPostError("The post's text cannot be empty")

        facets = tuple(self.extract(text))
        langs = tuple(langs or ())
        tags = tuple(tags or ())
        labels = tuple(labels or ())
        try:
            record = PostRecord(
                text=text,
                created_at=created_at or datetime.now(timezone.utc),
                facets=facets or None,
                langs=langs or None,
                tags=tags or None,
                labels=make_self_labels(labels) if labels else None,
            )
            record.to_model()
        except (RecordFormatError, ValidationError) as e:
            raise InvalidPostError(f"Cannot build post record: {e}") from e
        return record
