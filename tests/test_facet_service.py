"""
Tests for Facet Service - Rich Text Facet Extraction

Tests cover mention, link and hashtag detection, UTF-8 byte offsets,
per-match facet spans and post record assembly.
"""

import pytest
from unittest.mock import MagicMock
from datetime import datetime, timezone
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.models import Hashtag, Link, Mention
from services.facet_service import (
    FacetExtractor, parse_hashtags, parse_links, parse_mentions
)
from utils.exceptions import InvalidPostError


def span_text(text: str, start: int, end: int) -> str:
    """Slice text by UTF-8 byte offsets."""
    return text.encode("utf-8")[start:end].decode("utf-8")


# =============================================================================
# Mention Tests
# =============================================================================

class TestMentions:
    """Tests for handle mention detection."""

    def test_mention_after_multibyte_text(self):
        """Byte offsets account for the two-byte encoding of é."""
        text = "héllo @alice.bsky.social"
        mentions = parse_mentions(text)

        assert len(mentions) == 1
        assert mentions[0].start == 7
        assert mentions[0].end == 25
        assert mentions[0].handle == "alice.bsky.social"
        assert span_text(text, mentions[0].start, mentions[0].end) == "@alice.bsky.social"

    def test_mention_at_start_of_text(self):
        mentions = parse_mentions("@alice.test hello")
        assert [(m.start, m.end) for m in mentions] == [(0, 11)]

    def test_mention_excludes_leading_punctuation(self):
        text = "(cc @bob.example.com)"
        mentions = parse_mentions(text)
        assert span_text(text, mentions[0].start, mentions[0].end) == "@bob.example.com"

    def test_mention_excludes_trailing_dot(self):
        text = "hi @alice.bsky.social."
        mentions = parse_mentions(text)
        assert span_text(text, mentions[0].start, mentions[0].end) == "@alice.bsky.social"

    def test_email_address_is_not_a_mention(self):
        assert parse_mentions("write to alice@example.com today") == []

    def test_single_label_handle_is_not_a_mention(self):
        assert parse_mentions("hello @alice") == []

    def test_handle_ending_in_hyphen_is_trimmed(self):
        mentions = parse_mentions("hey @alice.test-")
        assert mentions[0].handle == "alice.test"


# =============================================================================
# Link Tests
# =============================================================================

class TestLinks:
    """Tests for URL detection."""

    def test_link_with_path_and_query(self):
        text = "see https://example.com/path?q=1."
        links = parse_links(text)

        assert len(links) == 1
        assert links[0].url == "https://example.com/path?q=1"
        assert (links[0].start, links[0].end) == (4, 32)

    def test_link_with_www_prefix(self):
        links = parse_links("go to http://www.example.org now")
        assert links[0].url == "http://www.example.org"

    def test_link_after_multibyte_text(self):
        text = "日本 https://example.jp"
        links = parse_links(text)
        assert links[0].start == 7
        assert span_text(text, links[0].start, links[0].end) == "https://example.jp"

    def test_link_requires_a_dot_in_host(self):
        assert parse_links("http://localhost/path") == []

    def test_link_glued_to_word_is_ignored(self):
        assert parse_links("xhttps://example.com") == []

    def test_link_in_parentheses(self):
        text = "(https://example.com/a)"
        links = parse_links(text)
        assert links[0].url == "https://example.com/a"


# =============================================================================
# Hashtag Tests
# =============================================================================

class TestHashtags:
    """Tests for hashtag detection."""

    def test_hashtag_span_includes_hash(self):
        text = "café #news"
        tags = parse_hashtags(text)

        assert len(tags) == 1
        assert tags[0].tag == "news"
        assert (tags[0].start, tags[0].end) == (6, 11)
        assert span_text(text, tags[0].start, tags[0].end) == "#news"

    def test_bare_hash_is_not_a_hashtag(self):
        assert parse_hashtags("price # 5 and a lone #") == []

    def test_hashtag_must_start_with_letter(self):
        assert parse_hashtags("we are #1") == []

    def test_hashtag_inside_word_is_ignored(self):
        assert parse_hashtags("C#sharp and a#b") == []

    def test_hashtag_with_combining_mark(self):
        text = "#cafe\u0301 time"
        tags = parse_hashtags(text)
        assert tags[0].tag == "cafe\u0301"
        assert tags[0].end == 7

    def test_hashtag_with_non_ascii_letters(self):
        tags = parse_hashtags("今日は #日本語 です")
        assert tags[0].tag == "日本語"

    def test_hashtag_max_length(self):
        tag = "a" * 60
        tags = parse_hashtags(f"#{tag}")
        assert tags[0].tag == tag

    def test_overlong_hashtag_does_not_match(self):
        assert parse_hashtags("#" + "a" * 61) == []

    def test_hashtag_followed_by_punctuation(self):
        tags = parse_hashtags("breaking: #news!")
        assert tags[0].tag == "news"


# =============================================================================
# Extractor Tests
# =============================================================================

class TestFacetExtractor:
    """Tests for FacetExtractor.extract."""

    def test_no_matches_returns_empty_list(self):
        assert FacetExtractor().extract("just some plain text") == []

    def test_each_match_gets_its_own_facet(self):
        text = "@alice.test and @bob.test"
        facets = FacetExtractor().extract(text)

        assert len(facets) == 2
        assert (facets[0].index.byte_start, facets[0].index.byte_end) == (0, 11)
        assert (facets[1].index.byte_start, facets[1].index.byte_end) == (16, 25)
        for facet in facets:
            assert len(facet.features) == 1
            assert not (facet.index.byte_start == 0 and facet.index.byte_end == len(text.encode("utf-8")))

    def test_order_is_mentions_links_hashtags(self):
        text = "#tag https://example.com @alice.test"
        facets = FacetExtractor().extract(text)

        assert [type(f.features[0]) for f in facets] == [Mention, Link, Hashtag]
        assert facets[0].features[0] == Mention(did="alice.test")
        assert facets[1].features[0] == Link(uri="https://example.com")
        assert facets[2].features[0] == Hashtag(tag="tag")

    def test_mentions_use_resolver(self):
        resolver = MagicMock(return_value="did:plc:alice")
        facets = FacetExtractor(resolve_handle=resolver).extract("hi @alice.bsky.social")

        resolver.assert_called_once_with("alice.bsky.social")
        assert facets[0].features == [Mention(did="did:plc:alice")]

    def test_unresolved_mention_is_dropped(self, app_logs):
        facets = FacetExtractor(resolve_handle=lambda handle: None).extract("hi @ghost.test #boo")

        assert [type(f.features[0]) for f in facets] == [Hashtag]
        assert any("ghost.test" in r.message for r in app_logs.records)

    def test_every_span_matches_its_feature(self):
        text = "Ünïcödé 🎉 @alice.test → https://example.com/x #done"
        for facet in FacetExtractor().extract(text):
            covered = span_text(text, facet.index.byte_start, facet.index.byte_end)
            feature = facet.features[0]
            if isinstance(feature, Mention):
                assert covered == "@" + feature.did
            elif isinstance(feature, Link):
                assert covered == feature.uri
            else:
                assert covered == "#" + feature.tag


# =============================================================================
# Post Record Assembly Tests
# =============================================================================

class TestBuildPostRecord:
    """Tests for FacetExtractor.build_post_record."""

    def test_record_without_matches_has_no_facets(self):
        record = FacetExtractor().build_post_record("hello world")
        assert record.facets is None
        assert "facets" not in record.to_dict()

    def test_record_carries_facets_and_options(self):
        created = datetime(2024, 1, 15, 10, 0, 0, 123000, tzinfo=timezone.utc)
        record = FacetExtractor().build_post_record(
            "hello #world", langs=["en"], tags=["extra"], labels=["graphic-media"], created_at=created
        )

        assert len(record.facets) == 1
        assert record.langs == ("en",)
        assert record.tags == ("extra",)
        assert [label.val for label in record.labels.values] == ["graphic-media"]
        assert record.created_at_iso == "2024-01-15T10:00:00.123Z"

    def test_empty_options_are_absent(self):
        record = FacetExtractor().build_post_record("hello", langs=[], tags=[], labels=[])
        assert record.langs is None
        assert record.tags is None
        assert record.labels is None

    def test_created_at_defaults_to_now_utc(self):
        record = FacetExtractor().build_post_record("hello")
        assert record.created_at.tzinfo is not None
        assert record.created_at_iso.endswith("Z")

    def test_empty_text_is_rejected(self):
        with pytest.raises(InvalidPostError):
            FacetExtractor().build_post_record("")

    def test_record_over_lexicon_limits_is_rejected(self):
        with pytest.raises(InvalidPostError):
            FacetExtractor().build_post_record("hello", tags=[f"tag{i}" for i in range(9)])
