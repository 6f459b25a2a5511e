"""
Social Service Module

This module handles the "create and publish a post" flow against the AT
Protocol (BlueSky). It authenticates, keeps the session's access token
fresh, builds post records with rich text facets and hands them to the
transport for publishing.
"""

from typing import Any, Dict, Iterable, Optional, Sequence

from config import settings
from config.validators import get_config_summary, validate_settings
from data.models import PostRecord, PostRef, Session, SessionRenewal
from services.facet_service import FacetExtractor
from services.protocols import XrpcTransport
from services.session_service import SessionLifecycle
from utils.exceptions import (
    AuthenticationError, PostingError, RecordFormatError, XrpcError, XrpcHttpError
)
from utils.helpers import retry
from utils.logger import get_logger

logger = get_logger(__name__)


class SocialService:
    """Service for publishing to the AT Protocol (BlueSky) with a managed session."""

    def __init__(self, transport: XrpcTransport,
                 lifecycle: Optional[SessionLifecycle] = None,
                 extractor: Optional[FacetExtractor] = None,
                 session: Optional[Session] = None):
        """
        Initialize the social service.

        Args:
            transport: The XRPC transport used for every request.
            lifecycle: Session lifecycle, a default one using the system clock if omitted.
            extractor: Facet extractor, one using literal handles if omitted.
            session: An existing session to continue using (optional).

        Raises:
            ConfigurationError: If the settings fail validation.
        """
        self.transport = transport
        self.lifecycle = lifecycle or SessionLifecycle()
        self.extractor = extractor or FacetExtractor()
        self.session = session

        validate_settings()
        logger.debug(f"Configuration: {get_config_summary()}")

    def _call(self, func):
        # Only for calls that are safe to repeat; writes go out once
        return retry(
            func,
            max_attempts=settings.XRPC_MAX_ATTEMPTS,
            delay=settings.XRPC_RETRY_DELAY,
            exceptions=(XrpcHttpError,),
            backoff=1,
            retry_if=lambda e: e.retryable,
        )

    def _require_session(self) -> Session:
        if self.session is None:
            raise AuthenticationError("Not logged in")
        return self.session

    def login(self, identifier: str, password: str) -> Session:
        """
        Create a session for the given account.

        Args:
            identifier: Handle or email of the account
            password: Account or app password

        Returns:
            Session: The new session, also kept on the service.

        Raises:
            AuthenticationError: If the session could not be created.
        """
        if not identifier or not password:
            raise AuthenticationError("Missing AT Protocol credentials")

        try:
            payload = self._call(lambda: self.transport.create_session(identifier, password))
            self.session = Session.from_dict(payload)
        except (XrpcError, RecordFormatError) as e:
            logger.error(f"Failed to authenticate with AT Protocol: {e}")
            raise AuthenticationError(f"Login failed for {identifier}: {e}") from e

        logger.info(f"Successfully logged in to AT Protocol as {self.session.handle}")
        return self.session

    def refresh_if_needed(self) -> bool:
        """
        Renew the session if its access token is stale.

        The check, the renewal request and the merge all happen under the
        session lock, so at most one renewal per session is in flight.

        Returns:
            bool: True if a renewal was performed.

        Raises:
            AuthenticationError: If the renewal request fails.
            IdentityMismatchError: If the server renewed a different account.
        """
        session = self._require_session()
        with session.lock:
            if not self.lifecycle.needs_refresh(session):
                return False

            logger.info("Access token is about to expire, refreshing session")
            try:
                payload = self.transport.refresh_session(session.refresh_jwt)
                renewal = SessionRenewal.from_dict(payload)
            except (XrpcError, RecordFormatError) as e:
                logger.error(f"Failed to refresh AT Protocol session: {e}")
                raise AuthenticationError(f"Session refresh failed: {e}") from e

            self.lifecycle.refresh_from(session, renewal)
            return True

    def get_profile(self, actor: Optional[str] = None) -> Dict[str, Any]:
        """
        Fetch a detailed profile, by default the session's own.

        Args:
            actor: DID or handle of the profile (optional)

        Returns:
            Dict: The profile view payload.

        Raises:
            AuthenticationError: If not logged in or the session could not be renewed.
            XrpcError: If the profile request fails.
        """
        self.refresh_if_needed()
        session = self._require_session()
        with session.lock:
            access_jwt = session.access_jwt
        profile = self._call(lambda: self.transport.get_profile(actor or session.did, access_jwt))
        logger.info(f"Retrieved profile for {actor or session.handle}")
        return profile

    def create_post(self, text: str, langs: Optional[Sequence[str]] = None,
                    tags: Optional[Iterable[str]] = None,
                    labels: Optional[Iterable[str]] = None) -> PostRecord:
        """
        Build a post record for the given text.

        Args:
            text: The post text
            langs: Language tags, defaults to settings.DEFAULT_POST_LANGS
            tags: Additional free-text tags (optional)
            labels: Self-applied content label values (optional)

        Returns:
            PostRecord: The record with its extracted facets.
        """
        if langs is None:
            langs = settings.DEFAULT_POST_LANGS
        return self.extractor.build_post_record(text, langs=langs, tags=tags, labels=labels)

    def publish(self, text: str, langs: Optional[Sequence[str]] = None,
                tags: Optional[Iterable[str]] = None,
                labels: Optional[Iterable[str]] = None) -> PostRef:
        """
        Build a post record and publish it to the session's repository.

        Args:
            text: The post text
            langs: Language tags, defaults to settings.DEFAULT_POST_LANGS
            tags: Additional free-text tags (optional)
            labels: Self-applied content label values (optional)

        Returns:
            PostRef: The uri and cid of the created post.

        Raises:
            InvalidPostError: If the text is empty.
            AuthenticationError: If not logged in or the session could not be renewed.
            PostingError: If the record could not be created.
            IdentityMismatchError: If a renewal reported a different account.
        """
        record = self.create_post(text, langs=langs, tags=tags, labels=labels)
        self.refresh_if_needed()
        session = self._require_session()
        with session.lock:
            access_jwt, repo = session.access_jwt, session.did

        try:
            response = self.transport.create_record(
                access_jwt, repo, settings.POST_COLLECTION, record.to_dict()
            )
        except XrpcError as e:
            logger.error(f"Error posting to AT Protocol: {e}")
            raise PostingError(f"Failed to publish post: {e}") from e

        try:
            ref = PostRef(uri=response["uri"], cid=response["cid"], raw=response)
        except KeyError as e:
            raise PostingError(f"createRecord response is missing {e.args[0]!r}") from e

        facet_count = len(record.facets) if record.facets else 0
        logger.info(f"Successfully posted to AT Protocol: {ref.uri} ({facet_count} facets)")
        return ref
