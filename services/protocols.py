"""
Service Protocol Definitions

This module defines typing.Protocol interfaces for the collaborators the
posting services depend on. These protocols enable dependency injection and
easier testing.

Protocols defined:
- XrpcTransport: Interface for authenticated XRPC request/response calls
"""

from typing import Protocol, Dict, Any


class XrpcTransport(Protocol):
    """Protocol defining the interface for XRPC transports.

    Every call returns the decoded JSON payload of a successful response.
    Failures are raised as XrpcError (XrpcHttpError when the server replied
    with an error status).
    """

    def create_session(self, identifier: str, password: str) -> Dict[str, Any]:
        """Exchange credentials for a session.

        Args:
            identifier: Handle or email of the account.
            password: Account or app password.

        Returns:
            Payload with did, handle, email, emailConfirmed, accessJwt, refreshJwt.
        """
        ...

    def refresh_session(self, refresh_jwt: str) -> Dict[str, Any]:
        """Renew a session using its refresh token.

        Args:
            refresh_jwt: The session's current refresh token.

        Returns:
            Payload with did, handle, accessJwt, refreshJwt.
        """
        ...

    def get_profile(self, actor: str, access_jwt: str) -> Dict[str, Any]:
        """Fetch a detailed profile.

        Args:
            actor: DID or handle of the profile to fetch.
            access_jwt: Bearer token for the request.

        Returns:
            The profile view payload.
        """
        ...

    def create_record(self, access_jwt: str, repo: str, collection: str,
                      record: Dict[str, Any]) -> Dict[str, Any]:
        """Create a record in a repository.

        Args:
            access_jwt: Bearer token for the request.
            repo: DID of the repository owner.
            collection: NSID of the collection, e.g. app.bsky.feed.post.
            record: The serialized record.

        Returns:
            Payload with uri and cid of the new record.
        """
        ...

