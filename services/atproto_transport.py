"""
AT Protocol Transport Module

This module adapts the atproto SDK client to the XrpcTransport protocol.
The SDK performs the HTTP work; this adapter only supplies bearer headers
per call and turns SDK errors into XrpcError.

The SDK client is never logged in here. Sessions are owned by the caller,
so the SDK's own automatic session refresh never runs.
"""

from typing import Any, Dict, Optional

from atproto import Client, models
from atproto_client.exceptions import AtProtocolError, RequestErrorBase

from config import settings
from utils.exceptions import XrpcError, XrpcHttpError
from utils.logger import get_logger

logger = get_logger(__name__)


def _auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def _as_payload(response: Any) -> Dict[str, Any]:
    if isinstance(response, dict):
        return response
    return response.model_dump(by_alias=True, exclude_none=True)


def _to_xrpc_error(nsid: str, error: AtProtocolError) -> XrpcError:
    response = getattr(error, "response", None) if isinstance(error, RequestErrorBase) else None
    if response is not None and getattr(response, "status_code", None):
        content = getattr(response, "content", None)
        detail = getattr(content, "message", None) or getattr(content, "error", None) or content
        return XrpcHttpError(
            response.status_code,
            f"{nsid} failed with status code {response.status_code}: {detail}",
        )
    return XrpcError(f"{nsid} failed: {error}")


class AtprotoTransport:
    """XrpcTransport backed by an injected atproto Client."""

    def __init__(self, client: Optional[Client] = None, host: Optional[str] = None):
        """
        Initialize the transport.

        Args:
            client: The SDK client to send requests with. A new one pointing
                at host is created when omitted.
            host: Service host, defaults to settings.XRPC_HOST.
        """
        self.host = host or settings.XRPC_HOST
        self.client = client or Client(base_url=f"{self.host}/xrpc")

    def create_session(self, identifier: str, password: str) -> Dict[str, Any]:
        nsid = "com.atproto.server.createSession"
        try:
            response = self.client.com.atproto.server.create_session(
                models.ComAtprotoServerCreateSession.Data(identifier=identifier, password=password)
            )
        except AtProtocolError as e:
            raise _to_xrpc_error(nsid, e) from e
        return _as_payload(response)

    def refresh_session(self, refresh_jwt: str) -> Dict[str, Any]:
        nsid = "com.atproto.server.refreshSession"
        try:
            response = self.client.com.atproto.server.refresh_session(
                headers=_auth_headers(refresh_jwt)
            )
        except AtProtocolError as e:
            raise _to_xrpc_error(nsid, e) from e
        return _as_payload(response)

    def get_profile(self, actor: str, access_jwt: str) -> Dict[str, Any]:
        nsid = "app.bsky.actor.getProfile"
        try:
            response = self.client.app.bsky.actor.get_profile(
                params={"actor": actor}, headers=_auth_headers(access_jwt)
            )
        except AtProtocolError as e:
            raise _to_xrpc_error(nsid, e) from e
        return _as_payload(response)

    def create_record(self, access_jwt: str, repo: str, collection: str,
                      record: Dict[str, Any]) -> Dict[str, Any]:
        nsid = "com.atproto.repo.createRecord"
        logger.debug(f"Creating record in {collection} for {repo}: {record}")
        try:
            response = self.client.com.atproto.repo.create_record(
                models.ComAtprotoRepoCreateRecord.Data(repo=repo, collection=collection, record=record),
                headers=_auth_headers(access_jwt),
            )
        except AtProtocolError as e:
            raise _to_xrpc_error(nsid, e) from e
        return _as_payload(response)
