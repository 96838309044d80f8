"""
Test helper functions and factory methods for the access token login service.
"""

from typing import Any, Dict, List, Optional

import httpx

FIXED_NOW = 1_700_000_000.0


def fixed_clock(now: float = FIXED_NOW):
    """Clock returning a constant epoch time in seconds."""
    return lambda: now


def create_service_config(**overrides) -> Dict[str, Any]:
    """Stored provider settings in their persisted (camelCase) form."""
    config = {
        "service": "x",
        "serverURL": "https://idp.test",
        "identityPath": "/me",
        "clientId": "client-1",
        "secret": "s3cret",
        "usernameField": "sub",
        "scope": "read write",
    }
    config.update(overrides)
    return config


def create_identity(**overrides) -> Dict[str, Any]:
    """Identity document as an OpenID Connect userinfo endpoint returns it."""
    identity = {
        "sub": "u1",
        "name": "Ann",
        "picture": "http://x/p.png",
    }
    identity.update(overrides)
    return identity


class MockOAuthProvider:
    """In-process OAuth provider serving introspection and identity endpoints.

    Wire it into code under test with ``client()``; every request received is
    kept in ``requests`` for assertions.
    """

    def __init__(
        self,
        identity: Optional[Dict[str, Any]] = None,
        tokeninfo: Optional[Dict[str, Any]] = None,
        identity_path: str = "/me",
        identity_status: int = 200,
        introspection_status: int = 200,
        identity_error: Optional[Exception] = None,
        introspection_error: Optional[Exception] = None,
    ):
        self.identity = identity if identity is not None else create_identity()
        self.tokeninfo = tokeninfo if tokeninfo is not None else {"active": True}
        self.identity_path = identity_path
        self.identity_status = identity_status
        self.introspection_status = introspection_status
        self.identity_error = identity_error
        self.introspection_error = introspection_error
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/introspect":
            if self.introspection_error is not None:
                raise self.introspection_error
            if self.introspection_status != 200:
                return httpx.Response(self.introspection_status, json={"error": "invalid_client"})
            return httpx.Response(200, json=self.tokeninfo)

        if request.method == "GET" and path == self.identity_path:
            if self.identity_error is not None:
                raise self.identity_error
            if self.identity_status != 200:
                return httpx.Response(self.identity_status, json={"error": "invalid_token"})
            return httpx.Response(200, json=self.identity)

        return httpx.Response(404, json={"error": "not_found"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def calls(self, path: str) -> List[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]
