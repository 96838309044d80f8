"""
HTTP client for a custom OAuth provider's introspection and identity endpoints.
"""

from contextlib import nullcontext
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from shared.errors import ConfigurationError, IdentityFetchError, IntrospectionError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..models import ServiceConfig, TokenIntrospection

# RFC 7662 path, relative to the provider's server URL. Not configurable.
INTROSPECT_PATH = "/introspect"

# Keep error details small; provider error pages can be large.
MAX_ERROR_BODY = 2048

SecretOpener = Callable[[Any], str]


def _body_excerpt(response: httpx.Response) -> str:
    return response.text[:MAX_ERROR_BODY]


class CustomOAuthClient:
    """Client for one provider's token introspection and identity endpoints."""

    def __init__(
        self,
        config: ServiceConfig,
        open_secret: SecretOpener,
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config
        self.open_secret = open_secret
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger("oauth.custom.client")
        self._http_client = http_client

    @property
    def server_url(self) -> str:
        return self.config.server_url.rstrip("/")

    def _timed(self, call: str):
        if self.metrics is None:
            return nullcontext()
        return self.metrics.time_operation(
            "outbound_call_duration_seconds",
            oauth_service=self.config.service,
            call=call
        )

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        if self._http_client is not None:
            return await self._http_client.request(method, url, timeout=self.timeout, **kwargs)
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            return await client.request(method, url, **kwargs)

    async def introspect(self, access_token: str) -> Optional[TokenIntrospection]:
        """Ask the provider about the token. Returns None on any failure."""
        try:
            return await self.fetch_tokeninfo(access_token)
        except IntrospectionError as e:
            # The identity call still validates the token; only expiry and
            # scope precision are lost.
            self.logger.warning(
                "Token introspection failed, continuing without tokeninfo",
                message=e.message,
                details=e.details
            )
            if self.metrics is not None:
                self.metrics.record_introspection_failure(self.config.service)
            return None

    async def fetch_tokeninfo(self, access_token: str) -> TokenIntrospection:
        """POST the token to the introspection endpoint. Raises IntrospectionError."""
        service = self.config.service
        try:
            client_secret = self.open_secret(self.config.secret)
        except ConfigurationError as e:
            raise IntrospectionError(service, e.message) from e

        try:
            with self._timed("introspect"):
                response = await self._send(
                    "POST",
                    f"{self.server_url}{INTROSPECT_PATH}",
                    auth=(self.config.client_id, client_secret),
                    headers={"Accept": "application/json"},
                    data={
                        "token": access_token,
                        "token_type_hint": "access_token",
                    },
                )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise IntrospectionError(
                service,
                f"HTTP {e.response.status_code}",
                status_code=e.response.status_code,
                body=_body_excerpt(e.response)
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise IntrospectionError(service, str(e) or type(e).__name__, error=type(e).__name__) from e
        except ValueError as e:
            raise IntrospectionError(
                service,
                "Response is not valid JSON",
                status_code=response.status_code,
                body=_body_excerpt(response)
            ) from e

        if not isinstance(payload, dict):
            raise IntrospectionError(service, "Response is not a JSON object", status_code=response.status_code)

        try:
            return TokenIntrospection.model_validate(payload)
        except PydanticValidationError as e:
            raise IntrospectionError(
                service,
                "Unexpected introspection response",
                status_code=response.status_code,
                error=str(e)
            ) from e

    async def fetch_identity(self, access_token: str) -> Dict[str, Any]:
        """GET the identity document with the bearer token. Raises IdentityFetchError."""
        service = self.config.service
        try:
            with self._timed("identity"):
                response = await self._send(
                    "GET",
                    f"{self.server_url}{self.config.identity_path}",
                    headers={
                        "Authorization": f"Bearer {access_token}",
                        "Accept": "application/json",
                    },
                )
            response.raise_for_status()
            identity = response.json()
        except httpx.HTTPStatusError as e:
            raise IdentityFetchError(
                service,
                f"HTTP {e.response.status_code}",
                status_code=e.response.status_code,
                body=_body_excerpt(e.response)
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise IdentityFetchError(service, str(e) or type(e).__name__, error=type(e).__name__) from e
        except ValueError as e:
            raise IdentityFetchError(
                service,
                "Response is not valid JSON",
                status_code=response.status_code,
                body=_body_excerpt(response)
            ) from e

        if not isinstance(identity, dict):
            raise IdentityFetchError(service, "Response is not a JSON object", status_code=response.status_code)

        return identity
