"""
Access token handler for custom OAuth providers.

Turns a client-supplied access token into normalized service data:

1. validate the login options,
2. introspect the token (RFC 7662) when expiry or scope was not supplied,
3. fetch the identity document unless the client already supplied one,
4. alias OpenID Connect userinfo names onto the profile fields we store,
5. build the service data from a fixed whitelist of identity fields.

Introspection is advisory: when it fails the login proceeds with whatever
the client supplied. The identity call is mandatory.
"""

import asyncio
import time
from typing import Any, Callable, Dict, Mapping, Optional, Union

import httpx

from shared.errors import ConfigurationError
from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..configuration import ServiceConfigurationStore
from ..models import AccessTokenRequest, AccessTokenResult, ServiceConfig, TokenIntrospection
from .client import CustomOAuthClient, SecretOpener

# Identity fields trusted to flow into persisted user records.
WHITELISTED_FIELDS = (
    "name",
    "description",
    "profile_image_url",
    "profile_image_url_https",
    "lang",
    "email",
)


class CustomOAuthHandler:
    """Handler registered under the ``custom`` service name."""

    def __init__(
        self,
        config_store: ServiceConfigurationStore,
        open_secret: SecretOpener,
        timeout: float = 10.0,
        legacy_locale_alias: bool = False,
        http_client: Optional[httpx.AsyncClient] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config_store = config_store
        self.open_secret = open_secret
        self.timeout = timeout
        self.legacy_locale_alias = legacy_locale_alias
        self.http_client = http_client
        self.metrics = metrics
        self.clock = clock
        self.logger = get_logger("oauth.custom.handler")

    async def __call__(self, options: Union[AccessTokenRequest, Mapping[str, Any]]) -> AccessTokenResult:
        return await self.handle_access_token_request(options)

    def client_for(self, config: ServiceConfig) -> CustomOAuthClient:
        return CustomOAuthClient(
            config,
            self.open_secret,
            timeout=self.timeout,
            http_client=self.http_client,
            metrics=self.metrics,
        )

    def _get_config(self, service_name: Optional[str]) -> ServiceConfig:
        config = self.config_store.find_one(service_name) if service_name else None
        if config is None:
            raise ConfigurationError(
                f"Service not configured: {service_name}",
                {"service": service_name}
            )
        return config

    async def handle_access_token_request(
        self, options: Union[AccessTokenRequest, Mapping[str, Any]]
    ) -> AccessTokenResult:
        """Resolve the token's identity and build normalized service data."""
        request = AccessTokenRequest.from_options(options)
        config = self._get_config(request.service_name)
        client = self.client_for(config)

        needs_tokeninfo = request.expires_in is None or not request.scope
        tokeninfo, identity = await self._resolve(client, request, needs_tokeninfo)

        identity = self._alias_openid_fields(identity)

        service_data: Dict[str, Any] = {
            "accessToken": request.access_token,
            "expiresAt": self._expires_at(request, tokeninfo, config),
            "scope": self._scope(request, tokeninfo, config),
            "id": self._external_id(identity, config),
        }

        # Only set when supplied, so a previously stored refresh token
        # survives logins that omit it.
        if request.refresh_token:
            service_data["refreshToken"] = request.refresh_token

        fields = list(WHITELISTED_FIELDS)
        if config.username_field not in fields and config.username_field not in service_data:
            fields.append(config.username_field)
        for key in fields:
            if identity.get(key) is not None:
                service_data[key] = identity[key]

        self.logger.info(
            "Access token resolved",
            oauth_service=config.service,
            external_id=service_data["id"],
            introspected=tokeninfo is not None,
            identity_supplied=request.identity is not None
        )

        return AccessTokenResult(
            service_data=service_data,
            options={"profile": {"name": identity.get("name")}},
        )

    async def _resolve(self, client: CustomOAuthClient, request: AccessTokenRequest, needs_tokeninfo: bool):
        token = request.access_token

        if request.identity is not None:
            tokeninfo = await client.introspect(token) if needs_tokeninfo else None
            return tokeninfo, dict(request.identity)

        if not needs_tokeninfo:
            return None, await client.fetch_identity(token)

        # Both calls are independent; introspect() never raises, so its
        # outcome cannot change the identity result.
        tokeninfo, identity = await asyncio.gather(
            client.introspect(token),
            client.fetch_identity(token),
            return_exceptions=True,
        )
        if isinstance(identity, BaseException):
            raise identity
        if isinstance(tokeninfo, BaseException):
            raise tokeninfo
        return tokeninfo, identity

    def _alias_openid_fields(self, identity: Dict[str, Any]) -> Dict[str, Any]:
        """Map OpenID Connect userinfo names onto stored profile names."""
        if "profile_image_url" not in identity and identity.get("picture"):
            identity["profile_image_url"] = identity["picture"]

        if "lang" not in identity and identity.get("locale"):
            if self.legacy_locale_alias:
                # Historical behavior kept for deployments relying on it.
                identity["profile_image_url"] = identity.get("picture")
            else:
                identity["lang"] = identity["locale"]

        return identity

    def _expires_at(
        self,
        request: AccessTokenRequest,
        tokeninfo: Optional[TokenIntrospection],
        config: ServiceConfig,
    ) -> int:
        """Absolute expiry in epoch milliseconds."""
        if tokeninfo is not None and tokeninfo.exp:
            return tokeninfo.exp * 1000

        if request.expires_in is None:
            raise ConfigurationError(
                f"Cannot determine access token expiry for {config.service}: "
                "no expiresIn supplied and introspection returned no exp",
                {"service": config.service}
            )

        return int(self.clock() * 1000) + 1000 * request.expires_in

    def _scope(
        self,
        request: AccessTokenRequest,
        tokeninfo: Optional[TokenIntrospection],
        config: ServiceConfig,
    ) -> list:
        scope = request.requested_scope()
        if scope is None and tokeninfo is not None and tokeninfo.scope:
            scope = tokeninfo.scope.split()
        if scope is None:
            scope = config.default_scope()
        return scope

    def _external_id(self, identity: Dict[str, Any], config: ServiceConfig) -> str:
        value = identity.get(config.username_field)
        if value is None or value == "":
            raise ConfigurationError(
                f"Identity from {config.service} has no value for usernameField '{config.username_field}'",
                {"service": config.service, "username_field": config.username_field}
            )
        return str(value)
