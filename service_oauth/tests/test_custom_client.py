"""
Unit tests for the custom OAuth provider client.
"""

import base64
import json
from urllib.parse import parse_qs
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from service_oauth.app.custom.client import CustomOAuthClient
from service_oauth.app.models import ServiceConfig
from shared.errors import ConfigurationError, IdentityFetchError, IntrospectionError
from shared.metrics import MetricsCollector
from shared.secrets_manager import SecretsManager
from shared.test_helpers import MockOAuthProvider, create_service_config


class TestCustomOAuthClient:
    """Test cases for CustomOAuthClient."""

    @pytest.fixture
    def config(self):
        """Provider configuration with a trailing slash on the server URL."""
        return ServiceConfig.model_validate(create_service_config(serverURL="https://idp.test/"))

    @pytest.fixture
    def secrets(self):
        return SecretsManager(master_key="test-master-key")

    @pytest.mark.asyncio
    async def test_introspection_request_shape(self, config, secrets):
        """Introspection uses basic auth and a form encoded token."""
        provider = MockOAuthProvider(tokeninfo={"active": True, "exp": 2000000000, "scope": "read"})
        client = CustomOAuthClient(config, secrets.open_secret, http_client=provider.client())

        tokeninfo = await client.introspect("tok1")

        assert tokeninfo.exp == 2000000000
        assert tokeninfo.scope == "read"

        request = provider.calls("/introspect")[0]
        assert request.method == "POST"
        assert str(request.url) == "https://idp.test/introspect"
        expected_auth = base64.b64encode(b"client-1:s3cret").decode()
        assert request.headers["Authorization"] == f"Basic {expected_auth}"
        assert request.headers["Accept"] == "application/json"
        assert parse_qs(request.content.decode()) == {
            "token": ["tok1"],
            "token_type_hint": ["access_token"],
        }

    @pytest.mark.asyncio
    async def test_introspection_opens_sealed_secret(self, secrets):
        config = ServiceConfig.model_validate(
            create_service_config(secret=secrets.seal_secret("sealed-pass"))
        )
        provider = MockOAuthProvider()
        client = CustomOAuthClient(config, secrets.open_secret, http_client=provider.client())

        await client.introspect("tok1")

        expected_auth = base64.b64encode(b"client-1:sealed-pass").decode()
        assert provider.calls("/introspect")[0].headers["Authorization"] == f"Basic {expected_auth}"

    @pytest.mark.asyncio
    async def test_introspect_returns_none_and_counts_failure(self, config, secrets):
        provider = MockOAuthProvider(introspection_status=503)
        metrics = MetricsCollector("oauth")
        client = CustomOAuthClient(config, secrets.open_secret, http_client=provider.client(), metrics=metrics)

        assert await client.introspect("tok1") is None

        value = metrics.registry.get_sample_value(
            "oauth_introspection_failures_total", {"oauth_service": "x"}
        )
        assert value == 1.0

    @pytest.mark.asyncio
    async def test_fetch_tokeninfo_raises_on_http_error(self, config, secrets):
        provider = MockOAuthProvider(introspection_status=401)
        client = CustomOAuthClient(config, secrets.open_secret, http_client=provider.client())

        with pytest.raises(IntrospectionError) as exc_info:
            await client.fetch_tokeninfo("tok1")

        assert exc_info.value.details["status_code"] == 401

    @pytest.mark.asyncio
    async def test_fetch_tokeninfo_rejects_non_object(self, config, secrets):
        def handler(request):
            return httpx.Response(200, json=["not", "an", "object"])

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = CustomOAuthClient(config, secrets.open_secret, http_client=http_client)

        with pytest.raises(IntrospectionError):
            await client.fetch_tokeninfo("tok1")

    @pytest.mark.asyncio
    async def test_unopenable_secret_is_advisory(self, config):
        sealed = SecretsManager(master_key="other-key").seal_secret("pass")
        config = config.model_copy(update={"secret": sealed})
        provider = MockOAuthProvider()
        client = CustomOAuthClient(config, SecretsManager(master_key="test-master-key").open_secret,
                                   http_client=provider.client())

        assert await client.introspect("tok1") is None
        assert provider.requests == []

    @pytest.mark.asyncio
    async def test_identity_request_shape(self, config, secrets):
        provider = MockOAuthProvider()
        client = CustomOAuthClient(config, secrets.open_secret, http_client=provider.client())

        identity = await client.fetch_identity("tok1")

        assert identity["sub"] == "u1"
        request = provider.calls("/me")[0]
        assert request.method == "GET"
        assert str(request.url) == "https://idp.test/me"
        assert request.headers["Authorization"] == "Bearer tok1"
        assert request.headers["Accept"] == "application/json"

    @pytest.mark.asyncio
    async def test_identity_invalid_json(self, config, secrets):
        def handler(request):
            return httpx.Response(200, content=b"<html>login</html>")

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = CustomOAuthClient(config, secrets.open_secret, http_client=http_client)

        with pytest.raises(IdentityFetchError) as exc_info:
            await client.fetch_identity("tok1")

        assert exc_info.value.response_status == 200
        assert "<html>" in exc_info.value.response_body

    @pytest.mark.asyncio
    async def test_identity_timeout(self, config, secrets):
        """Identity fetch without an injected client, with httpx patched."""
        with patch('service_oauth.app.custom.client.httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                side_effect=httpx.ConnectTimeout("Request timeout")
            )
            client = CustomOAuthClient(config, secrets.open_secret, timeout=5.0)

            with pytest.raises(IdentityFetchError) as exc_info:
                await client.fetch_identity("tok1")

        mock_client.assert_called_once_with(timeout=5.0)
        assert exc_info.value.details["error"] == "ConnectTimeout"

    @pytest.mark.asyncio
    async def test_identity_success_with_patched_client(self, config, secrets):
        with patch('service_oauth.app.custom.client.httpx.AsyncClient') as mock_client:
            mock_client.return_value.__aenter__.return_value.request = AsyncMock(
                return_value=httpx.Response(
                    status_code=200,
                    content=json.dumps({"sub": "u2", "name": "Bo"}),
                    request=httpx.Request("GET", "https://idp.test/me")
                )
            )
            client = CustomOAuthClient(config, secrets.open_secret)

            identity = await client.fetch_identity("tok2")

        assert identity == {"sub": "u2", "name": "Bo"}


class TestSecretOpening:
    """Plain and sealed client secrets."""

    def test_plain_secret_returned(self):
        assert SecretsManager(master_key="k").open_secret("plain") == "plain"

    def test_sealed_secret_round_trip(self):
        manager = SecretsManager(master_key="k")
        sealed = manager.seal_secret("pass")

        assert sealed["ciphertext"] != "pass"
        assert manager.open_secret(sealed) == "pass"

    def test_sealed_secret_without_master_key(self, monkeypatch):
        monkeypatch.delenv("ACCESS_MASTER_KEY", raising=False)
        sealed = SecretsManager(master_key="k").seal_secret("pass")

        with pytest.raises(ConfigurationError):
            SecretsManager().open_secret(sealed)

    def test_non_string_secret_rejected(self):
        with pytest.raises(ConfigurationError):
            SecretsManager(master_key="k").open_secret(MagicMock())
