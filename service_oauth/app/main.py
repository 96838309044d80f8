"""
Access token login service.
"""

import time
from typing import Any, Callable, Dict, List, Optional

import httpx
from fastapi import Body
from fastapi.responses import JSONResponse

from shared.base_service import BaseService
from shared.config import ServiceSettings
from shared.errors import ValidationError
from shared.secrets_manager import SecretsManager
from .accounts import AccountStore, InMemoryAccountStore
from .configuration import InMemoryServiceConfigurationStore, ServiceConfigurationStore
from .custom.handler import CustomOAuthHandler
from .dispatcher import LoginDispatcher
from .models import LoginCancelled
from .registry import CUSTOM_SERVICE, AccessTokenServiceRegistry


class OAuthLoginService(BaseService):
    """Access token login service implementation."""

    def __init__(
        self,
        config: Optional[ServiceSettings] = None,
        config_store: Optional[ServiceConfigurationStore] = None,
        account_store: Optional[AccountStore] = None,
        secrets_manager: Optional[SecretsManager] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        super().__init__("oauth", 8020, config)

        self.config_store = config_store or self._load_config_store()
        self.account_store = account_store or InMemoryAccountStore()
        self.secrets_manager = secrets_manager or SecretsManager(self.config.master_key)

        # Handlers are registered once here; the registry is read-only afterwards.
        self.registry = AccessTokenServiceRegistry()
        self.registry.register(
            CUSTOM_SERVICE,
            CustomOAuthHandler(
                self.config_store,
                self.secrets_manager.open_secret,
                timeout=self.config.oauth_http_timeout,
                legacy_locale_alias=self.config.oauth_legacy_locale_alias,
                http_client=http_client,
                metrics=self.metrics,
                clock=clock,
            )
        )
        self.registry.freeze()

        self.dispatcher = LoginDispatcher(
            self.registry,
            self.config_store,
            self.account_store,
            oauth_service_names=self.active_service_names,
            metrics=self.metrics,
        )

        if self.config.oauth_legacy_locale_alias:
            self.logger.warning("Legacy locale aliasing enabled; lang will not be derived from locale")

        self._setup_login_routes()

    def _load_config_store(self) -> ServiceConfigurationStore:
        if self.config.oauth_services_file:
            store = InMemoryServiceConfigurationStore.load_file(self.config.oauth_services_file)
            self.logger.info(
                "Loaded OAuth services",
                path=self.config.oauth_services_file,
                services=store.service_names()
            )
            return store
        return InMemoryServiceConfigurationStore()

    def active_service_names(self) -> List[str]:
        """OAuth services currently accepting logins."""
        configured = self.config.active_service_names()
        if configured is not None:
            return configured
        return self.config_store.service_names()

    def _setup_login_routes(self):
        """Set up login routes."""

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": "oauth",
                "message": "Access Token Login Service",
                "version": "1.0.0"
            }

        @self.app.post("/login/access-token")
        async def login_with_access_token(options: Dict[str, Any] = Body(...)):
            """Log in with a client-supplied OAuth access token."""
            result = await self.dispatcher.handle_login(options)

            if result is None:
                raise ValidationError("accessToken is required", {"field": "accessToken"})

            if isinstance(result, LoginCancelled):
                return JSONResponse(status_code=403, content=result.to_dict())

            return result.model_dump(by_alias=True)

    async def _check_dependencies(self) -> Dict[str, str]:
        """Check login dependencies."""
        return {
            "configuration": "ok" if self.config_store.service_names() else "empty",
            "registry": "ok" if self.registry.frozen else "initializing",
        }


def create_app(**kwargs):
    """Create FastAPI application."""
    service = OAuthLoginService(**kwargs)
    return service.app


if __name__ == "__main__":
    service = OAuthLoginService()
    service.run()
