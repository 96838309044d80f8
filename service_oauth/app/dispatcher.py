"""
Access token login dispatch.

One member of the host's login-handler chain. Requests without an access
token are left for other handlers; everything else is resolved to a
provider handler and its service data is handed to the account store.
"""

from typing import Any, Callable, Collection, Mapping, Optional, Union

from shared.errors import (
    LoginCancelledError,
    OAuthLayerException,
    ServiceNotConfiguredError,
    UnexpectedServiceError,
    ValidationError,
)
from shared.logging import get_logger, set_login_context
from shared.metrics import MetricsCollector
from .accounts import AccountStore
from .configuration import ServiceConfigurationStore
from .models import LoginCancelled, LoginResult
from .registry import AccessTokenServiceRegistry


class LoginDispatcher:
    """Routes access token logins to the registered provider handler."""

    def __init__(
        self,
        registry: AccessTokenServiceRegistry,
        config_store: ServiceConfigurationStore,
        account_store: AccountStore,
        oauth_service_names: Callable[[], Collection[str]],
        metrics: Optional[MetricsCollector] = None,
    ):
        self.registry = registry
        self.config_store = config_store
        self.account_store = account_store
        self.oauth_service_names = oauth_service_names
        self.metrics = metrics
        self.logger = get_logger("oauth.dispatcher")

    def _record(self, service_name: str, outcome: str):
        if self.metrics is not None:
            self.metrics.record_login_attempt(service_name, outcome)

    async def handle_login(self, options: Any) -> Optional[Union[LoginResult, LoginCancelled]]:
        """Log in with an access token.

        Returns None when the options carry no access token, a
        ``LoginCancelled`` when the service is not an active OAuth service,
        and the account store's ``LoginResult`` otherwise.
        """
        if not isinstance(options, Mapping) or not options.get("accessToken"):
            return None

        service_name = options.get("serviceName")
        if not isinstance(service_name, str):
            raise ValidationError("serviceName must be a string", {"field": "serviceName"})

        set_login_context(service_name)

        config = self.config_store.find_one(service_name)
        handler = self.registry.resolve(service_name, has_config=config is not None)

        if handler is None:
            self._record(service_name, "unexpected_service")
            raise UnexpectedServiceError(service_name)

        if config is None:
            self._record(service_name, "not_configured")
            raise ServiceNotConfiguredError(service_name)

        if service_name not in self.oauth_service_names():
            # The service never registered itself or was unregistered.
            self.logger.warning("Login cancelled, no registered oauth service", oauth_service=service_name)
            self._record(service_name, "cancelled")
            return LoginCancelled(
                error=LoginCancelledError(
                    f"No registered oauth service found for: {service_name}",
                    {"service": service_name}
                )
            )

        try:
            result = await handler(options)
        except OAuthLayerException as e:
            self._record(service_name, e.code.lower())
            raise

        login = self.account_store.update_or_create_user_from_external_service(
            service_name,
            result.service_data,
            result.options,
        )
        self._record(service_name, "success")
        self.logger.info("Access token login succeeded", oauth_service=service_name, user_id=login.user_id)
        return login
