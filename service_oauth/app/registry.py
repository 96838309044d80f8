"""
Access token service registry.
"""

from typing import Any, Awaitable, Callable, Dict, Optional

from shared.errors import ConfigurationError
from shared.logging import get_logger
from .models import AccessTokenResult

CUSTOM_SERVICE = "custom"

AccessTokenHandler = Callable[[Any], Awaitable[AccessTokenResult]]


class AccessTokenServiceRegistry:
    """Maps service names to access token handlers.

    Populated at startup and frozen before traffic begins; lookups after
    that need no locking because the table no longer changes.
    """

    def __init__(self):
        self.logger = get_logger("oauth.registry")
        self._handlers: Dict[str, AccessTokenHandler] = {}
        self._frozen = False

    def register(self, service_name: str, handler: AccessTokenHandler) -> None:
        """Register a handler. The last registration for a name wins."""
        if self._frozen:
            raise ConfigurationError(
                f"Cannot register access token service {service_name} after startup",
                {"service": service_name}
            )
        if service_name in self._handlers:
            self.logger.info("Replacing access token service", oauth_service=service_name)
        self._handlers[service_name] = handler

    def lookup(self, service_name: str) -> Optional[AccessTokenHandler]:
        return self._handlers.get(service_name)

    def resolve(self, service_name: str, has_config: bool) -> Optional[AccessTokenHandler]:
        """Specific handler first, then the custom handler for configured services."""
        handler = self.lookup(service_name)
        if handler is None and has_config:
            handler = self.lookup(CUSTOM_SERVICE)
        return handler

    def freeze(self) -> None:
        self._frozen = True

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, service_name: str) -> bool:
        return service_name in self._handlers

    def __len__(self) -> int:
        return len(self._handlers)
