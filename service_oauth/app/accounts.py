"""
Local account storage keyed by external service identity.
"""

import copy
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from shared.errors import ValidationError
from shared.logging import get_logger
from .models import LoginResult


@dataclass
class UserAccount:
    """A local user linked to one or more external services."""
    user_id: str
    services: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    profile: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AccountStore(ABC):
    """Create-or-update of local users from external service data."""

    @abstractmethod
    def update_or_create_user_from_external_service(
        self,
        service_name: str,
        service_data: Dict[str, Any],
        options: Optional[Dict[str, Any]] = None,
    ) -> LoginResult:
        """Link ``service_data`` to a local user and return the login result."""


class InMemoryAccountStore(AccountStore):
    """Dictionary-backed account store."""

    def __init__(self):
        self.logger = get_logger("oauth.accounts")
        self.users: Dict[str, UserAccount] = {}

    def find_by_service_id(self, service_name: str, external_id: str) -> Optional[UserAccount]:
        for user in self.users.values():
            service = user.services.get(service_name)
            if service is not None and service.get("id") == external_id:
                return user
        return None

    def update_or_create_user_from_external_service(
        self,
        service_name: str,
        service_data: Dict[str, Any],
        options: Optional[Dict[str, Any]] = None,
    ) -> LoginResult:
        external_id = service_data.get("id")
        if not external_id:
            raise ValidationError(
                f"Service data for {service_name} must include an id",
                {"service": service_name}
            )

        options = options or {}
        user = self.find_by_service_id(service_name, external_id)

        if user is not None:
            # Merge key by key; keys missing from this login (e.g. a
            # refresh token) keep their stored value.
            user.services[service_name].update(copy.deepcopy(service_data))
            user.updated_at = datetime.now(timezone.utc)
            self.logger.info("User updated from external service", oauth_service=service_name, user_id=user.user_id)
        else:
            user = UserAccount(
                user_id=uuid.uuid4().hex,
                services={service_name: copy.deepcopy(service_data)},
                profile=copy.deepcopy(options.get("profile") or {}),
            )
            self.users[user.user_id] = user
            self.logger.info("User created from external service", oauth_service=service_name, user_id=user.user_id)

        return LoginResult(type=service_name, user_id=user.user_id)

    def list_users(self) -> List[UserAccount]:
        return list(self.users.values())
