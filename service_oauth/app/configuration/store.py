"""
OAuth service configuration storage.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from shared.errors import ConfigurationError
from shared.logging import get_logger
from ..models import ServiceConfig


class ServiceConfigurationStore(ABC):
    """Point lookup of provider settings by service name."""

    @abstractmethod
    def find_one(self, service: str) -> Optional[ServiceConfig]:
        """Return the configuration for ``service`` or None."""

    @abstractmethod
    def service_names(self) -> List[str]:
        """Names of every configured service."""


class InMemoryServiceConfigurationStore(ServiceConfigurationStore):
    """Dictionary-backed configuration store."""

    def __init__(self, configs: Optional[Iterable[Union[ServiceConfig, Mapping[str, Any]]]] = None):
        self.logger = get_logger("oauth.configuration")
        self._configs: Dict[str, ServiceConfig] = {}
        for config in configs or []:
            self.upsert(config)

    def upsert(self, config: Union[ServiceConfig, Mapping[str, Any]]) -> ServiceConfig:
        """Add or replace a service configuration."""
        if not isinstance(config, ServiceConfig):
            try:
                config = ServiceConfig.model_validate(config)
            except PydanticValidationError as e:
                raise ConfigurationError(
                    "Invalid OAuth service configuration",
                    {"errors": [".".join(str(p) for p in err["loc"]) for err in e.errors()]}
                ) from e

        self._configs[config.service] = config
        self.logger.info("OAuth service configured", oauth_service=config.service, server_url=config.server_url)
        return config

    def remove(self, service: str) -> bool:
        return self._configs.pop(service, None) is not None

    def find_one(self, service: str) -> Optional[ServiceConfig]:
        return self._configs.get(service)

    def service_names(self) -> List[str]:
        return list(self._configs)

    @classmethod
    def load_file(cls, path: Union[str, Path]) -> "InMemoryServiceConfigurationStore":
        """Load a JSON list of service configurations."""
        try:
            with open(path, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                f"Failed to read OAuth services file: {path}",
                {"path": str(path), "error": str(e)}
            ) from e

        if not isinstance(data, list):
            raise ConfigurationError("OAuth services file must contain a JSON list", {"path": str(path)})

        return cls(data)
