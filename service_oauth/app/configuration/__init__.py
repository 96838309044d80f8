"""
Provider configuration package.

Stored settings of each OAuth provider (server URL, identity path, client
credentials, username field, default scope), looked up by service name at
request time. The login path only reads from the store.
"""

from .store import InMemoryServiceConfigurationStore, ServiceConfigurationStore

__all__ = ["InMemoryServiceConfigurationStore", "ServiceConfigurationStore"]
