"""
Custom OAuth provider package.

Serves every configured provider without a dedicated handler:

- Introspects tokens via RFC 7662 when expiry or scope is unknown.
- Fetches the identity document with the bearer token.
- Normalizes the identity into whitelisted service data fields.
"""

from .client import CustomOAuthClient
from .handler import WHITELISTED_FIELDS, CustomOAuthHandler

__all__ = ["CustomOAuthClient", "CustomOAuthHandler", "WHITELISTED_FIELDS"]
