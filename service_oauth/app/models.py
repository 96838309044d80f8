"""
Data models for access token login.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr
from pydantic import ValidationError as PydanticValidationError

from shared.errors import LoginCancelledError, ValidationError


def _validation_details(exc: PydanticValidationError) -> Dict[str, Any]:
    # Only field locations and messages; never the submitted values.
    return {
        "errors": [
            {"field": ".".join(str(part) for part in error["loc"]), "message": error["msg"]}
            for error in exc.errors()
        ]
    }


class ServiceConfig(BaseModel):
    """Stored settings of one OAuth provider."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    service: str = Field(..., min_length=1)
    server_url: str = Field(..., alias="serverURL", min_length=1)
    identity_path: str = Field(default="/me", alias="identityPath")
    client_id: str = Field(default="", alias="clientId")
    secret: Union[str, Dict[str, Any]] = Field(default="", repr=False)
    username_field: str = Field(default="id", alias="usernameField", min_length=1)
    scope: str = Field(default="openid")

    def default_scope(self) -> list:
        return self.scope.split()


class AccessTokenRequest(BaseModel):
    """Login options carrying a client-supplied access token."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    service_name: Optional[StrictStr] = Field(default=None, alias="serviceName")
    access_token: StrictStr = Field(..., alias="accessToken", repr=False)
    expires_in: Optional[StrictInt] = Field(default=None, alias="expiresIn", ge=0)
    scope: Optional[StrictStr] = None
    identity: Optional[Dict[str, Any]] = None
    refresh_token: Optional[StrictStr] = Field(default=None, alias="refreshToken", repr=False)

    @classmethod
    def from_options(cls, options: Union["AccessTokenRequest", Mapping[str, Any]]) -> "AccessTokenRequest":
        """Validate raw login options, raising the login layer's ValidationError."""
        if isinstance(options, cls):
            return options
        if not isinstance(options, Mapping):
            raise ValidationError("Login options must be an object")
        try:
            return cls.model_validate(dict(options))
        except PydanticValidationError as e:
            raise ValidationError("Invalid access token request", _validation_details(e)) from e

    def requested_scope(self) -> Optional[list]:
        # An empty scope string carries no scope.
        if not self.scope:
            return None
        return self.scope.split()


class TokenIntrospection(BaseModel):
    """RFC 7662 introspection response. Unknown members are kept but unused."""

    model_config = ConfigDict(extra="allow")

    active: Optional[bool] = None
    exp: Optional[int] = None
    scope: Optional[str] = None


@dataclass
class AccessTokenResult:
    """What a provider handler hands back to the dispatcher."""

    service_data: Dict[str, Any]
    options: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"serviceData": self.service_data, "options": self.options}


class LoginResult(BaseModel):
    """Outcome of a successful create-or-update of a local user."""

    model_config = ConfigDict(populate_by_name=True)

    type: str
    user_id: str = Field(..., alias="userId")


@dataclass
class LoginCancelled:
    """A login that did not proceed, reportable to the client."""

    error: LoginCancelledError
    type: str = "oauth"

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type, "error": self.error.to_dict()}
