"""Objects exchanged with a service provider before and after authentication."""

from __future__ import annotations

import base64
import binascii
import copy
from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Optional

from .binding import _mapping, _object
from .meta import API_VERSION

OAUTH2_CODE_GRANT_METHOD = "OAuth2CodeGrant"


@dataclass
class OAuth2CodeGrant:
    """Configuration of the OAuth2 code grant flow."""

    authenticated_url: str

    def to_dict(self) -> dict[str, Any]:
        return {"authenticatedURL": self.authenticated_url}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OAuth2CodeGrant":
        data = _mapping(data, "oauth2CodeGrant")
        return cls(authenticated_url=data.get("authenticatedURL", ""))


@dataclass
class AuthenticationMethod:
    """One authentication method offered by a service provider."""

    method: str = ""
    oauth2_code_grant: Optional[OAuth2CodeGrant] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.method:
            out["method"] = self.method
        if self.oauth2_code_grant is not None:
            out["oauth2CodeGrant"] = self.oauth2_code_grant.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AuthenticationMethod":
        data = _mapping(data, "authentication method")
        grant = data.get("oauth2CodeGrant")
        return cls(
            method=data.get("method", ""),
            oauth2_code_grant=OAuth2CodeGrant.from_dict(grant) if grant is not None else None,
        )


@dataclass
class BindingProvider:
    """What a service provider returns before authentication."""

    KIND: ClassVar[str] = "BindingProvider"

    provider_pretty_name: str
    version: str
    authentication_methods: list[AuthenticationMethod] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "apiVersion": API_VERSION,
            "kind": self.KIND,
            "providerPrettyName": self.provider_pretty_name,
            "version": self.version,
        }
        if self.authentication_methods:
            out["authenticationMethods"] = [m.to_dict() for m in self.authentication_methods]
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BindingProvider":
        data = _object(data, cls.KIND)
        return cls(
            provider_pretty_name=data.get("providerPrettyName", ""),
            version=data.get("version", ""),
            authentication_methods=[
                AuthenticationMethod.from_dict(m) for m in data.get("authenticationMethods") or []
            ],
        )


@dataclass
class BindingResponseAuthenticationOAuth2CodeGrant:
    """Data handed back to the consumer by the OAuth2 code grant flow."""

    session_id: str
    id: str

    def to_dict(self) -> dict[str, Any]:
        return {"sid": self.session_id, "id": self.id}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BindingResponseAuthenticationOAuth2CodeGrant":
        data = _mapping(data, "oauth2CodeGrant")
        return cls(session_id=data.get("sid", ""), id=data.get("id", ""))


@dataclass
class BindingResponseAuthentication:
    """Authentication data specific to the method that was used."""

    oauth2_code_grant: Optional[BindingResponseAuthenticationOAuth2CodeGrant] = None

    def to_dict(self) -> dict[str, Any]:
        if self.oauth2_code_grant is None:
            return {}
        return {"oauth2CodeGrant": self.oauth2_code_grant.to_dict()}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "BindingResponseAuthentication":
        data = _mapping(data or {}, "authentication")
        grant = data.get("oauth2CodeGrant")
        return cls(
            oauth2_code_grant=(
                BindingResponseAuthenticationOAuth2CodeGrant.from_dict(grant)
                if grant is not None
                else None
            )
        )


def _decode_kubeconfig(value: Any) -> bytes:
    if value is None:
        return b""
    if not isinstance(value, str):
        raise ValueError(f"kubeconfig must be a base64 string, got {type(value).__name__}")
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError(f"kubeconfig is not valid base64: {exc}") from exc


@dataclass
class BindingResponse:
    """What a service provider returns after authentication and resource selection."""

    KIND: ClassVar[str] = "BindingResponse"

    kubeconfig: bytes
    requests: list[dict[str, Any]] = field(default_factory=list)
    authentication: BindingResponseAuthentication = field(
        default_factory=BindingResponseAuthentication
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": self.KIND,
            "authentication": self.authentication.to_dict(),
            "kubeconfig": base64.b64encode(bytes(self.kubeconfig)).decode("ascii"),
            "requests": copy.deepcopy(self.requests),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BindingResponse":
        data = _object(data, cls.KIND)
        return cls(
            kubeconfig=_decode_kubeconfig(data.get("kubeconfig")),
            requests=[copy.deepcopy(dict(_mapping(r, "request"))) for r in data.get("requests") or []],
            authentication=BindingResponseAuthentication.from_dict(data.get("authentication")),
        )