"""APIServiceBinding, APIServiceNamespace and ClusterBinding objects."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional

from .meta import API_VERSION, ObjectMeta

APISERVICEBINDING_CONDITION_SECRET_VALID = "SecretValid"
APISERVICEBINDING_CONDITION_INFORMERS_SYNCED = "InformersSynced"
APISERVICEBINDING_CONDITION_HEARTBEATING = "Heartbeating"
APISERVICEBINDING_CONDITION_CONNECTED = "Connected"
APISERVICEBINDING_CONDITION_SCHEMA_IN_SYNC = "SchemaInSync"

DOWNSTREAM_FINALIZER = "kubebind.io/syncer"

APISERVICENAMESPACE_ANNOTATION_KEY = "kube-bind.io/api-service-namespace"

CLUSTERBINDING_CONDITION_SECRET_VALID = "SecretValid"
CLUSTERBINDING_CONDITION_VALID_VERSION = "ValidVersion"
CLUSTERBINDING_CONDITION_HEALTHY = "Healthy"


class Scope(str, Enum):
    """Scope in which the konnector watches resources."""

    CLUSTER = "Cluster"
    NAMESPACED = "Namespaced"


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"{what} must be a mapping, got {type(data).__name__}")
    return data


def _object(data: Any, kind: str) -> Mapping[str, Any]:
    data = _mapping(data, kind)
    found = data.get("kind")
    if found and found != kind:
        raise ValueError(f"expected kind {kind!r}, got {found!r}")
    return data


def _conditions(data: Any) -> list[dict[str, Any]]:
    return [dict(_mapping(c, "condition")) for c in data or []]


_NS_PER_UNIT = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,
    "μs": 1_000,
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")


def _fraction(value: int, unit: int) -> str:
    whole, part = divmod(value, unit)
    if not part:
        return str(whole)
    digits = len(str(unit)) - 1
    return f"{whole}.{str(part).rjust(digits, '0').rstrip('0')}"


def _format_duration(td: timedelta) -> str:
    ns = (td // timedelta(microseconds=1)) * 1000
    if ns == 0:
        return "0s"
    sign = "-" if ns < 0 else ""
    ns = abs(ns)
    if ns < 1_000:
        return f"{sign}{ns}ns"
    if ns < 1_000_000:
        return f"{sign}{_fraction(ns, 1_000)}µs"
    if ns < 1_000_000_000:
        return f"{sign}{_fraction(ns, 1_000_000)}ms"
    hours, rest = divmod(ns, _NS_PER_UNIT["h"])
    minutes, rest = divmod(rest, _NS_PER_UNIT["m"])
    out = sign
    if hours:
        out += f"{hours}h"
    if hours or minutes:
        out += f"{minutes}m"
    return out + _fraction(rest, 1_000_000_000) + "s"


def _parse_duration(text: str) -> timedelta:
    if not isinstance(text, str):
        raise ValueError(f"invalid duration {text!r}")
    body = text
    negative = body.startswith("-")
    if body[:1] in "+-":
        body = body[1:]
    if body == "0":
        return timedelta(0)
    if not body:
        raise ValueError(f"invalid duration {text!r}")
    total = Decimal(0)
    pos = 0
    for match in _DURATION_PART.finditer(body):
        if match.start() != pos:
            raise ValueError(f"invalid duration {text!r}")
        try:
            total += Decimal(match.group(1)) * _NS_PER_UNIT[match.group(2)]
        except InvalidOperation as exc:
            raise ValueError(f"invalid duration {text!r}") from exc
        pos = match.end()
    if pos != len(body):
        raise ValueError(f"invalid duration {text!r}")
    micros = int(total) // 1000
    return timedelta(microseconds=-micros if negative else micros)


def _format_time(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _parse_time(text: str) -> datetime:
    if not isinstance(text, str):
        raise ValueError(f"invalid time {text!r}")
    normalized = text[:-1] + "+00:00" if text.endswith("Z") else text
    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError as exc:
        raise ValueError(f"invalid time {text!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass
class LocalSecretKeyRef:
    """Reference to a key of a secret in the object's own namespace."""

    name: str
    key: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "key": self.key}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LocalSecretKeyRef":
        data = _mapping(data, "secret key reference")
        return cls(name=data.get("name", ""), key=data.get("key", ""))


@dataclass
class ClusterSecretKeyRef(LocalSecretKeyRef):
    """Reference to a key of a secret in a given namespace."""

    namespace: str

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "namespace": self.namespace}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClusterSecretKeyRef":
        data = _mapping(data, "secret key reference")
        return cls(
            name=data.get("name", ""),
            key=data.get("key", ""),
            namespace=data.get("namespace", ""),
        )


@dataclass
class APIServiceBindingSpec:
    """Where the kubeconfig of the service provider cluster is found."""

    kubeconfig_secret_ref: ClusterSecretKeyRef

    def to_dict(self) -> dict[str, Any]:
        return {"kubeconfigSecretRef": self.kubeconfig_secret_ref.to_dict()}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceBindingSpec":
        data = _mapping(data, "spec")
        return cls(ClusterSecretKeyRef.from_dict(data.get("kubeconfigSecretRef") or {}))


@dataclass
class APIServiceBindingStatus:
    """Reconciliation state of an APIServiceBinding."""

    provider_pretty_name: str = ""
    conditions: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.provider_pretty_name:
            out["providerPrettyName"] = self.provider_pretty_name
        if self.conditions:
            out["conditions"] = [dict(c) for c in self.conditions]
        return out

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "APIServiceBindingStatus":
        data = _mapping(data or {}, "status")
        return cls(
            provider_pretty_name=data.get("providerPrettyName", ""),
            conditions=_conditions(data.get("conditions")),
        )


@dataclass
class APIServiceBinding:
    """Binds a service provider's exported API into the consumer cluster."""

    KIND: ClassVar[str] = "APIServiceBinding"

    spec: APIServiceBindingSpec
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    status: APIServiceBindingStatus = field(default_factory=APIServiceBindingStatus)

    @property
    def conditions(self) -> list[dict[str, Any]]:
        return self.status.conditions

    @conditions.setter
    def conditions(self, value: list[dict[str, Any]]) -> None:
        self.status.conditions = value

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": self.KIND,
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceBinding":
        data = _object(data, cls.KIND)
        return cls(
            metadata=ObjectMeta.from_dict(data.get("metadata")),
            spec=APIServiceBindingSpec.from_dict(data.get("spec") or {}),
            status=APIServiceBindingStatus.from_dict(data.get("status")),
        )


@dataclass
class APIServiceBindingList:
    """A list of APIServiceBindings."""

    KIND: ClassVar[str] = "APIServiceBindingList"

    items: list[APIServiceBinding] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": self.KIND,
            "metadata": dict(self.metadata),
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceBindingList":
        data = _object(data, cls.KIND)
        return cls(
            items=[APIServiceBinding.from_dict(i) for i in data.get("items") or []],
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class APIServiceNamespaceStatus:
    """The service provider namespace bound to a consumer namespace."""

    namespace: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"namespace": self.namespace} if self.namespace else {}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "APIServiceNamespaceStatus":
        data = _mapping(data or {}, "status")
        return cls(namespace=data.get("namespace", ""))


@dataclass
class APIServiceNamespace:
    """Maps a consumer namespace, named like this object, to a service namespace."""

    KIND: ClassVar[str] = "APIServiceNamespace"

    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    status: APIServiceNamespaceStatus = field(default_factory=APIServiceNamespaceStatus)

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": self.KIND,
            "metadata": self.metadata.to_dict(),
            "spec": {},
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceNamespace":
        data = _object(data, cls.KIND)
        return cls(
            metadata=ObjectMeta.from_dict(data.get("metadata")),
            status=APIServiceNamespaceStatus.from_dict(data.get("status")),
        )


@dataclass
class APIServiceNamespaceList:
    """A list of APIServiceNamespaces."""

    KIND: ClassVar[str] = "APIServiceNamespaceList"

    items: list[APIServiceNamespace] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": self.KIND,
            "metadata": dict(self.metadata),
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceNamespaceList":
        data = _object(data, cls.KIND)
        return cls(
            items=[APIServiceNamespace.from_dict(i) for i in data.get("items") or []],
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass
class ClusterBindingSpec:
    """Data of a bound consumer cluster as seen by the service provider."""

    kubeconfig_secret_ref: LocalSecretKeyRef
    provider_pretty_name: str
    service_provider_spec: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "kubeconfigSecretRef": self.kubeconfig_secret_ref.to_dict(),
            "providerPrettyName": self.provider_pretty_name,
        }
        if self.service_provider_spec is not None:
            out["serviceProviderSpec"] = self.service_provider_spec
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClusterBindingSpec":
        data = _mapping(data, "spec")
        return cls(
            kubeconfig_secret_ref=LocalSecretKeyRef.from_dict(data.get("kubeconfigSecretRef") or {}),
            provider_pretty_name=data.get("providerPrettyName", ""),
            service_provider_spec=data.get("serviceProviderSpec"),
        )


@dataclass
class ClusterBindingStatus:
    """Heartbeat and health information of a ClusterBinding."""

    last_heartbeat_time: Optional[datetime] = None
    heartbeat_interval: Optional[timedelta] = None
    konnector_version: str = ""
    conditions: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.last_heartbeat_time is not None:
            out["lastHeartbeatTime"] = _format_time(self.last_heartbeat_time)
        if self.heartbeat_interval is not None:
            out["heartbeatInterval"] = _format_duration(self.heartbeat_interval)
        if self.konnector_version:
            out["konnectorVersion"] = self.konnector_version
        if self.conditions:
            out["conditions"] = [dict(c) for c in self.conditions]
        return out

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ClusterBindingStatus":
        data = _mapping(data or {}, "status")
        heartbeat = data.get("lastHeartbeatTime")
        interval = data.get("heartbeatInterval")
        return cls(
            last_heartbeat_time=_parse_time(heartbeat) if heartbeat else None,
            heartbeat_interval=_parse_duration(interval) if interval is not None else None,
            konnector_version=data.get("konnectorVersion", ""),
            conditions=_conditions(data.get("conditions")),
        )


@dataclass
class ClusterBinding:
    """A bound consumer cluster, living in the service provider cluster."""

    KIND: ClassVar[str] = "ClusterBinding"

    spec: ClusterBindingSpec
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    status: ClusterBindingStatus = field(default_factory=ClusterBindingStatus)

    @property
    def conditions(self) -> list[dict[str, Any]]:
        return self.status.conditions

    @conditions.setter
    def conditions(self, value: list[dict[str, Any]]) -> None:
        self.status.conditions = value

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": self.KIND,
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClusterBinding":
        data = _object(data, cls.KIND)
        return cls(
            metadata=ObjectMeta.from_dict(data.get("metadata")),
            spec=ClusterBindingSpec.from_dict(data.get("spec") or {}),
            status=ClusterBindingStatus.from_dict(data.get("status")),
        )


@dataclass
class ClusterBindingList:
    """A list of ClusterBindings."""

    KIND: ClassVar[str] = "ClusterBindingList"

    items: list[ClusterBinding] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": self.KIND,
            "metadata": dict(self.metadata),
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ClusterBindingList":
        data = _object(data, cls.KIND)
        return cls(
            items=[ClusterBinding.from_dict(i) for i in data.get("items") or []],
            metadata=dict(data.get("metadata") or {}),
        )