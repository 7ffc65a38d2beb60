"""APIServiceExport objects: CRD-like descriptions of exported resources."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Mapping, Optional

from .binding import Scope, _conditions, _mapping, _object
from .meta import API_VERSION, ObjectMeta

SOURCE_SPEC_HASH_ANNOTATION_KEY = "kube-bind.io/source-spec-hash"

APISERVICEEXPORT_CONDITION_CONNECTED = "Connected"
APISERVICEEXPORT_CONDITION_PROVIDER_IN_SYNC = "ProviderInSync"
APISERVICEEXPORT_CONDITION_CONSUMER_IN_SYNC = "ConsumerInSync"


def _scope(value: Any, what: str) -> Scope:
    try:
        return Scope(value)
    except ValueError as exc:
        allowed = ", ".join(s.value for s in Scope)
        raise ValueError(f"{what} must be one of {allowed}, got {value!r}") from exc


@dataclass
class APIServiceExportSchema:
    """The OpenAPI v3 schema of one exported version, kept as raw JSON data."""

    openapi_v3_schema: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"openAPIV3Schema": self.openapi_v3_schema}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "APIServiceExportSchema":
        data = _mapping(data or {}, "schema")
        return cls(openapi_v3_schema=data.get("openAPIV3Schema"))


@dataclass
class APIServiceExportVersion:
    """One API version of an exported resource."""

    name: str
    served: bool = True
    storage: bool = False
    schema: APIServiceExportSchema = field(default_factory=APIServiceExportSchema)
    deprecated: bool = False
    deprecation_warning: Optional[str] = None
    subresources: dict[str, Any] = field(default_factory=dict)
    additional_printer_columns: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "name": self.name,
            "served": self.served,
            "storage": self.storage,
        }
        if self.deprecated:
            out["deprecated"] = True
        if self.deprecation_warning is not None:
            out["deprecationWarning"] = self.deprecation_warning
        out["schema"] = self.schema.to_dict()
        out["subresources"] = dict(self.subresources)
        if self.additional_printer_columns:
            out["additionalPrinterColumns"] = [dict(c) for c in self.additional_printer_columns]
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceExportVersion":
        data = _mapping(data, "version")
        return cls(
            name=data.get("name", ""),
            served=bool(data.get("served", True)),
            storage=bool(data.get("storage", False)),
            schema=APIServiceExportSchema.from_dict(data.get("schema")),
            deprecated=bool(data.get("deprecated", False)),
            deprecation_warning=data.get("deprecationWarning"),
            subresources=dict(data.get("subresources") or {}),
            additional_printer_columns=[
                dict(_mapping(c, "printer column"))
                for c in data.get("additionalPrinterColumns") or []
            ],
        )


@dataclass
class APIServiceExportCRDSpec:
    """The CRD-like part of an export: group, names, scope and versions."""

    group: str
    names: dict[str, Any]
    scope: Scope
    versions: list[APIServiceExportVersion]

    def __post_init__(self) -> None:
        self.scope = _scope(self.scope, "scope")

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "names": dict(self.names),
            "scope": self.scope.value,
            "versions": [v.to_dict() for v in self.versions],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceExportCRDSpec":
        data = _mapping(data, "spec")
        return cls(
            group=data.get("group", ""),
            names=dict(data.get("names") or {}),
            scope=_scope(data.get("scope", ""), "scope"),
            versions=[APIServiceExportVersion.from_dict(v) for v in data.get("versions") or []],
        )


@dataclass
class APIServiceExportSpec(APIServiceExportCRDSpec):
    """Desired state of an APIServiceExport."""

    informer_scope: Scope

    def __post_init__(self) -> None:
        super().__post_init__()
        self.informer_scope = _scope(self.informer_scope, "informerScope")

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "informerScope": self.informer_scope.value}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceExportSpec":
        crd = APIServiceExportCRDSpec.from_dict(data)
        return cls(
            group=crd.group,
            names=crd.names,
            scope=crd.scope,
            versions=crd.versions,
            informer_scope=_scope(data.get("informerScope", ""), "informerScope"),
        )


@dataclass
class APIServiceExportStatus:
    """Status of an export, mirroring the CRD on the consumer cluster."""

    accepted_names: dict[str, Any] = field(default_factory=dict)
    stored_versions: list[str] = field(default_factory=list)
    conditions: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "acceptedNames": dict(self.accepted_names),
            "storedVersions": list(self.stored_versions),
        }
        if self.conditions:
            out["conditions"] = [dict(c) for c in self.conditions]
        return out

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "APIServiceExportStatus":
        data = _mapping(data or {}, "status")
        return cls(
            accepted_names=dict(data.get("acceptedNames") or {}),
            stored_versions=list(data.get("storedVersions") or []),
            conditions=_conditions(data.get("conditions")),
        )


@dataclass
class APIServiceExport:
    """A resource exported by a service provider."""

    KIND: ClassVar[str] = "APIServiceExport"

    spec: APIServiceExportSpec
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    status: APIServiceExportStatus = field(default_factory=APIServiceExportStatus)

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
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceExport":
        data = _object(data, cls.KIND)
        return cls(
            metadata=ObjectMeta.from_dict(data.get("metadata")),
            spec=APIServiceExportSpec.from_dict(data.get("spec") or {}),
            status=APIServiceExportStatus.from_dict(data.get("status")),
        )


@dataclass
class APIServiceExportList:
    """A list of APIServiceExports."""

    KIND: ClassVar[str] = "APIServiceExportList"

    items: list[APIServiceExport] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": self.KIND,
            "metadata": dict(self.metadata),
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceExportList":
        data = _object(data, cls.KIND)
        return cls(
            items=[APIServiceExport.from_dict(i) for i in data.get("items") or []],
            metadata=dict(data.get("metadata") or {}),
        )