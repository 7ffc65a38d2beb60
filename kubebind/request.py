"""APIServiceExportRequest objects: requests to export resources."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Mapping, Optional

from .binding import _conditions, _mapping, _object
from .meta import API_VERSION, ObjectMeta

APISERVICEEXPORTREQUEST_CONDITION_EXPORTS_READY = "ExportsReady"


class APIServiceExportRequestPhase(str, Enum):
    """Phase of an export request."""

    PENDING = "Pending"
    FAILED = "Failed"
    SUCCEEDED = "Succeeded"


def _phase(value: Any) -> APIServiceExportRequestPhase:
    try:
        return APIServiceExportRequestPhase(value)
    except ValueError as exc:
        allowed = ", ".join(p.value for p in APIServiceExportRequestPhase)
        raise ValueError(f"phase must be one of {allowed}, got {value!r}") from exc


@dataclass
class GroupResource:
    """A resource identified by API group and resource name."""

    resource: str
    group: str = ""

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.group:
            out["group"] = self.group
        out["resource"] = self.resource
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GroupResource":
        data = _mapping(data, "group resource")
        return cls(resource=data.get("resource", ""), group=data.get("group", ""))


@dataclass
class APIServiceExportRequestResource(GroupResource):
    """A resource to export, optionally restricted to some versions."""

    versions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        if self.versions:
            out["versions"] = list(self.versions)
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceExportRequestResource":
        data = _mapping(data, "resource")
        return cls(
            resource=data.get("resource", ""),
            group=data.get("group", ""),
            versions=list(data.get("versions") or []),
        )


@dataclass
class APIServiceExportRequestSpec:
    """The resources requested and provider-specific parameters."""

    resources: list[APIServiceExportRequestResource]
    parameters: Any = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.parameters is not None:
            out["parameters"] = self.parameters
        out["resources"] = [r.to_dict() for r in self.resources]
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceExportRequestSpec":
        data = _mapping(data, "spec")
        return cls(
            resources=[
                APIServiceExportRequestResource.from_dict(r) for r in data.get("resources") or []
            ],
            parameters=data.get("parameters"),
        )


@dataclass
class APIServiceExportRequestStatus:
    """Progress of an export request."""

    phase: APIServiceExportRequestPhase = APIServiceExportRequestPhase.PENDING
    terminal_message: str = ""
    conditions: list[dict[str, Any]] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.phase = _phase(self.phase)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"phase": self.phase.value}
        if self.terminal_message:
            out["terminalMessage"] = self.terminal_message
        if self.conditions:
            out["conditions"] = [dict(c) for c in self.conditions]
        return out

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "APIServiceExportRequestStatus":
        data = _mapping(data or {}, "status")
        return cls(
            phase=_phase(data.get("phase") or APIServiceExportRequestPhase.PENDING.value),
            terminal_message=data.get("terminalMessage", ""),
            conditions=_conditions(data.get("conditions")),
        )


@dataclass
class NameObjectMeta:
    """Metadata reduced to the object's name."""

    name: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name} if self.name else {}

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "NameObjectMeta":
        data = _mapping(data or {}, "metadata")
        return cls(name=data.get("name", ""))


@dataclass
class APIServiceExportRequest:
    """A request session for exporting API services to a consumer."""

    KIND: ClassVar[str] = "APIServiceExportRequest"

    spec: APIServiceExportRequestSpec
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    status: APIServiceExportRequestStatus = field(default_factory=APIServiceExportRequestStatus)

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
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceExportRequest":
        data = _object(data, cls.KIND)
        return cls(
            metadata=ObjectMeta.from_dict(data.get("metadata")),
            spec=APIServiceExportRequestSpec.from_dict(data.get("spec") or {}),
            status=APIServiceExportRequestStatus.from_dict(data.get("status")),
        )


@dataclass
class APIServiceExportRequestResponse:
    """An export request as sent in a response, carrying only its name as metadata."""

    KIND: ClassVar[str] = "APIServiceExportRequest"

    spec: APIServiceExportRequestSpec
    metadata: NameObjectMeta = field(default_factory=NameObjectMeta)
    status: APIServiceExportRequestStatus = field(default_factory=APIServiceExportRequestStatus)

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": self.KIND,
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceExportRequestResponse":
        data = _object(data, cls.KIND)
        return cls(
            metadata=NameObjectMeta.from_dict(data.get("metadata")),
            spec=APIServiceExportRequestSpec.from_dict(data.get("spec") or {}),
            status=APIServiceExportRequestStatus.from_dict(data.get("status")),
        )


@dataclass
class APIServiceExportRequestList:
    """A list of APIServiceExportRequests."""

    KIND: ClassVar[str] = "APIServiceExportRequestList"

    items: list[APIServiceExportRequest] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": self.KIND,
            "metadata": dict(self.metadata),
            "items": [item.to_dict() for item in self.items],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "APIServiceExportRequestList":
        data = _object(data, cls.KIND)
        return cls(
            items=[APIServiceExportRequest.from_dict(i) for i in data.get("items") or []],
            metadata=dict(data.get("metadata") or {}),
        )