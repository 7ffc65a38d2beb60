"""API group identity and common object metadata for the kube-bind.io API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional

GROUP_NAME = "kube-bind.io"
GROUP_VERSION = "v1alpha1"


def _mapping(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise TypeError(f"{what} must be a mapping, got {type(data).__name__}")
    return data


@dataclass(frozen=True)
class SchemaGroupResource:
    """A resource qualified by its API group."""

    group: str
    resource: str

    def __str__(self) -> str:
        if not self.group:
            return self.resource
        return f"{self.resource}.{self.group}"


@dataclass(frozen=True)
class GroupVersionResource:
    """A resource qualified by API group and version."""

    group: str
    version: str
    resource: str

    def group_resource(self) -> SchemaGroupResource:
        return SchemaGroupResource(self.group, self.resource)


@dataclass(frozen=True)
class GroupVersion:
    """An API group together with one of its versions."""

    group: str
    version: str

    def with_resource(self, resource: str) -> GroupVersionResource:
        return GroupVersionResource(self.group, self.version, resource)

    def __str__(self) -> str:
        if not self.group:
            return self.version
        return f"{self.group}/{self.version}"


SCHEME_GROUP_VERSION = GroupVersion(GROUP_NAME, GROUP_VERSION)
API_VERSION = str(SCHEME_GROUP_VERSION)

_KNOWN_KINDS = (
    "APIServiceExport",
    "APIServiceExportList",
    "APIServiceBinding",
    "APIServiceBindingList",
    "APIServiceExportRequest",
    "APIServiceExportRequestList",
    "APIServiceNamespace",
    "APIServiceNamespaceList",
    "ClusterBinding",
    "ClusterBindingList",
    "BindingProvider",
    "BindingResponse",
)


def resource(resource: str) -> SchemaGroupResource:
    """Qualify an unqualified resource name with the kube-bind.io group."""
    return SCHEME_GROUP_VERSION.with_resource(resource).group_resource()


def known_kinds() -> tuple[str, ...]:
    """Return the kinds registered for the kube-bind.io group version."""
    return _KNOWN_KINDS


@dataclass
class OwnerReference:
    """A reference from an object to the object that owns it."""

    api_version: str
    kind: str
    name: str
    uid: str = ""
    controller: Optional[bool] = None
    block_owner_deletion: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
        }
        if self.controller is not None:
            out["controller"] = self.controller
        if self.block_owner_deletion is not None:
            out["blockOwnerDeletion"] = self.block_owner_deletion
        return out

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "OwnerReference":
        data = _mapping(data, "owner reference")
        return cls(
            api_version=data.get("apiVersion", ""),
            kind=data.get("kind", ""),
            name=data.get("name", ""),
            uid=data.get("uid", ""),
            controller=data.get("controller"),
            block_owner_deletion=data.get("blockOwnerDeletion"),
        )


@dataclass
class ObjectMeta:
    """Metadata carried by every persisted object."""

    name: str = ""
    generate_name: str = ""
    namespace: str = ""
    uid: str = ""
    resource_version: str = ""
    generation: int = 0
    creation_timestamp: Optional[str] = None
    deletion_timestamp: Optional[str] = None
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    owner_references: list[OwnerReference] = field(default_factory=list)
    finalizers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        scalars = (
            ("name", self.name),
            ("generateName", self.generate_name),
            ("namespace", self.namespace),
            ("uid", self.uid),
            ("resourceVersion", self.resource_version),
            ("generation", self.generation),
            ("creationTimestamp", self.creation_timestamp),
            ("deletionTimestamp", self.deletion_timestamp),
        )
        for key, value in scalars:
            if value:
                out[key] = value
        if self.labels:
            out["labels"] = dict(self.labels)
        if self.annotations:
            out["annotations"] = dict(self.annotations)
        if self.owner_references:
            out["ownerReferences"] = [ref.to_dict() for ref in self.owner_references]
        if self.finalizers:
            out["finalizers"] = list(self.finalizers)
        return out

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "ObjectMeta":
        if data is None:
            return cls()
        data = _mapping(data, "metadata")
        return cls(
            name=data.get("name", ""),
            generate_name=data.get("generateName", ""),
            namespace=data.get("namespace", ""),
            uid=data.get("uid", ""),
            resource_version=data.get("resourceVersion", ""),
            generation=int(data.get("generation", 0) or 0),
            creation_timestamp=data.get("creationTimestamp"),
            deletion_timestamp=data.get("deletionTimestamp"),
            labels=dict(data.get("labels") or {}),
            annotations=dict(data.get("annotations") or {}),
            owner_references=[
                OwnerReference.from_dict(ref) for ref in data.get("ownerReferences") or []
            ],
            finalizers=list(data.get("finalizers") or []),
        )