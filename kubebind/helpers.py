"""Ownership checks and conversions between APIServiceExports and CRDs."""

from __future__ import annotations

import copy
import hashlib
import json
import logging
from typing import Any, Iterable, Mapping, Optional, Union

import yaml

from .binding import _mapping
from .export import (
    APIServiceExport,
    APIServiceExportCRDSpec,
    APIServiceExportSchema,
    APIServiceExportVersion,
)
from .meta import SCHEME_GROUP_VERSION, OwnerReference

logger = logging.getLogger(__name__)

CRD_API_VERSION = "apiextensions.k8s.io/v1"
CRD_KIND = "CustomResourceDefinition"
WEBHOOK_CONVERTER = "Webhook"

_BASE62_DIGITS = "0123456789abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ"

# Field order and optionality of CRD names on the wire.
_NAME_FIELDS = (
    ("plural", False),
    ("singular", True),
    ("shortNames", True),
    ("kind", False),
    ("listKind", True),
    ("categories", True),
)


def is_owned_by_binding(
    name: str, uid: str, refs: Iterable[Union[OwnerReference, Mapping[str, Any]]]
) -> bool:
    """Tell whether an APIServiceBinding called name (and with uid, if given) owns the object."""
    for ref in refs:
        if isinstance(ref, Mapping):
            ref = OwnerReference.from_dict(ref)
        group = ref.api_version.split("/", 1)[0]
        if group != SCHEME_GROUP_VERSION.group or ref.kind != "APIServiceBinding":
            continue
        if ref.name != name:
            continue
        if not uid or ref.uid == uid:
            return True
    return False


def _load_schema(raw: Any, version: str) -> Optional[dict[str, Any]]:
    if raw is None:
        return None
    if isinstance(raw, (bytes, bytearray)):
        raw = bytes(raw).decode("utf-8")
    if isinstance(raw, str):
        if not raw:
            return None
        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as exc:
            raise ValueError(f"failed to unmarshal schema for version {version!r}: {exc}") from exc
        if loaded is None:
            loaded = {}
    else:
        loaded = copy.deepcopy(raw)
    if not isinstance(loaded, Mapping):
        raise ValueError(
            f"failed to unmarshal schema for version {version!r}: "
            f"expected an object, got {type(loaded).__name__}"
        )
    return dict(loaded)


def service_export_to_crd(export: APIServiceExport) -> dict[str, Any]:
    """Convert an APIServiceExport into a CustomResourceDefinition object."""
    versions = []
    for v in export.spec.versions:
        crd_version: dict[str, Any] = {"name": v.name, "served": v.served, "storage": v.storage}
        if v.deprecated:
            crd_version["deprecated"] = True
        if v.deprecation_warning is not None:
            crd_version["deprecationWarning"] = v.deprecation_warning
        schema = _load_schema(v.schema.openapi_v3_schema, v.name)
        if schema is not None:
            crd_version["schema"] = {"openAPIV3Schema": schema}
        crd_version["subresources"] = copy.deepcopy(v.subresources)
        if v.additional_printer_columns:
            crd_version["additionalPrinterColumns"] = copy.deepcopy(v.additional_printer_columns)
        versions.append(crd_version)

    return {
        "apiVersion": CRD_API_VERSION,
        "kind": CRD_KIND,
        "metadata": {"name": export.metadata.name},
        "spec": {
            "group": export.spec.group,
            "names": copy.deepcopy(export.spec.names),
            "scope": export.spec.scope.value,
            "versions": versions,
        },
    }


def crd_to_service_export(crd: Mapping[str, Any]) -> APIServiceExportCRDSpec:
    """Convert a CustomResourceDefinition object into the CRD part of an export.

    Versions that are not served are skipped. With a webhook conversion only
    the first served version is taken.
    """
    crd = _mapping(crd, "CRD")
    name = _mapping(crd.get("metadata") or {}, "metadata").get("name", "")
    spec = _mapping(crd.get("spec") or {}, "spec")
    conversion = _mapping(spec.get("conversion") or {}, "conversion")
    only_first_serving = conversion.get("strategy") == WEBHOOK_CONVERTER

    versions: list[APIServiceExportVersion] = []
    for raw_version in spec.get("versions") or []:
        crd_version = _mapping(raw_version, "version")
        if not crd_version.get("served"):
            continue
        version_name = crd_version.get("name", "")

        schema = APIServiceExportSchema()
        openapi = _mapping(crd_version.get("schema") or {}, "schema").get("openAPIV3Schema")
        if openapi is not None:
            try:
                json.dumps(openapi, allow_nan=False)
            except (TypeError, ValueError) as exc:
                raise ValueError(
                    f"failed to marshal CRD {name} schema for version {version_name!r}: {exc}"
                ) from exc
            schema = APIServiceExportSchema(copy.deepcopy(openapi))

        versions.append(
            APIServiceExportVersion(
                name=version_name,
                served=True,
                storage=bool(crd_version.get("storage", False)),
                schema=schema,
                deprecated=bool(crd_version.get("deprecated", False)),
                deprecation_warning=crd_version.get("deprecationWarning"),
                subresources=copy.deepcopy(dict(crd_version.get("subresources") or {})),
                additional_printer_columns=copy.deepcopy(
                    list(crd_version.get("additionalPrinterColumns") or [])
                ),
            )
        )
        if only_first_serving:
            break

    return APIServiceExportCRDSpec(
        group=spec.get("group", ""),
        names=copy.deepcopy(dict(spec.get("names") or {})),
        scope=spec.get("scope", ""),
        versions=versions,
    )


def _canonical_names(names: Mapping[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, optional in _NAME_FIELDS:
        value = names.get(key)
        if optional and not value:
            continue
        out[key] = "" if value is None else value
    return out


def _canonical_spec(spec: APIServiceExportCRDSpec) -> dict[str, Any]:
    versions = [v.to_dict() for v in spec.versions]
    return {
        "group": spec.group,
        "names": _canonical_names(spec.names),
        "scope": spec.scope.value,
        "versions": versions or None,
    }


def _escape_html(text: str) -> str:
    return (
        text.replace("<", "\\u003c")
        .replace(">", "\\u003e")
        .replace("&", "\\u0026")
        .replace("\u2028", "\\u2028")
        .replace("\u2029", "\\u2029")
    )


def _to_base62(digest: bytes) -> str:
    number = int.from_bytes(digest, "big")
    if number == 0:
        return "0"
    digits = []
    while number:
        number, rest = divmod(number, 62)
        digits.append(_BASE62_DIGITS[rest])
    return "".join(reversed(digits))


def api_service_export_crd_spec_hash(spec: APIServiceExportCRDSpec) -> str:
    """Return a base62 SHA-224 hash of the spec's JSON, or "" if it cannot be encoded."""
    try:
        encoded = json.dumps(
            _canonical_spec(spec), separators=(",", ":"), ensure_ascii=False, allow_nan=False
        )
    except (TypeError, ValueError) as exc:
        logger.error("failed to encode APIServiceExport spec: %s", exc)
        return ""
    digest = hashlib.sha224(_escape_html(encoded).encode("utf-8")).digest()
    return _to_base62(digest)