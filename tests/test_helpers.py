import string

import pytest

from kubebind.binding import Scope
from kubebind.export import (
    APIServiceExport,
    APIServiceExportCRDSpec,
    APIServiceExportSchema,
    APIServiceExportSpec,
    APIServiceExportVersion,
)
from kubebind.helpers import (
    api_service_export_crd_spec_hash,
    crd_to_service_export,
    is_owned_by_binding,
    service_export_to_crd,
)
from kubebind.meta import API_VERSION, ObjectMeta, OwnerReference

NAMES = {"plural": "mangodbs", "singular": "mangodb", "kind": "MangoDB", "listKind": "MangoDBList"}


def _ref(api_version=API_VERSION, kind="APIServiceBinding", name="b", uid="u1"):
    return OwnerReference(api_version=api_version, kind=kind, name=name, uid=uid)


@pytest.mark.parametrize(
    "name, uid, refs, expected",
    [
        ("b", "u1", [_ref()], True),
        ("b", "", [_ref()], True),
        ("b", "u2", [_ref()], False),
        ("c", "u1", [_ref()], False),
        ("b", "u1", [_ref(kind="APIServiceExport")], False),
        ("b", "u1", [_ref(api_version="other.io/v1")], False),
        ("b", "u1", [_ref(api_version="kube-bind.io")], True),
        ("b", "u1", [_ref(name="x"), _ref()], True),
        ("b", "u1", [], False),
    ],
)
def test_is_owned_by_binding(name, uid, refs, expected):
    assert is_owned_by_binding(name, uid, refs) is expected


def test_is_owned_by_binding_accepts_mappings():
    assert is_owned_by_binding("b", "u1", [_ref().to_dict()]) is True


def _export(schema="type: object\n"):
    return APIServiceExport(
        metadata=ObjectMeta(name="mangodbs.mangodb.com"),
        spec=APIServiceExportSpec(
            group="mangodb.com",
            names=dict(NAMES),
            scope=Scope.NAMESPACED,
            versions=[
                APIServiceExportVersion(
                    name="v1alpha1",
                    served=True,
                    storage=True,
                    schema=APIServiceExportSchema(schema),
                    subresources={"status": {}},
                )
            ],
            informer_scope=Scope.CLUSTER,
        ),
    )


def test_service_export_to_crd():
    crd = service_export_to_crd(_export())
    assert crd["metadata"]["name"] == "mangodbs.mangodb.com"
    spec = crd["spec"]
    assert spec["group"] == "mangodb.com"
    assert spec["names"] == NAMES
    assert spec["scope"] == "Namespaced"
    version = spec["versions"][0]
    assert version["name"] == "v1alpha1"
    assert version["served"] is True and version["storage"] is True
    assert version["schema"]["openAPIV3Schema"] == {"type": "object"}
    assert version["subresources"] == {"status": {}}


def test_service_export_to_crd_without_schema():
    crd = service_export_to_crd(_export(schema=None))
    version = crd["spec"]["versions"][0]
    assert "schema" not in version
    assert version["subresources"] == {"status": {}}


@pytest.mark.parametrize("schema", ["type: [unclosed", "- a\n- b\n"])
def test_service_export_to_crd_bad_schema(schema):
    with pytest.raises(ValueError):
        service_export_to_crd(_export(schema=schema))


def _crd(conversion=None):
    spec = {
        "group": "mangodb.com",
        "names": dict(NAMES),
        "scope": "Cluster",
        "versions": [
            {"name": "v1", "served": False, "storage": False},
            {
                "name": "v2",
                "served": True,
                "storage": True,
                "schema": {"openAPIV3Schema": {"type": "object"}},
                "subresources": {"status": {}},
            },
            {"name": "v3", "served": True, "storage": False, "deprecated": True},
        ],
    }
    if conversion is not None:
        spec["conversion"] = conversion
    return {"metadata": {"name": "mangodbs.mangodb.com"}, "spec": spec}


def test_crd_to_service_export_skips_unserved():
    spec = crd_to_service_export(_crd())
    assert [v.name for v in spec.versions] == ["v2", "v3"]
    assert spec.scope is Scope.CLUSTER
    assert spec.versions[0].schema.openapi_v3_schema == {"type": "object"}
    assert spec.versions[0].subresources == {"status": {}}
    assert spec.versions[1].deprecated is True
    assert spec.versions[1].schema.openapi_v3_schema is None


def test_crd_to_service_export_webhook_takes_first_served():
    spec = crd_to_service_export(_crd(conversion={"strategy": "Webhook"}))
    assert [v.name for v in spec.versions] == ["v2"]


def test_crd_to_service_export_unserializable_schema():
    crd = _crd()
    crd["spec"]["versions"][1]["schema"]["openAPIV3Schema"] = {"x": object()}
    with pytest.raises(ValueError):
        crd_to_service_export(crd)


def test_round_trip_export_crd():
    export = _export()
    spec = crd_to_service_export(service_export_to_crd(export))
    assert spec.group == export.spec.group
    assert spec.names == export.spec.names
    assert [v.name for v in spec.versions] == ["v1alpha1"]
    assert spec.versions[0].schema.openapi_v3_schema == {"type": "object"}


def _crd_spec(group="mangodb.com", names=None):
    return APIServiceExportCRDSpec(
        group=group,
        names=dict(NAMES) if names is None else names,
        scope=Scope.NAMESPACED,
        versions=[
            APIServiceExportVersion(
                name="v1", served=True, storage=True,
                schema=APIServiceExportSchema({"type": "object"}),
            )
        ],
    )


def test_hash_is_deterministic_and_base62():
    first = api_service_export_crd_spec_hash(_crd_spec())
    second = api_service_export_crd_spec_hash(_crd_spec())
    assert first == second
    assert first
    assert set(first) <= set(string.digits + string.ascii_letters)
    assert len(first) <= 38


def test_hash_ignores_names_key_order():
    reordered = dict(reversed(list(NAMES.items())))
    assert api_service_export_crd_spec_hash(_crd_spec(names=reordered)) == (
        api_service_export_crd_spec_hash(_crd_spec())
    )


def test_hash_changes_with_content():
    assert api_service_export_crd_spec_hash(_crd_spec(group="a.com")) != (
        api_service_export_crd_spec_hash(_crd_spec(group="b.com"))
    )


def test_hash_unencodable_returns_empty():
    names = dict(NAMES, shortNames=[object()])
    assert api_service_export_crd_spec_hash(_crd_spec(names=names)) == ""