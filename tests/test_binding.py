from datetime import datetime, timedelta, timezone

import pytest

from kubebind import meta
from kubebind.binding import (
    APIServiceBinding,
    APIServiceBindingList,
    APIServiceBindingSpec,
    APIServiceBindingStatus,
    APIServiceNamespace,
    APIServiceNamespaceList,
    APIServiceNamespaceStatus,
    ClusterBinding,
    ClusterBindingList,
    ClusterBindingSpec,
    ClusterBindingStatus,
    ClusterSecretKeyRef,
    LocalSecretKeyRef,
    Scope,
)
from kubebind.meta import ObjectMeta


def _binding():
    return APIServiceBinding(
        metadata=ObjectMeta(name="mangodbs.mangodb.com"),
        spec=APIServiceBindingSpec(
            ClusterSecretKeyRef(name="kubeconfig-abc", key="kubeconfig", namespace="kube-bind")
        ),
        status=APIServiceBindingStatus(
            provider_pretty_name="MangoDB Inc.",
            conditions=[{"type": "Ready", "status": "True"}],
        ),
    )


def _cluster_binding(**status):
    return ClusterBinding(
        metadata=ObjectMeta(name="cluster", namespace="kube-bind-xyz"),
        spec=ClusterBindingSpec(
            kubeconfig_secret_ref=LocalSecretKeyRef(name="kubeconfig", key="kubeconfig"),
            provider_pretty_name="MangoDB Inc.",
        ),
        status=ClusterBindingStatus(**status),
    )


def test_scope_values():
    assert Scope("Cluster") is Scope.CLUSTER
    assert Scope("Namespaced") is Scope.NAMESPACED


def test_binding_serialises_type_meta_and_flattened_secret_ref():
    data = _binding().to_dict()
    assert data["apiVersion"] == meta.API_VERSION
    assert data["kind"] == "APIServiceBinding"
    assert data["spec"]["kubeconfigSecretRef"] == {
        "name": "kubeconfig-abc",
        "key": "kubeconfig",
        "namespace": "kube-bind",
    }
    assert data["status"]["providerPrettyName"] == "MangoDB Inc."


def test_binding_round_trip():
    binding = _binding()
    assert APIServiceBinding.from_dict(binding.to_dict()) == binding


def test_binding_conditions_property():
    binding = _binding()
    binding.conditions = [{"type": "SecretValid", "status": "False"}]
    assert binding.status.conditions == [{"type": "SecretValid", "status": "False"}]
    assert binding.to_dict()["status"]["conditions"][0]["type"] == "SecretValid"


def test_binding_rejects_wrong_kind():
    data = _binding().to_dict()
    data["kind"] = "ClusterBinding"
    with pytest.raises(ValueError):
        APIServiceBinding.from_dict(data)


def test_binding_rejects_non_mapping():
    with pytest.raises(TypeError):
        APIServiceBinding.from_dict("binding")


def test_binding_list_round_trip():
    lst = APIServiceBindingList(items=[_binding(), _binding()], metadata={"resourceVersion": "7"})
    data = lst.to_dict()
    assert data["kind"] == "APIServiceBindingList"
    assert len(data["items"]) == 2
    assert APIServiceBindingList.from_dict(data) == lst


def test_namespace_empty_status_is_omitted():
    ns = APIServiceNamespace(metadata=ObjectMeta(name="default", namespace="kube-bind-xyz"))
    data = ns.to_dict()
    assert data["spec"] == {}
    assert data["status"] == {}


def test_namespace_list_round_trip():
    ns = APIServiceNamespace(
        metadata=ObjectMeta(name="default"),
        status=APIServiceNamespaceStatus(namespace="kube-bind-xyz-default"),
    )
    lst = APIServiceNamespaceList(items=[ns])
    restored = APIServiceNamespaceList.from_dict(lst.to_dict())
    assert restored.items[0].status.namespace == "kube-bind-xyz-default"
    assert restored == lst


def test_cluster_binding_heartbeat_interval_format():
    cb = _cluster_binding(heartbeat_interval=timedelta(minutes=5))
    assert cb.to_dict()["status"]["heartbeatInterval"] == "5m0s"


@pytest.mark.parametrize(
    "interval",
    [
        timedelta(0),
        timedelta(seconds=30),
        timedelta(seconds=1, milliseconds=500),
        timedelta(hours=2, minutes=3, seconds=4),
        timedelta(milliseconds=250),
        timedelta(microseconds=7),
    ],
)
def test_cluster_binding_heartbeat_interval_round_trip(interval):
    cb = _cluster_binding(heartbeat_interval=interval)
    restored = ClusterBinding.from_dict(cb.to_dict())
    assert restored.status.heartbeat_interval == interval


def test_cluster_binding_heartbeat_time_round_trip():
    when = datetime(2022, 10, 1, 12, 30, 15, tzinfo=timezone.utc)
    cb = _cluster_binding(last_heartbeat_time=when, konnector_version="v0.0.7")
    restored = ClusterBinding.from_dict(cb.to_dict())
    assert restored.status.last_heartbeat_time == when
    assert restored == cb


def test_cluster_binding_invalid_interval_raises():
    data = _cluster_binding().to_dict()
    data["status"]["heartbeatInterval"] = "five minutes"
    with pytest.raises(ValueError):
        ClusterBinding.from_dict(data)


def test_cluster_binding_service_provider_spec():
    cb = _cluster_binding()
    assert "serviceProviderSpec" not in cb.to_dict()["spec"]
    cb.spec.service_provider_spec = {"region": "eu"}
    restored = ClusterBinding.from_dict(cb.to_dict())
    assert restored.spec.service_provider_spec == {"region": "eu"}


def test_cluster_binding_list_round_trip():
    lst = ClusterBindingList(items=[_cluster_binding(konnector_version="v1")])
    data = lst.to_dict()
    assert data["items"][0]["kind"] == "ClusterBinding"
    assert ClusterBindingList.from_dict(data) == lst