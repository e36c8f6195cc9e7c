from kubernetes import client

from conftest import NAMESPACE, FakeStore
from glance_operator.k8s import CONFIG_MAP, DEPLOYMENT, PVC
from glance_operator.sync import (
    CONFIG_MAP_SYNC, PVC_SYNC, Outcome, fingerprint_synchronizer,
)


def _config_map(data):
    return client.V1ConfigMap(
        metadata=client.V1ObjectMeta(name="glance", namespace=NAMESPACE),
        data=data,
    )


def _pvc(size="10G"):
    return client.V1PersistentVolumeClaim(
        metadata=client.V1ObjectMeta(name="glance", namespace=NAMESPACE),
        spec=client.V1PersistentVolumeClaimSpec(
            access_modes=["ReadWriteOnce"],
            resources=client.V1VolumeResourceRequirements(requests={"storage": size}),
        ),
    )


def _deployment(replicas):
    return client.V1Deployment(
        metadata=client.V1ObjectMeta(name="glance", namespace=NAMESPACE),
        spec=client.V1DeploymentSpec(
            replicas=replicas,
            selector=client.V1LabelSelector(match_labels={"app": "glance"}),
            template=client.V1PodTemplateSpec(),
        ),
    )


def test_missing_object_is_created_and_needs_retry():
    store = FakeStore()
    result = PVC_SYNC.ensure(store, _pvc())
    assert result.outcome is Outcome.CREATED
    assert result.needs_retry
    assert result.written
    assert store.writes() == [("create", PVC, "glance")]


def test_concurrent_create_requeues_without_claiming_the_write():
    store = FakeStore()
    store.get = lambda kind, name, namespace: None
    store.put(PVC, _pvc())
    result = PVC_SYNC.ensure(store, _pvc())
    assert result.outcome is Outcome.CREATED_ELSEWHERE
    assert result.needs_retry
    assert not result.written


def test_create_only_kind_is_never_updated():
    store = FakeStore()
    store.put(PVC, _pvc("10G"))
    result = PVC_SYNC.ensure(store, _pvc("20G"))
    assert result.outcome is Outcome.UNCHANGED
    assert not result.needs_retry
    assert store.writes() == []


def test_config_map_in_sync_is_left_alone():
    store = FakeStore()
    store.put(CONFIG_MAP, _config_map({"a": "1"}))
    result = CONFIG_MAP_SYNC.ensure(store, _config_map({"a": "1"}))
    assert result.outcome is Outcome.UNCHANGED
    assert result.live.data == {"a": "1"}
    assert store.writes() == []


def test_config_map_drift_updates_live_object_once():
    store = FakeStore()
    live = _config_map({"a": "1"})
    live.metadata.resource_version = "42"
    store.put(CONFIG_MAP, live)

    result = CONFIG_MAP_SYNC.ensure(store, _config_map({"a": "2"}))
    assert result.outcome is Outcome.UPDATED
    assert result.needs_retry
    assert store.writes() == [("update", CONFIG_MAP, "glance")]
    updated = store.live(CONFIG_MAP)
    assert updated.data == {"a": "2"}
    # the fetched object is what gets written back
    assert updated.metadata.resource_version == "42"

    store.reset_calls()
    assert not CONFIG_MAP_SYNC.ensure(store, _config_map({"a": "2"})).needs_retry
    assert store.writes() == []


def test_fingerprint_synchronizer_trusts_recorded_hash():
    store = FakeStore()
    store.put(DEPLOYMENT, _deployment(1))
    sync = fingerprint_synchronizer(DEPLOYMENT, last_hash="aaa", desired_hash="aaa")
    # content differs, but the recorded fingerprint says it was applied
    result = sync.ensure(store, _deployment(3))
    assert result.outcome is Outcome.UNCHANGED
    assert store.writes() == []


def test_fingerprint_synchronizer_updates_spec_on_new_hash():
    store = FakeStore()
    store.put(DEPLOYMENT, _deployment(1))
    sync = fingerprint_synchronizer(DEPLOYMENT, last_hash="aaa", desired_hash="bbb")
    result = sync.ensure(store, _deployment(3))
    assert result.outcome is Outcome.UPDATED
    assert sync.requeue_after == 10
    assert store.live(DEPLOYMENT).spec.replicas == 3
    assert store.writes() == [("update", DEPLOYMENT, "glance")]
