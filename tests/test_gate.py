from conftest import NAMESPACE, FakeStore
from glance_operator import gate
from glance_operator.k8s import SCHEMA, MariaDBDatabase


def _schema(status=None):
    body = {
        "apiVersion": "mariadb.openstack.org/v1beta1",
        "kind": "MariaDBDatabase",
        "metadata": {"name": "glance", "namespace": NAMESPACE},
        "spec": {"secret": "glance-secret", "name": "glance"},
    }
    if status is not None:
        body["status"] = status
    return body


def test_missing_dependency_is_requested_and_not_ready():
    store = FakeStore()
    assert gate.is_ready(store, _schema(), MariaDBDatabase) is False
    assert store.writes() == [("create", SCHEMA, "glance")]


def test_request_collision_is_not_an_error():
    store = FakeStore()
    store.put(SCHEMA, _schema())
    store.get = lambda kind, name, namespace: None
    assert gate.is_ready(store, _schema(), MariaDBDatabase) is False


def test_pending_dependency_is_polled_without_writes():
    store = FakeStore()
    store.put(SCHEMA, _schema({"completed": False}))
    assert gate.is_ready(store, _schema(), MariaDBDatabase) is False
    assert store.writes() == []


def test_completed_dependency_is_ready():
    store = FakeStore()
    store.put(SCHEMA, _schema({"completed": True}))
    assert gate.is_ready(store, _schema(), MariaDBDatabase) is True
    assert store.writes() == []


def test_adapter_reads_completed_flag():
    assert not MariaDBDatabase(_schema()).is_ready()
    assert not MariaDBDatabase(_schema({})).is_ready()
    assert not MariaDBDatabase(_schema({"completed": "true"})).is_ready()
    assert MariaDBDatabase(_schema({"completed": True})).is_ready()
    adapter = MariaDBDatabase.from_object(_schema())
    assert (adapter.name, adapter.namespace) == ("glance", NAMESPACE)
