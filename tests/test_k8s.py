from unittest.mock import MagicMock

import pytest
from kubernetes import client
from kubernetes.client import ApiException

from conftest import NAME, NAMESPACE, glanceapi_body
from glance_operator.errors import AlreadyExists
from glance_operator.k8s import (
    CONFIG_MAP, DEPLOYMENT, JOB, SCHEMA, KubeStore, fetch_instance,
)
from glance_operator.models import GlanceAPI


@pytest.fixture
def apis():
    return {"core": MagicMock(), "apps": MagicMock(), "batch": MagicMock(), "custom": MagicMock()}


@pytest.fixture
def kube(apis):
    return KubeStore(**apis)


def _config_map():
    return client.V1ConfigMap(metadata=client.V1ObjectMeta(name=NAME, namespace=NAMESPACE))


def test_get_not_found_returns_none(kube, apis):
    apis["core"].read_namespaced_config_map.side_effect = ApiException(status=404)
    assert kube.get(CONFIG_MAP, NAME, NAMESPACE) is None
    apis["core"].read_namespaced_config_map.assert_called_once_with(NAME, NAMESPACE)


def test_get_other_errors_propagate(kube, apis):
    apis["apps"].read_namespaced_deployment.side_effect = ApiException(status=500)
    with pytest.raises(ApiException):
        kube.get(DEPLOYMENT, NAME, NAMESPACE)


def test_create_conflict_raises_already_exists(kube, apis):
    apis["core"].create_namespaced_config_map.side_effect = ApiException(status=409)
    with pytest.raises(AlreadyExists) as exc_info:
        kube.create(CONFIG_MAP, _config_map())
    assert exc_info.value.kind == CONFIG_MAP


def test_update_replaces_fetched_object(kube, apis):
    obj = _config_map()
    kube.update(CONFIG_MAP, obj)
    apis["core"].replace_namespaced_config_map.assert_called_once_with(NAME, NAMESPACE, obj)


def test_delete_uses_background_propagation(kube, apis):
    assert kube.delete(JOB, "glance-db-sync", NAMESPACE) is True
    apis["batch"].delete_namespaced_job.assert_called_once_with(
        "glance-db-sync", NAMESPACE, propagation_policy="Background"
    )


def test_delete_not_found_returns_false(kube, apis):
    apis["batch"].delete_namespaced_job.side_effect = ApiException(status=404)
    assert kube.delete(JOB, "glance-db-sync", NAMESPACE) is False


def test_custom_kinds_use_their_group(kube, apis):
    kube.get(SCHEMA, NAME, NAMESPACE)
    apis["custom"].get_namespaced_custom_object.assert_called_once_with(
        "mariadb.openstack.org", "v1beta1", NAMESPACE, "mariadbdatabases", NAME
    )


def test_create_custom_object_from_dict(kube, apis):
    body = {"metadata": {"name": NAME, "namespace": NAMESPACE}, "spec": {}}
    kube.create(SCHEMA, body)
    apis["custom"].create_namespaced_custom_object.assert_called_once_with(
        "mariadb.openstack.org", "v1beta1", NAMESPACE, "mariadbdatabases", body
    )


def test_update_status_sends_version_and_refreshes_it(kube, apis):
    body = glanceapi_body()
    body["status"] = {"phase": "Ready", "configHash": "abc"}
    instance = GlanceAPI.from_body(body)
    instance.status.dbSyncHash = "def"
    apis["custom"].replace_namespaced_custom_object_status.return_value = {
        "metadata": {"resourceVersion": "2"},
    }

    kube.update_status(instance)

    args = apis["custom"].replace_namespaced_custom_object_status.call_args.args
    assert args[:5] == ("glance.openstack.org", "v1beta1", NAMESPACE, "glanceapis", NAME)
    sent = args[5]
    assert sent["metadata"]["resourceVersion"] == "1"
    assert sent["status"] == {"phase": "Ready", "configHash": "abc", "dbSyncHash": "def"}
    assert instance.resourceVersion == "2"


def test_unknown_kind_is_rejected(kube):
    with pytest.raises(ValueError):
        kube.get("Secret", NAME, NAMESPACE)


def test_fetch_instance(kube, apis):
    apis["custom"].get_namespaced_custom_object.return_value = glanceapi_body()
    instance = fetch_instance(kube, NAME, NAMESPACE)
    assert instance.spec.replicas == 1
    assert instance.uid

    apis["custom"].get_namespaced_custom_object.side_effect = ApiException(status=404)
    assert fetch_instance(kube, NAME, NAMESPACE) is None
