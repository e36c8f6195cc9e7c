import copy

import pytest
from kubernetes import client

from glance_operator.errors import AlreadyExists
from glance_operator.k8s import DEPLOYMENT, GLANCE_API, JOB, SCHEMA, identity
from glance_operator.models import GlanceAPI

NAME = "glance"
NAMESPACE = "openstack"
WRITE_VERBS = ("create", "update", "update_status")


def glanceapi_body(**spec_overrides) -> dict:
    spec = {
        "containerImage": "quay.io/tripleotrain/centos-binary-glance-api:current-tripleo",
        "replicas": 1,
        "storageRequest": "10G",
        "databaseHostname": "openstack-db-mariadb",
        "secret": "glance-secret",
    }
    spec.update(spec_overrides)
    return {
        "apiVersion": "glance.openstack.org/v1beta1",
        "kind": "GlanceAPI",
        "metadata": {
            "name": NAME,
            "namespace": NAMESPACE,
            "uid": "0b7c0e6e-4b1e-4bd4-9a52-5f0d3f3c1a01",
            "resourceVersion": "1",
        },
        "spec": spec,
    }


class FakeStore:
    """In-memory ObjectStore that records every call."""

    def __init__(self):
        self.objects = {}
        self.calls = []

    # --- ObjectStore ---

    def get(self, kind, name, namespace):
        self.calls.append(("get", kind, name))
        obj = self.objects.get((kind, namespace, name))
        return copy.deepcopy(obj)

    def create(self, kind, obj):
        name, namespace = identity(obj)
        self.calls.append(("create", kind, name))
        if (kind, namespace, name) in self.objects:
            raise AlreadyExists(kind, name, namespace)
        self.objects[(kind, namespace, name)] = copy.deepcopy(obj)

    def update(self, kind, obj):
        name, namespace = identity(obj)
        self.calls.append(("update", kind, name))
        self.objects[(kind, namespace, name)] = copy.deepcopy(obj)

    def update_status(self, instance: GlanceAPI):
        self.calls.append(("update_status", GLANCE_API, instance.name))
        body = self.objects[(GLANCE_API, instance.namespace, instance.name)]
        body["status"] = instance.status.model_dump(exclude_none=True)
        version = str(int(body["metadata"].get("resourceVersion", "0")) + 1)
        body["metadata"]["resourceVersion"] = version
        instance.resourceVersion = version

    def delete(self, kind, name, namespace):
        self.calls.append(("delete", kind, name))
        return self.objects.pop((kind, namespace, name), None) is not None

    # --- test helpers ---

    def put(self, kind, obj):
        name, namespace = identity(obj)
        self.objects[(kind, namespace, name)] = copy.deepcopy(obj)

    def live(self, kind, name=NAME, namespace=NAMESPACE):
        return self.objects.get((kind, namespace, name))

    def writes(self):
        return [c for c in self.calls if c[0] in WRITE_VERBS]

    def reset_calls(self):
        self.calls = []

    def status(self) -> dict:
        return self.live(GLANCE_API).get("status", {})

    def set_spec(self, **changes):
        self.live(GLANCE_API)["spec"].update(changes)

    def mark_schema_ready(self, completed=True):
        self.live(SCHEMA)["status"] = {"completed": completed}

    def finish_job(self, name=f"{NAME}-db-sync", succeeded=True):
        job = self.live(JOB, name)
        ctype = "Complete" if succeeded else "Failed"
        job.status = client.V1JobStatus(
            succeeded=1 if succeeded else None,
            failed=None if succeeded else 1,
            conditions=[client.V1JobCondition(
                type=ctype, status="True",
                reason=None if succeeded else "BackoffLimitExceeded",
                message=None if succeeded else "Job has reached the specified backoff limit",
            )],
        )

    def set_ready_replicas(self, ready):
        self.live(DEPLOYMENT).status = client.V1DeploymentStatus(ready_replicas=ready)


@pytest.fixture
def store():
    store = FakeStore()
    store.objects[(GLANCE_API, NAMESPACE, NAME)] = glanceapi_body()
    return store


@pytest.fixture
def instance():
    return GlanceAPI.from_body(glanceapi_body())
