"""
Kubernetes object store — the get/create/update/delete surface the
reconciliation core talks to, backed by the official client.

Design principles:
  - NotFound is not an error: reads return None, deletes return False
  - Name collisions on create surface as AlreadyExists
  - Every other ApiException propagates (throttling, conflicts, auth)
  - Updates replace the fetched object, so its resourceVersion makes a
    stale write fail with 409 instead of overwriting a newer one
"""
import logging
from typing import Optional, Protocol

from kubernetes import client, config
from kubernetes.client import ApiException

from glance_operator.config import settings
from glance_operator.errors import AlreadyExists
from glance_operator.models import GlanceAPI

logger = logging.getLogger("k8s")

PVC = "PersistentVolumeClaim"
SERVICE = "Service"
CONFIG_MAP = "ConfigMap"
JOB = "Job"
DEPLOYMENT = "Deployment"
SCHEMA = "MariaDBDatabase"
GLANCE_API = settings.CRD_KIND


# ---------------------------------------------------------------------------
# Kubernetes client helpers
# ---------------------------------------------------------------------------

_k8s_loaded = False


def _ensure_k8s():
    """Load kubeconfig exactly once."""
    global _k8s_loaded
    if _k8s_loaded:
        return
    try:
        config.load_incluster_config()
    except config.ConfigException:
        if settings.IN_CLUSTER:
            raise
        config.load_kube_config(config_file=settings.KUBECONFIG or None)
    _k8s_loaded = True


def core_api() -> client.CoreV1Api:
    _ensure_k8s()
    return client.CoreV1Api()


def apps_api() -> client.AppsV1Api:
    _ensure_k8s()
    return client.AppsV1Api()


def batch_api() -> client.BatchV1Api:
    _ensure_k8s()
    return client.BatchV1Api()


def custom_api() -> client.CustomObjectsApi:
    _ensure_k8s()
    return client.CustomObjectsApi()


def identity(obj) -> tuple[str, str]:
    """(name, namespace) of a client model or an unstructured dict."""
    if isinstance(obj, dict):
        metadata = obj.get("metadata", {})
        return metadata["name"], metadata["namespace"]
    return obj.metadata.name, obj.metadata.namespace


# ---------------------------------------------------------------------------
# Store protocol
# ---------------------------------------------------------------------------

class ObjectStore(Protocol):
    def get(self, kind: str, name: str, namespace: str): ...

    def create(self, kind: str, obj) -> None: ...

    def update(self, kind: str, obj) -> None: ...

    def update_status(self, instance: GlanceAPI) -> None: ...

    def delete(self, kind: str, name: str, namespace: str) -> bool: ...


class _TypedKind:
    """Dispatches to read/create/replace/delete_namespaced_<suffix>."""

    def __init__(self, api, suffix: str):
        self.api = api
        self.suffix = suffix

    def read(self, name, namespace):
        return getattr(self.api, f"read_namespaced_{self.suffix}")(name, namespace)

    def create(self, namespace, body):
        return getattr(self.api, f"create_namespaced_{self.suffix}")(namespace, body)

    def replace(self, name, namespace, body):
        return getattr(self.api, f"replace_namespaced_{self.suffix}")(name, namespace, body)

    def delete(self, name, namespace):
        return getattr(self.api, f"delete_namespaced_{self.suffix}")(
            name, namespace, propagation_policy="Background"
        )


class _CustomKind:
    """Same surface for custom resources served by CustomObjectsApi."""

    def __init__(self, api, group: str, version: str, plural: str):
        self.api = api
        self.group = group
        self.version = version
        self.plural = plural

    def read(self, name, namespace):
        return self.api.get_namespaced_custom_object(
            self.group, self.version, namespace, self.plural, name
        )

    def create(self, namespace, body):
        return self.api.create_namespaced_custom_object(
            self.group, self.version, namespace, self.plural, body
        )

    def replace(self, name, namespace, body):
        return self.api.replace_namespaced_custom_object(
            self.group, self.version, namespace, self.plural, name, body
        )

    def replace_status(self, name, namespace, body):
        return self.api.replace_namespaced_custom_object_status(
            self.group, self.version, namespace, self.plural, name, body
        )

    def delete(self, name, namespace):
        return self.api.delete_namespaced_custom_object(
            self.group, self.version, namespace, self.plural, name
        )


class KubeStore:
    """ObjectStore over the Kubernetes API."""

    def __init__(self, core=None, apps=None, batch=None, custom=None):
        core = core or core_api()
        apps = apps or apps_api()
        batch = batch or batch_api()
        custom = custom or custom_api()
        self._kinds = {
            PVC: _TypedKind(core, "persistent_volume_claim"),
            SERVICE: _TypedKind(core, "service"),
            CONFIG_MAP: _TypedKind(core, "config_map"),
            JOB: _TypedKind(batch, "job"),
            DEPLOYMENT: _TypedKind(apps, "deployment"),
            SCHEMA: _CustomKind(
                custom, settings.SCHEMA_GROUP, settings.SCHEMA_VERSION, settings.SCHEMA_PLURAL
            ),
            GLANCE_API: _CustomKind(
                custom, settings.CRD_GROUP, settings.CRD_VERSION, settings.CRD_PLURAL
            ),
        }

    def _kind(self, kind: str):
        try:
            return self._kinds[kind]
        except KeyError:
            raise ValueError(f"Unsupported kind: {kind}") from None

    def get(self, kind: str, name: str, namespace: str):
        try:
            return self._kind(kind).read(name, namespace)
        except ApiException as e:
            if e.status == 404:
                return None
            raise

    def create(self, kind: str, obj) -> None:
        name, namespace = identity(obj)
        try:
            self._kind(kind).create(namespace, obj)
        except ApiException as e:
            if e.status == 409:
                raise AlreadyExists(kind, name, namespace) from e
            raise
        logger.info(f"{kind} {namespace}/{name} created")

    def update(self, kind: str, obj) -> None:
        name, namespace = identity(obj)
        self._kind(kind).replace(name, namespace, obj)
        logger.info(f"{kind} {namespace}/{name} updated")

    def update_status(self, instance: GlanceAPI) -> None:
        """Replace the status subresource; refreshes instance.resourceVersion."""
        result = self._kinds[GLANCE_API].replace_status(
            instance.name, instance.namespace, instance.to_body()
        )
        instance.resourceVersion = result.get("metadata", {}).get("resourceVersion")

    def delete(self, kind: str, name: str, namespace: str) -> bool:
        try:
            self._kind(kind).delete(name, namespace)
        except ApiException as e:
            if e.status == 404:
                return False
            raise
        logger.info(f"{kind} {namespace}/{name} deletion initiated")
        return True


# ---------------------------------------------------------------------------
# Dependency adapters
# ---------------------------------------------------------------------------

class MariaDBDatabase:
    """
    Readiness view of the mariadb operator's database object. Kept
    unstructured so there is no dependency on that operator's types.
    """
    kind = SCHEMA

    def __init__(self, body: dict):
        self.body = body

    @classmethod
    def from_object(cls, obj: dict) -> "MariaDBDatabase":
        return cls(obj)

    @property
    def name(self) -> str:
        return self.body["metadata"]["name"]

    @property
    def namespace(self) -> str:
        return self.body["metadata"]["namespace"]

    def is_ready(self) -> bool:
        return (self.body.get("status") or {}).get("completed") is True


def fetch_instance(store: ObjectStore, name: str, namespace: str) -> Optional[GlanceAPI]:
    """Fetch a GlanceAPI instance, None if it is gone."""
    body = store.get(GLANCE_API, name, namespace)
    if body is None:
        return None
    return GlanceAPI.from_body(body)
