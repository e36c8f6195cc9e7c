"""
Kubernetes service layer — all K8s API interactions for GlanceAPI CRDs.

Design principles:
  - Idempotent: create returns the existing instance if the name is taken
  - Read-only view of status: the operator owns it, the API only reports it
  - Clean error handling: 404 → None/False, everything else propagates
"""
import logging
from typing import Optional

from kubernetes import client, config
from kubernetes.client import ApiException

from glance_operator.config import settings as crd
from glance_operator.models import GlanceAPISpec
from intent_api.config import settings
from intent_api.models import GlanceAPICondition, GlanceAPIResponse

logger = logging.getLogger("kubernetes_service")

_k8s_loaded = False


def _ensure_k8s():
    """Load Kubernetes config exactly once."""
    global _k8s_loaded
    if _k8s_loaded:
        return
    if settings.IN_CLUSTER:
        config.load_incluster_config()
    else:
        config.load_kube_config(config_file=settings.KUBECONFIG or None)
    _k8s_loaded = True


def _api() -> client.CustomObjectsApi:
    _ensure_k8s()
    return client.CustomObjectsApi()


def _parse(item: dict) -> GlanceAPIResponse:
    """Convert a raw custom object dict into a GlanceAPIResponse."""
    status = item.get("status") or {}
    return GlanceAPIResponse(
        name=item["metadata"]["name"],
        namespace=item["metadata"]["namespace"],
        spec=GlanceAPISpec(**item.get("spec", {})),
        phase=status.get("phase", "Pending"),
        message=status.get("message"),
        lastUpdated=status.get("lastUpdated"),
        configHash=status.get("configHash"),
        dbSyncHash=status.get("dbSyncHash"),
        deploymentHash=status.get("deploymentHash"),
        conditions=[GlanceAPICondition(**c) for c in status.get("conditions", [])],
    )


def list_glanceapis(namespace: Optional[str] = None) -> list[GlanceAPIResponse]:
    """List GlanceAPI instances, cluster-wide or in one namespace."""
    api = _api()
    if namespace:
        result = api.list_namespaced_custom_object(
            crd.CRD_GROUP, crd.CRD_VERSION, namespace, crd.CRD_PLURAL
        )
    else:
        result = api.list_cluster_custom_object(crd.CRD_GROUP, crd.CRD_VERSION, crd.CRD_PLURAL)
    return [_parse(item) for item in result.get("items", [])]


def get_glanceapi(name: str, namespace: str) -> Optional[GlanceAPIResponse]:
    api = _api()
    try:
        item = api.get_namespaced_custom_object(
            crd.CRD_GROUP, crd.CRD_VERSION, namespace, crd.CRD_PLURAL, name
        )
        return _parse(item)
    except ApiException as e:
        if e.status == 404:
            return None
        raise


def create_glanceapi(name: str, namespace: str, spec: GlanceAPISpec) -> tuple[GlanceAPIResponse, bool]:
    """
    Submit a GlanceAPI specification. Idempotent: an existing instance
    with the same name is returned unchanged. Returns (instance, created).
    """
    existing = get_glanceapi(name, namespace)
    if existing:
        logger.info(f"GlanceAPI {namespace}/{name} already exists, returning existing (idempotent)")
        return existing, False

    body = {
        "apiVersion": f"{crd.CRD_GROUP}/{crd.CRD_VERSION}",
        "kind": crd.CRD_KIND,
        "metadata": {
            "name": name,
            "namespace": namespace,
            "labels": {"app.kubernetes.io/managed-by": "intent-api"},
        },
        "spec": spec.model_dump(exclude_none=True),
    }
    result = _api().create_namespaced_custom_object(
        crd.CRD_GROUP, crd.CRD_VERSION, namespace, crd.CRD_PLURAL, body
    )
    logger.info(f"GlanceAPI {namespace}/{name} submitted (image={spec.containerImage}, replicas={spec.replicas})")
    return _parse(result), True


def delete_glanceapi(name: str, namespace: str) -> bool:
    """Delete a GlanceAPI. Returns True if deleted, False if not found."""
    try:
        _api().delete_namespaced_custom_object(
            crd.CRD_GROUP, crd.CRD_VERSION, namespace, crd.CRD_PLURAL, name
        )
        logger.info(f"GlanceAPI {namespace}/{name} deletion initiated")
        return True
    except ApiException as e:
        if e.status == 404:
            return False
        raise


def count_by_phase() -> dict:
    """Count instances grouped by phase."""
    counts = {"total": 0, "Pending": 0, "Provisioning": 0, "Reconciling": 0, "Ready": 0, "Failed": 0}
    for item in list_glanceapis():
        counts["total"] += 1
        if item.phase in counts:
            counts[item.phase] += 1
    return counts
