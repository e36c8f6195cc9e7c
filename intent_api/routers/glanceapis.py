"""
GlanceAPI routes — submit and inspect GlanceAPI specifications.

Features:
  - Idempotent create (same name returns the existing instance)
  - Convergence view: phase, Ready condition and recorded fingerprints
  - Rate limiting per-IP via slowapi
  - Prometheus counters for submissions and deletions
"""
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request
from kubernetes.client import ApiException
from prometheus_client import Counter, Gauge
from slowapi import Limiter
from slowapi.util import get_remote_address

from intent_api.config import settings
from intent_api.models import (
    ErrorResponse, GlanceAPICreateRequest, GlanceAPIListResponse, GlanceAPIResponse,
)
from intent_api.services.kubernetes_service import (
    count_by_phase, create_glanceapi, delete_glanceapi, get_glanceapi, list_glanceapis,
)

logger = logging.getLogger("glanceapis")

router = APIRouter(prefix="/glanceapis", tags=["glanceapis"])
limiter = Limiter(key_func=get_remote_address)

# --- Prometheus metrics ---
SUBMITTED = Counter(
    "glance_operator_specs_submitted_total",
    "Total GlanceAPI specifications submitted",
    ["namespace"],
)
DELETED = Counter(
    "glance_operator_specs_deleted_total",
    "Total GlanceAPI specifications deleted",
)
SUBMIT_FAILURES = Counter(
    "glance_operator_submit_failures_total",
    "Total failed submissions (observed by API)",
)
INSTANCES = Gauge(
    "glance_operator_instances",
    "Current GlanceAPI instances",
    ["phase"],
)


def update_gauges():
    counts = count_by_phase()
    for phase, count in counts.items():
        if phase != "total":
            INSTANCES.labels(phase=phase).set(count)


# =========================================================================
# REST Endpoints
# =========================================================================

@router.post("", response_model=GlanceAPIResponse, status_code=201,
             responses={500: {"model": ErrorResponse}})
@limiter.limit(settings.RATE_LIMIT)
async def create_glanceapi_endpoint(req: GlanceAPICreateRequest, request: Request):
    """Submit a GlanceAPI. Idempotent: returns the existing one if the name matches."""
    namespace = req.namespace or settings.DEFAULT_NAMESPACE
    try:
        instance, created = create_glanceapi(req.name, namespace, req.spec)
    except ApiException as e:
        SUBMIT_FAILURES.inc()
        logger.error(f"Failed to submit GlanceAPI {namespace}/{req.name}: {e.reason}")
        raise HTTPException(status_code=502, detail=f"Kubernetes API error: {e.reason}")
    if created:
        SUBMITTED.labels(namespace=namespace).inc()
    return instance


@router.get("", response_model=GlanceAPIListResponse)
@limiter.limit(settings.RATE_LIMIT)
async def list_glanceapis_endpoint(
    request: Request,
    namespace: Optional[str] = Query(None, description="Filter by namespace"),
):
    """List GlanceAPI instances, optionally in one namespace."""
    items = list_glanceapis(namespace=namespace)
    return GlanceAPIListResponse(items=items, total=len(items))


@router.get("/{namespace}/{name}", response_model=GlanceAPIResponse,
            responses={404: {"model": ErrorResponse}})
@limiter.limit(settings.RATE_LIMIT)
async def get_glanceapi_endpoint(namespace: str, name: str, request: Request):
    instance = get_glanceapi(name, namespace)
    if not instance:
        raise HTTPException(status_code=404, detail=f"GlanceAPI '{namespace}/{name}' not found")
    return instance


@router.delete("/{namespace}/{name}", status_code=202,
               responses={404: {"model": ErrorResponse}})
@limiter.limit(settings.RATE_LIMIT)
async def delete_glanceapi_endpoint(namespace: str, name: str, request: Request):
    """Delete a GlanceAPI. Returns 202 Accepted; owned resources are garbage collected."""
    if not delete_glanceapi(name, namespace):
        raise HTTPException(status_code=404, detail=f"GlanceAPI '{namespace}/{name}' not found")
    DELETED.inc()
    return {"message": f"GlanceAPI '{namespace}/{name}' deletion initiated", "status": "accepted"}
