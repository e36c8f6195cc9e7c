"""
Glance Operator — Kubernetes Operator for GlanceAPI instances

Architecture:
  GlanceAPI CRD → Operator watches → Reconcile Loop:
    1. Ensure PVC, Service, ConfigMap
    2. Request the database schema, wait until it is created
    3. Run the DB sync job once per job fingerprint, then delete it
    4. Ensure the API Deployment (rolled when its fingerprint changes)
    5. Wait for all replicas to be ready → status Ready

  Requeue:
    Every "not converged yet" step becomes kopf.TemporaryError(delay=N),
    so the handler is re-entered after N seconds with a fresh fetch.

  Drift Detection (Timer):
    Ready instances are reconciled again periodically. Deleted objects are
    recreated and hand-edited ConfigMap data is reverted. Live edits to the
    Deployment are not detected: it is only re-applied when its fingerprint
    differs from status.deploymentHash.

  Deletion:
    Every managed object carries an owner reference to its GlanceAPI,
    so the garbage collector cascades deletion.

Run with:  kopf run -m glance_operator.operator
"""
import logging
from datetime import datetime, timezone

import kopf

from glance_operator.config import settings
from glance_operator.errors import JobFailedError
from glance_operator.k8s import KubeStore
from glance_operator.reconciler import ReconcileResult, reconcile

logger = logging.getLogger("glance-operator")

CRD_GROUP = settings.CRD_GROUP
CRD_VERSION = settings.CRD_VERSION
CRD_PLURAL = settings.CRD_PLURAL
MAX_PARALLEL_RECONCILES = settings.MAX_PARALLEL_RECONCILES
DRIFT_CHECK_INTERVAL = settings.DRIFT_CHECK_INTERVAL

PHASE_PROVISIONING = "Provisioning"
PHASE_RECONCILING = "Reconciling"
PHASE_READY = "Ready"
PHASE_FAILED = "Failed"


# ---------------------------------------------------------------------------
# Status helpers
# ---------------------------------------------------------------------------

def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def set_condition(conditions: list, ctype: str, status: str, reason: str, message: str) -> bool:
    """
    Upsert a condition in a conditions list. lastTransitionTime only moves
    when the status value flips. Returns True if anything changed.
    """
    for c in conditions:
        if c.get("type") != ctype:
            continue
        if (c.get("status"), c.get("reason"), c.get("message")) == (status, reason, message):
            return False
        if c.get("status") != status:
            c["lastTransitionTime"] = _now()
        c["status"] = status
        c["reason"] = reason
        c["message"] = message
        return True
    conditions.append({
        "type": ctype,
        "status": status,
        "reason": reason,
        "message": message,
        "lastTransitionTime": _now(),
    })
    return True


def report(status, patch, phase: str, message: str, ready: bool, reason: str) -> None:
    """Patch phase/message/Ready condition, only when they change."""
    conditions = [dict(c) for c in status.get("conditions", [])]
    changed = set_condition(conditions, "Ready", "True" if ready else "False", reason, message)
    if changed:
        patch.status["conditions"] = conditions
    if status.get("phase") != phase or status.get("message") != message:
        patch.status["phase"] = phase
        patch.status["message"] = message
        changed = True
    if changed:
        patch.status["lastUpdated"] = _now()


def run_reconcile(name: str, namespace: str, status, patch, logger, in_progress_phase: str):
    """
    Reconcile once and translate the outcome for kopf:
      converged      → phase Ready, handler succeeds
      requeue        → kopf.TemporaryError(delay=...)
      job failure    → phase Failed, kopf.PermanentError (no retry)
      anything else  → propagates; kopf retries with its default backoff
    """
    store = KubeStore()
    try:
        result: ReconcileResult = reconcile(store, name, namespace)
    except JobFailedError as e:
        logger.error(f"GlanceAPI {namespace}/{name}: {e}")
        report(status, patch, PHASE_FAILED, str(e)[:200], ready=False, reason="DBSyncFailed")
        raise kopf.PermanentError(str(e))

    if not result.converged:
        report(status, patch, in_progress_phase, result.message, ready=False, reason="Progressing")
        raise kopf.TemporaryError(result.message, delay=result.requeue_after)

    report(status, patch, PHASE_READY, result.message, ready=True, reason="Converged")
    logger.info(f"GlanceAPI {namespace}/{name} is Ready ({result.message})")
    return {"message": result.message}


# ---------------------------------------------------------------------------
# Kopf operator settings
# ---------------------------------------------------------------------------

@kopf.on.startup()
def configure(settings: kopf.OperatorSettings, **kwargs):
    settings.posting.enabled = True
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage(
        prefix=CRD_GROUP
    )
    # Concurrency control: bounded parallel reconciliations
    settings.execution.max_workers = MAX_PARALLEL_RECONCILES
    logger.info(
        f"Glance Operator started (max_workers={MAX_PARALLEL_RECONCILES}, "
        f"drift_check_interval={DRIFT_CHECK_INTERVAL}s)"
    )


# ---------------------------------------------------------------------------
# CREATE / UPDATE / RESUME handler — the reconciliation loop
# ---------------------------------------------------------------------------

@kopf.on.create(CRD_GROUP, CRD_VERSION, CRD_PLURAL)
@kopf.on.update(CRD_GROUP, CRD_VERSION, CRD_PLURAL)
@kopf.on.resume(CRD_GROUP, CRD_VERSION, CRD_PLURAL)
def reconcile_glanceapi(name, namespace, status, patch, logger, **kwargs):
    """
    Reconcile a GlanceAPI to its desired state.

    Idempotent: safe to call any number of times; every step checks what
    already exists (or what status already records) before acting.
    """
    logger.info(f"Reconciling GlanceAPI {namespace}/{name}")
    return run_reconcile(name, namespace, status, patch, logger, PHASE_PROVISIONING)


# ---------------------------------------------------------------------------
# TIMER — periodic reconciliation for drift detection & self-healing
# ---------------------------------------------------------------------------

@kopf.timer(CRD_GROUP, CRD_VERSION, CRD_PLURAL,
            interval=DRIFT_CHECK_INTERVAL, idle=DRIFT_CHECK_INTERVAL)
def check_drift(name, namespace, status, patch, logger, **kwargs):
    """
    Re-run the loop on converged instances. Missing objects and ConfigMap
    drift are repaired by the same phases that built the instance; while
    repairing, the instance shows phase Reconciling and the timer requeues
    itself.
    """
    if status.get("phase") not in (PHASE_READY, PHASE_RECONCILING):
        return
    return run_reconcile(name, namespace, status, patch, logger, PHASE_RECONCILING)
