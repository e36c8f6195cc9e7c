"""
Reconciliation orchestrator for one GlanceAPI instance.

Phases, in order (each returns early with a requeue when not converged):
  1. PVC            create-only
  2. Service        create-only
  3. ConfigMap      data compared, configHash recorded
  4. Schema         dependency gate on the MariaDBDatabase
  5. DB sync job    run once per fingerprint, dbSyncHash recorded, deleted
  6. Deployment     fingerprint compared against deploymentHash
  7. Readiness      readyReplicas == spec.replicas

Nothing is kept between calls: desired state and fingerprints are rebuilt
from the instance every time, and only status carries progress. Store
errors, fingerprint errors and job failures propagate to the caller.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from glance_operator import gate, jobs, templates
from glance_operator.config import settings
from glance_operator.fingerprint import object_hash
from glance_operator.k8s import DEPLOYMENT, MariaDBDatabase, ObjectStore, fetch_instance
from glance_operator.models import GlanceAPI
from glance_operator.sync import CONFIG_MAP_SYNC, PVC_SYNC, SERVICE_SYNC, fingerprint_synchronizer

logger = logging.getLogger("reconciler")


@dataclass(frozen=True)
class ReconcileResult:
    """requeue_after=None means converged: wait for the next trigger."""
    requeue_after: Optional[int] = None
    message: str = ""

    @property
    def converged(self) -> bool:
        return self.requeue_after is None


def _requeue(delay: int, message: str) -> ReconcileResult:
    logger.info(f"{message}; requeue in {delay}s")
    return ReconcileResult(requeue_after=delay, message=message)


def record_status(store: ObjectStore, instance: GlanceAPI, **hashes) -> bool:
    """Persist status hashes, skipping the write when nothing changed."""
    changed = {k: v for k, v in hashes.items() if getattr(instance.status, k) != v}
    if not changed:
        return False
    for key, value in changed.items():
        setattr(instance.status, key, value)
    store.update_status(instance)
    logger.info(f"{instance.namespace}/{instance.name} status recorded: {changed}")
    return True


def reconcile(store: ObjectStore, name: str, namespace: str, render=templates) -> ReconcileResult:
    """Entry point: fetch the instance fresh and converge it."""
    instance = fetch_instance(store, name, namespace)
    if instance is None:
        # Owned objects are garbage collected through their owner references.
        logger.info(f"GlanceAPI {namespace}/{name} not found; nothing to do")
        return ReconcileResult(message="GlanceAPI not found")
    return converge(store, instance, render)


def converge(store: ObjectStore, instance: GlanceAPI, render=templates) -> ReconcileResult:
    ref = f"{instance.namespace}/{instance.name}"

    # 1. Image store volume, 2. API endpoint
    for sync, desired in (
        (PVC_SYNC, render.desired_pvc(instance)),
        (SERVICE_SYNC, render.desired_service(instance)),
    ):
        result = sync.ensure(store, desired)
        if result.needs_retry:
            return _requeue(sync.requeue_after, f"[{ref}] {sync.kind} {result.outcome.value}")

    # 3. Configuration
    config_map = render.desired_config_map(instance)
    config_hash = object_hash(config_map)
    result = CONFIG_MAP_SYNC.ensure(store, config_map)
    record_status(store, instance, configHash=config_hash)
    if result.needs_retry:
        return _requeue(CONFIG_MAP_SYNC.requeue_after, f"[{ref}] ConfigMap {result.outcome.value}")

    # 4. Database schema owned by the mariadb operator
    if not gate.is_ready(store, render.desired_schema(instance), MariaDBDatabase):
        return _requeue(settings.SHORT_REQUEUE_DELAY, f"[{ref}] Waiting on DB to be created")

    # 5. One-shot schema migration
    job = render.desired_db_sync_job(instance)
    if jobs.ensure_job_run(store, job, instance.status.dbSyncHash):
        return _requeue(settings.SHORT_REQUEUE_DELAY, f"[{ref}] Waiting on DB sync")
    record_status(store, instance, dbSyncHash=object_hash(job))
    jobs.delete_job(store, job)

    # 6. Workload
    deployment = render.desired_deployment(instance, config_hash)
    deployment_hash = object_hash(deployment)
    deployment_sync = fingerprint_synchronizer(
        DEPLOYMENT, instance.status.deploymentHash, deployment_hash,
        requeue_after=settings.LONG_REQUEUE_DELAY,
    )
    result = deployment_sync.ensure(store, deployment)
    if result.needs_retry:
        if result.written:
            record_status(store, instance, deploymentHash=deployment_hash)
        return _requeue(deployment_sync.requeue_after, f"[{ref}] Deployment {result.outcome.value}")

    # 7. Readiness
    ready = (result.live.status.ready_replicas if result.live.status else None) or 0
    if ready != instance.spec.replicas:
        return _requeue(
            settings.LONG_REQUEUE_DELAY,
            f"[{ref}] Waiting on Glance deployment ({ready}/{instance.spec.replicas} ready)",
        )

    logger.info(f"[{ref}] Deployment replicas running: {ready}")
    return ReconcileResult(message=f"{ready}/{instance.spec.replicas} replicas ready")
