"""
Job lifecycle manager — runs a one-shot task once per fingerprint.

    NotStarted -> Running -> Completed -> Deleted

The caller owns the "applied" marker: once ensure_job_run() reports the
job finished, the caller records the job fingerprint in status and then
deletes the job. With the marker recorded, later passes skip the job
without touching the store.
"""
import copy
import enum
import logging
from typing import Optional

from glance_operator.config import settings
from glance_operator.errors import AlreadyExists, JobFailedError
from glance_operator.fingerprint import object_hash
from glance_operator.k8s import JOB, ObjectStore, identity

logger = logging.getLogger("jobs")

JOB_HASH_ANNOTATION = f"{settings.CRD_GROUP}/job-hash"


class JobState(enum.Enum):
    RUNNING = "Running"
    COMPLETED = "Completed"
    FAILED = "Failed"


def job_state(job) -> tuple[JobState, str]:
    """Terminal state from the job's conditions; anything else is Running."""
    status = job.status
    if status is None:
        return JobState.RUNNING, ""
    for cond in status.conditions or []:
        if cond.status != "True":
            continue
        if cond.type == "Complete":
            return JobState.COMPLETED, ""
        if cond.type == "Failed":
            return JobState.FAILED, cond.message or cond.reason or ""
    if status.succeeded:
        return JobState.COMPLETED, ""
    return JobState.RUNNING, ""


def _stamped(job, job_hash: str):
    stamped = copy.deepcopy(job)
    annotations = dict(stamped.metadata.annotations or {})
    annotations[JOB_HASH_ANNOTATION] = job_hash
    stamped.metadata.annotations = annotations
    return stamped


def _live_hash(job) -> Optional[str]:
    return (job.metadata.annotations or {}).get(JOB_HASH_ANNOTATION)


def ensure_job_run(store: ObjectStore, job, last_applied_hash: Optional[str]) -> bool:
    """
    Drive the job towards completion. Returns True while the caller has
    to come back later, False once the job has completed (or was already
    applied). A failed job raises JobFailedError.
    """
    job_hash = object_hash(job)
    if job_hash == last_applied_hash:
        return False

    name, namespace = identity(job)
    live = store.get(JOB, name, namespace)

    if live is None:
        logger.info(f"Creating job {namespace}/{name} ({job_hash})")
        try:
            store.create(JOB, _stamped(job, job_hash))
        except AlreadyExists:
            logger.info(f"Job {namespace}/{name} was created concurrently")
        return True

    state, reason = job_state(live)
    if state is JobState.RUNNING:
        # a migration in flight is never interrupted, even an outdated one
        logger.info(f"Waiting on job {namespace}/{name}")
        return True

    if _live_hash(live) != job_hash:
        logger.warning(
            f"Job {namespace}/{name} was built from another description "
            f"({_live_hash(live)} != {job_hash}), replacing it"
        )
        store.delete(JOB, name, namespace)
        return True

    if state is JobState.FAILED:
        logger.error(f"Job {namespace}/{name} failed: {reason}")
        raise JobFailedError(name, namespace, reason)

    logger.info(f"Job {namespace}/{name} completed")
    return False


def delete_job(store: ObjectStore, job) -> bool:
    """
    Remove the transient job object. Returns True when a live job was
    found and its deletion requested; the deletion completes in the
    background and nothing downstream waits for it.
    """
    name, namespace = identity(job)
    return store.delete(JOB, name, namespace)
