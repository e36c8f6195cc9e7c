"""
Resource synchronizer — one fetch/create/compare/update step for a kind.

The same control flow serves every managed kind; what differs is how a
live object is compared with its desired description and how the desired
content is copied onto the live object before an update.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from glance_operator.config import settings
from glance_operator.errors import AlreadyExists
from glance_operator.k8s import CONFIG_MAP, PVC, SERVICE, ObjectStore, identity

logger = logging.getLogger("sync")


class Outcome(enum.Enum):
    CREATED = "created"
    CREATED_ELSEWHERE = "created concurrently"
    UPDATED = "updated"
    UNCHANGED = "unchanged"


@dataclass
class SyncResult:
    outcome: Outcome
    live: Any

    @property
    def needs_retry(self) -> bool:
        return self.outcome is not Outcome.UNCHANGED

    @property
    def written(self) -> bool:
        """True when this call itself created or updated the object."""
        return self.outcome in (Outcome.CREATED, Outcome.UPDATED)


@dataclass(frozen=True)
class Synchronizer:
    """
    ensure() for one resource kind.

    in_sync(live, desired) decides whether a found object has drifted;
    leaving it unset makes the kind create-only. apply(live, desired)
    returns the object to send in the update, normally the live object
    (which carries its resourceVersion) with the desired fields copied in.
    """
    kind: str
    in_sync: Optional[Callable[[Any, Any], bool]] = None
    apply: Optional[Callable[[Any, Any], Any]] = None
    requeue_after: int = settings.SHORT_REQUEUE_DELAY

    def ensure(self, store: ObjectStore, desired) -> SyncResult:
        name, namespace = identity(desired)
        live = store.get(self.kind, name, namespace)

        if live is None:
            logger.info(f"Creating {self.kind} {namespace}/{name}")
            try:
                store.create(self.kind, desired)
            except AlreadyExists:
                logger.info(f"{self.kind} {namespace}/{name} was created concurrently")
                return SyncResult(Outcome.CREATED_ELSEWHERE, desired)
            return SyncResult(Outcome.CREATED, desired)

        if self.in_sync is None or self.in_sync(live, desired):
            return SyncResult(Outcome.UNCHANGED, live)

        logger.info(f"Updating {self.kind} {namespace}/{name}: drift detected")
        updated = self.apply(live, desired) if self.apply else desired
        store.update(self.kind, updated)
        return SyncResult(Outcome.UPDATED, updated)


def copy_data(live, desired):
    live.data = desired.data
    return live


def copy_spec(live, desired):
    live.spec = desired.spec
    return live


def same_data(live, desired) -> bool:
    return (live.data or {}) == (desired.data or {})


PVC_SYNC = Synchronizer(PVC)
SERVICE_SYNC = Synchronizer(SERVICE)
CONFIG_MAP_SYNC = Synchronizer(CONFIG_MAP, in_sync=same_data, apply=copy_data)


def fingerprint_synchronizer(kind: str, last_hash: Optional[str], desired_hash: str,
                             requeue_after: int = settings.LONG_REQUEUE_DELAY) -> Synchronizer:
    """
    Synchronizer for kinds too large to diff field by field: the live
    object counts as in sync when the fingerprint recorded at the last
    successful write matches the fingerprint of the fresh description.
    """
    return Synchronizer(
        kind,
        in_sync=lambda live, desired: last_hash == desired_hash,
        apply=copy_spec,
        requeue_after=requeue_after,
    )
