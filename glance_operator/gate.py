"""
Dependency gate — polls a precondition owned by another controller.

The gate creates the dependency request once and then only reads it.
It never waits: "not ready" is returned immediately and the caller
requeues.
"""
import logging
from typing import Protocol

from glance_operator.errors import AlreadyExists
from glance_operator.k8s import ObjectStore, identity

logger = logging.getLogger("gate")


class Dependency(Protocol):
    kind: str
    name: str
    namespace: str

    def is_ready(self) -> bool: ...


class DependencyAdapter(Protocol):
    kind: str

    def from_object(self, obj) -> Dependency: ...


def is_ready(store: ObjectStore, desired, adapter: DependencyAdapter) -> bool:
    name, namespace = identity(desired)
    live = store.get(adapter.kind, name, namespace)
    if live is None:
        logger.info(f"Requesting {adapter.kind} {namespace}/{name}")
        try:
            store.create(adapter.kind, desired)
        except AlreadyExists:
            logger.info(f"{adapter.kind} {namespace}/{name} already requested")
        return False

    ready = adapter.from_object(live).is_ready()
    if not ready:
        logger.info(f"Waiting on {adapter.kind} {namespace}/{name} to be created...")
    return ready
