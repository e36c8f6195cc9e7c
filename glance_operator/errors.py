"""Exceptions raised by the reconciliation core."""


class ReconcileError(Exception):
    """Base class for errors that abort a reconciliation pass."""


class FingerprintError(ReconcileError):
    """A resource description could not be serialized for hashing."""


class JobFailedError(ReconcileError):
    """A one-shot job reached a failed terminal state."""

    def __init__(self, name: str, namespace: str, reason: str = ""):
        self.name = name
        self.namespace = namespace
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(f"Job {namespace}/{name} failed{detail}")


class AlreadyExists(ReconcileError):
    """A create collided with an existing object of the same name."""

    def __init__(self, kind: str, name: str, namespace: str):
        self.kind = kind
        self.name = name
        self.namespace = namespace
        super().__init__(f"{kind} {namespace}/{name} already exists")
