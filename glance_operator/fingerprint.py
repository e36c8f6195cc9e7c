"""
Fingerprint engine — short, stable digests of resource descriptions.

A fingerprint is computed over the canonical JSON form of a description:
Kubernetes client models are first reduced to their wire representation
(None fields dropped, attribute names mapped to JSON keys), then dumped
with sorted keys and no whitespace. The digest only depends on content,
never on object identity, so it is stable across restarts and hosts.
"""
import hashlib
import json

from kubernetes.client import ApiClient

from glance_operator.errors import FingerprintError

HASH_LENGTH = 16

_serializer = ApiClient()


def canonical_json(description) -> str:
    """Canonical serialized form of a dict or Kubernetes client model."""
    try:
        data = _serializer.sanitize_for_serialization(description)
        return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=True)
    except (AttributeError, TypeError, ValueError) as e:
        raise FingerprintError(
            f"cannot serialize {type(description).__name__} for hashing: {e}"
        ) from e


def object_hash(description) -> str:
    return hashlib.sha256(canonical_json(description).encode("utf-8")).hexdigest()[:HASH_LENGTH]
