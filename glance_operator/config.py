"""
Operator configuration — all settings from env vars with sensible defaults.
"""
import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    # Kubernetes
    KUBECONFIG: str = os.environ.get("KUBECONFIG", "")
    IN_CLUSTER: bool = os.environ.get("IN_CLUSTER", "false").lower() == "true"

    # GlanceAPI CRD
    CRD_GROUP: str = "glance.openstack.org"
    CRD_VERSION: str = "v1beta1"
    CRD_PLURAL: str = "glanceapis"
    CRD_KIND: str = "GlanceAPI"

    # Schema dependency (owned by the mariadb operator)
    SCHEMA_GROUP: str = os.environ.get("SCHEMA_GROUP", "mariadb.openstack.org")
    SCHEMA_VERSION: str = os.environ.get("SCHEMA_VERSION", "v1beta1")
    SCHEMA_PLURAL: str = os.environ.get("SCHEMA_PLURAL", "mariadbdatabases")
    DATABASE_NAME: str = os.environ.get("DATABASE_NAME", "glance")

    # Requeue cadence (seconds)
    SHORT_REQUEUE_DELAY: int = int(os.environ.get("SHORT_REQUEUE_DELAY", "5"))
    LONG_REQUEUE_DELAY: int = int(os.environ.get("LONG_REQUEUE_DELAY", "10"))

    # Operator
    MAX_PARALLEL_RECONCILES: int = int(os.environ.get("MAX_PARALLEL_RECONCILES", "3"))
    DRIFT_CHECK_INTERVAL: int = int(os.environ.get("DRIFT_CHECK_INTERVAL", "120"))

    # Workload
    GLANCE_API_PORT: int = int(os.environ.get("GLANCE_API_PORT", "9292"))


settings = Settings()
