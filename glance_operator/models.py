"""
Pydantic models for the GlanceAPI custom resource.

Field names follow the CRD's camelCase schema so bodies round-trip
without aliasing.
"""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from glance_operator.config import settings


class GlanceAPISpec(BaseModel):
    """Desired state of one Glance API instance."""
    containerImage: str = Field(..., min_length=1, description="Glance API container image")
    replicas: int = Field(default=1, ge=0, description="Number of API pods")
    storageClass: Optional[str] = Field(default=None, description="StorageClass for the image store PVC")
    storageRequest: str = Field(default="10G", description="Size of the image store PVC")
    databaseHostname: str = Field(..., min_length=1, description="Hostname of the MariaDB server")
    secret: str = Field(..., min_length=1, description="Secret holding database and service passwords")


class GlanceAPIStatus(BaseModel):
    """
    Engine-owned convergence markers.

    Unknown keys (phase, conditions, kopf handler results) are kept so a
    status replace never drops what other writers put there.
    """
    model_config = ConfigDict(extra="allow")

    configHash: Optional[str] = None
    dbSyncHash: Optional[str] = None
    deploymentHash: Optional[str] = None


class GlanceAPI(BaseModel):
    name: str
    namespace: str
    uid: Optional[str] = None
    resourceVersion: Optional[str] = None
    spec: GlanceAPISpec
    status: GlanceAPIStatus = Field(default_factory=GlanceAPIStatus)

    @classmethod
    def from_body(cls, body: dict) -> "GlanceAPI":
        """Build from a raw custom object dict."""
        metadata = body.get("metadata", {})
        return cls(
            name=metadata["name"],
            namespace=metadata["namespace"],
            uid=metadata.get("uid"),
            resourceVersion=metadata.get("resourceVersion"),
            spec=GlanceAPISpec(**body.get("spec", {})),
            status=GlanceAPIStatus(**(body.get("status") or {})),
        )

    def to_body(self) -> dict:
        metadata = {"name": self.name, "namespace": self.namespace}
        if self.uid:
            metadata["uid"] = self.uid
        if self.resourceVersion:
            metadata["resourceVersion"] = self.resourceVersion
        return {
            "apiVersion": f"{settings.CRD_GROUP}/{settings.CRD_VERSION}",
            "kind": settings.CRD_KIND,
            "metadata": metadata,
            "spec": self.spec.model_dump(exclude_none=True),
            "status": self.status.model_dump(exclude_none=True),
        }
