"""Owner reference resolution for produced descriptors.

Every descriptor the assembler returns must carry a controller reference to the
parent cluster resource so the platform garbage-collects it when the cluster is
deleted. Resolution works on the in-memory owner record only.
"""

from kubernetes import client
from pydantic import BaseModel

from mgr_assembler.exceptions import OwnershipError
from mgr_assembler.logging_config import get_logger

logger = get_logger(__name__)


class OwnerInfo(BaseModel):
    """The parent resource that owns every generated descriptor."""

    api_version: str = "ceph.rook.io/v1"
    kind: str = "CephCluster"
    name: str = ""
    uid: str = ""
    namespace: str | None = None

    def to_owner_reference(self) -> client.V1OwnerReference:
        """Build the controller owner reference for this owner."""
        return client.V1OwnerReference(
            api_version=self.api_version,
            kind=self.kind,
            name=self.name,
            uid=self.uid,
            controller=True,
            block_owner_deletion=True,
        )

    def set_controller_reference(self, obj) -> None:
        """Record this owner as the controller of a Kubernetes object.

        Args:
            obj: Any client model with a ``metadata`` attribute (V1Deployment, V1Service)

        Raises:
            OwnershipError: If the owner is incomplete or lives in another namespace
        """
        meta = obj.metadata
        if not self.name or not self.uid:
            raise OwnershipError(
                f"Failed to set owner reference on {meta.name!r}",
                f"Owner {self.kind} has no resolved name/uid (name={self.name!r}, uid={self.uid!r})",
            )

        # Cluster-scoped owners have no namespace and may own anything
        if self.namespace and meta.namespace and self.namespace != meta.namespace:
            raise OwnershipError(
                f"Failed to set owner reference on {meta.name!r}",
                f"Cross-namespace owner references are disallowed: owner is in "
                f"{self.namespace!r}, object is in {meta.namespace!r}",
            )

        references = [
            ref for ref in (meta.owner_references or []) if not getattr(ref, "controller", False)
        ]
        references.append(self.to_owner_reference())
        meta.owner_references = references
        logger.debug(f"Set controller reference {self.kind}/{self.name} on {meta.name}")
