"""Service descriptors exposing the manager metrics and dashboard."""

from kubernetes import client

from mgr_assembler.containers import DEFAULT_METRICS_PORT, EXTERNAL_MGR_APP_NAME
from mgr_assembler.exceptions import OwnershipError
from mgr_assembler.logging_config import get_logger
from mgr_assembler.models.cluster import ClusterInfo, ClusterSpec
from mgr_assembler.pod import selector_labels

logger = get_logger(__name__)


def dashboard_port_name(ssl: bool) -> str:
    """Port name consumers use to tell a TLS dashboard from a plain one."""
    return "https-dashboard" if ssl else "http-dashboard"


class ExposureAssembler:
    """Builds the manager services."""

    def __init__(self, spec: ClusterSpec, cluster_info: ClusterInfo, owner=None):
        self.spec = spec
        self.cluster_info = cluster_info
        self.owner = owner if owner is not None else cluster_info.owner

    def _service(
        self, name: str, labels: dict[str, str], port_name: str, port: int
    ) -> client.V1Service:
        return client.V1Service(
            api_version="v1",
            kind="Service",
            metadata=client.V1ObjectMeta(
                name=name, namespace=self.cluster_info.namespace, labels=labels
            ),
            spec=client.V1ServiceSpec(
                type="ClusterIP",
                ports=[client.V1ServicePort(name=port_name, port=port, protocol="TCP")],
            ),
        )

    def _set_owner(self, svc: client.V1Service, purpose: str) -> None:
        if self.owner is None:
            raise OwnershipError(
                f"Failed to set owner reference to {purpose} service {svc.metadata.name!r}",
                "The cluster has no owner resource",
            )
        self.owner.set_controller_reference(svc)

    def build_metrics_service(
        self, name: str, active_daemon: str, port_name: str
    ) -> client.V1Service:
        """Build the service exposing the metrics port.

        Args:
            name: Service name; the external-cluster name gets no selector
            active_daemon: Daemon ID of the active manager, or "" for any
            port_name: Name of the service port

        Returns:
            V1Service manifest

        Raises:
            OwnershipError: If the owner reference cannot be resolved
        """
        labels = selector_labels(self.cluster_info.namespace, active_daemon)
        svc = self._service(name, labels, port_name, DEFAULT_METRICS_PORT)

        # An external cluster has no manager pods to select
        if name != EXTERNAL_MGR_APP_NAME:
            svc.spec.selector = dict(labels)

        self._set_owner(svc, "monitoring")
        logger.debug(f"Assembled metrics service {name} (selector={svc.spec.selector})")
        return svc

    def build_dashboard_service(self, name: str, active_daemon: str) -> client.V1Service:
        """Build the ``<name>-dashboard`` service.

        Raises:
            OwnershipError: If the owner reference cannot be resolved
        """
        labels = selector_labels(self.cluster_info.namespace, active_daemon)
        svc = self._service(
            f"{name}-dashboard",
            labels,
            dashboard_port_name(self.spec.dashboard.ssl),
            self.spec.dashboard_port(),
        )
        svc.spec.selector = dict(labels)

        self._set_owner(svc, "dashboard")
        logger.debug(f"Assembled dashboard service {svc.metadata.name}")
        return svc
