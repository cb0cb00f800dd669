"""Deployment assembly for manager daemons.

Each manager daemon is its own single-replica deployment; running several
managers means several deployments, each with a distinct daemon ID and data path.
"""

from kubernetes import client

from mgr_assembler.exceptions import ConfigurationError, OwnershipError
from mgr_assembler.labels import add_ceph_version_label, add_rook_version_label, apply_labels
from mgr_assembler.logging_config import get_logger
from mgr_assembler.models.cluster import ClusterInfo, ClusterSpec
from mgr_assembler.models.daemon import DaemonInstanceConfig
from mgr_assembler.pod import PodSpecBuilder, pod_labels

logger = get_logger(__name__)


def check_selector_matches(deployment: client.V1Deployment) -> None:
    """Verify the selector labels are carried unchanged by the pod template.

    Raises:
        ConfigurationError: If a selector label is missing or overridden in the template
    """
    selector = deployment.spec.selector.match_labels or {}
    template_labels = deployment.spec.template.metadata.labels or {}
    mismatched = {
        key: template_labels.get(key)
        for key, value in selector.items()
        if template_labels.get(key) != value
    }
    if mismatched:
        raise ConfigurationError(
            f"Deployment {deployment.metadata.name!r} selector does not match its pod labels",
            f"Label overrides changed selector keys: {sorted(mismatched)}. "
            f"Remove them from the mgr/all labels.",
        )


class WorkloadAssembler:
    """Wraps manager pod templates into deployments."""

    def __init__(
        self,
        spec: ClusterSpec,
        cluster_info: ClusterInfo,
        pod_builder: PodSpecBuilder | None = None,
        owner=None,
    ):
        """Initialize the assembler.

        Args:
            spec: Desired cluster state
            cluster_info: Identity and version of the running cluster
            pod_builder: Pod template builder (built from spec/cluster_info if omitted)
            owner: Owner reference resolver with ``set_controller_reference(obj)``;
                defaults to ``cluster_info.owner``
        """
        self.spec = spec
        self.cluster_info = cluster_info
        self.pod_builder = pod_builder or PodSpecBuilder(spec, cluster_info)
        self.owner = owner if owner is not None else cluster_info.owner

    def build_deployment(self, config: DaemonInstanceConfig) -> client.V1Deployment:
        """Build the deployment for one manager daemon.

        Args:
            config: Identity and data paths of the daemon

        Returns:
            V1Deployment manifest

        Raises:
            ConfigurationError: If the network config or label overrides are invalid
            OwnershipError: If the owner reference cannot be resolved
        """
        namespace = self.cluster_info.namespace
        template = self.pod_builder.build(config)

        deployment = client.V1Deployment(
            api_version="apps/v1",
            kind="Deployment",
            metadata=client.V1ObjectMeta(
                name=config.resource_name,
                namespace=namespace,
                labels=pod_labels(namespace, config.daemon_id, True),
            ),
            spec=client.V1DeploymentSpec(
                replicas=1,
                # Version labels are never part of the selector
                selector=client.V1LabelSelector(
                    match_labels=pod_labels(namespace, config.daemon_id, False)
                ),
                template=template,
                # Two pods of the same mgr identity must never run at once
                strategy=client.V1DeploymentStrategy(type="Recreate"),
            ),
        )
        add_rook_version_label(deployment.metadata, self.spec.operator.operator_version)
        apply_labels(self.spec.mgr_labels(), deployment.metadata)
        add_ceph_version_label(deployment.metadata, self.cluster_info.ceph_version)
        check_selector_matches(deployment)

        if self.owner is None:
            raise OwnershipError(
                f"Failed to set owner reference to mgr deployment {deployment.metadata.name!r}",
                "The cluster has no owner resource",
            )
        self.owner.set_controller_reference(deployment)

        logger.info(f"Assembled mgr deployment {deployment.metadata.name} in {namespace}")
        return deployment
