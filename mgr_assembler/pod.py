"""Pod template assembly for the manager daemon.

The template is built by an ordered list of named steps. Each step checks its
own precondition and mutates the template being built; nothing outlives the
call to :meth:`PodSpecBuilder.build`.
"""

from collections.abc import Callable

from kubernetes import client

from mgr_assembler.containers import (
    APP_NAME,
    DEFAULT_METRICS_PORT,
    SERVICE_ACCOUNT_NAME,
    ContainerFactory,
    daemon_volumes,
)
from mgr_assembler.labels import (
    DAEMON_ID_LABEL,
    app_labels,
    apply_annotations,
    apply_labels,
    daemon_app_labels,
)
from mgr_assembler.logging_config import get_logger
from mgr_assembler.models.cluster import ClusterInfo, ClusterSpec, Placement
from mgr_assembler.models.daemon import DaemonInstanceConfig
from mgr_assembler.network import apply_multus

logger = get_logger(__name__)

HOSTNAME_TOPOLOGY_KEY = "kubernetes.io/hostname"
UNREACHABLE_NODE_TAINT = "node.kubernetes.io/unreachable"
PREFERRED_ANTI_AFFINITY_WEIGHT = 50

PROMETHEUS_SCRAPE_ANNOTATION = "prometheus.io/scrape"
PROMETHEUS_PORT_ANNOTATION = "prometheus.io/port"

NetworkApplier = Callable[..., None]
PodStep = Callable[[client.V1PodTemplateSpec, DaemonInstanceConfig], None]


def pod_labels(namespace: str, daemon_id: str, include_new_labels: bool) -> dict[str, str]:
    """Labels of a manager pod; ``include_new_labels=False`` gives the selector set."""
    labels = daemon_app_labels(APP_NAME, namespace, "mgr", daemon_id, include_new_labels)
    # "instance" is kept for legacy consumers
    labels["instance"] = daemon_id
    return labels


def selector_labels(namespace: str, active_daemon: str) -> dict[str, str]:
    """Labels selecting the manager pods, narrowed to the active daemon when known."""
    labels = app_labels(APP_NAME, namespace)
    if active_daemon:
        labels[DAEMON_ID_LABEL] = active_daemon
    return labels


def set_node_anti_affinity(
    pod_spec: client.V1PodSpec, required: bool, topology_key: str, match_labels: dict[str, str]
) -> None:
    """Keep pods matching ``match_labels`` out of the same topology domain.

    Args:
        pod_spec: Pod spec to modify
        required: Hard (required) rule when True, soft (preferred) rule otherwise
        topology_key: Node label defining the failure domain
        match_labels: Labels of the pods to spread
    """
    term = client.V1PodAffinityTerm(
        label_selector=client.V1LabelSelector(match_labels=dict(match_labels)),
        topology_key=topology_key,
    )
    if pod_spec.affinity is None:
        pod_spec.affinity = client.V1Affinity()
    if pod_spec.affinity.pod_anti_affinity is None:
        pod_spec.affinity.pod_anti_affinity = client.V1PodAntiAffinity()

    anti_affinity = pod_spec.affinity.pod_anti_affinity
    if required:
        terms = anti_affinity.required_during_scheduling_ignored_during_execution or []
        terms.append(term)
        anti_affinity.required_during_scheduling_ignored_during_execution = terms
    else:
        terms = anti_affinity.preferred_during_scheduling_ignored_during_execution or []
        terms.append(
            client.V1WeightedPodAffinityTerm(
                weight=PREFERRED_ANTI_AFFINITY_WEIGHT, pod_affinity_term=term
            )
        )
        anti_affinity.preferred_during_scheduling_ignored_during_execution = terms


def add_unreachable_node_toleration(pod_spec: client.V1PodSpec, seconds: int) -> None:
    """Tolerate an unreachable node for ``seconds`` instead of the platform default.

    A toleration already present for the unreachable taint is left alone.
    """
    tolerations = pod_spec.tolerations or []
    if any(t.key == UNREACHABLE_NODE_TAINT for t in tolerations):
        return
    tolerations.append(
        client.V1Toleration(
            key=UNREACHABLE_NODE_TAINT,
            operator="Exists",
            effect="NoExecute",
            toleration_seconds=seconds,
        )
    )
    pod_spec.tolerations = tolerations


def apply_placement(placement: Placement, pod_spec: client.V1PodSpec) -> None:
    """Apply node affinity and tolerations from the user placement."""
    if placement.node_affinity:
        if pod_spec.affinity is None:
            pod_spec.affinity = client.V1Affinity()
        pod_spec.affinity.node_affinity = client.V1NodeAffinity(
            required_during_scheduling_ignored_during_execution=client.V1NodeSelector(
                node_selector_terms=[
                    client.V1NodeSelectorTerm(
                        match_expressions=[
                            client.V1NodeSelectorRequirement(
                                key=req.key, operator=req.operator, values=list(req.values) or None
                            )
                            for req in placement.node_affinity
                        ]
                    )
                ]
            )
        )

    if placement.tolerations:
        tolerations = pod_spec.tolerations or []
        tolerations.extend(
            client.V1Toleration(
                key=t.key,
                operator=t.operator,
                value=t.value,
                effect=t.effect,
                toleration_seconds=t.toleration_seconds,
            )
            for t in placement.tolerations
        )
        pod_spec.tolerations = tolerations


class PodSpecBuilder:
    """Composes manager containers into a pod template."""

    def __init__(
        self,
        spec: ClusterSpec,
        cluster_info: ClusterInfo,
        containers: ContainerFactory | None = None,
        network_applier: NetworkApplier = apply_multus,
    ):
        """Initialize the builder.

        Args:
            spec: Desired cluster state
            cluster_info: Identity and version of the running cluster
            containers: Container factory (built from spec/cluster_info if omitted)
            network_applier: Adds multi-network annotations; raises ConfigurationError
        """
        self.spec = spec
        self.cluster_info = cluster_info
        self.containers = containers or ContainerFactory(spec, cluster_info)
        self.network_applier = network_applier

    def steps(self) -> list[tuple[str, PodStep]]:
        """The ordered build pipeline."""
        return [
            ("placement", self.apply_placement),
            ("multiple-mgrs", self.apply_multiple_mgrs),
            ("log-collector", self.apply_log_collector),
            ("unreachable-toleration", self.apply_unreachable_toleration),
            ("network", self.apply_network),
            ("prometheus-annotations", self.apply_prometheus_annotations),
            ("user-overrides", self.apply_user_overrides),
        ]

    def build(self, config: DaemonInstanceConfig) -> client.V1PodTemplateSpec:
        """Build the pod template for one manager daemon.

        Args:
            config: Identity and data paths of the daemon

        Returns:
            The pod template

        Raises:
            ConfigurationError: If the multi-network configuration is malformed
        """
        template = self.base_template(config)
        for name, step in self.steps():
            logger.debug(f"Applying pod step '{name}' for mgr {config.daemon_id}")
            step(template, config)
        return template

    def base_template(self, config: DaemonInstanceConfig) -> client.V1PodTemplateSpec:
        return client.V1PodTemplateSpec(
            metadata=client.V1ObjectMeta(
                name=config.resource_name,
                labels=pod_labels(self.cluster_info.namespace, config.daemon_id, True),
            ),
            spec=client.V1PodSpec(
                init_containers=[self.containers.build_init_container(config)],
                containers=[self.containers.build_daemon_container(config)],
                service_account_name=SERVICE_ACCOUNT_NAME,
                restart_policy="Always",
                volumes=daemon_volumes(config.data_path_map, config.resource_name),
                host_network=self.spec.network.is_host(),
                priority_class_name=self.spec.mgr_priority_class_name() or None,
            ),
        )

    def apply_placement(self, template: client.V1PodTemplateSpec, config) -> None:
        apply_placement(self.spec.mgr_placement(), template.spec)

    def apply_multiple_mgrs(self, template: client.V1PodTemplateSpec, config) -> None:
        """Add the watch-active sidecar and spread managers across failure domains."""
        if self.spec.mgr.count <= 1:
            return

        template.spec.containers.append(self.containers.build_sidecar_container(config))

        topology_key = HOSTNAME_TOPOLOGY_KEY
        if self.spec.is_stretch_cluster():
            topology_key = self.spec.stretch_failure_domain_label()
        set_node_anti_affinity(
            template.spec,
            required=not self.spec.mgr.allow_multiple_per_node,
            topology_key=topology_key,
            match_labels=app_labels(APP_NAME, self.cluster_info.namespace),
        )

    def apply_log_collector(self, template: client.V1PodTemplateSpec, config) -> None:
        if not self.spec.log_collector.enabled:
            return
        # The collector needs to see the daemon's process to signal it
        template.spec.share_process_namespace = True
        template.spec.containers.append(self.containers.build_log_collector_container(config))

    def apply_unreachable_toleration(self, template: client.V1PodTemplateSpec, config) -> None:
        add_unreachable_node_toleration(
            template.spec, self.spec.operator.unreachable_node_toleration_seconds
        )

    def apply_network(self, template: client.V1PodTemplateSpec, config) -> None:
        if self.spec.network.is_host():
            template.spec.dns_policy = "ClusterFirstWithHostNet"
        elif self.spec.network.is_multus():
            self.network_applier(self.spec.network, template.metadata)

    def apply_prometheus_annotations(self, template: client.V1PodTemplateSpec, config) -> None:
        # User annotations replace the scrape annotations entirely
        if self.spec.mgr_annotations():
            return
        apply_annotations(
            {
                PROMETHEUS_SCRAPE_ANNOTATION: "true",
                PROMETHEUS_PORT_ANNOTATION: str(DEFAULT_METRICS_PORT),
            },
            template.metadata,
        )

    def apply_user_overrides(self, template: client.V1PodTemplateSpec, config) -> None:
        apply_annotations(self.spec.mgr_annotations(), template.metadata)
        apply_labels(self.spec.mgr_labels(), template.metadata)
