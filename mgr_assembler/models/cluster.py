"""Data models for cluster configuration and identity."""

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from mgr_assembler.ownership import OwnerInfo

# Role keys used in per-daemon maps (placement, resources, annotations, labels)
KEY_ALL = "all"
KEY_MGR = "mgr"
KEY_MGR_SIDECAR = "mgr-sidecar"
KEY_LOG_COLLECTOR = "logcollector"

DEFAULT_STRETCH_FAILURE_DOMAIN_LABEL = "topology.kubernetes.io/zone"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class CephVersionSpec(_Frozen):
    """Daemon image selection."""

    image: str

    @field_validator("image")
    @classmethod
    def validate_image(cls, v: str) -> str:
        """Validate image is not empty."""
        if not v:
            raise ValueError("image cannot be empty")
        return v


class MgrSpec(_Frozen):
    """Manager daemon settings."""

    count: int = 1
    allow_multiple_per_node: bool = False

    @field_validator("count")
    @classmethod
    def validate_count(cls, v: int) -> int:
        """Validate count is not negative."""
        if v < 0:
            raise ValueError(f"count cannot be negative, got {v}")
        return v


class NetworkSpec(_Frozen):
    """Network mode of the cluster daemons."""

    provider: str = ""  # "", host or multus
    selectors: dict[str, str] = Field(default_factory=dict)
    host_network: bool = False  # legacy switch, same as provider=host

    @field_validator("provider")
    @classmethod
    def validate_provider(cls, v: str) -> str:
        """Validate provider is one of the supported network providers."""
        allowed = ["", "host", "multus"]
        if v not in allowed:
            raise ValueError(f"provider must be one of {allowed}, got '{v}'")
        return v

    def is_host(self) -> bool:
        return self.host_network or self.provider == "host"

    def is_multus(self) -> bool:
        return self.provider == "multus"


class NodeSelectorRequirement(_Frozen):
    """A single required node affinity expression."""

    key: str
    operator: str
    values: list[str] = Field(default_factory=list)

    @field_validator("operator")
    @classmethod
    def validate_operator(cls, v: str) -> str:
        """Validate operator is a Kubernetes node selector operator."""
        allowed = ["In", "NotIn", "Exists", "DoesNotExist", "Gt", "Lt"]
        if v not in allowed:
            raise ValueError(f"operator must be one of {allowed}, got {v}")
        return v


class Toleration(_Frozen):
    """Kubernetes pod toleration."""

    key: str | None = None
    operator: str = "Equal"
    value: str | None = None
    effect: str | None = None  # NoSchedule, PreferNoSchedule, NoExecute
    toleration_seconds: int | None = None

    @field_validator("effect")
    @classmethod
    def validate_effect(cls, v: str | None) -> str | None:
        """Validate toleration effect is one of the allowed values."""
        allowed = ["NoSchedule", "PreferNoSchedule", "NoExecute"]
        if v is not None and v not in allowed:
            raise ValueError(f"effect must be one of {allowed}, got {v}")
        return v


class Placement(_Frozen):
    """Scheduling preferences for a daemon role.

    Only required node affinity and tolerations are supported; other placement
    keys are rejected rather than dropped.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    node_affinity: list[NodeSelectorRequirement] = Field(default_factory=list)
    tolerations: list[Toleration] = Field(default_factory=list)

    def merge(self, other: "Placement") -> "Placement":
        """Overlay a role placement on top of this one.

        Node affinity from ``other`` replaces ours when set; tolerations add up.
        """
        return Placement(
            node_affinity=other.node_affinity or self.node_affinity,
            tolerations=[*self.tolerations, *other.tolerations],
        )


class ResourceSpec(_Frozen):
    """Compute resource requests and limits."""

    requests: dict[str, str] = Field(default_factory=dict)
    limits: dict[str, str] = Field(default_factory=dict)


class DashboardSpec(_Frozen):
    """Manager dashboard module settings."""

    enabled: bool = True
    ssl: bool = True
    port: int = 0

    @field_validator("port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        """Validate port is zero (default) or a TCP port number."""
        if not 0 <= v <= 65535:
            raise ValueError(f"port must be between 0 and 65535, got {v}")
        return v


class MonitoringSpec(_Frozen):
    enabled: bool = False


class LogCollectorSpec(_Frozen):
    enabled: bool = False
    periodicity: str = "24h"


class StretchClusterSpec(_Frozen):
    """Topology spanning several failure domains."""

    failure_domain_label: str = ""
    zones: list[str] = Field(default_factory=list)


class ProbeSpec(_Frozen):
    """Health-check policy for one daemon role.

    Any timing set here overrides the matching field of the default probe.
    """

    disabled: bool = False
    initial_delay_seconds: int | None = None
    period_seconds: int | None = None
    timeout_seconds: int | None = None
    success_threshold: int | None = None
    failure_threshold: int | None = None


class HealthCheckSpec(_Frozen):
    liveness_probe: dict[str, ProbeSpec] = Field(default_factory=dict)


class SecurityContextPolicy(_Frozen):
    """Security context applied to every Ceph container."""

    privileged: bool = False
    run_as_user: int | None = 0


class OperatorSettings(_Frozen):
    """Operator process settings, resolved once at the process boundary."""

    operator_namespace: str = "rook-ceph"
    operator_image: str = "rook/ceph:v1.8.0"
    operator_version: str = "v1.8.0"
    prometheus_rule_name: str = ""
    unreachable_node_toleration_seconds: int = 5


class ClusterSpec(_Frozen):
    """Desired state of the storage cluster, as seen by the manager assembler."""

    ceph_version: CephVersionSpec
    data_dir_host_path: str = "/var/lib/rook"
    mgr: MgrSpec = Field(default_factory=MgrSpec)
    network: NetworkSpec = Field(default_factory=NetworkSpec)
    placement: dict[str, Placement] = Field(default_factory=dict)
    resources: dict[str, ResourceSpec] = Field(default_factory=dict)
    dashboard: DashboardSpec = Field(default_factory=DashboardSpec)
    monitoring: MonitoringSpec = Field(default_factory=MonitoringSpec)
    log_collector: LogCollectorSpec = Field(default_factory=LogCollectorSpec)
    stretch_cluster: StretchClusterSpec | None = None
    priority_class_names: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, dict[str, str]] = Field(default_factory=dict)
    labels: dict[str, dict[str, str]] = Field(default_factory=dict)
    health_check: HealthCheckSpec = Field(default_factory=HealthCheckSpec)
    security_context: SecurityContextPolicy = Field(default_factory=SecurityContextPolicy)
    operator: OperatorSettings = Field(default_factory=OperatorSettings)

    def is_stretch_cluster(self) -> bool:
        return self.stretch_cluster is not None and len(self.stretch_cluster.zones) > 0

    def stretch_failure_domain_label(self) -> str:
        """Topology key that separates the stretch cluster's failure domains."""
        if self.stretch_cluster and self.stretch_cluster.failure_domain_label:
            return self.stretch_cluster.failure_domain_label
        return DEFAULT_STRETCH_FAILURE_DOMAIN_LABEL

    def dashboard_port(self) -> int:
        if self.dashboard.port:
            return self.dashboard.port
        return 8443 if self.dashboard.ssl else 7000

    def mgr_placement(self) -> Placement:
        base = self.placement.get(KEY_ALL, Placement())
        return base.merge(self.placement.get(KEY_MGR, Placement()))

    def resources_for(self, key: str) -> ResourceSpec:
        return self.resources.get(key, ResourceSpec())

    def mgr_annotations(self) -> dict[str, str]:
        return {**self.annotations.get(KEY_ALL, {}), **self.annotations.get(KEY_MGR, {})}

    def mgr_labels(self) -> dict[str, str]:
        return {**self.labels.get(KEY_ALL, {}), **self.labels.get(KEY_MGR, {})}

    def mgr_priority_class_name(self) -> str:
        if KEY_MGR in self.priority_class_names:
            return self.priority_class_names[KEY_MGR]
        return self.priority_class_names.get(KEY_ALL, "")

    def mgr_liveness_probe(self) -> ProbeSpec:
        return self.health_check.liveness_probe.get(KEY_MGR, ProbeSpec())


class CephVersion(_Frozen):
    """Version of the daemon binary inside the configured image."""

    major: int
    minor: int = 0
    extra: int = 0
    build: int = 0

    @classmethod
    def parse(cls, version: str) -> "CephVersion":
        """Parse ``16.2.6`` or ``16.2.6-0`` style version strings."""
        match = re.match(r"^v?(\d+)\.(\d+)\.(\d+)(?:-(\d+))?$", version.strip())
        if not match:
            raise ValueError(f"version '{version}' must look like 16.2.6 or 16.2.6-0")
        major, minor, extra, build = match.groups()
        return cls(major=int(major), minor=int(minor), extra=int(extra), build=int(build or 0))

    def is_at_least_pacific(self) -> bool:
        return self.major >= 16

    def label_value(self) -> str:
        return f"{self.major}.{self.minor}.{self.extra}-{self.build}"


class ClusterInfo(_Frozen):
    """Identity of the running cluster the descriptors belong to."""

    namespace: str
    name: str
    fsid: str
    ceph_version: CephVersion
    owner: OwnerInfo | None = None
