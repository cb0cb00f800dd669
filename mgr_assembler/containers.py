"""Container specifications for the manager daemon pod.

The factory builds the containers a manager pod can run:

- chown-container-data-dir: init container handing data dirs to the ceph user
- mgr: the ceph-mgr daemon itself
- watch-active: sidecar that follows which manager is active (multi-mgr only)
- log-collector: logrotate loop for the daemon log (log collection only)

None of the builders can fail; they only read already-validated configuration.
"""

from kubernetes import client

from mgr_assembler.logging_config import get_logger
from mgr_assembler.models.cluster import (
    KEY_LOG_COLLECTOR,
    KEY_MGR,
    KEY_MGR_SIDECAR,
    ClusterInfo,
    ClusterSpec,
    ResourceSpec,
)
from mgr_assembler.models.daemon import (
    CONTAINER_CRASH_DIR,
    CONTAINER_LOG_DIR,
    DaemonInstanceConfig,
    DataPathMap,
)

logger = get_logger(__name__)

APP_NAME = "rook-ceph-mgr"
EXTERNAL_MGR_APP_NAME = "rook-ceph-mgr-external"
SERVICE_ACCOUNT_NAME = "rook-ceph-mgr"
CLUSTER_CRD_VERSION = "v1"

MGR_PORT = 6800
DEFAULT_METRICS_PORT = 9283
METRICS_PORT_NAME = "http-metrics"

POD_IP_ENV_VAR = "ROOK_POD_IP"
PRIVATE_IP_ENV_VAR = "ROOK_PRIVATE_IP"
PUBLIC_IP_ENV_VAR = "ROOK_PUBLIC_IP"
PROMETHEUS_RULE_ENV_VAR = "ROOK_CEPH_MONITORING_PROMETHEUS_RULE"
MON_HOST_ENV_VAR = "ROOK_CEPH_MON_HOST"
MON_INITIAL_MEMBERS_ENV_VAR = "ROOK_CEPH_MON_INITIAL_MEMBERS"

MON_SECRET_NAME = "rook-ceph-mon"
MON_ENDPOINTS_CONFIGMAP = "rook-ceph-mon-endpoints"
CEPH_CONFIG_SECRET = "rook-ceph-config"
CONFIG_OVERRIDE_CONFIGMAP = "rook-config-override"

CONFIG_DIR = "/etc/ceph"
KEYRING_STORE_DIR = "/etc/ceph/keyring-store/"
KEYRING_FILE = "/etc/ceph/keyring-store/keyring"

SIDECAR_UPDATE_INTERVAL = "15s"
LIVENESS_INITIAL_DELAY_SECONDS = 60

LOG_ROTATE_SCRIPT = """
CEPH_CLIENT_ID={client_id}
PERIODICITY={periodicity}
LOG_ROTATE_CEPH_FILE=/etc/logrotate.d/ceph

if [ -z "$PERIODICITY" ]; then
\tPERIODICITY=24h
fi

# only rotate this daemon's log so co-located daemons keep their file handles
sed -i "s|*.log|$CEPH_CLIENT_ID.log|" "$LOG_ROTATE_CEPH_FILE"

while true; do
\tsleep "$PERIODICITY"
\techo "starting log rotation"
\tlogrotate --verbose --force "$LOG_ROTATE_CEPH_FILE"
\techo "I am going to sleep now, see you in $PERIODICITY"
done
"""


# =============================================================================
# Flags and environment
# =============================================================================


def new_flag(key: str, value: str) -> str:
    """Format a ceph command line flag (``--key=value``)."""
    return f"--{key}={value}"


def env_var_reference(name: str) -> str:
    """Reference an environment variable so Kubernetes expands it in args."""
    return f"$({name})"


def bool_env(value: bool) -> str:
    return "true" if value else "false"


def field_ref_env(name: str, field_path: str) -> client.V1EnvVar:
    return client.V1EnvVar(
        name=name,
        value_from=client.V1EnvVarSource(
            field_ref=client.V1ObjectFieldSelector(field_path=field_path)
        ),
    )


def resource_ref_env(name: str, resource: str) -> client.V1EnvVar:
    return client.V1EnvVar(
        name=name,
        value_from=client.V1EnvVarSource(
            resource_field_ref=client.V1ResourceFieldSelector(resource=resource)
        ),
    )


def secret_env(name: str, secret: str, key: str, optional: bool | None = None) -> client.V1EnvVar:
    return client.V1EnvVar(
        name=name,
        value_from=client.V1EnvVarSource(
            secret_key_ref=client.V1SecretKeySelector(name=secret, key=key, optional=optional)
        ),
    )


def config_map_env(
    name: str, config_map: str, key: str, optional: bool | None = None
) -> client.V1EnvVar:
    return client.V1EnvVar(
        name=name,
        value_from=client.V1EnvVarSource(
            config_map_key_ref=client.V1ConfigMapKeySelector(
                name=config_map, key=key, optional=optional
            )
        ),
    )


def pod_ip_env(name: str) -> client.V1EnvVar:
    return field_ref_env(name, "status.podIP")


def daemon_flags(cluster_info: ClusterInfo, daemon_id: str) -> list[str]:
    """Flags every Ceph daemon container starts with."""
    return [
        new_flag("fsid", cluster_info.fsid),
        new_flag("keyring", KEYRING_FILE),
        new_flag("log-to-stderr", "true"),
        new_flag("err-to-stderr", "true"),
        new_flag("mon-cluster-log-to-stderr", "true"),
        new_flag("log-stderr-prefix", "debug "),
        new_flag("default-log-to-file", "false"),
        new_flag("default-mon-cluster-log-to-file", "false"),
        new_flag("mon-host", env_var_reference(MON_HOST_ENV_VAR)),
        new_flag("mon-initial-members", env_var_reference(MON_INITIAL_MEMBERS_ENV_VAR)),
        new_flag("id", daemon_id),
        # Ceph daemons run as 'ceph' rather than 'root'
        new_flag("setuser", "ceph"),
        new_flag("setgroup", "ceph"),
    ]


def daemon_env_vars(image: str) -> list[client.V1EnvVar]:
    """Environment shared by every Ceph daemon container."""
    return [
        client.V1EnvVar(name="CONTAINER_IMAGE", value=image),
        field_ref_env("POD_NAME", "metadata.name"),
        field_ref_env("POD_NAMESPACE", "metadata.namespace"),
        field_ref_env("NODE_NAME", "spec.nodeName"),
        resource_ref_env("POD_MEMORY_LIMIT", "limits.memory"),
        resource_ref_env("POD_MEMORY_REQUEST", "requests.memory"),
        resource_ref_env("POD_CPU_LIMIT", "limits.cpu"),
        resource_ref_env("POD_CPU_REQUEST", "requests.cpu"),
        secret_env(MON_HOST_ENV_VAR, CEPH_CONFIG_SECRET, "mon_host"),
        secret_env(MON_INITIAL_MEMBERS_ENV_VAR, CEPH_CONFIG_SECRET, "mon_initial_members"),
    ]


# =============================================================================
# Volumes
# =============================================================================


def _host_or_empty_dir(name: str, host_path: str) -> client.V1Volume:
    if host_path:
        return client.V1Volume(
            name=name,
            host_path=client.V1HostPathVolumeSource(path=host_path, type="DirectoryOrCreate"),
        )
    return client.V1Volume(name=name, empty_dir=client.V1EmptyDirVolumeSource())


def daemon_volumes(data_paths: DataPathMap, resource_name: str) -> list[client.V1Volume]:
    """Pod volumes backing :func:`daemon_volume_mounts`."""
    volumes = [
        client.V1Volume(
            name="rook-config-override",
            config_map=client.V1ConfigMapVolumeSource(
                name=CONFIG_OVERRIDE_CONFIGMAP,
                items=[client.V1KeyToPath(key="config", path="ceph.conf", mode=0o444)],
            ),
        ),
    ]
    if resource_name:
        volumes.append(
            client.V1Volume(
                name=f"{resource_name}-keyring",
                secret=client.V1SecretVolumeSource(secret_name=f"{resource_name}-keyring"),
            )
        )
    volumes.append(_host_or_empty_dir("rook-ceph-log", data_paths.host_log_dir))
    volumes.append(_host_or_empty_dir("rook-ceph-crash", data_paths.host_crash_dir))
    if not data_paths.no_data:
        volumes.append(
            client.V1Volume(name="ceph-daemon-data", empty_dir=client.V1EmptyDirVolumeSource())
        )
    return volumes


def daemon_volume_mounts(data_paths: DataPathMap, resource_name: str) -> list[client.V1VolumeMount]:
    mounts = [
        client.V1VolumeMount(name="rook-config-override", mount_path=CONFIG_DIR, read_only=True),
    ]
    if resource_name:
        mounts.append(
            client.V1VolumeMount(
                name=f"{resource_name}-keyring", mount_path=KEYRING_STORE_DIR, read_only=True
            )
        )
    mounts.append(client.V1VolumeMount(name="rook-ceph-log", mount_path=CONTAINER_LOG_DIR))
    mounts.append(client.V1VolumeMount(name="rook-ceph-crash", mount_path=CONTAINER_CRASH_DIR))
    if not data_paths.no_data:
        mounts.append(
            client.V1VolumeMount(name="ceph-daemon-data", mount_path=data_paths.container_data_dir)
        )
    return mounts


def resource_requirements(spec: ResourceSpec) -> client.V1ResourceRequirements | None:
    if not spec.requests and not spec.limits:
        return None
    return client.V1ResourceRequirements(
        requests=dict(spec.requests) or None, limits=dict(spec.limits) or None
    )


# =============================================================================
# Container Factory
# =============================================================================


class ContainerFactory:
    """Builds the containers of a manager daemon pod."""

    def __init__(self, spec: ClusterSpec, cluster_info: ClusterInfo):
        """Initialize the factory.

        Args:
            spec: Desired cluster state
            cluster_info: Identity and version of the running cluster
        """
        self.spec = spec
        self.cluster_info = cluster_info

    def security_context(self) -> client.V1SecurityContext:
        policy = self.spec.security_context
        return client.V1SecurityContext(
            privileged=policy.privileged, run_as_user=policy.run_as_user
        )

    def build_init_container(self, config: DaemonInstanceConfig) -> client.V1Container:
        """Build the init container that chowns data paths to the ceph user."""
        data_paths = config.data_path_map
        dirs = [CONTAINER_LOG_DIR, CONTAINER_CRASH_DIR]
        if not data_paths.no_data:
            dirs.append(data_paths.container_data_dir)

        return client.V1Container(
            name="chown-container-data-dir",
            command=["chown"],
            args=["--verbose", "--recursive", "ceph:ceph", *dirs],
            image=self.spec.ceph_version.image,
            volume_mounts=daemon_volume_mounts(data_paths, config.resource_name),
            resources=resource_requirements(self.spec.resources_for(KEY_MGR)),
            security_context=self.security_context(),
        )

    def build_daemon_container(self, config: DaemonInstanceConfig) -> client.V1Container:
        """Build the ceph-mgr container."""
        args = [
            *daemon_flags(self.cluster_info, config.daemon_id),
            # Needed by the mgr's cephfs client, see ceph/ceph-csi#486
            new_flag("client-mount-uid", "0"),
            new_flag("client-mount-gid", "0"),
            "--foreground",
        ]

        # Host-networked pods advertise the node address
        if not self.spec.network.is_host():
            args.append(new_flag("public-addr", env_var_reference(POD_IP_ENV_VAR)))

        container = client.V1Container(
            name="mgr",
            command=["ceph-mgr"],
            args=args,
            image=self.spec.ceph_version.image,
            volume_mounts=daemon_volume_mounts(config.data_path_map, config.resource_name),
            ports=[
                client.V1ContainerPort(name="mgr", container_port=MGR_PORT, protocol="TCP"),
                client.V1ContainerPort(
                    name=METRICS_PORT_NAME, container_port=DEFAULT_METRICS_PORT, protocol="TCP"
                ),
                client.V1ContainerPort(
                    name="dashboard", container_port=self.spec.dashboard_port(), protocol="TCP"
                ),
            ],
            env=[
                *daemon_env_vars(self.spec.ceph_version.image),
                *self.orchestrator_module_env_vars(),
            ],
            resources=resource_requirements(self.spec.resources_for(KEY_MGR)),
            security_context=self.security_context(),
            liveness_probe=self.liveness_probe(),
            working_dir=CONTAINER_LOG_DIR,
        )
        logger.debug(
            f"Built mgr container for {config.daemon_id}: "
            f"probe={'on' if container.liveness_probe else 'off'}, "
            f"public-addr={not self.spec.network.is_host()}"
        )
        return container

    def orchestrator_module_env_vars(self) -> list[client.V1EnvVar]:
        """Environment read by the rook orchestrator mgr module."""
        operator = self.spec.operator
        return [
            client.V1EnvVar(name="ROOK_OPERATOR_NAMESPACE", value=operator.operator_namespace),
            client.V1EnvVar(name="ROOK_CEPH_CLUSTER_CRD_VERSION", value=CLUSTER_CRD_VERSION),
            client.V1EnvVar(name="ROOK_CEPH_CLUSTER_CRD_NAME", value=self.cluster_info.name),
            client.V1EnvVar(name=PROMETHEUS_RULE_ENV_VAR, value=operator.prometheus_rule_name),
            pod_ip_env(POD_IP_ENV_VAR),
        ]

    def liveness_probe(self) -> client.V1Probe | None:
        """Default HTTP probe on the metrics port, adjusted by the health-check policy.

        Returns:
            The probe, or None when the policy disables it for the mgr role
        """
        policy = self.spec.mgr_liveness_probe()
        if policy.disabled:
            return None

        probe = client.V1Probe(
            http_get=client.V1HTTPGetAction(path="/", port=DEFAULT_METRICS_PORT),
            initial_delay_seconds=LIVENESS_INITIAL_DELAY_SECONDS,
        )
        for field in (
            "initial_delay_seconds",
            "period_seconds",
            "timeout_seconds",
            "success_threshold",
            "failure_threshold",
        ):
            value = getattr(policy, field)
            if value is not None:
                setattr(probe, field, value)
        return probe

    def build_sidecar_container(self, config: DaemonInstanceConfig) -> client.V1Container:
        """Build the watch-active sidecar.

        The environment variable names are read by the sidecar binary and must
        not change.
        """
        owner = self.cluster_info.owner
        env = [
            client.V1EnvVar(name="ROOK_CLUSTER_ID", value=owner.uid if owner else ""),
            client.V1EnvVar(name="ROOK_CLUSTER_NAME", value=self.cluster_info.name),
            pod_ip_env(PRIVATE_IP_ENV_VAR),
            pod_ip_env(PUBLIC_IP_ENV_VAR),
            client.V1EnvVar(name="ROOK_NAMESPACE", value=self.cluster_info.namespace),
            config_map_env("ROOK_MON_ENDPOINTS", MON_ENDPOINTS_CONFIGMAP, "data"),
            secret_env("ROOK_MON_SECRET", MON_SECRET_NAME, "mon-secret"),
            secret_env("ROOK_CEPH_USERNAME", MON_SECRET_NAME, "ceph-username"),
            secret_env("ROOK_CEPH_SECRET", MON_SECRET_NAME, "ceph-secret"),
            config_map_env(
                "ROOK_CEPH_CONFIG_OVERRIDE", CONFIG_OVERRIDE_CONFIGMAP, "config", optional=True
            ),
            secret_env("ROOK_FSID", MON_SECRET_NAME, "fsid"),
            client.V1EnvVar(
                name="ROOK_DASHBOARD_ENABLED", value=bool_env(self.spec.dashboard.enabled)
            ),
            client.V1EnvVar(
                name="ROOK_MONITORING_ENABLED", value=bool_env(self.spec.monitoring.enabled)
            ),
            client.V1EnvVar(name="ROOK_UPDATE_INTERVAL", value=SIDECAR_UPDATE_INTERVAL),
            client.V1EnvVar(name="ROOK_DAEMON_NAME", value=config.daemon_id),
            client.V1EnvVar(
                name="ROOK_MGR_STAT_SUPPORTED",
                value=bool_env(self.cluster_info.ceph_version.is_at_least_pacific()),
            ),
        ]

        return client.V1Container(
            name="watch-active",
            args=["ceph", "mgr", "watch-active"],
            image=self.spec.operator.operator_image,
            env=env,
            resources=resource_requirements(self.spec.resources_for(KEY_MGR_SIDECAR)),
        )

    def build_log_collector_container(self, config: DaemonInstanceConfig) -> client.V1Container:
        """Build the log-collector sidecar that rotates ``ceph-mgr.<id>.log``."""
        client_id = f"ceph-mgr.{config.daemon_id}"
        script = LOG_ROTATE_SCRIPT.format(
            client_id=client_id, periodicity=self.spec.log_collector.periodicity
        )
        data_paths = DataPathMap.for_dataless_daemon(
            self.cluster_info.namespace, self.spec.data_dir_host_path
        )
        return client.V1Container(
            name="log-collector",
            command=["/bin/bash", "-x", "-e", "-m", "-c", script],
            image=self.spec.ceph_version.image,
            volume_mounts=daemon_volume_mounts(data_paths, ""),
            security_context=self.security_context(),
            resources=resource_requirements(self.spec.resources_for(KEY_LOG_COLLECTOR)),
            tty=True,
        )
