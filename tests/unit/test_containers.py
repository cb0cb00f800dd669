"""Tests for the manager container factory."""

from mgr_assembler.containers import (
    DEFAULT_METRICS_PORT,
    ContainerFactory,
    daemon_volume_mounts,
    daemon_volumes,
    new_flag,
)
from mgr_assembler.models import (
    CephVersion,
    HealthCheckSpec,
    LogCollectorSpec,
    NetworkSpec,
    ProbeSpec,
    ResourceSpec,
)

SIDECAR_ENV_CONTRACT = [
    "ROOK_CLUSTER_ID",
    "ROOK_CLUSTER_NAME",
    "ROOK_FSID",
    "ROOK_DASHBOARD_ENABLED",
    "ROOK_MONITORING_ENABLED",
    "ROOK_UPDATE_INTERVAL",
    "ROOK_DAEMON_NAME",
    "ROOK_MGR_STAT_SUPPORTED",
]


def _env(container) -> dict:
    return {e.name: e for e in container.env}


def test_new_flag_format():
    assert new_flag("id", "a") == "--id=a"
    assert new_flag("log-stderr-prefix", "debug ") == "--log-stderr-prefix=debug "


def test_init_container_chowns_data_dirs(cluster_spec, cluster_info, mgr_config):
    """The init container hands log, crash and data dirs to the ceph user."""
    container = ContainerFactory(cluster_spec, cluster_info).build_init_container(mgr_config)

    assert container.name == "chown-container-data-dir"
    assert container.command == ["chown"]
    assert container.args[:3] == ["--verbose", "--recursive", "ceph:ceph"]
    assert "/var/log/ceph" in container.args
    assert "/var/lib/ceph/crash" in container.args
    assert "/var/lib/ceph/mgr/ceph-a" in container.args
    assert container.image == cluster_spec.ceph_version.image
    mount_paths = {m.mount_path for m in container.volume_mounts}
    assert "/var/lib/ceph/mgr/ceph-a" in mount_paths


def test_daemon_container_flags(cluster_spec, cluster_info, mgr_config):
    container = ContainerFactory(cluster_spec, cluster_info).build_daemon_container(mgr_config)

    assert container.name == "mgr"
    assert container.command == ["ceph-mgr"]
    assert f"--fsid={cluster_info.fsid}" in container.args
    assert "--id=a" in container.args
    assert "--setuser=ceph" in container.args
    assert "--client-mount-uid=0" in container.args
    assert "--client-mount-gid=0" in container.args
    assert "--foreground" in container.args
    assert "--public-addr=$(ROOK_POD_IP)" in container.args
    assert container.working_dir == "/var/log/ceph"


def test_daemon_container_host_network_has_no_public_addr(cluster_spec, cluster_info, mgr_config):
    spec = cluster_spec.model_copy(update={"network": NetworkSpec(provider="host")})
    container = ContainerFactory(spec, cluster_info).build_daemon_container(mgr_config)

    assert not any(arg.startswith("--public-addr") for arg in container.args)


def test_daemon_container_ports(cluster_spec, cluster_info, mgr_config):
    """Dashboard port follows SSL unless set explicitly."""
    ports = {
        p.name: p.container_port
        for p in ContainerFactory(cluster_spec, cluster_info).build_daemon_container(mgr_config).ports
    }
    assert ports == {"mgr": 6800, "http-metrics": DEFAULT_METRICS_PORT, "dashboard": 8443}

    plain = cluster_spec.model_copy(
        update={"dashboard": cluster_spec.dashboard.model_copy(update={"ssl": False})}
    )
    ports = {
        p.name: p.container_port
        for p in ContainerFactory(plain, cluster_info).build_daemon_container(mgr_config).ports
    }
    assert ports["dashboard"] == 7000

    explicit = cluster_spec.model_copy(
        update={"dashboard": cluster_spec.dashboard.model_copy(update={"port": 9000})}
    )
    ports = {
        p.name: p.container_port
        for p in ContainerFactory(explicit, cluster_info).build_daemon_container(mgr_config).ports
    }
    assert ports["dashboard"] == 9000


def test_daemon_container_orchestrator_env(cluster_spec, cluster_info, mgr_config):
    env = _env(ContainerFactory(cluster_spec, cluster_info).build_daemon_container(mgr_config))

    assert env["ROOK_OPERATOR_NAMESPACE"].value == cluster_spec.operator.operator_namespace
    assert env["ROOK_CEPH_CLUSTER_CRD_VERSION"].value == "v1"
    assert env["ROOK_CEPH_CLUSTER_CRD_NAME"].value == "my-cluster"
    assert "ROOK_CEPH_MONITORING_PROMETHEUS_RULE" in env
    assert env["ROOK_POD_IP"].value_from.field_ref.field_path == "status.podIP"
    assert env["CONTAINER_IMAGE"].value == cluster_spec.ceph_version.image


def test_default_liveness_probe(cluster_spec, cluster_info, mgr_config):
    probe = ContainerFactory(cluster_spec, cluster_info).build_daemon_container(
        mgr_config
    ).liveness_probe

    assert probe.http_get.path == "/"
    assert probe.http_get.port == DEFAULT_METRICS_PORT
    assert probe.initial_delay_seconds == 60


def test_liveness_probe_disabled(cluster_spec, cluster_info, mgr_config):
    spec = cluster_spec.model_copy(
        update={"health_check": HealthCheckSpec(liveness_probe={"mgr": ProbeSpec(disabled=True)})}
    )
    container = ContainerFactory(spec, cluster_info).build_daemon_container(mgr_config)

    assert container.liveness_probe is None


def test_liveness_probe_disabled_for_other_role_only(cluster_spec, cluster_info, mgr_config):
    spec = cluster_spec.model_copy(
        update={"health_check": HealthCheckSpec(liveness_probe={"mon": ProbeSpec(disabled=True)})}
    )
    container = ContainerFactory(spec, cluster_info).build_daemon_container(mgr_config)

    assert container.liveness_probe is not None


def test_liveness_probe_timing_overrides(cluster_spec, cluster_info, mgr_config):
    spec = cluster_spec.model_copy(
        update={
            "health_check": HealthCheckSpec(
                liveness_probe={"mgr": ProbeSpec(timeout_seconds=5, failure_threshold=6)}
            )
        }
    )
    probe = ContainerFactory(spec, cluster_info).build_daemon_container(mgr_config).liveness_probe

    assert probe.timeout_seconds == 5
    assert probe.failure_threshold == 6
    assert probe.initial_delay_seconds == 60


def test_sidecar_env_contract(cluster_spec, cluster_info, mgr_config):
    """The watch-active binary reads these exact variable names."""
    container = ContainerFactory(cluster_spec, cluster_info).build_sidecar_container(mgr_config)
    env = _env(container)

    assert container.name == "watch-active"
    assert container.args == ["ceph", "mgr", "watch-active"]
    assert container.image == cluster_spec.operator.operator_image
    for name in SIDECAR_ENV_CONTRACT:
        assert name in env, f"missing {name}"

    assert env["ROOK_CLUSTER_ID"].value == cluster_info.owner.uid
    assert env["ROOK_CLUSTER_NAME"].value == "my-cluster"
    assert env["ROOK_DASHBOARD_ENABLED"].value == "true"
    assert env["ROOK_MONITORING_ENABLED"].value == "false"
    assert env["ROOK_UPDATE_INTERVAL"].value == "15s"
    assert env["ROOK_DAEMON_NAME"].value == "a"
    assert env["ROOK_MGR_STAT_SUPPORTED"].value == "true"


def test_sidecar_fsid_comes_from_secret(cluster_spec, cluster_info, mgr_config):
    fsid = _env(ContainerFactory(cluster_spec, cluster_info).build_sidecar_container(mgr_config))[
        "ROOK_FSID"
    ]

    assert fsid.value is None
    assert fsid.value_from.secret_key_ref.name == "rook-ceph-mon"
    assert fsid.value_from.secret_key_ref.key == "fsid"


def test_sidecar_stat_not_supported_before_pacific(cluster_spec, cluster_info, mgr_config):
    octopus = cluster_info.model_copy(update={"ceph_version": CephVersion(major=15, minor=2)})
    env = _env(ContainerFactory(cluster_spec, octopus).build_sidecar_container(mgr_config))

    assert env["ROOK_MGR_STAT_SUPPORTED"].value == "false"


def test_sidecar_resources(cluster_spec, cluster_info, mgr_config):
    spec = cluster_spec.model_copy(
        update={"resources": {"mgr-sidecar": ResourceSpec(limits={"memory": "100Mi"})}}
    )
    container = ContainerFactory(spec, cluster_info).build_sidecar_container(mgr_config)

    assert container.resources.limits == {"memory": "100Mi"}
    assert container.resources.requests is None


def test_log_collector_container(cluster_spec, cluster_info, mgr_config):
    spec = cluster_spec.model_copy(
        update={"log_collector": LogCollectorSpec(enabled=True, periodicity="1h")}
    )
    container = ContainerFactory(spec, cluster_info).build_log_collector_container(mgr_config)

    assert container.name == "log-collector"
    assert container.command[:2] == ["/bin/bash", "-x"]
    script = container.command[-1]
    assert "CEPH_CLIENT_ID=ceph-mgr.a" in script
    assert "PERIODICITY=1h" in script
    assert container.tty is True
    # No daemon data dir for the collector
    assert "/var/lib/ceph/mgr/ceph-a" not in {m.mount_path for m in container.volume_mounts}


def test_volumes_back_every_mount(mgr_config):
    volumes = {v.name for v in daemon_volumes(mgr_config.data_path_map, mgr_config.resource_name)}
    mounts = {
        m.name for m in daemon_volume_mounts(mgr_config.data_path_map, mgr_config.resource_name)
    }

    assert mounts <= volumes
    assert "rook-ceph-mgr-a-keyring" in volumes
