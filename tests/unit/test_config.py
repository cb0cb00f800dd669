"""Tests for loading assembler inputs."""

import pytest

from mgr_assembler.config import (
    load_alert_overrides,
    load_cluster,
    operator_settings_from_env,
    read_yaml,
)
from mgr_assembler.exceptions import ConfigurationError
from mgr_assembler.models import OperatorSettings


def test_load_cluster(cluster_file):
    spec, info = load_cluster(cluster_file, use_env=False)

    assert info.name == "my-cluster"
    assert info.namespace == "rook-ceph"
    assert info.ceph_version.major == 16
    assert info.owner.uid.startswith("0c1e")
    assert spec.mgr.count == 2
    assert spec.dashboard.ssl is False


def test_load_cluster_applies_env(cluster_file, monkeypatch):
    monkeypatch.setenv("POD_NAMESPACE", "operator-ns")
    monkeypatch.setenv("ROOK_CEPH_MONITORING_PROMETHEUS_RULE", "my-rules")
    spec, _ = load_cluster(cluster_file)

    assert spec.operator.operator_namespace == "operator-ns"
    assert spec.operator.prometheus_rule_name == "my-rules"


def test_load_cluster_missing_file(tmp_path):
    with pytest.raises(ConfigurationError) as exc_info:
        load_cluster(tmp_path / "nope.yaml")

    assert "not found" in exc_info.value.message.lower()


def test_load_cluster_missing_section(tmp_path):
    path = tmp_path / "cluster.yaml"
    path.write_text("spec:\n  ceph_version:\n    image: ceph\n")

    with pytest.raises(ConfigurationError, match="cluster"):
        load_cluster(path)


def test_load_cluster_invalid_spec(tmp_path):
    path = tmp_path / "cluster.yaml"
    path.write_text(
        "cluster: {name: c, namespace: ns, fsid: f, ceph_version: 16.2.6}\n"
        "spec: {ceph_version: {image: ceph}, network: {provider: weave}}\n"
    )

    with pytest.raises(ConfigurationError) as exc_info:
        load_cluster(path, use_env=False)

    assert "network.provider" in exc_info.value.details


def test_load_cluster_bad_version(tmp_path):
    path = tmp_path / "cluster.yaml"
    path.write_text(
        "cluster: {name: c, namespace: ns, fsid: f, ceph_version: pacific}\n"
        "spec: {ceph_version: {image: ceph}}\n"
    )

    with pytest.raises(ConfigurationError):
        load_cluster(path, use_env=False)


def test_read_yaml_rejects_non_mapping(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- a\n- b\n")

    with pytest.raises(ConfigurationError):
        read_yaml(path)


def test_read_yaml_rejects_bad_syntax(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("a: [unclosed\n")

    with pytest.raises(ConfigurationError):
        read_yaml(path)


def test_operator_settings_from_env():
    settings = operator_settings_from_env(
        OperatorSettings(),
        {
            "POD_NAMESPACE": "ops",
            "ROOK_OPERATOR_IMAGE": "rook/ceph:v1.9.0",
            "ROOK_UNREACHABLE_NODE_TOLERATION_SECONDS": "12",
        },
    )

    assert settings.operator_namespace == "ops"
    assert settings.operator_image == "rook/ceph:v1.9.0"
    assert settings.unreachable_node_toleration_seconds == 12
    assert settings.prometheus_rule_name == ""


def test_operator_settings_empty_env_keeps_base():
    base = OperatorSettings(operator_namespace="custom")

    assert operator_settings_from_env(base, {}) == base


def test_operator_settings_bad_toleration():
    with pytest.raises(ConfigurationError):
        operator_settings_from_env(None, {"ROOK_UNREACHABLE_NODE_TOLERATION_SECONDS": "soon"})


def test_load_alert_overrides(tmp_path):
    nested = tmp_path / "nested.yaml"
    nested.write_text("alerts:\n  cephNodeDown:\n    for: 1m\n")
    flat = tmp_path / "flat.yaml"
    flat.write_text("cephNodeDown:\n  for: 1m\n")

    assert load_alert_overrides(nested) == {"cephNodeDown": {"for": "1m"}}
    assert load_alert_overrides(flat) == {"cephNodeDown": {"for": "1m"}}


@pytest.mark.parametrize(
    "key", ["pod_affinity", "preferred_node_affinity", "topology_spread_constraints"]
)
def test_unsupported_placement_keys_rejected(tmp_path, key):
    path = tmp_path / "cluster.yaml"
    path.write_text(
        "cluster: {name: c, namespace: ns, fsid: f, ceph_version: 16.2.6}\n"
        "spec:\n"
        "  ceph_version: {image: ceph}\n"
        f"  placement:\n    mgr:\n      {key}: []\n"
    )

    with pytest.raises(ConfigurationError) as exc_info:
        load_cluster(path, use_env=False)

    assert f"placement.mgr.{key}" in exc_info.value.details


def test_supported_placement_keys_load(tmp_path):
    path = tmp_path / "cluster.yaml"
    path.write_text(
        "cluster: {name: c, namespace: ns, fsid: f, ceph_version: 16.2.6}\n"
        "spec:\n"
        "  ceph_version: {image: ceph}\n"
        "  placement:\n"
        "    all:\n"
        "      tolerations: [{key: storage, operator: Exists}]\n"
        "    mgr:\n"
        "      node_affinity: [{key: role, operator: In, values: [mgr]}]\n"
    )
    spec, _ = load_cluster(path, use_env=False)

    placement = spec.mgr_placement()
    assert placement.node_affinity[0].key == "role"
    assert placement.tolerations[0].key == "storage"
