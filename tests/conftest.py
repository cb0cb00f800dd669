"""Pytest configuration and shared fixtures."""

import pytest
from hypothesis import Verbosity, settings

from mgr_assembler.models import (
    CephVersion,
    CephVersionSpec,
    ClusterInfo,
    ClusterSpec,
    DaemonInstanceConfig,
    MgrSpec,
)
from mgr_assembler.ownership import OwnerInfo

# Configure Hypothesis for property-based testing
settings.register_profile("default", max_examples=100, verbosity=Verbosity.normal)
settings.register_profile("ci", max_examples=1000, verbosity=Verbosity.verbose)
settings.register_profile("dev", max_examples=10, verbosity=Verbosity.verbose)

# Load the default profile
settings.load_profile("default")

NAMESPACE = "rook-ceph"
CEPH_IMAGE = "quay.io/ceph/ceph:v16.2.6"


@pytest.fixture
def cluster_info():
    """Identity of a Pacific cluster owned by a CephCluster."""
    return ClusterInfo(
        namespace=NAMESPACE,
        name="my-cluster",
        fsid="5b2e5f2a-3c4d-4e5f-8a9b-0c1d2e3f4a5b",
        ceph_version=CephVersion(major=16, minor=2, extra=6),
        owner=OwnerInfo(name="my-cluster", uid="0c1e2d3f-aaaa-bbbb-cccc-123456789abc"),
    )


@pytest.fixture
def cluster_spec():
    """Two managers on the default overlay network."""
    return ClusterSpec(ceph_version=CephVersionSpec(image=CEPH_IMAGE), mgr=MgrSpec(count=2))


@pytest.fixture
def mgr_config():
    return DaemonInstanceConfig.for_mgr("a", NAMESPACE, "/var/lib/rook")


@pytest.fixture
def cluster_file(tmp_path):
    """A cluster YAML file as consumed by the CLI."""
    path = tmp_path / "cluster.yaml"
    path.write_text(
        f"""
cluster:
  name: my-cluster
  namespace: {NAMESPACE}
  fsid: 5b2e5f2a-3c4d-4e5f-8a9b-0c1d2e3f4a5b
  ceph_version: 16.2.6
  owner:
    name: my-cluster
    uid: 0c1e2d3f-aaaa-bbbb-cccc-123456789abc
spec:
  ceph_version:
    image: {CEPH_IMAGE}
  mgr:
    count: 2
  dashboard:
    ssl: false
"""
    )
    return path
