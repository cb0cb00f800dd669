"""Data models for cluster configuration and daemon identity."""

from mgr_assembler.models.alerts import AlertRule, AlertRuleSet
from mgr_assembler.models.cluster import (
    CephVersion,
    CephVersionSpec,
    ClusterInfo,
    ClusterSpec,
    DashboardSpec,
    HealthCheckSpec,
    LogCollectorSpec,
    MgrSpec,
    MonitoringSpec,
    NetworkSpec,
    NodeSelectorRequirement,
    OperatorSettings,
    Placement,
    ProbeSpec,
    ResourceSpec,
    SecurityContextPolicy,
    StretchClusterSpec,
    Toleration,
)
from mgr_assembler.models.daemon import DaemonInstanceConfig, DataPathMap, index_to_name

__all__ = [
    "AlertRule",
    "AlertRuleSet",
    "CephVersion",
    "CephVersionSpec",
    "ClusterInfo",
    "ClusterSpec",
    "DaemonInstanceConfig",
    "DashboardSpec",
    "DataPathMap",
    "HealthCheckSpec",
    "LogCollectorSpec",
    "MgrSpec",
    "MonitoringSpec",
    "NetworkSpec",
    "NodeSelectorRequirement",
    "OperatorSettings",
    "Placement",
    "ProbeSpec",
    "ResourceSpec",
    "SecurityContextPolicy",
    "StretchClusterSpec",
    "Toleration",
    "index_to_name",
]
