"""Data models for a single manager daemon instance."""

import posixpath
import re

from pydantic import BaseModel, ConfigDict, field_validator

# Directories shared by every Ceph daemon container
CONTAINER_LOG_DIR = "/var/log/ceph"
CONTAINER_CRASH_DIR = "/var/lib/ceph/crash"


class DataPathMap(BaseModel):
    """Host and container paths a daemon needs mounted."""

    model_config = ConfigDict(frozen=True)

    container_data_dir: str = ""
    host_log_dir: str = ""
    host_crash_dir: str = ""
    no_data: bool = False

    @classmethod
    def for_stateless_daemon(
        cls, daemon_type: str, daemon_id: str, namespace: str, data_dir_host_path: str
    ) -> "DataPathMap":
        """Paths for a daemon whose data directory does not outlive the pod.

        The data dir lives on an emptyDir; logs and crash reports go to the host
        under ``<data_dir_host_path>/<namespace>``.
        """
        return cls(
            container_data_dir=f"/var/lib/ceph/{daemon_type}/ceph-{daemon_id}",
            **cls._host_dirs(namespace, data_dir_host_path),
        )

    @classmethod
    def for_dataless_daemon(cls, namespace: str, data_dir_host_path: str) -> "DataPathMap":
        """Paths for a container that only needs logs and crash reports."""
        return cls(no_data=True, **cls._host_dirs(namespace, data_dir_host_path))

    @staticmethod
    def _host_dirs(namespace: str, data_dir_host_path: str) -> dict:
        if not data_dir_host_path:
            return {}
        return {
            "host_log_dir": posixpath.join(data_dir_host_path, namespace, "log"),
            "host_crash_dir": posixpath.join(data_dir_host_path, namespace, "crash"),
        }


class DaemonInstanceConfig(BaseModel):
    """Per-replica identity of a manager daemon."""

    model_config = ConfigDict(frozen=True)

    daemon_id: str
    resource_name: str
    data_path_map: DataPathMap

    @field_validator("daemon_id")
    @classmethod
    def validate_daemon_id(cls, v: str) -> str:
        """Validate daemon ID is a short lowercase identifier (a, b, ...)."""
        if not re.match(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$", v):
            raise ValueError(f"daemon_id '{v}' must be a lowercase alphanumeric identifier")
        return v

    @classmethod
    def for_mgr(
        cls, daemon_id: str, namespace: str, data_dir_host_path: str, app_name: str = "rook-ceph-mgr"
    ) -> "DaemonInstanceConfig":
        """Build the config for manager ``daemon_id`` (resource ``rook-ceph-mgr-<id>``)."""
        return cls(
            daemon_id=daemon_id,
            resource_name=f"{app_name}-{daemon_id}",
            data_path_map=DataPathMap.for_stateless_daemon(
                "mgr", daemon_id, namespace, data_dir_host_path
            ),
        )


def index_to_name(index: int) -> str:
    """Daemon ID for a replica index: 0 -> a, 25 -> z, 26 -> aa."""
    if index < 0:
        raise ValueError(f"index cannot be negative, got {index}")
    name = ""
    index += 1
    while index > 0:
        index, remainder = divmod(index - 1, 26)
        name = chr(ord("a") + remainder) + name
    return name
