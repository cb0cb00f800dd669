"""Loading assembler inputs at the process boundary.

Everything that touches files or the process environment lives here, so the
assemblers themselves stay pure functions of their arguments.

A cluster file looks like::

    cluster:
      name: my-cluster
      namespace: rook-ceph
      fsid: 5b2e5f2a-...
      ceph_version: 16.2.6
      owner:
        name: my-cluster
        uid: 0c1e...
    spec:
      ceph_version:
        image: quay.io/ceph/ceph:v16.2.6
      mgr:
        count: 2
"""

import os
from pathlib import Path

import yaml
from pydantic import ValidationError as PydanticValidationError

from mgr_assembler.exceptions import ConfigurationError
from mgr_assembler.logging_config import get_logger
from mgr_assembler.models.cluster import CephVersion, ClusterInfo, ClusterSpec, OperatorSettings

logger = get_logger(__name__)

OPERATOR_NAMESPACE_ENV = "POD_NAMESPACE"
OPERATOR_IMAGE_ENV = "ROOK_OPERATOR_IMAGE"
PROMETHEUS_RULE_ENV = "ROOK_CEPH_MONITORING_PROMETHEUS_RULE"
UNREACHABLE_TOLERATION_ENV = "ROOK_UNREACHABLE_NODE_TOLERATION_SECONDS"


def _format_errors(e: PydanticValidationError) -> str:
    return "\n".join(
        f"  - {'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
    )


def read_yaml(path: str | Path) -> dict:
    """Read a YAML mapping from ``path``.

    Raises:
        ConfigurationError: If the file is missing, unparsable or not a mapping
    """
    path = Path(path)
    logger.debug(f"Reading {path}")
    if not path.exists():
        raise ConfigurationError(
            f"File not found: {path}", f"Expected location: {path.absolute()}"
        )
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Failed to parse {path}: {e}", "Check the YAML syntax")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a YAML mapping")
    return data


def operator_settings_from_env(
    base: OperatorSettings | None = None, environ: dict[str, str] | None = None
) -> OperatorSettings:
    """Overlay operator settings found in the process environment.

    Args:
        base: Settings to start from (defaults otherwise)
        environ: Environment mapping (``os.environ`` by default)

    Raises:
        ConfigurationError: If the toleration seconds are not an integer
    """
    environ = os.environ if environ is None else environ
    base = base or OperatorSettings()
    update = {}

    if environ.get(OPERATOR_NAMESPACE_ENV):
        update["operator_namespace"] = environ[OPERATOR_NAMESPACE_ENV]
    if environ.get(OPERATOR_IMAGE_ENV):
        update["operator_image"] = environ[OPERATOR_IMAGE_ENV]
    if PROMETHEUS_RULE_ENV in environ:
        update["prometheus_rule_name"] = environ[PROMETHEUS_RULE_ENV]
    if environ.get(UNREACHABLE_TOLERATION_ENV):
        value = environ[UNREACHABLE_TOLERATION_ENV]
        try:
            update["unreachable_node_toleration_seconds"] = int(value)
        except ValueError:
            raise ConfigurationError(
                f"{UNREACHABLE_TOLERATION_ENV} must be an integer number of seconds, got {value!r}"
            )

    if update:
        logger.debug(f"Operator settings from environment: {sorted(update)}")
    return base.model_copy(update=update)


def load_cluster(path: str | Path, use_env: bool = True) -> tuple[ClusterSpec, ClusterInfo]:
    """Load the cluster spec and cluster identity from a cluster file.

    Args:
        path: Path to the cluster YAML file
        use_env: Overlay operator settings from the environment

    Raises:
        ConfigurationError: If the file is missing or invalid
    """
    data = read_yaml(path)
    for section in ("cluster", "spec"):
        if not isinstance(data.get(section), dict):
            raise ConfigurationError(f"{path} must have a '{section}' mapping")

    cluster = dict(data["cluster"])
    try:
        if isinstance(cluster.get("ceph_version"), str):
            cluster["ceph_version"] = CephVersion.parse(cluster["ceph_version"])
        info = ClusterInfo(**cluster)
        spec = ClusterSpec(**data["spec"])
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid cluster file {path}", _format_errors(e))
    except ValueError as e:
        raise ConfigurationError(f"Invalid cluster file {path}: {e}")

    if use_env:
        spec = spec.model_copy(update={"operator": operator_settings_from_env(spec.operator)})
    logger.info(f"Loaded cluster {info.namespace}/{info.name} from {path}")
    return spec, info


def load_alert_overrides(path: str | Path) -> dict[str, dict]:
    """Load alert overrides, either top-level or under an ``alerts`` key."""
    data = read_yaml(path)
    overrides = data.get("alerts", data)
    if not isinstance(overrides, dict):
        raise ConfigurationError(f"'alerts' in {path} must be a mapping of alert name to fields")
    return overrides
