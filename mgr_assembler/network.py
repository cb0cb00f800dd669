"""Multi-network (Multus) attachment for daemon pods."""

import json

from kubernetes import client

from mgr_assembler.exceptions import ConfigurationError
from mgr_assembler.labels import apply_annotations
from mgr_assembler.logging_config import get_logger
from mgr_assembler.models.cluster import NetworkSpec

logger = get_logger(__name__)

NETWORKS_ANNOTATION = "k8s.v1.cni.cncf.io/networks"

# Selector keys that attach a network to Ceph daemons
DAEMON_NETWORK_KEYS = ("public", "cluster")


def apply_multus(network: NetworkSpec, meta: client.V1ObjectMeta) -> None:
    """Add the network attachment annotation for the selected networks.

    Each selector is either a short ``namespace/name`` reference or a JSON
    network selection element. Both forms cannot be mixed in one annotation.

    Args:
        network: The cluster network spec
        meta: Pod template metadata to annotate

    Raises:
        ConfigurationError: If a selector is empty, invalid or the forms are mixed
    """
    networks = []
    short_syntax = False
    json_syntax = False

    for key, selector in network.selectors.items():
        if key not in DAEMON_NETWORK_KEYS:
            logger.debug(f"Ignoring network selector '{key}' for daemon pods")
            continue

        if not selector or not selector.strip():
            raise ConfigurationError(
                f"Network selector '{key}' is empty",
                "Set it to '<namespace>/<network-attachment-definition>' or a JSON selection",
            )

        try:
            parsed = json.loads(selector)
            is_json = True
        except json.JSONDecodeError:
            parsed = None
            is_json = False

        # JSON scalars such as "42" or "null" are plain attachment names
        is_name = not is_json or not isinstance(parsed, (dict, list))

        if isinstance(parsed, dict):
            if "name" not in parsed:
                raise ConfigurationError(
                    f"Network selector '{key}' is missing a network name",
                    f"JSON selection elements need a 'name' key, got: {selector}",
                )
            json_syntax = True
        elif is_name and selector.count("/") <= 1 and " " not in selector.strip():
            short_syntax = True
        else:
            raise ConfigurationError(
                f"Network selector '{key}' is malformed: {selector!r}",
                "Expected '<namespace>/<name>', '<name>' or a JSON object",
            )
        networks.append(selector.strip())

    if short_syntax and json_syntax:
        raise ConfigurationError(
            "Network selectors mix short and JSON forms",
            "Use either '<namespace>/<name>' for every selector or JSON for every selector",
        )

    if not networks:
        raise ConfigurationError(
            "Multus networking is enabled but no public or cluster network is selected",
            "Add 'public' and/or 'cluster' entries to network.selectors",
        )

    value = ", ".join(networks)
    if json_syntax:
        value = f"[{value}]"

    apply_annotations({NETWORKS_ANNOTATION: value}, meta)
    logger.debug(f"Attached networks to {meta.name}: {value}")
