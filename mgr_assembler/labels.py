"""Label and annotation helpers shared by every generated descriptor."""

from kubernetes import client

APP_LABEL = "app"
CLUSTER_LABEL = "rook_cluster"
DAEMON_TYPE_LABEL = "ceph_daemon_type"
DAEMON_ID_LABEL = "ceph_daemon_id"
ROOK_VERSION_LABEL = "rook-version"
CEPH_VERSION_LABEL = "ceph-version"


def app_labels(app_name: str, namespace: str) -> dict[str, str]:
    """Labels identifying every pod of an app within a cluster namespace."""
    return {APP_LABEL: app_name, CLUSTER_LABEL: namespace}


def daemon_app_labels(
    app_name: str,
    namespace: str,
    daemon_type: str,
    daemon_id: str,
    include_new_labels: bool,
) -> dict[str, str]:
    """Labels for one Ceph daemon.

    Args:
        app_name: App label value (e.g. rook-ceph-mgr)
        namespace: Cluster namespace
        daemon_type: Daemon type (mgr, mon, ...)
        daemon_id: Daemon ID (a, b, ...)
        include_new_labels: Add labels that must never reach a deployment selector

    Returns:
        Dict of labels
    """
    labels = app_labels(app_name, namespace)
    # Selectors are immutable, so labels added after a release stay out of them
    if include_new_labels:
        labels[DAEMON_TYPE_LABEL] = daemon_type
    labels[DAEMON_ID_LABEL] = daemon_id
    # Also report the id keyed by its type, e.g. "mgr: a"
    labels[daemon_type] = daemon_id
    return labels


def apply_to_object_meta(values: dict[str, str], meta: client.V1ObjectMeta, field: str) -> None:
    """Merge ``values`` into ``meta.labels`` or ``meta.annotations``, overriding existing keys."""
    if not values:
        return
    current = getattr(meta, field) or {}
    current.update(values)
    setattr(meta, field, current)


def apply_annotations(annotations: dict[str, str], meta: client.V1ObjectMeta) -> None:
    apply_to_object_meta(annotations, meta, "annotations")


def apply_labels(labels: dict[str, str], meta: client.V1ObjectMeta) -> None:
    apply_to_object_meta(labels, meta, "labels")


def add_rook_version_label(meta: client.V1ObjectMeta, operator_version: str) -> None:
    apply_labels({ROOK_VERSION_LABEL: operator_version}, meta)


def add_ceph_version_label(meta: client.V1ObjectMeta, ceph_version) -> None:
    apply_labels({CEPH_VERSION_LABEL: ceph_version.label_value()}, meta)
