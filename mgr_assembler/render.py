"""Serialization of descriptors to plain manifests and YAML."""

import yaml
from kubernetes import client

_api_client = None


def to_manifest(obj) -> dict:
    """Convert a kubernetes client model into a manifest dict (camelCase keys, no nulls)."""
    global _api_client
    if _api_client is None:
        _api_client = client.ApiClient()
    return _api_client.sanitize_for_serialization(obj)


def dump_manifests(objects: list) -> str:
    """Render descriptors (or plain dicts) as a multi-document YAML stream."""
    documents = [obj if isinstance(obj, dict) else to_manifest(obj) for obj in objects]
    return yaml.safe_dump_all(documents, default_flow_style=False, sort_keys=False)
