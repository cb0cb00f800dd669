"""Kubernetes descriptor assembly for the Ceph manager daemon."""

__version__ = "0.1.0"
