"""Capability registration for the Meshery Traefik Mesh adapter."""

__version__ = "0.1.0"
