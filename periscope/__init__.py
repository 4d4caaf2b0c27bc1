"""Collectors, diagnosers and archiving for Kubernetes node and cluster diagnostics."""

__version__ = "0.1.0"