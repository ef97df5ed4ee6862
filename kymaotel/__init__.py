"""Telemetry pipeline processors (Istio noise filter, Istio log enrichment, service-name enrichment), their data model and Kubernetes API settings."""

__version__ = "0.1.0"