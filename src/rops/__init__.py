"""rops: build container images, deploy Helm charts and keep itself up to date."""

__version__ = "0.4.0"
