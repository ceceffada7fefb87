"""White River Basin reservoir telemetry collector."""

__version__ = "0.3.0"
