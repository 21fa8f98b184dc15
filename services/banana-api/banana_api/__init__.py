"""
Grafana-banana API Package.

Mock weather forecast and banana analytics service instrumented with
Prometheus metrics, OpenTelemetry traces and structured logs.
"""

__version__ = "1.0.0"
__description__ = "Mock weather and banana analytics API wired for observability"

__all__ = [
    "__version__",
]
