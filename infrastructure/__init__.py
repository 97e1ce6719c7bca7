"""Infrastructure layer — storage backends and observability for drop detection.

Modules:
    cache       Redis and in-memory storage for cached drop results.
    metrics     Prometheus metrics registry.
"""
