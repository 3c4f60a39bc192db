"""
Prometheus registry and domain counters.

Under Gunicorn (PROMETHEUS_MULTIPROC_DIR set) every worker writes to the shared
directory and /metrics aggregates them through a MultiProcessCollector.
"""
import os

from prometheus_client import Counter, CollectorRegistry, REGISTRY, multiprocess

MULTIPROCESS_MODE = os.environ.get('PROMETHEUS_MULTIPROC_DIR') is not None

if MULTIPROCESS_MODE:
    registry = CollectorRegistry()
    multiprocess.MultiProcessCollector(registry)
else:
    registry = REGISTRY

# Metrics must not bind to the collector registry in multiprocess mode
metric_registry = registry if not MULTIPROCESS_MODE else None

product_resolutions_total = Counter(
    'product_resolutions_total',
    'Product reference resolutions by the tier that answered',
    ['tier'],
    registry=metric_registry
)

order_recalculations_total = Counter(
    'order_recalculations_total',
    'Order total recalculations by triggering operation',
    ['operation'],
    registry=metric_registry
)
