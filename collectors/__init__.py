"""
Additive Scrape Collectors Package
"""

from collectors.base_collector import BaseCollector
from collectors.context import CollectorContext, create_collector_context
from collectors.dynamic_collector import DynamicCollector
from collectors.lifecycle import CollectorLifecycleManager, LifecycleOptions, with_lifecycle
from collectors.static_collector import StaticCollector
from collectors.types import CollectorConfig, CollectorOptions, CollectorResult, PageResult

__all__ = [
    'BaseCollector',
    'CollectorConfig',
    'CollectorContext',
    'CollectorLifecycleManager',
    'CollectorOptions',
    'CollectorResult',
    'DynamicCollector',
    'LifecycleOptions',
    'PageResult',
    'StaticCollector',
    'create_collector_context',
    'with_lifecycle',
]
