"""
Collector lifecycle management.

Tracks registered collector instances, recycles them after heavy use or
repeated errors, evicts idle ones from a background health check and
cleans everything up on shutdown. The manager is constructed explicitly
by whoever owns the collectors; there is no process wide instance.
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import config
from collectors.base_collector import BaseCollector
from collectors.context import CollectorContext
from collectors.types import CollectorStatus
from core.exceptions import InstanceUnavailableError, ValidationError
from utils.logging import Tracer

T = TypeVar('T')


@dataclass
class LifecycleOptions:
    """Recycling limits. Times are in seconds."""

    max_idle_time: float = field(default_factory=lambda: config.LIFECYCLE_MAX_IDLE_SECONDS)
    max_use_count: int = field(default_factory=lambda: config.LIFECYCLE_MAX_USE_COUNT)
    max_errors: int = field(default_factory=lambda: config.LIFECYCLE_MAX_ERRORS)
    health_check_interval: float = field(default_factory=lambda: config.LIFECYCLE_HEALTH_CHECK_INTERVAL)


class CollectorLifecycleState:
    """Bookkeeping for one registered collector instance."""

    def __init__(self, instance_id: str, collector: BaseCollector, context: Optional[CollectorContext] = None):
        self.instance_id = instance_id
        self.collector = collector
        self.context = context
        self.created_at = time.time()
        self.last_used_at = time.time()
        self.use_count = 0
        self.error_count = 0
        self.unhealthy = False
        self.status: CollectorStatus = collector.get_status()

    def update_usage(self):
        """Update usage statistics."""
        self.last_used_at = time.time()
        self.use_count += 1

    def record_error(self):
        """Record an error occurrence."""
        self.error_count += 1

    def reset(self):
        now = time.time()
        self.use_count = 0
        self.error_count = 0
        self.unhealthy = False
        self.created_at = now
        self.last_used_at = now

    @property
    def age(self) -> float:
        """Get the age of the instance in seconds."""
        return time.time() - self.created_at

    @property
    def idle_time(self) -> float:
        """Get the time since last use in seconds."""
        return time.time() - self.last_used_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            'instance_id': self.instance_id,
            'collector_id': self.collector.id,
            'created_at': self.created_at,
            'last_used_at': self.last_used_at,
            'use_count': self.use_count,
            'error_count': self.error_count,
            'unhealthy': self.unhealthy,
        }


class CollectorLifecycleManager:
    """
    Owns collector instances for their whole life.

    get_instance() refreshes an instance (cleanup, counters reset, and
    re-initialization with the context it was registered with) when it has
    been used max_use_count times, has max_errors consecutive errors, or
    reports not ready while idle.
    """

    def __init__(self, options: Optional[LifecycleOptions] = None, tracer: Optional[Tracer] = None):
        self.options = options or LifecycleOptions()
        self.tracer = tracer or Tracer(__name__)
        self._instances: Dict[str, CollectorLifecycleState] = {}
        self._lock = asyncio.Lock()
        self._stop_event: Optional[asyncio.Event] = None
        self._health_task: Optional[asyncio.Task] = None

    def register(self, collector: BaseCollector, context: Optional[CollectorContext] = None) -> str:
        """
        Start tracking a collector.

        Args:
            collector: Collector instance
            context: Context to (re-)initialize the collector with on refresh

        Returns:
            The new instance id
        """
        instance_id = f"{collector.id}_{uuid.uuid4().hex[:8]}"
        self._instances[instance_id] = CollectorLifecycleState(instance_id, collector, context)
        self.tracer.info("collector_registered", instance_id=instance_id,
                         collector_id=collector.id, collector_name=collector.name)
        return instance_id

    def get_state(self, instance_id: str) -> Optional[CollectorLifecycleState]:
        return self._instances.get(instance_id)

    async def get_instance(self, instance_id: str) -> Optional[BaseCollector]:
        """
        Hand out a collector, refreshing it first when it needs it.

        Returns:
            The collector, or None when the id is unknown or the refresh failed
        """
        async with self._lock:
            state = self._instances.get(instance_id)
            if state is None:
                self.tracer.warning("collector_instance_not_found", instance_id=instance_id)
                return None

            reason = self._refresh_reason(state)
            if reason:
                self.tracer.breadcrumb('instance_refresh', 'Instance needs refresh',
                                       instance_id=instance_id, reason=reason)
                if not await self._refresh(state):
                    return None
            else:
                state.update_usage()

            state.status = state.collector.get_status()
            return state.collector

    def report_error(self, instance_id: str, error: BaseException) -> None:
        state = self._instances.get(instance_id)
        if state is None:
            return
        state.record_error()
        self.tracer.warning("collector_instance_error", instance_id=instance_id,
                            error_count=state.error_count, max_errors=self.options.max_errors,
                            error=str(error))
        if state.error_count >= self.options.max_errors and not state.unhealthy:
            state.unhealthy = True
            state.status = CollectorStatus(ready=False, busy=False, initialized=False)
            self.tracer.warning("collector_instance_unhealthy", instance_id=instance_id,
                                collector_id=state.collector.id, error_count=state.error_count)

    def report_success(self, instance_id: str) -> None:
        state = self._instances.get(instance_id)
        if state is None:
            return
        if state.error_count > 0:
            self.tracer.breadcrumb('errors_cleared', 'Errors cleared after success',
                                   instance_id=instance_id, previous_errors=state.error_count)
        state.error_count = 0
        state.unhealthy = False

    async def cleanup(self, instance_id: str) -> None:
        """Clean up one instance and stop tracking it. Failures are captured, not raised."""
        async with self._lock:
            await self._cleanup_locked(instance_id)

    async def _cleanup_locked(self, instance_id: str) -> None:
        state = self._instances.get(instance_id)
        if state is None:
            return
        try:
            await state.collector.cleanup()
        except Exception as e:
            self.tracer.capture_error(e, instance_id=instance_id, phase='cleanup')
        del self._instances[instance_id]
        self.tracer.info("collector_instance_cleaned", instance_id=instance_id,
                         collector_id=state.collector.id, lifetime_s=round(state.age, 2),
                         total_uses=state.use_count)

    async def cleanup_all(self) -> None:
        """Stop health monitoring and clean up every instance concurrently."""
        self.tracer.info("collector_cleanup_all", instance_count=len(self._instances))
        await self.stop()
        async with self._lock:
            states = list(self._instances.values())
            outcomes = await asyncio.gather(
                *(state.collector.cleanup() for state in states), return_exceptions=True
            )
            for state, outcome in zip(states, outcomes):
                if isinstance(outcome, Exception):
                    self.tracer.capture_error(outcome, instance_id=state.instance_id, phase='cleanup')
            self._instances.clear()

    def get_stats(self) -> Dict[str, int]:
        healthy = unhealthy = idle = 0
        for state in self._instances.values():
            if self._is_unhealthy(state):
                unhealthy += 1
            else:
                healthy += 1
            if state.idle_time > self.options.max_idle_time:
                idle += 1
        return {
            'total_instances': len(self._instances),
            'healthy_instances': healthy,
            'unhealthy_instances': unhealthy,
            'idle_instances': idle,
        }

    def health(self, instance_id: str) -> Optional[str]:
        """Derived health of an instance: "healthy", "unhealthy" or "idle"."""
        state = self._instances.get(instance_id)
        if state is None:
            return None
        if self._is_unhealthy(state):
            return 'unhealthy'
        if state.idle_time > self.options.max_idle_time:
            return 'idle'
        return 'healthy'

    def start(self) -> None:
        """Start the periodic health check on the running event loop."""
        if self._health_task is not None and not self._health_task.done():
            return
        self._stop_event = asyncio.Event()
        self._health_task = asyncio.create_task(self._health_check_worker())

    async def stop(self) -> None:
        if self._health_task is None:
            return
        self._stop_event.set()
        await self._health_task
        self._health_task = None

    async def _health_check_worker(self) -> None:
        """Background worker to perform instance health checks and cleanup."""
        while not self._stop_event.is_set():
            try:
                # Use event with timeout to support clean shutdown
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.options.health_check_interval)
            except asyncio.TimeoutError:
                try:
                    await self.perform_health_check()
                except Exception as e:
                    self.tracer.capture_error(e, phase='health_check')

    async def perform_health_check(self) -> int:
        """
        Evict instances idle longer than max_idle_time and refresh status snapshots.

        Returns:
            Number of instances evicted
        """
        async with self._lock:
            idle_ids = []
            for instance_id, state in self._instances.items():
                if state.idle_time > self.options.max_idle_time:
                    self.tracer.breadcrumb('idle_instance', 'Instance idle too long',
                                           instance_id=instance_id, idle_time=round(state.idle_time, 2))
                    idle_ids.append(instance_id)
                    continue
                state.status = state.collector.get_status()

            for instance_id in idle_ids:
                await self._cleanup_locked(instance_id)

        if idle_ids:
            self.tracer.info("health_check_completed", cleaned_up=len(idle_ids),
                             remaining=len(self._instances))
        return len(idle_ids)

    def _is_unhealthy(self, state: CollectorLifecycleState) -> bool:
        status = state.collector.get_status()
        return state.unhealthy or state.error_count >= self.options.max_errors or (
            not status.ready and not status.busy
        )

    def _refresh_reason(self, state: CollectorLifecycleState) -> Optional[str]:
        if state.use_count >= self.options.max_use_count:
            return 'max_use_count'
        if state.error_count >= self.options.max_errors:
            return 'max_errors'
        status = state.collector.get_status()
        # A busy collector is serving another caller and is left alone
        if not status.ready and not status.busy:
            return 'not_ready'
        return None

    async def _refresh(self, state: CollectorLifecycleState) -> bool:
        try:
            await state.collector.cleanup()
            state.reset()
            if state.context is not None:
                await state.collector.initialize(state.context)
        except Exception as e:
            self.tracer.capture_error(e, instance_id=state.instance_id, phase='refresh')
            state.unhealthy = True
            return False
        self.tracer.info("collector_instance_refreshed", instance_id=state.instance_id,
                         collector_id=state.collector.id)
        return True

    async def __aenter__(self) -> "CollectorLifecycleManager":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.cleanup_all()


async def with_lifecycle(manager: CollectorLifecycleManager, instance_id: str,
                         fn: Callable[[BaseCollector], Awaitable[T]]) -> T:
    """
    Run fn against a managed collector with lifecycle bookkeeping.

    Success resets the instance's error count. Failures are re-raised and,
    except for ValidationError (bad input from the caller), counted against
    the instance.
    """
    try:
        collector = await manager.get_instance(instance_id)
        if collector is None:
            raise InstanceUnavailableError(instance_id)
        result = await fn(collector)
    except ValidationError:
        raise
    except Exception as e:
        manager.report_error(instance_id, e)
        raise
    manager.report_success(instance_id)
    return result
