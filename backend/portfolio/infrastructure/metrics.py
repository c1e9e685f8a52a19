"""Metrics Clients — best-effort counters and durations behind one interface.

Invariants:
    - No public method raises: internal failures are logged, never propagated
    - track_operation is transparent: same return value, same exception object
    - Buffered clients swap their buffer before the write is awaited,
      so metrics appended during a flush land in the fresh buffer
    - A failed flush re-queues the unsent part of its batch at the front of
      the buffer
    - CloudWatch receives at most 20 datums per PutMetricData call
    - Flush triggers: buffer reaches buffer_size, periodic timer, shutdown

Design Decisions:
    - Null Object (NoOpMetricsClient) when metrics are disabled: callers never branch
    - NDJSON file sink: one JSON record per line, appended; file IO off the event loop
      via asyncio.to_thread
    - CloudWatch sink via boto3; the blocking client call also runs in a thread
    - Client chosen once at startup by create_metrics_client(settings)
"""

import asyncio
import json
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import TypeVar

import boto3

from portfolio.config import Settings
from portfolio.core.domain_types import MetricsBackend, MetricUnit

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Metric:
    name: str
    value: float
    unit: MetricUnit
    dimensions: dict[str, str] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_record(self) -> dict:
        return {
            "name": self.name,
            "value": self.value,
            "unit": self.unit.value,
            "dimensions": dict(self.dimensions),
            "timestamp": self.timestamp.isoformat(),
        }


class MetricsClient:
    """Base client. Subclasses implement _emit; the public surface never raises."""

    async def put_metric(self, metric: Metric) -> None:
        try:
            await self._emit(metric)
        except Exception:
            logger.warning(
                f"Failed to record metric {metric.name}", exc_info=True,
            )

    async def track_duration(
        self, name: str, duration_ms: float,
        dimensions: dict[str, str] | None = None,
    ) -> None:
        await self.put_metric(Metric(
            name, duration_ms, MetricUnit.MILLISECONDS, dict(dimensions or {}),
        ))

    async def track_count(
        self, name: str, count: float = 1,
        dimensions: dict[str, str] | None = None,
    ) -> None:
        await self.put_metric(Metric(
            name, count, MetricUnit.COUNT, dict(dimensions or {}),
        ))

    async def track_error(self, operation: str, error: BaseException) -> None:
        await self.track_count("Errors", 1, {
            "Operation": operation,
            "ErrorType": type(error).__name__,
        })

    async def start(self) -> None:
        """Begin background work, if any. Called from the app lifespan."""

    async def shutdown(self) -> None:
        """Release resources and flush pending metrics."""

    async def _emit(self, metric: Metric) -> None:
        raise NotImplementedError


class NoOpMetricsClient(MetricsClient):
    """Metrics disabled."""

    async def put_metric(self, metric: Metric) -> None:
        return None

    async def _emit(self, metric: Metric) -> None:
        return None


class ConsoleMetricsClient(MetricsClient):
    """Writes each metric as one structured log line."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    async def _emit(self, metric: Metric) -> None:
        logger.log(
            self.level, f"metric {metric.name}",
            extra={"metric": metric.to_record()},
        )


class BufferedMetricsClient(MetricsClient):
    """Buffers metrics in memory and ships them in batches off the event loop.

    Subclasses implement _write_batch, which runs in a worker thread and
    receives at most max_batch metrics per call.
    """

    max_batch: int | None = None

    def __init__(
        self,
        buffer_size: int = 100,
        flush_interval_seconds: float = 60.0,
    ):
        self.buffer_size = max(1, buffer_size)
        self.flush_interval_seconds = flush_interval_seconds
        self._buffer: list[Metric] = []
        self._flush_task: asyncio.Task | None = None

    @property
    def pending(self) -> int:
        return len(self._buffer)

    async def _emit(self, metric: Metric) -> None:
        self._buffer.append(metric)
        if len(self._buffer) >= self.buffer_size:
            await self.flush()

    async def flush(self) -> None:
        """Ship the current buffer; unsent metrics go back in front."""
        if not self._buffer:
            return
        batch, self._buffer = self._buffer, []
        step = self.max_batch or len(batch)
        for start in range(0, len(batch), step):
            chunk = batch[start:start + step]
            try:
                await asyncio.to_thread(self._write_batch, chunk)
            except Exception:
                logger.error(
                    f"Failed to flush metrics to {self.destination}",
                    extra={"count": len(batch) - start}, exc_info=True,
                )
                self._buffer[:0] = batch[start:]
                return
        logger.debug(
            f"Flushed {len(batch)} metrics to {self.destination}",
            extra={"count": len(batch)},
        )

    @property
    def destination(self) -> str:
        return type(self).__name__

    def _write_batch(self, batch: list[Metric]) -> None:
        raise NotImplementedError

    async def start(self) -> None:
        if self._flush_task is None and self.flush_interval_seconds > 0:
            self._flush_task = asyncio.create_task(self._flush_periodically())

    async def _flush_periodically(self) -> None:
        while True:
            await asyncio.sleep(self.flush_interval_seconds)
            await self.flush()

    async def shutdown(self) -> None:
        if self._flush_task is not None:
            self._flush_task.cancel()
            try:
                await self._flush_task
            except asyncio.CancelledError:
                pass
            self._flush_task = None
        await self.flush()
        logger.info("Metrics client shutdown complete")


class BufferedFileMetricsClient(BufferedMetricsClient):
    """Appends buffered metrics to an NDJSON file."""

    def __init__(
        self,
        path: str | Path,
        buffer_size: int = 100,
        flush_interval_seconds: float = 60.0,
    ):
        super().__init__(buffer_size, flush_interval_seconds)
        self.path = Path(path)

    @property
    def destination(self) -> str:
        return str(self.path)

    def _write_batch(self, batch: list[Metric]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lines = "".join(
            json.dumps(m.to_record(), ensure_ascii=False) + "\n" for m in batch
        )
        with self.path.open("a", encoding="utf-8") as fh:
            fh.write(lines)


class CloudWatchMetricsClient(BufferedMetricsClient):
    """Publishes buffered metrics with CloudWatch PutMetricData."""

    # PutMetricData accepts at most this many datums per call
    max_batch = 20

    def __init__(
        self,
        namespace: str,
        region: str,
        buffer_size: int = 20,
        flush_interval_seconds: float = 60.0,
        client=None,
    ):
        super().__init__(buffer_size, flush_interval_seconds)
        self.namespace = namespace
        self.client = client or boto3.client("cloudwatch", region_name=region)

    @property
    def destination(self) -> str:
        return f"CloudWatch namespace {self.namespace}"

    def _write_batch(self, batch: list[Metric]) -> None:
        self.client.put_metric_data(
            Namespace=self.namespace,
            MetricData=[metric_datum(m) for m in batch],
        )


def metric_datum(metric: Metric) -> dict:
    """One PutMetricData entry."""
    return {
        "MetricName": metric.name,
        "Value": metric.value,
        "Unit": metric.unit.value,
        "Timestamp": metric.timestamp,
        "Dimensions": [
            {"Name": name, "Value": value}
            for name, value in metric.dimensions.items()
        ],
    }


def create_metrics_client(settings: Settings) -> MetricsClient:
    """Pick the metrics sink once, at startup."""
    if not settings.enable_metrics or settings.metrics_backend == MetricsBackend.DISABLED:
        return NoOpMetricsClient()
    if settings.metrics_backend == MetricsBackend.FILE:
        return BufferedFileMetricsClient(
            settings.metrics_file_path,
            buffer_size=settings.metrics_buffer_size,
            flush_interval_seconds=settings.metrics_flush_interval_seconds,
        )
    if settings.metrics_backend == MetricsBackend.CLOUDWATCH:
        return CloudWatchMetricsClient(
            settings.cloudwatch_namespace,
            settings.aws_region,
            buffer_size=min(
                settings.metrics_buffer_size, CloudWatchMetricsClient.max_batch,
            ),
            flush_interval_seconds=settings.metrics_flush_interval_seconds,
        )
    return ConsoleMetricsClient()


async def track_operation(
    metrics: MetricsClient,
    name: str,
    operation: Callable[[], Awaitable[T]],
    dimensions: dict[str, str] | None = None,
) -> T:
    """Time an async operation and record success/failure around it."""
    start = time.perf_counter()
    try:
        result = await operation()
    except Exception as e:
        duration_ms = (time.perf_counter() - start) * 1000
        await metrics.track_duration(name, duration_ms, dimensions)
        await metrics.track_count(f"{name}.Failure", 1, dimensions)
        await metrics.track_error(name, e)
        raise
    duration_ms = (time.perf_counter() - start) * 1000
    await metrics.track_duration(name, duration_ms, dimensions)
    await metrics.track_count(f"{name}.Success", 1, dimensions)
    return result
