"""
Tracing utilities for latency benchmarking.

Wraps OpenTelemetry so benchmark phases (cold start, batch, comparison)
show up as spans. Individual trials are never wrapped in spans: span
bookkeeping would land inside the measured interval.
"""

import logging
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import ConsoleSpanExporter, SimpleSpanProcessor
from opentelemetry.trace import Status, StatusCode

logger = logging.getLogger(__name__)


class TracingConfig:
    """Configuration for tracing setup."""

    def __init__(
        self,
        service_name: str = "latency-lab",
        enable_console_export: bool = False,
    ):
        self.service_name = service_name
        self.enable_console_export = enable_console_export


class Tracer:
    """Thin OpenTelemetry tracer with a private provider.

    The provider is owned by the instance instead of being installed
    globally, so several tracers (one per CLI run or per test) can coexist.
    """

    def __init__(self, config: Optional[TracingConfig] = None):
        self.config = config or TracingConfig()
        self._provider: Optional[TracerProvider] = None
        self._otel_tracer = None
        self._initialized = False

    def initialize(self) -> "Tracer":
        """Initialize the tracer provider."""
        if self._initialized:
            return self

        resource = Resource.create({"service.name": self.config.service_name})
        self._provider = TracerProvider(resource=resource)
        if self.config.enable_console_export:
            self._provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))
        self._otel_tracer = self._provider.get_tracer(self.config.service_name)

        self._initialized = True
        logger.debug("Tracing initialized for %s", self.config.service_name)
        return self

    def shutdown(self) -> None:
        """Flush and shut down the provider."""
        if self._provider is not None:
            self._provider.shutdown()
        self._provider = None
        self._otel_tracer = None
        self._initialized = False

    @contextmanager
    def span(
        self,
        name: str,
        attributes: Optional[dict] = None,
    ) -> Iterator[Any]:
        """Create a traced span around a benchmark phase.

        Usage:
            with tracer.span("batch", {"trials": 100}) as span:
                ...
                span.set_attribute("mean_ns", summary.mean_ns)
        """
        if not self._initialized:
            self.initialize()

        span_obj = self._otel_tracer.start_span(name)
        for key, value in (attributes or {}).items():
            if value is not None:
                span_obj.set_attribute(key, value)

        try:
            yield span_obj
        except Exception as e:
            span_obj.set_status(Status(StatusCode.ERROR, str(e)))
            span_obj.record_exception(e)
            raise
        finally:
            span_obj.end()
