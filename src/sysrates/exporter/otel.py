"""OpenTelemetry exporter – publishes computed rates via OTLP/HTTP."""

from __future__ import annotations

import logging
from typing import Any

from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import MetricReader, PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource

from ..config import OtelExporterConfig
from .base import BaseExporter, MetricSample

logger = logging.getLogger(__name__)

METER_NAME = "sysrates.rates"


def _otlp_reader(config: OtelExporterConfig) -> MetricReader:
    exporter_kwargs: dict[str, Any] = {
        "endpoint": f"{config.endpoint.rstrip('/')}/v1/metrics",
    }
    if config.headers:
        exporter_kwargs["headers"] = config.headers
    return PeriodicExportingMetricReader(
        OTLPMetricExporter(**exporter_kwargs),
        export_interval_millis=config.export_interval_ms,
    )


class OtelExporter(BaseExporter):
    """Records each rate :class:`MetricSample` as a synchronous gauge.

    By default a ``PeriodicExportingMetricReader`` pushes the gauges to the
    configured OTLP/HTTP endpoint every ``export_interval_ms``. Pass
    *metric_reader* to read them some other way (an ``InMemoryMetricReader``
    in tests, a Prometheus reader, ...). The provider is private to the
    exporter; the global OpenTelemetry provider is left alone.
    """

    def __init__(self, config: OtelExporterConfig, metric_reader: MetricReader | None = None) -> None:
        self._config = config
        resource = Resource.create({SERVICE_NAME: config.service_name})
        reader = metric_reader if metric_reader is not None else _otlp_reader(config)
        self._provider = MeterProvider(resource=resource, metric_readers=[reader])
        self._meter = self._provider.get_meter(METER_NAME)
        self._gauges: dict[str, Any] = {}

        if metric_reader is None:
            logger.info(
                "OtelExporter initialized → %s (service=%s)",
                config.endpoint,
                config.service_name,
            )

    def _gauge(self, sample: MetricSample) -> Any:
        gauge = self._gauges.get(sample.name)
        if gauge is None:
            gauge = self._meter.create_gauge(
                name=sample.name,
                unit=sample.unit,
                description=sample.description,
            )
            self._gauges[sample.name] = gauge
        return gauge

    def export(self, samples: list[MetricSample]) -> None:
        for s in samples:
            self._gauge(s).set(s.value, attributes=dict(s.labels))
        logger.debug("Recorded %d rate gauge(s)", len(samples))

    def shutdown(self) -> None:
        self._provider.shutdown()
        logger.info("OtelExporter shut down")
