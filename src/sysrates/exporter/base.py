"""Gauge samples and the exporter interface."""

from __future__ import annotations

import abc
from dataclasses import dataclass
from typing import Any


@dataclass
class MetricSample:
    """A single gauge value derived from a rate snapshot."""

    name: str
    value: float
    unit: str
    timestamp: float
    labels: dict[str, str]
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "value": self.value,
            "unit": self.unit,
            "timestamp": self.timestamp,
            "labels": self.labels,
            "description": self.description,
        }


class BaseExporter(abc.ABC):
    """Abstract base for exporters that receive metric samples."""

    @abc.abstractmethod
    def export(self, samples: list[MetricSample]) -> None:
        """Export a batch of metric samples."""

    @abc.abstractmethod
    def shutdown(self) -> None:
        """Flush and release resources."""
