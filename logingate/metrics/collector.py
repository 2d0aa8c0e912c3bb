# Copyright (c) 2025 Gimel Foundation and the persons identified as the document authors.
# All rights reserved. This file is subject to the Gimel Foundation's Legal Provisions Relating to GiFo Documents.
# See http://GimelFoundation.com or https://github.com/Gimel-Foundation for details.
# Code Components extracted from GiFo-RfC 0111 must include this license text and are provided without warranty.

"""
Prometheus metrics for the login gate.

This module counts login verdicts, times calls to the remote authorization
service and counts consent responses.
"""

import time
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from prometheus_client import (
    Counter, Histogram, CollectorRegistry, generate_latest
)


logger = logging.getLogger(__name__)


@dataclass
class MetricConfig:
    """Configuration for metrics collection."""

    enabled: bool = True
    namespace: str = "logingate"


class GateMetrics:
    """Metrics collector for login gate operations."""

    def __init__(self, config: Optional[MetricConfig] = None,
                 registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics collector.

        Args:
            config: Metrics configuration
            registry: Registry to register metrics in (a private one if None)
        """
        self.config = config or MetricConfig()
        self.registry = registry or CollectorRegistry()

        namespace = self.config.namespace

        self.login_verdicts = Counter(
            f'{namespace}_login_verdicts_total',
            'Total number of login verdicts',
            ['kind', 'code'],
            registry=self.registry
        )

        self.authorization_fetch_latency = Histogram(
            f'{namespace}_authorization_fetch_seconds',
            'Remote authorization lookup duration in seconds',
            ['result'],
            buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry
        )

        self.consent_responses = Counter(
            f'{namespace}_consent_responses_total',
            'Total number of consent responses',
            ['document', 'result'],
            registry=self.registry
        )

        if not self.config.enabled:
            logger.info("Metrics collection disabled")

    def record_verdict(self, kind: str, code: str) -> None:
        """Record a login verdict."""
        if self.config.enabled:
            self.login_verdicts.labels(kind=kind, code=code).inc()

    @contextmanager
    def time_fetch(self) -> Iterator[dict]:
        """
        Time a remote authorization lookup.

        The caller sets ``labels["result"]`` inside the block; it defaults to
        ``"error"`` if the block raises.
        """
        labels = {"result": "error"}
        start = time.perf_counter()
        try:
            yield labels
        finally:
            if self.config.enabled:
                self.authorization_fetch_latency.labels(
                    result=labels["result"]
                ).observe(time.perf_counter() - start)

    def record_consent_response(self, document: str, result: str) -> None:
        """Record the outcome of one consent response."""
        if self.config.enabled:
            self.consent_responses.labels(document=document, result=result).inc()

    def get_value(self, name: str, labels: Optional[dict] = None) -> Optional[float]:
        """Read a single sample value from the registry."""
        return self.registry.get_sample_value(name, labels or {})

    def export(self) -> bytes:
        """Return metrics in the Prometheus text exposition format."""
        return generate_latest(self.registry)
