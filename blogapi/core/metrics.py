"""Prometheus instrumentation for the HTTP surface and the error boundary."""

from __future__ import annotations

import os
from typing import Callable, cast

from fastapi import FastAPI
from fastapi.responses import Response
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, multiprocess
from prometheus_client.openmetrics.exposition import generate_latest as generate_openmetrics
from prometheus_fastapi_instrumentator import Instrumentator, metrics

from blogapi.core.records import CORRELATION_ID_STATE_KEY

REQUEST_LATENCY_BUCKETS = (
    0.005,
    0.01,
    0.025,
    0.05,
    0.1,
    0.25,
    0.5,
    1.0,
    2.5,
    5.0,
    10.0,
    float("inf"),
)


def _get_or_create_counter(name: str, documentation: str, labelnames: tuple[str, ...]) -> Counter:
    # create_app may run more than once per process (tests, reload)
    existing = REGISTRY._names_to_collectors.get(f"{name}_total")  # noqa: SLF001
    if isinstance(existing, Counter):
        return existing
    return Counter(name, documentation, labelnames=labelnames)


ERRORS_TOTAL = _get_or_create_counter(
    "app_errors",
    "Errors rendered by the error boundary.",
    ("status", "operational"),
)

FAULTS_TOTAL = _get_or_create_counter(
    "app_process_faults",
    "Process-level faults observed by the fault monitor.",
    ("source", "operational"),
)


def record_error(status_code: int, operational: bool) -> None:
    ERRORS_TOTAL.labels(str(status_code), str(operational).lower()).inc()


def record_fault(source: str, operational: bool) -> None:
    FAULTS_TOTAL.labels(source, str(operational).lower()).inc()


def setup_metrics(app: FastAPI) -> None:
    """Attach Prometheus instrumentation and expose the /metrics endpoint."""

    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        should_round_latency_decimals=True,
        round_latency_decimals=4,
        should_respect_env_var=False,
        should_instrument_requests_inprogress=False,
        excluded_handlers=[r"/metrics"],
    )

    instrumentator.add(metrics.default(should_only_respect_2xx_for_highr=True))

    latency = _latency_with_correlation_id()
    if latency is not None:
        instrumentator.add(latency)

    instrumentator.instrument(app)
    _register_metrics_endpoint(app, instrumentator.registry)


def _latency_with_correlation_id() -> Callable[[metrics.Info], None] | None:
    """Per-endpoint latency carrying the correlation id as an exemplar."""

    try:
        latency_histogram = Histogram(
            "app_request_latency_seconds",
            "Latency distribution enriched with correlation_id exemplars.",
            labelnames=("handler", "method", "status"),
            buckets=REQUEST_LATENCY_BUCKETS,
        )
    except ValueError as error:  # pragma: no cover - occurs only on reload
        if "Duplicated timeseries" in str(error) or "Duplicated time series" in str(error):
            return None
        raise

    def instrumentation(info: metrics.Info) -> None:
        correlation_id = getattr(info.request.state, CORRELATION_ID_STATE_KEY, None)
        exemplar = {"correlation_id": correlation_id} if correlation_id else None

        labels = (info.modified_handler, info.method, info.modified_status)

        try:
            latency_histogram.labels(*labels).observe(info.modified_duration, exemplar=exemplar)
        except TypeError:
            latency_histogram.labels(*labels).observe(info.modified_duration)

    return instrumentation


def _register_metrics_endpoint(app: FastAPI, registry: CollectorRegistry) -> None:
    """Expose /metrics in OpenMetrics format so exemplars survive."""

    @app.get("/metrics", include_in_schema=False, tags=["observability"])
    async def metrics_endpoint() -> Response:
        active_registry = registry
        if "PROMETHEUS_MULTIPROC_DIR" in os.environ:
            active_registry = CollectorRegistry()
            collector = cast(
                Callable[[CollectorRegistry], None],
                multiprocess.MultiProcessCollector,
            )
            collector(active_registry)

        generate = cast(Callable[[CollectorRegistry], bytes], generate_openmetrics)
        media_type = "application/openmetrics-text; version=1.0.0; charset=utf-8"
        return Response(content=generate(active_registry), media_type=media_type)


__all__ = ["record_error", "record_fault", "setup_metrics"]
