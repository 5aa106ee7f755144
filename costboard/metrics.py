import os
from typing import Optional
from prometheus_client import Gauge, CollectorRegistry, generate_latest, CONTENT_TYPE_LATEST
from .schemas import CostReport

COST_ALERT_THRESHOLD = float(os.environ.get("COST_ALERT_THRESHOLD", "100.0"))


def scrape_metrics(report: Optional[CostReport], threshold: float = COST_ALERT_THRESHOLD):
    """Prometheus text for one report; an empty scrape when nothing is loaded."""
    registry = CollectorRegistry()
    month_total = Gauge("cost_month_total", "Projected cost for the whole month", registry=registry)
    to_date_total = Gauge("cost_month_to_date_total", "Cost incurred so far this month", registry=registry)
    service_total = Gauge("cost_service_month_total", "Projected monthly cost by service", ["service"],
                          registry=registry)
    servers = Gauge("cost_servers", "Compute servers by status", ["status"], registry=registry)
    threshold_gauge = Gauge("cost_threshold", "Configured cost threshold", registry=registry)

    threshold_gauge.set(threshold)
    if report is not None:
        month_total.set(report.totals.monthly)
        to_date_total.set(report.totals.current)
        for slice_ in report.chart:
            service_total.labels(service=slice_.name).set(slice_.cost)
        servers.labels(status="Running").set(report.summary.running)
        servers.labels(status="Stopped").set(report.summary.stopped)
    return generate_latest(registry), CONTENT_TYPE_LATEST
