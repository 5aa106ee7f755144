"""Cost rollups for a loaded charges document.

Every function here is a pure function of the document and an explicit `now`.
A document that reached this module has already been validated by the loader,
so nothing below raises on well-formed input.
"""
import datetime as dt
import functools
import logging
from typing import Dict, Iterator, List, Optional, Tuple, Union

from .clock import STORAGE_PRORATION_DAYS, elapsed_days, elapsed_hours, monthly_hours
from .schemas import (
    CatalogService, ChartSlice, ComputeService, CostDocument, CostReport, CountedService,
    CurrentCost, GrandTotal, InstanceType, MonthlyCost, RegionCost, Resource, ResourceCost,
    ServerLine, ServerSummary, ServiceCost, SubService, SubServiceCost,
)

LOG = logging.getLogger(__name__)

CHART_LABELS = {
    "Elastic Compute Cloud": "EC2 Servers",
    "Virtual Private Cloud": "VPC",
    "AMI": "AMI",
}
DEFAULT_SERVICES_LABEL = "Default Services"


def compute_resource_cost(resource: Resource, sub_service: InstanceType,
                          volume_unit_price: float, now: dt.datetime) -> ResourceCost:
    hours = elapsed_hours(resource.created_date, now)
    days = elapsed_days(resource.created_date, now)
    month_hours = monthly_hours(now)

    current_storage = resource.volume * volume_unit_price * (days / STORAGE_PRORATION_DAYS)
    current_compute = sub_service.amount_per_iteration * hours if resource.running else 0.0
    monthly_storage = resource.volume * volume_unit_price
    monthly_compute = sub_service.amount_per_iteration * month_hours if resource.running else 0.0

    return ResourceCost(
        current=CurrentCost(
            storage=current_storage,
            compute=current_compute,
            total=current_storage + current_compute,
            hours=hours,
            days=days,
        ),
        monthly=MonthlyCost(
            storage=monthly_storage,
            compute=monthly_compute,
            total=monthly_storage + monthly_compute,
            hours=month_hours,
        ),
    )


def region_count(value: Union[int, list]) -> int:
    return len(value) if isinstance(value, list) else value


def sub_service_monthly_cost(sub_service: SubService) -> float:
    count = sum(region_count(v) for v in sub_service.enabled_region.values())
    return sub_service.amount_per_iteration * sub_service.iterations_per_month * count


def iter_resources(service: ComputeService) -> Iterator[Tuple[InstanceType, str, Resource]]:
    """Servers in encounter order: sub-service, then region, then list order."""
    for instance_type in service.sub_services:
        for region, resources in instance_type.enabled_region.items():
            for resource in resources:
                yield instance_type, region, resource


@functools.singledispatch
def service_cost(service, now: dt.datetime) -> ServiceCost:
    raise TypeError(f"no cost rule for {type(service).__name__}")


@service_cost.register
def _compute_service_cost(service: ComputeService, now: dt.datetime) -> ServiceCost:
    by_type: Dict[str, List[float]] = {}
    by_region: Dict[str, float] = {}
    for instance_type in service.sub_services:
        by_type.setdefault(instance_type.service, [0.0, 0.0])
    for instance_type, region, resource in iter_resources(service):
        cost = compute_resource_cost(resource, instance_type, service.volume_amount_per_iteration, now)
        totals = by_type[instance_type.service]
        totals[0] += cost.monthly.total
        totals[1] += cost.current.total
        by_region[region] = by_region.get(region, 0.0) + cost.monthly.total
    return ServiceCost(
        name=service.service,
        kind=service.kind,
        description=service.desc,
        monthly=sum(t[0] for t in by_type.values()),
        current=sum(t[1] for t in by_type.values()),
        sub_services=[SubServiceCost(name=n, monthly=m, current=c) for n, (m, c) in by_type.items()],
        regions=[RegionCost(region=r, monthly=m) for r, m in by_region.items()],
    )


@service_cost.register
def _counted_service_cost(service: CountedService, now: dt.datetime) -> ServiceCost:
    subs = []
    by_region: Dict[str, float] = {}
    for sub in service.sub_services:
        monthly = sub_service_monthly_cost(sub)
        subs.append(SubServiceCost(name=sub.service, monthly=monthly, current=monthly))
        for region, value in sub.enabled_region.items():
            amount = sub.amount_per_iteration * sub.iterations_per_month * region_count(value)
            by_region[region] = by_region.get(region, 0.0) + amount
    total = sum(s.monthly for s in subs)
    return ServiceCost(
        name=service.service,
        kind=service.kind,
        description=service.desc,
        monthly=total,
        current=total,
        sub_services=subs,
        regions=[RegionCost(region=r, monthly=m) for r, m in by_region.items()],
    )


@service_cost.register
def _catalog_service_cost(service: CatalogService, now: dt.datetime) -> ServiceCost:
    regions = []
    for region, entries in service.sub_services.items():
        cost = sum(e.used_ebs_size * service.amount_per_iteration for e in entries)
        regions.append(RegionCost(region=region, monthly=cost, entries=entries))
    total = sum(r.monthly for r in regions)
    return ServiceCost(
        name=service.service,
        kind=service.kind,
        description=service.desc,
        monthly=total,
        current=total,
        regions=regions,
    )


def service_monthly_cost(service, now: dt.datetime) -> float:
    return service_cost(service, now).monthly


def service_current_cost(service, now: dt.datetime) -> float:
    """Elapsed-time cost for resource-bearing services, full month for the rest."""
    return service_cost(service, now).current


def _grand_total(costs: List[ServiceCost], flat_total: float) -> GrandTotal:
    return GrandTotal(
        monthly=sum(c.monthly for c in costs) + flat_total,
        current=sum(c.current for c in costs) + flat_total,
    )


def compute_grand_total(document: CostDocument, now: dt.datetime) -> GrandTotal:
    costs = [service_cost(s, now) for s in document.usable_services]
    return _grand_total(costs, sum(s.total_amount for s in document.default_services))


def rank_servers(document: CostDocument, now: dt.datetime) -> List[ServerLine]:
    """All compute resources, most expensive month first; ties keep document order."""
    found = []
    for service in document.usable_services:
        if not isinstance(service, ComputeService):
            continue
        for instance_type, region, resource in iter_resources(service):
            cost = compute_resource_cost(resource, instance_type, service.volume_amount_per_iteration, now)
            found.append((instance_type, region, resource, service.volume_amount_per_iteration, cost))
    found.sort(key=lambda item: item[4].monthly.total, reverse=True)
    return [
        ServerLine(
            key=f"{resource.name}-{rank}",
            name=resource.name,
            status=resource.status,
            instance_type=instance_type.service,
            region=region,
            volume=resource.volume,
            created_date=resource.created_date,
            instance_price=instance_type.amount_per_iteration,
            volume_price=volume_price,
            cost=cost,
        )
        for rank, (instance_type, region, resource, volume_price, cost) in enumerate(found)
    ]


def build_report(document: CostDocument, now: dt.datetime, threshold: Optional[float] = None) -> CostReport:
    services = [service_cost(s, now) for s in document.usable_services]
    flat_total = sum(s.total_amount for s in document.default_services)
    servers = rank_servers(document, now)

    chart = {label: 0.0 for label in CHART_LABELS.values()}
    for service in services:
        label = CHART_LABELS.get(service.name, service.name)
        chart[label] = chart.get(label, 0.0) + service.monthly
    chart[DEFAULT_SERVICES_LABEL] = flat_total

    totals = _grand_total(services, flat_total)
    server_monthly = sum(s.monthly for s in services if s.kind == ComputeService.kind)
    server_current = sum(s.current for s in services if s.kind == ComputeService.kind)
    summary = ServerSummary(
        running=sum(1 for s in servers if s.status == "Running"),
        stopped=sum(1 for s in servers if s.status == "Stopped"),
        server_monthly=server_monthly,
        server_current=server_current,
        other_monthly=sum(s.monthly for s in services if s.kind != ComputeService.kind) + flat_total,
    )
    LOG.debug("report: %d services, %d servers, monthly=%.2f current=%.2f",
              len(services), len(servers), totals.monthly, totals.current)
    return CostReport(
        generated_at=now,
        monthly_hours=monthly_hours(now),
        totals=totals,
        over_threshold=threshold is not None and totals.monthly > threshold,
        services=services,
        default_services=list(document.default_services),
        servers=servers,
        chart=[ChartSlice(name=n, cost=c) for n, c in chart.items()],
        summary=summary,
        skipped_services=list(document.skipped_services),
    )
