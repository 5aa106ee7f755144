import argparse
import logging
import os
import sys
from typing import List, Optional
from .aggregator import build_report
from .clock import local_now, parse_timestamp
from .errors import DocumentNotFound, DocumentParseError, DocumentValidationError
from .loader import CHARGES_PATH, load_default_document
from .metrics import COST_ALERT_THRESHOLD
from .schemas import CostReport

LOG = logging.getLogger(__name__)


def render_text(report: CostReport, top: Optional[int] = None) -> str:
    lines = [
        f"Monthly Cost: ${report.totals.monthly:.2f}",
        f"Current Cost to Date: ${report.totals.current:.2f}",
    ]
    if report.over_threshold:
        lines.append("WARNING: monthly cost is above the alert threshold")
    lines.append("")
    lines.append("Monthly Cost Breakdown")
    for slice_ in report.chart:
        lines.append(f"  {slice_.name:<20} ${slice_.cost:>10.2f}")

    s = report.summary
    lines.append("")
    lines.append(f"Running Servers: {s.running}  Stopped Servers: {s.stopped}")
    lines.append(f"Monthly Server Costs: ${s.server_monthly:.2f}  Current Server Costs: ${s.server_current:.2f}")
    lines.append(f"Other Services Monthly Cost: ${s.other_monthly:.2f}")

    servers = report.servers if top is None else report.servers[:top]
    lines.append("")
    lines.append(f"EC2 Servers ({len(report.servers)} total)")
    for server in servers:
        status = server.status
        if server.status == "Running":
            status += f" for {server.cost.current.days}d"
        lines.append(f"  {server.name:<30} {server.instance_type:<12} {server.region:<14} {status:<16}"
                     f" monthly ${server.cost.monthly.total:>9.2f}  current ${server.cost.current.total:>9.2f}")

    others = [svc for svc in report.services if svc.kind != "compute"]
    if others or report.default_services:
        lines.append("")
        lines.append("Other AWS Services")
    for svc in others:
        lines.append(f"  {svc.name:<30} ${svc.monthly:>10.2f}")
        for region in svc.regions:
            lines.append(f"    {region.region:<28} ${region.monthly:>10.2f}")
            for entry in region.entries:
                lines.append(f"      {entry.name:<26} {entry.used_ebs_size:g} GB")
    for flat in report.default_services:
        desc = f" ({flat.desc})" if flat.desc else ""
        lines.append(f"  {flat.name}{desc}: ${flat.total_amount:.2f}")

    for skipped in report.skipped_services:
        lines.append(f"skipped service #{skipped.index} {skipped.service!r}: {skipped.reason}")
    return "\n".join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Summarise a charges.json cost document")
    parser.add_argument("--file", default=CHARGES_PATH)
    parser.add_argument("--now", type=parse_timestamp,
                        help="ISO timestamp to evaluate at (default: current time)")
    parser.add_argument("--json", action="store_true", help="print the full report as JSON")
    parser.add_argument("--top", type=int, default=None, help="only list the N most expensive servers")
    args = parser.parse_args(argv)

    now = args.now or local_now()
    try:
        document = load_default_document(args.file)
    except DocumentNotFound as e:
        print(f"error: {e}", file=sys.stderr)
        return 2
    except (DocumentParseError, DocumentValidationError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    if document is None:
        print(f"error: no charges document at {args.file}, pass --file", file=sys.stderr)
        return 2

    report = build_report(document, now, threshold=COST_ALERT_THRESHOLD)
    if args.json:
        print(report.model_dump_json(indent=2))
    else:
        print(render_text(report, top=args.top))
    return 0


if __name__ == "__main__":
    logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"), format="[costboard] %(levelname)s %(message)s")
    sys.exit(main())
