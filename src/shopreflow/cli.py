"""Command-line interface for the shopreflow production reflow tool."""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional

from shopreflow.documents.loader import (
    dump_reflow_result,
    load_reflow_input,
    write_json,
)
from shopreflow.domain.errors import ReflowError
from shopreflow.domain.models import (
    UTC,
    MaintenanceWindow,
    ManufacturingOrder,
    ReflowInput,
    ReflowResult,
    Shift,
    WorkCenter,
    WorkOrder,
    late_manufacturing_orders,
)
from shopreflow.domain.policies import ReflowPolicy
from shopreflow.output.pdf_generator import PDFGenerator
from shopreflow.output.report_generator import ReportGenerator
from shopreflow.scheduling.scheduler import ReflowScheduler
from shopreflow.validation.validator import ScheduleValidator

logger = logging.getLogger(__name__)


def _at(day: int, hour: int, minute: int = 0) -> datetime:
    """An instant in the demo week. Day 15 is Monday, January 15, 2024."""
    return datetime(2024, 1, day, hour, minute, tzinfo=UTC)


def create_delay_cascade_scenario() -> ReflowInput:
    """A chain of three orders on one line after the first one runs long.

    WO-1001 was planned for 240 minutes but now needs 360, so its stored end
    is stale and both successors have to slide; the last one spills into
    the next day's shift.
    """
    line = WorkCenter(name="Extrusion Line 1", shifts=Shift.weekdays(8, 17))
    orders = [
        WorkOrder(
            id="WO-1001",
            work_center_id=line.name,
            start=_at(15, 8),
            end=_at(15, 12),
            duration_minutes=360,
            manufacturing_order_id="MO-100",
        ),
        WorkOrder(
            id="WO-1002",
            work_center_id=line.name,
            start=_at(15, 12),
            end=_at(15, 15),
            duration_minutes=180,
            depends_on=("WO-1001",),
            manufacturing_order_id="MO-100",
        ),
        WorkOrder(
            id="WO-1003",
            work_center_id=line.name,
            start=_at(15, 15),
            end=_at(15, 17),
            duration_minutes=120,
            depends_on=("WO-1002",),
            manufacturing_order_id="MO-100",
        ),
    ]
    mos = [
        ManufacturingOrder(
            id="MO-100", item_id="PIPE-50MM", quantity=400, due_date=_at(16, 12)
        )
    ]
    return ReflowInput(work_orders=orders, work_centers=[line], manufacturing_orders=mos)


def create_shift_maintenance_scenario() -> ReflowInput:
    """Orders that cross a shift boundary and a planned maintenance window."""
    mill = WorkCenter(
        name="CNC Mill 2",
        shifts=Shift.weekdays(8, 17),
        maintenance_windows=[
            MaintenanceWindow(
                start=_at(16, 10), end=_at(16, 12), reason="Spindle replacement"
            )
        ],
    )
    orders = [
        # Starts an hour before close, so the second hour runs the next morning.
        WorkOrder(
            id="WO-2001",
            work_center_id=mill.name,
            start=_at(15, 16),
            end=_at(15, 18),
            duration_minutes=120,
        ),
        # Pauses for the spindle replacement and resumes at noon.
        WorkOrder(
            id="WO-2002",
            work_center_id=mill.name,
            start=_at(16, 9),
            end=_at(16, 11),
            duration_minutes=120,
        ),
        # Planned to start in the middle of the maintenance window.
        WorkOrder(
            id="WO-2003",
            work_center_id=mill.name,
            start=_at(16, 10, 30),
            end=_at(16, 11, 30),
            duration_minutes=60,
        ),
    ]
    return ReflowInput(work_orders=orders, work_centers=[mill])


def create_complex_scenario() -> ReflowInput:
    """Two work centers, cross-center dependencies, and a fixed maintenance order."""
    assembly = WorkCenter(
        name="Assembly",
        shifts=Shift.weekdays(8, 17) + [Shift(day_of_week=6, start_hour=8, end_hour=12)],
        maintenance_windows=[
            MaintenanceWindow(
                start=_at(16, 8), end=_at(16, 9), reason="Fixture calibration"
            )
        ],
    )
    paint = WorkCenter(
        name="Paint Booth",
        shifts=Shift.weekdays(6, 14) + Shift.weekdays(14, 22),
    )
    orders = [
        WorkOrder(
            id="WO-3001",
            work_center_id=assembly.name,
            start=_at(15, 8),
            end=_at(15, 12),
            duration_minutes=240,
            manufacturing_order_id="MO-300",
        ),
        WorkOrder(
            id="WO-3002",
            work_center_id=paint.name,
            start=_at(15, 10),
            end=_at(15, 13),
            duration_minutes=180,
            depends_on=("WO-3001",),
            manufacturing_order_id="MO-300",
        ),
        WorkOrder(
            id="WO-3003",
            work_center_id=paint.name,
            start=_at(15, 14),
            end=_at(15, 15, 30),
            duration_minutes=90,
            depends_on=("WO-3002",),
            manufacturing_order_id="MO-300",
        ),
        WorkOrder(
            id="PM-3100",
            work_center_id=paint.name,
            start=_at(15, 15),
            end=_at(15, 17),
            duration_minutes=120,
            is_maintenance=True,
        ),
        WorkOrder(
            id="WO-3004",
            work_center_id=assembly.name,
            start=_at(15, 16),
            end=_at(15, 17),
            duration_minutes=60,
            depends_on=("WO-3003",),
            manufacturing_order_id="MO-300",
        ),
        WorkOrder(
            id="WO-3005",
            work_center_id=assembly.name,
            start=_at(16, 9),
            end=_at(16, 11),
            duration_minutes=120,
            manufacturing_order_id="MO-301",
        ),
    ]
    mos = [
        ManufacturingOrder(
            id="MO-300", item_id="CABINET-A", quantity=20, due_date=_at(15, 18)
        ),
        ManufacturingOrder(
            id="MO-301", item_id="CABINET-B", quantity=5, due_date=_at(17, 17)
        ),
    ]
    return ReflowInput(
        work_orders=orders, work_centers=[assembly, paint], manufacturing_orders=mos
    )


SCENARIOS = {
    "delay-cascade": create_delay_cascade_scenario,
    "shift-maintenance": create_shift_maintenance_scenario,
    "complex": create_complex_scenario,
}


def print_result(reflow_input: ReflowInput, result: ReflowResult, stats: dict) -> None:
    """Print a console summary of one reflow run."""
    print(f"  Orders: {stats['total_orders']} "
          f"({stats['maintenance_orders']} maintenance)")
    print(f"  Moved: {stats['moved_orders']}, changes: {stats['total_changes']}")
    if stats["total_start_delay_minutes"]:
        print(f"  Total start delay: {stats['total_start_delay_minutes'] / 60:.1f} hours")

    print("\n  Changes:")
    if not result.changes:
        print("    (none)")
    for change in result.changes:
        print(f"    {change}")
        if change.explanation:
            print(f"      {change.explanation}")

    late = late_manufacturing_orders(
        reflow_input.manufacturing_orders, result.updated_orders
    )
    for mo_id, lateness in sorted(late.items()):
        print(f"\n  WARNING: {mo_id} now finishes "
              f"{lateness.total_seconds() / 3600:.1f} hours after its due date")

    print(f"\n  Explanation: {result.explanation}")


def run_demo(
    scenario: Optional[str] = None,
    output_path: Optional[str] = None,
    policy: Optional[ReflowPolicy] = None,
) -> None:
    """Run one or all of the built-in demo scenarios."""
    names = [scenario] if scenario else list(SCENARIOS)
    scheduler = ReflowScheduler(policy)

    for name in names:
        print("=" * 60)
        print(f"Scenario: {name}")
        print("=" * 60)

        reflow_input = SCENARIOS[name]()
        result, stats = scheduler.reflow_with_stats(reflow_input)
        print_result(reflow_input, result, stats)

        if output_path:
            path = Path(output_path)
            if len(names) > 1:
                path = path.with_name(f"{path.stem}-{name}{path.suffix}")
            print(f"\nGenerating PDF: {path}")
            PDFGenerator().generate(reflow_input, result, path)
            print("  PDF created successfully!")
        print()


def run_reflow(
    input_path: str,
    output_json: Optional[str] = None,
    pdf_path: Optional[str] = None,
    report_path: Optional[str] = None,
    policy: Optional[ReflowPolicy] = None,
) -> None:
    """Reflow a JSON input document."""
    reflow_input = load_reflow_input(input_path)
    print(f"Reflowing {len(reflow_input.work_orders)} work orders from {input_path}...")

    scheduler = ReflowScheduler(policy)
    result, stats = scheduler.reflow_with_stats(reflow_input)
    print_result(reflow_input, result, stats)

    document = dump_reflow_result(result)
    if output_json:
        write_json(document, output_json)
        print(f"\nWrote result: {output_json}")
    if report_path:
        ReportGenerator(scheduler.walker).generate(reflow_input, result, report_path)
        print(f"Wrote report: {report_path}")
    if pdf_path:
        PDFGenerator().generate(reflow_input, result, pdf_path)
        print(f"Wrote PDF: {pdf_path}")


def run_validate(input_path: str, policy: Optional[ReflowPolicy] = None) -> bool:
    """Validate a JSON input document as-is. Returns True if it is valid."""
    reflow_input = load_reflow_input(input_path)
    result = ScheduleValidator(policy).validate(
        reflow_input.work_orders, reflow_input.work_centers
    )

    if result.is_valid:
        print(f"{input_path}: Validation PASSED "
              f"({len(reflow_input.work_orders)} work orders)")
        return True

    print(f"{input_path}: Validation FAILED ({len(result.errors)} errors)")
    for error in result.errors[:20]:
        print(f"    - {error}")
    if len(result.errors) > 20:
        print(f"    ... and {len(result.errors) - 20} more errors")
    return False


def _add_policy_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--max-snap-iterations",
        type=int,
        default=ReflowPolicy.max_snap_iterations,
        help="Bound on the search for an available start (default: %(default)s)",
    )
    parser.add_argument(
        "--end-tolerance",
        type=float,
        default=ReflowPolicy.end_tolerance_seconds,
        help="Allowed end drift in seconds when validating (default: %(default)s)",
    )
    parser.add_argument(
        "--wall-clock-without-shifts",
        action="store_true",
        help="Ignore maintenance windows on work centers that have no shifts",
    )


def _policy_from_args(args: argparse.Namespace) -> ReflowPolicy:
    return ReflowPolicy(
        max_snap_iterations=args.max_snap_iterations,
        end_tolerance_seconds=args.end_tolerance,
        maintenance_without_shifts=not args.wall_clock_without_shifts,
    )


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(
        description="shopreflow - Production Schedule Reflow Tool",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s demo                              Run all demo scenarios
  %(prog)s demo --scenario complex           Run one demo scenario
  %(prog)s demo --output reflow.pdf          Generate PDF timelines

  %(prog)s reflow orders.json                Reflow a schedule document
  %(prog)s reflow orders.json -j out.json    Write the reflowed schedule
  %(prog)s reflow orders.json --report r.txt Write a text report

  %(prog)s validate orders.json              Check a schedule without moving it
        """,
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Demo command
    demo_parser = subparsers.add_parser("demo", help="Run built-in demo scenarios")
    demo_parser.add_argument(
        "--scenario", "-s",
        type=str,
        choices=sorted(SCENARIOS),
        help="Scenario to run (default: all)",
    )
    demo_parser.add_argument(
        "--output", "-o",
        type=str,
        help="Output PDF file path",
    )
    _add_policy_arguments(demo_parser)

    # Reflow command
    reflow_parser = subparsers.add_parser("reflow", help="Reflow a JSON schedule document")
    reflow_parser.add_argument("input", type=str, help="Input JSON document")
    reflow_parser.add_argument(
        "--output-json", "-j",
        type=str,
        help="Write the reflow result as JSON",
    )
    reflow_parser.add_argument(
        "--pdf", "-p",
        type=str,
        help="Write PDF timelines",
    )
    reflow_parser.add_argument(
        "--report", "-r",
        type=str,
        help="Write a text report",
    )
    _add_policy_arguments(reflow_parser)

    # Validate command
    validate_parser = subparsers.add_parser(
        "validate",
        help="Validate a JSON schedule document without moving anything",
    )
    validate_parser.add_argument("input", type=str, help="Input JSON document")
    _add_policy_arguments(validate_parser)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    try:
        policy = _policy_from_args(args)
        if args.command == "demo":
            run_demo(args.scenario, args.output, policy)
            return 0
        elif args.command == "reflow":
            run_reflow(args.input, args.output_json, args.pdf, args.report, policy)
            return 0
        elif args.command == "validate":
            return 0 if run_validate(args.input, policy) else 1
    except (ReflowError, ValueError, OSError, ImportError) as exc:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
