"""Text report output for reflow analysis.

This module creates a plain-text report showing:
- Work center calendars and maintenance windows
- Original and reflowed orders, with the working segments each one consumes
- Every change and the overall explanation
- Manufacturing orders that now finish after their due date
"""

from collections import defaultdict
from pathlib import Path
from typing import Optional, Union

from shopreflow.domain.errors import SchedulingImpossibleError
from shopreflow.domain.models import (
    ReflowInput,
    ReflowResult,
    WorkCenter,
    WorkOrder,
    late_manufacturing_orders,
)
from shopreflow.domain.time_walker import TimeWalker

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


class ReportGenerator:
    """Generates a human-readable reflow report.

    Example:
        >>> generator = ReportGenerator()
        >>> print(generator.generate_to_string(reflow_input, result))
    """

    def __init__(self, walker: Optional[TimeWalker] = None):
        self.walker = walker or TimeWalker()

    def generate(
        self,
        reflow_input: ReflowInput,
        result: ReflowResult,
        output_path: Union[str, Path],
    ) -> str:
        """Generate the report and save it to a file.

        Args:
            reflow_input: The input that was reflowed.
            result: The reflow result.
            output_path: Path to save the text file.

        Returns:
            The generated text content.
        """
        content = self._generate_content(reflow_input, result)
        Path(output_path).write_text(content)
        return content

    def generate_to_string(
        self,
        reflow_input: ReflowInput,
        result: ReflowResult,
    ) -> str:
        """Generate the report and return it as a string."""
        return self._generate_content(reflow_input, result)

    def _generate_content(
        self,
        reflow_input: ReflowInput,
        result: ReflowResult,
    ) -> str:
        lines = []
        centers = {c.name: c for c in reflow_input.work_centers}

        lines.append("=" * 80)
        lines.append("PRODUCTION SCHEDULE REFLOW REPORT")
        lines.append("=" * 80)
        lines.append("")
        lines.append(f"Work Orders: {len(reflow_input.work_orders)}")
        lines.append(f"Work Centers: {len(reflow_input.work_centers)}")
        lines.append(f"Orders Moved: {len(result.moved_order_ids)}")
        lines.append(f"Changes: {len(result.changes)}")
        lines.append("")

        # Calendars
        lines.append("-" * 80)
        lines.append("WORK CENTERS")
        lines.append("-" * 80)
        for center in reflow_input.work_centers:
            lines.append(f"{center.name}")
            lines.append(f"  Shifts: {self._format_shifts(center)}")
            for window in center.maintenance_windows:
                reason = f" ({window.reason})" if window.reason else ""
                lines.append(
                    f"  Maintenance: {self._ts(window.start)} - {self._ts(window.end)}{reason}"
                )
        lines.append("")

        lines.append("-" * 80)
        lines.append("ORIGINAL SCHEDULE")
        lines.append("-" * 80)
        lines.extend(self._order_table(reflow_input.work_orders))
        lines.append("")

        lines.append("-" * 80)
        lines.append("REFLOWED SCHEDULE")
        lines.append("-" * 80)
        moved = set(result.moved_order_ids)
        by_center: dict[str, list[WorkOrder]] = defaultdict(list)
        for order in result.updated_orders:
            by_center[order.work_center_id].append(order)
        for center_name in sorted(by_center):
            lines.append(f"{center_name}:")
            for order in sorted(by_center[center_name], key=lambda o: o.start):
                marker = "*" if order.id in moved else " "
                kind = " [maintenance]" if order.is_maintenance else ""
                lines.append(
                    f" {marker} {order.id:<12} {self._ts(order.start)} - "
                    f"{self._ts(order.end)} ({order.duration_minutes} min){kind}"
                )
                center = centers.get(center_name)
                if center is not None and not order.is_maintenance:
                    lines.extend(self._segment_lines(order, center))
        lines.append("")

        lines.append("-" * 80)
        lines.append("CHANGES")
        lines.append("-" * 80)
        if result.changes:
            for change in result.changes:
                minutes = change.delta.total_seconds() / 60
                lines.append(f"{change} ({minutes:+.0f} min)")
                if change.explanation:
                    lines.append(f"    {change.explanation}")
        else:
            lines.append("No changes.")
        lines.append("")

        lines.append("-" * 80)
        lines.append("EXPLANATION")
        lines.append("-" * 80)
        lines.append(result.explanation)
        lines.append("")

        if reflow_input.manufacturing_orders:
            lines.append("-" * 80)
            lines.append("MANUFACTURING ORDERS PAST DUE")
            lines.append("-" * 80)
            late = late_manufacturing_orders(
                reflow_input.manufacturing_orders, result.updated_orders
            )
            if late:
                for mo_id, lateness in sorted(late.items()):
                    hours = lateness.total_seconds() / 3600
                    lines.append(f"{mo_id}: {hours:.1f} hours late")
            else:
                lines.append("All manufacturing orders finish on time.")
            lines.append("")

        lines.append("=" * 80)
        lines.append("END OF REPORT")
        lines.append("=" * 80)

        return "\n".join(lines)

    def _order_table(self, orders: list[WorkOrder]) -> list[str]:
        lines = [f"{'Order':<12} {'Work Center':<16} {'Start':<17} {'End':<17} {'Depends On'}"]
        for order in orders:
            deps = ", ".join(order.depends_on) or "-"
            lines.append(
                f"{order.id:<12} {order.work_center_id:<16} "
                f"{self._ts(order.start):<17} {self._ts(order.end):<17} {deps}"
            )
        return lines

    def _segment_lines(self, order: WorkOrder, center: WorkCenter) -> list[str]:
        try:
            segments = self.walker.working_segments(
                order.start,
                order.duration_minutes,
                center.shifts,
                center.maintenance_ranges(),
            )
        except SchedulingImpossibleError as exc:
            return [f"      segments unavailable: {exc.message}"]
        if len(segments) < 2:
            return []
        return [
            f"      {self._ts(s.start)} - {s.end.strftime('%H:%M')} ({s.minutes:.0f} min)"
            for s in segments
        ]

    def _format_shifts(self, center: WorkCenter) -> str:
        if not center.shifts:
            return "none (always open)"
        return ", ".join(
            f"{DAY_NAMES[s.day_of_week]} {s.start_hour:02d}-{s.end_hour:02d}"
            for s in sorted(center.shifts, key=lambda s: (s.day_of_week, s.start_hour))
        )

    def _ts(self, value) -> str:
        return value.strftime("%a %m-%d %H:%M")
