"""PDF generation for reflow output.

This module creates printable PDF timelines showing:
- One page per work center with every order as a bar on a time axis
- Original positions as outlines behind the reflowed bars
- Maintenance windows and off-shift hours shaded
- A summary page listing changes
"""

from datetime import datetime, timedelta
from io import BytesIO
from pathlib import Path
from typing import Union

from shopreflow.domain.models import (
    ReflowInput,
    ReflowResult,
    WorkCenter,
    WorkOrder,
    start_of_day,
)
from shopreflow.domain.shift_calendar import is_within_shift

# Color definitions (RGB tuples, 0-1 scale)
COLORS = {
    "order": (0.4, 0.6, 0.8),  # Blue
    "moved": (0.9, 0.6, 0.2),  # Orange
    "maintenance_order": (0.6, 0.6, 0.6),  # Gray
    "maintenance": (0.9, 0.7, 0.7),  # Light red
    "off_shift": (0.95, 0.95, 0.95),  # Light gray
    "original": (0.3, 0.3, 0.3),
}


class PDFGenerator:
    """Generates printable PDF timelines of a reflowed schedule.

    Example:
        >>> generator = PDFGenerator()
        >>> generator.generate(reflow_input, result, "reflow.pdf")
    """

    def __init__(
        self,
        page_width: float = 792,  # Letter landscape width (11")
        page_height: float = 612,  # Letter landscape height (8.5")
        margin: float = 36,  # 0.5 inch margins
    ):
        self.page_width = page_width
        self.page_height = page_height
        self.margin = margin

    def generate(
        self,
        reflow_input: ReflowInput,
        result: ReflowResult,
        output_path: Union[str, Path],
        include_summary: bool = True,
    ) -> None:
        """Generate the PDF and save it to a file.

        Args:
            reflow_input: The input that was reflowed.
            result: The reflow result.
            output_path: Path to save the PDF.
            include_summary: Whether to include the change summary page.
        """
        try:
            from reportlab.lib.pagesizes import landscape, letter
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        c = canvas.Canvas(str(output_path), pagesize=landscape(letter))
        self._draw(c, reflow_input, result, include_summary)
        c.save()

    def generate_to_buffer(
        self,
        reflow_input: ReflowInput,
        result: ReflowResult,
        include_summary: bool = True,
    ) -> BytesIO:
        """Generate the PDF and return it as a bytes buffer."""
        try:
            from reportlab.lib.pagesizes import landscape, letter
            from reportlab.pdfgen import canvas
        except ImportError:
            raise ImportError(
                "reportlab is required for PDF generation. "
                "Install with: pip install reportlab"
            )

        buffer = BytesIO()
        c = canvas.Canvas(buffer, pagesize=landscape(letter))
        self._draw(c, reflow_input, result, include_summary)
        c.save()
        buffer.seek(0)
        return buffer

    def _draw(
        self,
        c,
        reflow_input: ReflowInput,
        result: ReflowResult,
        include_summary: bool,
    ) -> None:
        window_start, window_end = self._time_window(reflow_input, result)
        originals = {order.id: order for order in reflow_input.work_orders}
        moved = set(result.moved_order_ids)

        centers = list(reflow_input.work_centers)
        known = {center.name for center in centers}
        for order in result.updated_orders:
            if order.work_center_id not in known:
                centers.append(WorkCenter(name=order.work_center_id))
                known.add(order.work_center_id)

        for center in centers:
            orders = [o for o in result.updated_orders if o.work_center_id == center.name]
            if not orders:
                continue
            self._draw_center_page(
                c, center, orders, originals, moved, window_start, window_end
            )

        if include_summary:
            self._draw_summary_page(c, result)

    def _time_window(
        self,
        reflow_input: ReflowInput,
        result: ReflowResult,
    ) -> tuple[datetime, datetime]:
        """Whole days covering every original and reflowed order."""
        orders = list(reflow_input.work_orders) + list(result.updated_orders)
        if not orders:
            now = start_of_day(datetime.now().astimezone())
            return now, now + timedelta(days=1)
        first = start_of_day(min(o.start for o in orders))
        last = start_of_day(max(o.end for o in orders)) + timedelta(days=1)
        return first, last

    def _draw_center_page(
        self,
        c,
        center: WorkCenter,
        orders: list[WorkOrder],
        originals: dict[str, WorkOrder],
        moved: set,
        window_start: datetime,
        window_end: datetime,
    ) -> None:
        """Draw one work center's timeline."""
        row_height = 24
        header_height = 60
        timeline_left = self.margin + 90  # Space for order ids
        timeline_right = self.page_width - self.margin - 10
        timeline_width = timeline_right - timeline_left
        total_seconds = (window_end - window_start).total_seconds()

        def x_for(instant: datetime) -> float:
            offset = (instant - window_start).total_seconds()
            return timeline_left + timeline_width * offset / total_seconds

        c.setFont("Helvetica-Bold", 16)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 20,
            f"Work Center - {center.name}",
        )
        c.setFont("Helvetica", 10)
        c.drawString(
            self.margin,
            self.page_height - self.margin - 35,
            f"{window_start.strftime('%A, %B %d, %Y')} to "
            f"{(window_end - timedelta(days=1)).strftime('%A, %B %d, %Y')} (UTC)",
        )

        axis_y = self.page_height - self.margin - header_height - 20
        top = axis_y - 10
        bottom = top - row_height * len(orders)

        # Shade off-shift hours and maintenance windows behind all rows
        if center.shifts:
            hour = window_start
            c.setFillColorRGB(*COLORS["off_shift"])
            while hour < window_end:
                if not is_within_shift(hour, center.shifts):
                    c.rect(x_for(hour), bottom, x_for(hour + timedelta(hours=1)) - x_for(hour),
                           top - bottom, fill=1, stroke=0)
                hour += timedelta(hours=1)
        c.setFillColorRGB(*COLORS["maintenance"])
        for window in center.maintenance_windows:
            start = max(window.start, window_start)
            end = min(window.end, window_end)
            if start < end:
                c.rect(x_for(start), bottom, x_for(end) - x_for(start), top - bottom,
                       fill=1, stroke=0)

        self._draw_time_axis(c, window_start, window_end, x_for, axis_y)

        y = top
        for order in sorted(orders, key=lambda o: o.start):
            y -= row_height
            height = row_height - 6

            c.setFillColorRGB(0, 0, 0)
            c.setFont("Helvetica", 9)
            c.drawString(self.margin, y + height / 2 - 3, order.id[:16])

            if order.is_maintenance:
                color = COLORS["maintenance_order"]
            elif order.id in moved:
                color = COLORS["moved"]
            else:
                color = COLORS["order"]
            c.setFillColorRGB(*color)
            width = max(x_for(order.end) - x_for(order.start), 1)
            c.rect(x_for(order.start), y, width, height, fill=1, stroke=0)

            original = originals.get(order.id)
            if original is not None and order.id in moved:
                c.setStrokeColorRGB(*COLORS["original"])
                c.setLineWidth(0.5)
                c.setDash(2, 2)
                c.rect(
                    x_for(original.start),
                    y,
                    max(x_for(original.end) - x_for(original.start), 1),
                    height,
                    fill=0,
                    stroke=1,
                )
                c.setDash()

        self._draw_legend(c, self.margin, self.margin + 10)
        c.showPage()

    def _draw_time_axis(self, c, window_start, window_end, x_for, y: float) -> None:
        """Draw a tick per day with its label, and minor ticks every six hours."""
        c.setFont("Helvetica", 8)
        c.setStrokeColorRGB(0.7, 0.7, 0.7)
        c.setFillColorRGB(0, 0, 0)

        tick = window_start
        while tick <= window_end:
            x = x_for(tick)
            if tick.hour == 0:
                c.line(x, y, x, y - 8)
                if tick < window_end:
                    c.drawString(x + 2, y + 5, tick.strftime("%a %m-%d"))
            else:
                c.line(x, y, x, y - 3)
            tick += timedelta(hours=6)

    def _draw_legend(self, c, x: float, y: float) -> None:
        """Draw legend for colors."""
        c.setFillColorRGB(0, 0, 0)
        c.setFont("Helvetica-Bold", 8)
        c.drawString(x, y, "Legend:")

        items = [
            ("order", "Unchanged"),
            ("moved", "Moved"),
            ("maintenance_order", "Maintenance order"),
            ("maintenance", "Maintenance window"),
            ("off_shift", "Off shift"),
        ]

        c.setFont("Helvetica", 7)
        current_x = x + 45
        for key, label in items:
            c.setFillColorRGB(*COLORS[key])
            c.rect(current_x, y - 2, 12, 10, fill=1, stroke=1)
            c.setFillColorRGB(0, 0, 0)
            c.drawString(current_x + 15, y, label)
            current_x += 100

    def _draw_summary_page(self, c, result: ReflowResult) -> None:
        """Draw the change list and explanation."""
        c.setFont("Helvetica-Bold", 16)
        c.drawString(self.margin, self.page_height - self.margin - 20, "Reflow Summary")

        y = self.page_height - self.margin - 60
        c.setFont("Helvetica", 10)
        for stat in [
            f"Work Orders: {len(result.updated_orders)}",
            f"Orders Moved: {len(result.moved_order_ids)}",
            f"Changes: {len(result.changes)}",
        ]:
            c.drawString(self.margin + 20, y, stat)
            y -= 15

        y -= 10
        c.setFont("Helvetica-Bold", 12)
        c.drawString(self.margin, y, "Changes")
        y -= 18
        c.setFont("Helvetica", 8)
        for change in result.changes:
            if y < self.margin + 20:
                c.showPage()
                c.setFont("Helvetica", 8)
                y = self.page_height - self.margin - 20
            c.drawString(self.margin + 20, y, str(change)[:140])
            y -= 12

        c.showPage()
