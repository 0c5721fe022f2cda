"""JSON documents in and out of the reflow core.

Input documents use the camelCase field names of the planning system,
either as plain entities or wrapped in ``{docId, docType, data}`` envelopes:

    {
      "workOrders": [{"docId": "wo-1", "docType": "workOrder",
                      "data": {"workOrderNumber": "WO-1", ...}}],
      "workCenters": [...],
      "manufacturingOrders": [...]
    }
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

from shopreflow.domain.errors import DocumentError
from shopreflow.domain.models import (
    Change,
    MaintenanceWindow,
    ManufacturingOrder,
    ReflowInput,
    ReflowResult,
    Shift,
    WorkCenter,
    WorkOrder,
    as_utc,
    format_instant,
)


def parse_datetime(value: Any, field_name: str = "date") -> datetime:
    """Parse an ISO-8601 instant. ``Z`` and offsets are honoured; naive is UTC."""
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str):
        raise DocumentError(f"{field_name} must be an ISO-8601 string, got {value!r}")
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError as exc:
        raise DocumentError(f"{field_name} is not a valid ISO-8601 instant: {value!r}") from exc


def format_datetime(value: datetime) -> str:
    return format_instant(value)


def _unwrap(document: Any, expected_type: str) -> dict:
    """Return the entity payload, unwrapping an envelope if present."""
    if not isinstance(document, dict):
        raise DocumentError(f"Expected a {expected_type} object, got {type(document).__name__}")
    if "data" in document and isinstance(document["data"], dict):
        doc_type = document.get("docType")
        if doc_type is not None and doc_type != expected_type:
            raise DocumentError(
                f"Expected docType {expected_type!r}, got {doc_type!r} "
                f"(docId {document.get('docId')!r})"
            )
        return document["data"]
    return document


def _require(payload: dict, key: str, entity: str) -> Any:
    if key not in payload:
        raise DocumentError(f"{entity} is missing required field {key!r}")
    return payload[key]


def parse_work_order(document: Any) -> WorkOrder:
    data = _unwrap(document, "workOrder")
    order_id = str(_require(data, "workOrderNumber", "workOrder"))
    entity = f"workOrder {order_id}"
    try:
        return WorkOrder(
            id=order_id,
            work_center_id=str(_require(data, "workCenterId", entity)),
            start=parse_datetime(_require(data, "startDate", entity), "startDate"),
            end=parse_datetime(_require(data, "endDate", entity), "endDate"),
            duration_minutes=_require(data, "durationMinutes", entity),
            is_maintenance=bool(data.get("isMaintenance", False)),
            depends_on=tuple(str(d) for d in data.get("dependsOnWorkOrderIds") or []),
            manufacturing_order_id=data.get("manufacturingOrderId"),
        )
    except ValueError as exc:
        raise DocumentError(f"{entity}: {exc}") from exc


def parse_work_center(document: Any) -> WorkCenter:
    data = _unwrap(document, "workCenter")
    name = str(_require(data, "name", "workCenter"))
    try:
        shifts = [
            Shift(
                day_of_week=int(_require(s, "dayOfWeek", f"shift of {name}")),
                start_hour=int(_require(s, "startHour", f"shift of {name}")),
                end_hour=int(_require(s, "endHour", f"shift of {name}")),
            )
            for s in data.get("shifts") or []
        ]
        windows = [
            MaintenanceWindow(
                start=parse_datetime(_require(w, "startDate", f"maintenance of {name}")),
                end=parse_datetime(_require(w, "endDate", f"maintenance of {name}")),
                reason=w.get("reason"),
            )
            for w in data.get("maintenanceWindows") or []
        ]
    except ValueError as exc:
        raise DocumentError(f"workCenter {name}: {exc}") from exc
    return WorkCenter(name=name, shifts=shifts, maintenance_windows=windows)


def parse_manufacturing_order(document: Any) -> ManufacturingOrder:
    data = _unwrap(document, "manufacturingOrder")
    due = data.get("dueDate")
    return ManufacturingOrder(
        id=str(_require(data, "manufacturingOrderNumber", "manufacturingOrder")),
        item_id=str(data.get("itemId", "")),
        quantity=int(data.get("quantity", 0)),
        due_date=parse_datetime(due, "dueDate") if due is not None else None,
    )


def parse_reflow_input(document: dict) -> ReflowInput:
    """Build a ReflowInput from a decoded JSON document.

    Raises:
        DocumentError: If the document is malformed.
    """
    if not isinstance(document, dict):
        raise DocumentError("Reflow input must be a JSON object")
    return ReflowInput(
        work_orders=[parse_work_order(d) for d in document.get("workOrders") or []],
        work_centers=[parse_work_center(d) for d in document.get("workCenters") or []],
        manufacturing_orders=[
            parse_manufacturing_order(d)
            for d in document.get("manufacturingOrders") or []
        ],
    )


def load_reflow_input(path: Union[str, Path]) -> ReflowInput:
    """Read and parse a reflow input JSON file."""
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise DocumentError(f"{path}: invalid JSON ({exc})") from exc
    return parse_reflow_input(document)


def dump_work_order(order: WorkOrder) -> dict:
    data = {
        "workOrderNumber": order.id,
        "workCenterId": order.work_center_id,
        "startDate": format_datetime(order.start),
        "endDate": format_datetime(order.end),
        "durationMinutes": order.duration_minutes,
        "isMaintenance": order.is_maintenance,
        "dependsOnWorkOrderIds": list(order.depends_on),
    }
    if order.manufacturing_order_id is not None:
        data["manufacturingOrderId"] = order.manufacturing_order_id
    return data


def dump_work_orders(orders: list[WorkOrder]) -> list[dict]:
    return [dump_work_order(order) for order in orders]


def dump_work_center(center: WorkCenter) -> dict:
    return {
        "name": center.name,
        "shifts": [
            {"dayOfWeek": s.day_of_week, "startHour": s.start_hour, "endHour": s.end_hour}
            for s in center.shifts
        ],
        "maintenanceWindows": [
            _without_none(
                {
                    "startDate": format_datetime(w.start),
                    "endDate": format_datetime(w.end),
                    "reason": w.reason,
                }
            )
            for w in center.maintenance_windows
        ],
    }


def dump_change(change: Change) -> dict:
    return {
        "workOrderId": change.order_id,
        "field": change.field.value,
        "oldValue": format_datetime(change.old_value),
        "newValue": format_datetime(change.new_value),
        "reason": change.reason.value,
        "explanation": change.explanation,
    }


def dump_reflow_input(reflow_input: ReflowInput) -> dict:
    """Inverse of parse_reflow_input, without envelopes."""
    return {
        "workOrders": dump_work_orders(reflow_input.work_orders),
        "workCenters": [dump_work_center(c) for c in reflow_input.work_centers],
        "manufacturingOrders": [
            _without_none(
                {
                    "manufacturingOrderNumber": mo.id,
                    "itemId": mo.item_id,
                    "quantity": mo.quantity,
                    "dueDate": format_datetime(mo.due_date) if mo.due_date else None,
                }
            )
            for mo in reflow_input.manufacturing_orders
        ],
    }


def dump_reflow_result(result: ReflowResult) -> dict:
    """JSON-ready mapping of a reflow result."""
    return {
        "updatedWorkOrders": dump_work_orders(result.updated_orders),
        "changes": [dump_change(c) for c in result.changes],
        "explanation": result.explanation,
    }


def write_json(document: dict, path: Optional[Union[str, Path]]) -> str:
    """Serialize a document; write it to ``path`` when one is given."""
    text = json.dumps(document, indent=2)
    if path is not None:
        Path(path).write_text(text + "\n", encoding="utf-8")
    return text


def _without_none(mapping: dict) -> dict:
    return {k: v for k, v in mapping.items() if v is not None}
