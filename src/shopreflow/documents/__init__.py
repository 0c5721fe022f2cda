"""Reading and writing reflow documents (JSON)."""

from shopreflow.documents.loader import (
    dump_reflow_input,
    dump_reflow_result,
    dump_work_orders,
    format_datetime,
    load_reflow_input,
    parse_datetime,
    parse_reflow_input,
    write_json,
)

__all__ = [
    "dump_reflow_input",
    "dump_reflow_result",
    "dump_work_orders",
    "format_datetime",
    "load_reflow_input",
    "parse_datetime",
    "parse_reflow_input",
    "write_json",
]
