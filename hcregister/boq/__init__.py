"""Bill of quantities: expression evaluation, master schedule and totals."""

from hcregister.boq.aggregator import compute_totals, line_amounts, recompute, set_quantity
from hcregister.boq.expression import (
    Evaluation,
    evaluate_expression,
    normalize_expression,
    parse_quantity,
)
from hcregister.boq.master import MasterSchedule, get_master, load_master, parse_master

__all__ = [
    "Evaluation",
    "MasterSchedule",
    "compute_totals",
    "evaluate_expression",
    "get_master",
    "line_amounts",
    "load_master",
    "normalize_expression",
    "parse_master",
    "parse_quantity",
    "recompute",
    "set_quantity",
]
