"""Register operations (mutations) and queries."""

from hcregister.register.operations import (
    Mutation,
    add_records,
    attach_files,
    delete_record,
    enter_quantity,
    new_record,
    update_field,
)
from hcregister.register.queries import (
    boq_candidates,
    filter_master,
    filter_records,
    list_names,
    search_activities,
)

__all__ = [
    "Mutation",
    "add_records",
    "attach_files",
    "boq_candidates",
    "delete_record",
    "enter_quantity",
    "filter_master",
    "filter_records",
    "list_names",
    "new_record",
    "search_activities",
    "update_field",
]
