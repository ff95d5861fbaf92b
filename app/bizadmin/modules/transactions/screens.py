from app.bizadmin.dynamic.schema import FilterField, FormField, TableColumn, custom, minimum
from app.bizadmin.modules.transactions.models import TRANSACTION_TYPES
from app.bizadmin.screens import Screen, choice_options, ref_select, register


def _has_amount(value, values) -> bool:
    return bool(values.get("paid") or values.get("received"))


_fields = (
    FormField("date", "Date", "date", required=True),
    FormField("subject", "Subject", required=True),
    FormField("type", "Type", "radio", options=choice_options(TRANSACTION_TYPES), default="income"),
    FormField(
        "received",
        "Received",
        "number",
        default=0,
        validation=(minimum(0, "Amount cannot be negative"),),
    ),
    FormField(
        "paid",
        "Paid",
        "number",
        default=0,
        validation=(
            minimum(0, "Amount cannot be negative"),
            custom(_has_amount, "Enter a paid or received amount"),
        ),
    ),
    ref_select("customer", "Customer", "/api/customers"),
    ref_select("users", "Staff member", "/api/users"),
)

SCREEN = register(
    Screen(
        key="transactions",
        title="Transactions",
        singular="Transaction",
        endpoint="/api/transactions",
        description="Money in and out",
        columns=(
            TableColumn("date", "Date", "date"),
            TableColumn("subject", "Subject"),
            TableColumn("type", "Type"),
            TableColumn("received", "Received", "number"),
            TableColumn("paid", "Paid", "number"),
            TableColumn("customer", "Customer", "reference"),
            TableColumn("users", "Staff", "reference"),
        ),
        filters=(
            FilterField("subject", "Subject", placeholder="Search by subject"),
            FilterField("type", "Type", "select", options=choice_options(TRANSACTION_TYPES)),
            FilterField("date", "Date", "dateRange"),
            FilterField("received", "Received", "numberRange"),
        ),
        fields=_fields,
        initial_sort=("date", "desc"),
    )
)
