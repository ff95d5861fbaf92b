from app.bizadmin.dynamic.schema import DependsOn, FilterField, FormField, TableColumn, minimum
from app.bizadmin.modules.projects.models import PAYMENT_STATUSES, PROJECT_STATUSES
from app.bizadmin.screens import Screen, choice_options, ref_select, register

_money = (minimum(0, "Amount cannot be negative"),)

_fields = (
    FormField("title", "Title", required=True),
    FormField("description", "Description", "textarea"),
    ref_select("customerId", "Customer", "/api/customers", required=True),
    ref_select("contractId", "Contract", "/api/contracts", label_key="contractNumber"),
    ref_select("projectManagerId", "Project manager", "/api/users"),
    ref_select("services", "Services", "/api/services", multiple=True),
    FormField("status", "Status", "select", options=choice_options(PROJECT_STATUSES), default="planning"),
    FormField("startDate", "Start date", "date"),
    FormField("expectedEndDate", "Expected end", "date"),
    FormField("actualEndDate", "Actual end", "date", depends_on=DependsOn("status", "eq", "completed")),
    FormField("totalPrice", "Total price", "number", validation=_money),
    FormField("discount", "Discount", "number", validation=_money),
    FormField("finalPrice", "Final price", "number", validation=_money, description="Defaults to total minus discount"),
    FormField("paymentStatus", "Payment status", "select", options=choice_options(PAYMENT_STATUSES), default="pending"),
    FormField("paidAmount", "Paid amount", "number", validation=_money),
    FormField("notes", "Notes", "textarea", rows=2),
    FormField("internalNotes", "Internal notes", "textarea", rows=2, description="Never shown to the customer"),
)

SCREEN = register(
    Screen(
        key="projects",
        title="Projects",
        singular="Project",
        endpoint="/api/projects",
        description="Customer projects, schedule and payment",
        columns=(
            TableColumn("title", "Title"),
            TableColumn("customerId", "Customer", "reference"),
            TableColumn("projectManagerId", "Manager", "reference"),
            TableColumn("status", "Status"),
            TableColumn("paymentStatus", "Payment"),
            TableColumn("finalPrice", "Final price", "number"),
            TableColumn("expectedEndDate", "Due", "date"),
        ),
        filters=(
            FilterField("title", "Title", placeholder="Search by title"),
            FilterField("status", "Status", "select", options=choice_options(PROJECT_STATUSES)),
            FilterField("paymentStatus", "Payment", "select", options=choice_options(PAYMENT_STATUSES)),
            FilterField("finalPrice", "Final price", "numberRange"),
            FilterField("startDate", "Start date", "dateRange"),
        ),
        fields=_fields,
    )
)
