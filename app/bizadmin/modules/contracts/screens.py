from app.bizadmin.dynamic.schema import FilterField, FormField, TableColumn
from app.bizadmin.modules.contracts.models import CONTRACT_STATUSES, CONTRACT_TYPES
from app.bizadmin.screens import Screen, choice_options, ref_select, register

SCREEN = register(
    Screen(
        key="contracts",
        title="Contracts",
        singular="Contract",
        endpoint="/api/contracts",
        description="Signed agreements with customers",
        columns=(
            TableColumn("contractNumber", "Number"),
            TableColumn("customerId", "Customer", "reference"),
            TableColumn("contractType", "Type"),
            TableColumn("status", "Status"),
            TableColumn("signedDate", "Signed", "date"),
            TableColumn("expiryDate", "Expires", "date"),
        ),
        filters=(
            FilterField("contractNumber", "Number", placeholder="Search by number"),
            FilterField("status", "Status", "select", options=choice_options(CONTRACT_STATUSES)),
            FilterField("contractType", "Type", "select", options=choice_options(CONTRACT_TYPES)),
            FilterField("expiryDate", "Expires", "dateRange"),
        ),
        fields=(
            ref_select("customerId", "Customer", "/api/customers", required=True),
            FormField("contractNumber", "Contract number", required=True),
            FormField("contractType", "Type", "select", options=choice_options(CONTRACT_TYPES), default="standard"),
            FormField("status", "Status", "select", options=choice_options(CONTRACT_STATUSES), default="draft"),
            FormField("signedDate", "Signed on", "date"),
            FormField("expiryDate", "Expires on", "date"),
            ref_select("verifier", "Verified by", "/api/users/admins"),
            FormField("terms", "Terms", "textarea", rows=6),
        ),
        initial_sort=("contractNumber", "asc"),
    )
)
