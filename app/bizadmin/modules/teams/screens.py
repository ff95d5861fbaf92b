from app.bizadmin.dynamic.schema import FilterField, FormField, TableColumn, minimum
from app.bizadmin.screens import ACTIVE_OPTIONS, Screen, register

SCREEN = register(
    Screen(
        key="teams",
        title="Teams",
        singular="Team",
        endpoint="/api/teams",
        description="Production teams and their monthly cost",
        toggle_active=True,
        columns=(
            TableColumn("name", "Name"),
            TableColumn("specialization", "Specialization"),
            TableColumn("amount", "Monthly cost", "number"),
            TableColumn("isActive", "Status", "status"),
            TableColumn("createdAt", "Created", "date"),
        ),
        filters=(
            FilterField("name", "Name", placeholder="Search by name"),
            FilterField("specialization", "Specialization"),
            FilterField("isActive", "Status", "select", options=ACTIVE_OPTIONS),
        ),
        fields=(
            FormField("name", "Name", required=True),
            FormField("specialization", "Specialization"),
            FormField("description", "Description", "textarea"),
            FormField("amount", "Monthly cost", "number", validation=(minimum(0, "Amount cannot be negative"),)),
            FormField("isActive", "Active", "switch", default=True),
        ),
    )
)
