from app.bizadmin.dynamic.schema import DependsOn, FilterField, FormField, TableColumn, minimum
from app.bizadmin.modules.services.models import REQUEST_PRIORITIES, REQUEST_STATUSES
from app.bizadmin.screens import ACTIVE_OPTIONS, Screen, choice_options, ref_select, register

SERVICES = register(
    Screen(
        key="services",
        title="Services",
        singular="Service",
        endpoint="/api/services",
        description="Catalogue of sellable services",
        toggle_active=True,
        columns=(
            TableColumn("name", "Name"),
            TableColumn("basePrice", "Base price", "number"),
            TableColumn("teamId", "Team", "reference"),
            TableColumn("isVip", "VIP", "custom", render=lambda v, row: "VIP" if v else "-"),
            TableColumn("isActive", "Status", "status"),
        ),
        filters=(
            FilterField("name", "Name", placeholder="Search by name"),
            FilterField("basePrice", "Base price", "numberRange"),
            FilterField("isActive", "Status", "select", options=ACTIVE_OPTIONS),
        ),
        fields=(
            FormField("name", "Name", required=True),
            FormField("description", "Description", "textarea"),
            FormField(
                "basePrice",
                "Base price",
                "number",
                required=True,
                validation=(minimum(0, "Price cannot be negative"),),
            ),
            ref_select("teamId", "Team", "/api/teams"),
            FormField("isVip", "VIP only", "checkbox"),
            FormField("isActive", "Active", "switch", default=True),
        ),
    )
)

# shared with the customer portal request form
REQUEST_CUSTOMER_FIELDS = (
    FormField("title", "Title", required=True),
    ref_select("serviceId", "Service", "/api/services", required=True),
    FormField("quantity", "Quantity", "number", default=1, validation=(minimum(1, "Quantity must be at least 1"),)),
    FormField("priority", "Priority", "select", options=choice_options(REQUEST_PRIORITIES), default="medium"),
    FormField("requestedDate", "Needed by", "date"),
    FormField("requirements", "Requirements", "textarea", rows=4),
    FormField("notes", "Notes", "textarea", rows=2),
)

_request_fields = REQUEST_CUSTOMER_FIELDS + (
    ref_select("requestedBy", "Customer", "/api/customers"),
    FormField("status", "Status", "select", options=choice_options(REQUEST_STATUSES), default="pending"),
    FormField("scheduledDate", "Scheduled for", "date", depends_on=DependsOn("status", "neq", "pending")),
    ref_select("asiginedto", "Assigned to", "/api/users", multiple=True),
)

SERVICE_REQUESTS = register(
    Screen(
        key="service-requests",
        title="Service requests",
        singular="Service request",
        endpoint="/api/service-requests",
        description="Work requested by customers",
        columns=(
            TableColumn("title", "Title"),
            TableColumn("serviceId", "Service", "reference"),
            TableColumn("requestedBy", "Customer", "reference"),
            TableColumn("quantity", "Qty", "number"),
            TableColumn("priority", "Priority"),
            TableColumn("status", "Status"),
            TableColumn("requestedDate", "Requested", "date"),
        ),
        filters=(
            FilterField("title", "Title", placeholder="Search by title"),
            FilterField("status", "Status", "select", options=choice_options(REQUEST_STATUSES)),
            FilterField("priority", "Priority", "select", options=choice_options(REQUEST_PRIORITIES)),
            FilterField("requestedDate", "Requested", "dateRange"),
        ),
        fields=_request_fields,
        view_fields=_request_fields
        + (
            ref_select("approvedBy", "Approved by", "/api/users/admins"),
            FormField("approvedAt", "Approved on", "date"),
        ),
    )
)
