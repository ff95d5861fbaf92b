from app.bizadmin.dynamic.schema import DependsOn, FilterField, FormField, TableColumn, email, min_length, pattern
from app.bizadmin.modules.customers.models import BUSINESS_SCALES
from app.bizadmin.modules.users.screens import PHONE_PATTERN
from app.bizadmin.screens import ACTIVE_OPTIONS, Screen, choice_options, ref_select, register

_fields = (
    FormField("name", "Contact name", required=True, validation=(min_length(2, "Name must be at least 2 characters"),)),
    FormField(
        "phoneNumber",
        "Phone number",
        "tel",
        required=True,
        validation=(pattern(PHONE_PATTERN, "Enter a valid phone number"),),
    ),
    FormField("email", "Email", "email", validation=(email("Enter a valid email address"),)),
    FormField("businessName", "Business name"),
    FormField("businessScale", "Business scale", "select", options=choice_options(BUSINESS_SCALES)),
    FormField("address", "Address", "textarea", rows=2),
    FormField(
        "website",
        "Website",
        validation=(pattern(r"^https?://", "Website must start with http:// or https://"),),
    ),
    FormField("isVip", "VIP customer", "checkbox"),
    FormField("isActive", "Active", "switch", default=True),
    ref_select("verifiedBy", "Verified by", "/api/users/admins"),
    FormField("verifiedAt", "Verified on", "date", depends_on=DependsOn("verifiedBy", "neq", "")),
)

_password = FormField(
    "password",
    "Portal password",
    "password",
    description="Lets the customer sign in to the portal",
    validation=(min_length(6, "Password must be at least 6 characters"),),
)

SCREEN = register(
    Screen(
        key="customers",
        title="Customers",
        singular="Customer",
        endpoint="/api/customers",
        description="Customer accounts and business details",
        toggle_active=True,
        columns=(
            TableColumn("name", "Name"),
            TableColumn("businessName", "Business"),
            TableColumn("phoneNumber", "Phone", "phone"),
            TableColumn("email", "Email", "email"),
            TableColumn("businessScale", "Scale"),
            TableColumn("isVip", "VIP", "custom", render=lambda v, row: "VIP" if v else "-"),
            TableColumn("isActive", "Status", "status"),
            TableColumn("createdAt", "Created", "date"),
        ),
        filters=(
            FilterField("name", "Name", placeholder="Search by name"),
            FilterField("businessName", "Business"),
            FilterField("businessScale", "Scale", "select", options=choice_options(BUSINESS_SCALES)),
            FilterField("isActive", "Status", "select", options=ACTIVE_OPTIONS),
            FilterField("createdAt", "Created", "dateRange"),
        ),
        fields=_fields + (_password,),
        edit_fields=_fields + (_password,),
        view_fields=_fields,
    )
)
