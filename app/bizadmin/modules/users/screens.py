from app.bizadmin.dynamic.schema import FilterField, FormField, TableColumn, email, min_length, pattern
from app.bizadmin.models import USER_ROLES
from app.bizadmin.screens import ACTIVE_OPTIONS, Screen, choice_options, ref_select, register

PHONE_PATTERN = r"^\+?[0-9 ()-]{7,20}$"

_common = (
    FormField("name", "Full name", required=True, validation=(min_length(2, "Name must be at least 2 characters"),)),
    FormField(
        "phoneNumber",
        "Phone number",
        "tel",
        required=True,
        validation=(pattern(PHONE_PATTERN, "Enter a valid phone number"),),
    ),
    FormField("email", "Email", "email", validation=(email("Enter a valid email address"),)),
    FormField("role", "Role", "select", required=True, options=choice_options(USER_ROLES), default="designer"),
    ref_select("teamId", "Team", "/api/teams"),
    FormField("permissions", "Extra permissions", "textarea", rows=2, description="Free-form notes on granted access"),
    FormField("isActive", "Active", "switch", default=True),
)

SCREEN = register(
    Screen(
        key="users",
        title="Users",
        singular="User",
        endpoint="/api/users",
        description="Staff accounts",
        toggle_active=True,
        columns=(
            TableColumn("name", "Name"),
            TableColumn("phoneNumber", "Phone", "phone"),
            TableColumn("email", "Email", "email"),
            TableColumn("role", "Role"),
            TableColumn("teamId", "Team", "reference"),
            TableColumn("isActive", "Status", "status"),
            TableColumn("createdAt", "Created", "date"),
        ),
        filters=(
            FilterField("name", "Name", placeholder="Search by name"),
            FilterField("role", "Role", "select", options=choice_options(USER_ROLES)),
            FilterField("isActive", "Status", "select", options=ACTIVE_OPTIONS),
        ),
        fields=_common[:3]
        + (
            FormField(
                "password",
                "Password",
                "password",
                required=True,
                validation=(min_length(6, "Password must be at least 6 characters"),),
            ),
        )
        + _common[3:],
        edit_fields=_common
        + (
            FormField(
                "password",
                "New password",
                "password",
                description="Leave blank to keep the current password",
                validation=(min_length(6, "Password must be at least 6 characters"),),
            ),
        ),
        view_fields=_common,
    )
)
