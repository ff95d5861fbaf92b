from app.bizadmin.dynamic.schema import DependsOn, FilterField, FormField, TableColumn, pattern
from app.bizadmin.modules.tasks.models import TASK_PRIORITIES, TASK_STATUSES
from app.bizadmin.screens import Screen, choice_options, ref_select, register

_fields = (
    FormField("title", "Title", required=True),
    FormField("description", "Description", "textarea"),
    ref_select("serviceRequestId", "Service request", "/api/service-requests", label_key="title"),
    ref_select("assignedUserId", "Assigned to", "/api/users"),
    FormField("status", "Status", "select", options=choice_options(TASK_STATUSES), default="todo"),
    FormField("priority", "Priority", "select", options=choice_options(TASK_PRIORITIES), default="medium"),
    FormField("startDate", "Start date", "date"),
    FormField("dueDate", "Due date", "date"),
    FormField("completedDate", "Completed on", "date", depends_on=DependsOn("status", "eq", "completed")),
    FormField("deliverables", "Deliverables", "textarea", rows=3),
    FormField(
        "attachedVideo",
        "Video link",
        validation=(pattern(r"^(https?://|/uploads/|uploads/)", "Enter a link or an uploaded file path"),),
    ),
    FormField("notes", "Notes", "textarea", rows=2),
)

SCREEN = register(
    Screen(
        key="tasks",
        title="Tasks",
        singular="Task",
        endpoint="/api/tasks",
        description="Production work items",
        columns=(
            TableColumn("title", "Title"),
            TableColumn("assignedUserId", "Assigned to", "reference"),
            TableColumn("serviceRequestId", "Request", "reference"),
            TableColumn("status", "Status"),
            TableColumn("priority", "Priority"),
            TableColumn("dueDate", "Due", "date"),
        ),
        filters=(
            FilterField("title", "Title", placeholder="Search by title"),
            FilterField("status", "Status", "select", options=choice_options(TASK_STATUSES)),
            FilterField("priority", "Priority", "select", options=choice_options(TASK_PRIORITIES)),
            FilterField("dueDate", "Due", "dateRange"),
        ),
        fields=_fields,
        initial_sort=("dueDate", "asc"),
    )
)
