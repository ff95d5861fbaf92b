"""
Schema-driven form, table and modal engines.

Screens describe themselves with the descriptors in `schema`; the engines hold the
per-request state and talk to the JSON API through `client.ApiClient`.
"""

from app.bizadmin.dynamic.client import ApiClient, ApiRequestError, ApiResponse, client_for_app
from app.bizadmin.dynamic.form import DynamicForm
from app.bizadmin.dynamic.modal import DynamicModal
from app.bizadmin.dynamic.table import DynamicTable

__all__ = [
    "ApiClient",
    "ApiRequestError",
    "ApiResponse",
    "DynamicForm",
    "DynamicModal",
    "DynamicTable",
    "client_for_app",
]
