"""Admin-side management of opportunities."""

from wabnet.admin.api_client import AdminApiClient
from wabnet.admin.workflow import AdminWorkflow, FormMode, FormState, OperationResult

__all__ = ["AdminApiClient", "AdminWorkflow", "FormMode", "FormState", "OperationResult"]
