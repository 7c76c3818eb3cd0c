# API routes package - exports for package consumers
# noqa: F401 comments are required because these are re-exports for external use
from vmguardian.routes.api.coursework import api_coursework_bp as api_coursework_bp  # noqa: F401
from vmguardian.routes.api.notifications import api_notifications_bp as api_notifications_bp  # noqa: F401
from vmguardian.routes.api.resources import api_resources_bp as api_resources_bp  # noqa: F401
from vmguardian.routes.api.users import api_users_bp as api_users_bp  # noqa: F401
from vmguardian.routes.api.vm_requests import api_vm_requests_bp as api_vm_requests_bp  # noqa: F401
from vmguardian.routes.api.vm_types import api_vm_types_bp as api_vm_types_bp  # noqa: F401
from vmguardian.routes.api.vms import api_vms_bp as api_vms_bp  # noqa: F401
