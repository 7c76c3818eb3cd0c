# Services package - re-exports for convenient imports
# noqa: F401 comments indicate these are intentional re-exports
from vmguardian.services.access_guard import (
    AccessPolicy as AccessPolicy,  # noqa: F401
    SessionState as SessionState,  # noqa: F401
    evaluate_access as evaluate_access,  # noqa: F401
    role_home as role_home,  # noqa: F401
)
from vmguardian.services.vm_state import (
    VMState as VMState,  # noqa: F401
    available_actions as available_actions,  # noqa: F401
    map_state as map_state,  # noqa: F401
)
