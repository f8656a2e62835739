from .roles import (
    CAPABILITIES,
    Action,
    Actor,
    Role,
    can_cancel_booking,
    can_complete_booking,
    can_view_booking,
    is_current_worker,
    parse_roles,
    require,
)

__all__ = [
    "CAPABILITIES",
    "Action",
    "Actor",
    "Role",
    "can_cancel_booking",
    "can_complete_booking",
    "can_view_booking",
    "is_current_worker",
    "parse_roles",
    "require",
]
