"""
Role-gated action dispatch.

Roles are a closed enum and permissions live in a capability table, so adding
a role means adding a row here. Booking-level checks are pure functions of the
actor and the booking's *current* assignment, evaluated fresh on every request.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from ...errors import ForbiddenError


class Role(str, Enum):
    CUSTOMER = "customer"
    WORKER = "worker"
    ADMIN = "admin"
    SUPERUSER = "superuser"


class Action(str, Enum):
    CREATE_OWN_BOOKING = "create_own_booking"
    CREATE_ANY_BOOKING = "create_any_booking"
    VIEW_OWN_BOOKINGS = "view_own_bookings"
    CANCEL_OWN_BOOKING = "cancel_own_booking"
    VIEW_ASSIGNED_BOOKINGS = "view_assigned_bookings"
    COMPLETE_BOOKING = "complete_booking"
    VIEW_ALL_BOOKINGS = "view_all_bookings"
    ACCEPT_BOOKING = "accept_booking"
    CANCEL_ANY_BOOKING = "cancel_any_booking"
    ASSIGN_BOOKING = "assign_booking"
    MANAGE_TECHNICIANS = "manage_technicians"
    MANAGE_SERVICES = "manage_services"


_ADMIN_ACTIONS = frozenset(
    {
        Action.CREATE_OWN_BOOKING,
        Action.CREATE_ANY_BOOKING,
        Action.VIEW_ALL_BOOKINGS,
        Action.ACCEPT_BOOKING,
        Action.CANCEL_ANY_BOOKING,
        Action.ASSIGN_BOOKING,
        Action.MANAGE_TECHNICIANS,
    }
)

CAPABILITIES: dict[Role, frozenset[Action]] = {
    Role.CUSTOMER: frozenset(
        {Action.CREATE_OWN_BOOKING, Action.VIEW_OWN_BOOKINGS, Action.CANCEL_OWN_BOOKING}
    ),
    Role.WORKER: frozenset({Action.VIEW_ASSIGNED_BOOKINGS, Action.COMPLETE_BOOKING}),
    Role.ADMIN: _ADMIN_ACTIONS,
    Role.SUPERUSER: _ADMIN_ACTIONS | {Action.MANAGE_SERVICES},
}


def parse_roles(values: Iterable[str]) -> frozenset[Role]:
    """Map stored role strings to Role, ignoring anything unknown"""
    roles = set()
    for value in values:
        try:
            roles.add(Role(str(value or "").strip().lower()))
        except ValueError:
            continue
    return frozenset(roles)


@dataclass(frozen=True)
class Actor:
    """Authenticated caller: stable user id plus the roles held right now"""

    user_id: int
    public_id: str
    email: str
    roles: frozenset[Role] = field(default_factory=frozenset)

    @property
    def capabilities(self) -> frozenset[Action]:
        allowed: set[Action] = set()
        for role in self.roles:
            allowed |= CAPABILITIES.get(role, frozenset())
        return frozenset(allowed)

    def can(self, action: Action) -> bool:
        return action in self.capabilities


def require(actor: Actor, action: Action) -> None:
    if not actor.can(action):
        raise ForbiddenError()


def is_current_worker(actor: Actor, assigned_worker_id: Optional[int]) -> bool:
    return (
        Role.WORKER in actor.roles
        and assigned_worker_id is not None
        and assigned_worker_id == actor.user_id
    )


def can_view_booking(
    actor: Actor, customer_user_id: Optional[int], assigned_worker_id: Optional[int]
) -> bool:
    """Admins see everything, customers their own, workers their current assignments."""
    if actor.can(Action.VIEW_ALL_BOOKINGS):
        return True
    if (
        actor.can(Action.VIEW_OWN_BOOKINGS)
        and customer_user_id is not None
        and customer_user_id == actor.user_id
    ):
        return True
    return actor.can(Action.VIEW_ASSIGNED_BOOKINGS) and is_current_worker(
        actor, assigned_worker_id
    )


def can_cancel_booking(actor: Actor, customer_user_id: Optional[int]) -> bool:
    if actor.can(Action.CANCEL_ANY_BOOKING):
        return True
    return (
        actor.can(Action.CANCEL_OWN_BOOKING)
        and customer_user_id is not None
        and customer_user_id == actor.user_id
    )


def can_complete_booking(actor: Actor, assigned_worker_id: Optional[int]) -> bool:
    return actor.can(Action.COMPLETE_BOOKING) and is_current_worker(actor, assigned_worker_id)
