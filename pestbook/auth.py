import logging
from datetime import datetime, timedelta, timezone

from fastapi import Depends, Request
from sqlalchemy.orm import Session, joinedload

from .config import SESSION_COOKIE_NAME, SESSION_TTL_HOURS
from .database import get_db
from .domain.access import Action, Actor, parse_roles, require
from .domain.scheduling import as_utc
from .errors import UnauthenticatedError
from .models import AuthSession, User

logger = logging.getLogger(__name__)


def _load_actor(db: Session, session_id: str) -> Actor:
    session = db.query(AuthSession).filter(AuthSession.id == session_id).first()
    if not session:
        logger.info("🔒 Unknown session cookie presented")
        raise UnauthenticatedError("Invalid session")

    now = datetime.now(timezone.utc)
    if as_utc(session.expires_at) <= now:
        logger.info(f"🔒 Expired session for user_id: {session.user_id}")
        db.delete(session)
        db.commit()
        raise UnauthenticatedError("Session expired")

    # Sliding expiration
    session.last_seen_at = now
    session.expires_at = now + timedelta(hours=SESSION_TTL_HOURS)
    db.commit()

    # Roles are re-read on every request so revocations apply immediately
    user = (
        db.query(User).options(joinedload(User.roles)).filter(User.id == session.user_id).first()
    )
    if not user:
        raise UnauthenticatedError("Invalid session")

    return Actor(
        user_id=user.id,
        public_id=user.public_id,
        email=user.email,
        roles=parse_roles(user.role_names),
    )


async def get_current_actor(request: Request, db: Session = Depends(get_db)) -> Actor:
    """Current actor from the session cookie"""
    session_id = request.cookies.get(SESSION_COOKIE_NAME)
    if not session_id:
        raise UnauthenticatedError()

    actor = _load_actor(db, session_id)
    logger.debug(f"✅ Actor authenticated: {actor.email} roles={sorted(r.value for r in actor.roles)}")
    return actor


def require_capability(action: Action):
    """
    Create a dependency that authenticates and then authorizes ``action``

    Example usage:
        @router.patch("/{public_id}/accept")
        async def accept(actor: Actor = Depends(require_capability(Action.ACCEPT_BOOKING))):
            ...
    """

    async def capability_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if not actor.can(action):
            logger.warning(f"⚠️ User {actor.user_id} lacks capability {action.value}")
        require(actor, action)
        return actor

    return capability_checker
