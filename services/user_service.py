"""
services.user_service - Resolve the user an import acts as.

Strategy (same as the admin CLI has always used):
  1) explicit owner id
  2) email lookup
  3) user id 1 (the first admin)
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.orm import Session

from db.models import User

logger = logging.getLogger(__name__)


def resolve_owner(
    session: Session,
    owner_id: Optional[int] = None,
    email: Optional[str] = None,
) -> User:
    """Return the acting user.  Raises LookupError when nobody matches."""
    user = None
    if owner_id:
        user = session.get(User, owner_id)
    elif email:
        user = session.query(User).filter(User.email == email.strip().lower()).one_or_none()
        if user is None:
            logger.warning(f"No user with email {email}, falling back to user 1")
    if user is None:
        user = session.get(User, 1)
    if user is None:
        raise LookupError("Unable to resolve a user to own the import. "
                          "Provide --owner-id or --email.")
    return user


def ensure_user(session: Session, email: str, name: str = "") -> User:
    """Get or create the user with *email*."""
    email = email.strip().lower()
    user = session.query(User).filter(User.email == email).one_or_none()
    if user is None:
        user = User(email=email, name=name)
        session.add(user)
        session.flush()
    return user
