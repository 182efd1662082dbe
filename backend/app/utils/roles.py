"""
Caller role gate.

The identity collaborator forwards the caller's role in the X-User-Role
header. Stage operations and score entry require a privileged role.
"""

from typing import Optional

from fastapi import Header, HTTPException

PRIVILEGED_ROLES = frozenset({"admin", "gestore", "organizer"})


def is_privileged(role: Optional[str]) -> bool:
    return bool(role) and role.strip().lower() in PRIVILEGED_ROLES


def require_organizer(x_user_role: Optional[str] = Header(default=None)) -> str:
    """FastAPI dependency: 403 unless the caller is admin or gestore/organizer."""
    if not is_privileged(x_user_role):
        raise HTTPException(status_code=403, detail="Organizer or admin role required")
    return x_user_role.strip().lower()
