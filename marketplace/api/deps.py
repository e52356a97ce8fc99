# marketplace/api/deps.py
from fastapi import Header, HTTPException

from marketplace.domain.selection import Selection
from marketplace.domain.schemas import SelectionIn
from marketplace.domain.status import Role
from marketplace.services.access_policy import Actor
from marketplace.services.lock_service import LockService


def get_actor(
    x_user_id: int | None = Header(None),
    x_user_role: str | None = Header(None),
) -> Actor:
    """Tozsamosc z zewnetrznego serwisu auth, tutaj jej nie weryfikujemy."""
    if x_user_id is None or x_user_role is None:
        raise HTTPException(status_code=401, detail="Brak naglowkow X-User-Id / X-User-Role")

    try:
        role = Role(x_user_role)
    except ValueError:
        raise HTTPException(status_code=401, detail=f"Nieznana rola: {x_user_role}")

    if role == Role.SYSTEM:
        raise HTTPException(status_code=401, detail="Rola system nie jest dostepna przez API")

    return Actor(user_id=x_user_id, role=role)


_lock_service: LockService | None = None


def get_lock_service() -> LockService:
    global _lock_service
    if _lock_service is None:
        _lock_service = LockService()
    return _lock_service


def to_selection(payload: SelectionIn) -> Selection:
    return Selection.of(payload.variant_id, payload.option_ids)
