# marketplace/services/access_policy.py
"""
Kto moze co zrobic. Tozsamosc (user_id, role) przychodzi z zewnetrznego
serwisu auth, tutaj tylko sprawdzamy wlasnosc zasobow.
"""
from dataclasses import dataclass
from typing import Iterable, Set

from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel
from marketplace.data.models.store import StoreModel
from marketplace.domain.errors import Unauthorized
from marketplace.domain.status import Role
from marketplace.repos.store_repo import StoreRepo


@dataclass(frozen=True)
class Actor:
    user_id: int | None
    role: Role

    @property
    def is_customer(self) -> bool:
        return self.role == Role.CUSTOMER

    @property
    def is_seller(self) -> bool:
        return self.role == Role.SELLER


SYSTEM_ACTOR = Actor(user_id=None, role=Role.SYSTEM)


def require_role(actor: Actor, *roles: Role) -> None:
    if actor.role not in roles:
        allowed = ", ".join(r.value for r in roles)
        raise Unauthorized(f"Operacja dostepna tylko dla: {allowed}")


class AccessPolicy:
    def __init__(self, db: Session):
        self.stores = StoreRepo(db)

    def seller_store_ids(self, actor: Actor) -> Set[int]:
        if not actor.is_seller:
            return set()
        return set(self.stores.store_ids_for_owner(actor.user_id))

    def ensure_store_owner(self, actor: Actor, store: StoreModel) -> None:
        require_role(actor, Role.SELLER)
        if store.owner_id != actor.user_id:
            raise Unauthorized("Brak dostepu do sklepu")

    def ensure_customer_owns_order(self, actor: Actor, order: OrderModel) -> None:
        require_role(actor, Role.CUSTOMER)
        if order.customer_id != actor.user_id:
            raise Unauthorized("Brak dostepu do zamowienia")

    def ensure_seller_in_order(self, actor: Actor, order: OrderModel) -> Set[int]:
        """Sprzedawca musi miec w zamowieniu choc jeden produkt ze swojego sklepu."""
        require_role(actor, Role.SELLER)
        own = self.seller_store_ids(actor) & _order_store_ids(order.items)
        if not own:
            raise Unauthorized("Zamowienie nie zawiera produktow z Twojego sklepu")
        return own

    def ensure_can_view_order(self, actor: Actor, order: OrderModel) -> None:
        if actor.is_customer and order.customer_id == actor.user_id:
            return
        if actor.is_seller and self.seller_store_ids(actor) & _order_store_ids(order.items):
            return
        raise Unauthorized("Brak dostepu do zamowienia")


def _order_store_ids(items: Iterable) -> Set[int]:
    return {i.store_id for i in items}
