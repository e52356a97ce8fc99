# marketplace/services/order_service.py
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel, OrderStatusEventModel
from marketplace.domain.errors import InvalidTransition, NotFound, ValidationError
from marketplace.domain.selection import Selection
from marketplace.domain.status import (
    OrderStatus,
    PaymentStatus,
    PAYMENT_TRANSITIONS,
    Role,
    TRANSITIONS,
)
from marketplace.repos.order_repo import OrderRepo
from marketplace.services.access_policy import AccessPolicy, Actor, require_role
from marketplace.services.accounting_service import AccountingService
from marketplace.services.catalog_service import CatalogService
from marketplace.services.notification_service import NotificationService
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class OrderService:
    """
    Maszyna stanow zamowienia, jedyne zrodlo prawdy po utworzeniu zamowienia.

    Pending -> Placed -> Shipped -> Delivered
    Pending/Placed -> Canceled

    Kazde przejscie to compare-and-swap na statusie, efekty uboczne
    (zwrot stanu przy Canceled, zarobki przy Delivered) ida w tej samej
    transakcji, wiec powtorzone wywolanie nie moze ich zdublowac.
    """

    def __init__(
        self,
        db: Session,
        catalog: CatalogService | None = None,
        accounting: AccountingService | None = None,
        notification_service: NotificationService | None = None,
    ):
        self.db = db
        self.repo = OrderRepo(db)
        self.catalog = catalog or CatalogService(db)
        self.policy = AccessPolicy(db)
        self.accounting = accounting or AccountingService(db)
        self.notification_service = notification_service or NotificationService()

    # ---------- query ----------

    def get_order(self, order_id: int, actor: Actor) -> Dict[str, Any]:
        order = self.load(order_id)
        self.policy.ensure_can_view_order(actor, order)

        store_ids = self.policy.seller_store_ids(actor) if actor.is_seller else None
        return self.to_dict(order, store_ids=store_ids, with_history=True)

    def list_for_customer(self, actor: Actor) -> List[Dict[str, Any]]:
        require_role(actor, Role.CUSTOMER)
        return [self.to_dict(o) for o in self.repo.list_by_customer(actor.user_id)]

    def list_for_seller(self, actor: Actor, status: str | None = None) -> List[Dict[str, Any]]:
        require_role(actor, Role.SELLER)
        if status is not None and status not in {s.value for s in OrderStatus}:
            raise ValidationError(f"Nieznany status: {status}", ["status"])

        store_ids = self.policy.seller_store_ids(actor)
        orders = self.repo.list_by_stores(store_ids, status)
        return [self.to_dict(o, store_ids=store_ids) for o in orders]

    # ---------- commands ----------

    def cancel(self, order_id: int, actor: Actor, note: str | None = None) -> Dict[str, Any]:
        order = self.load(order_id)
        if actor.is_seller:
            self.policy.ensure_seller_in_order(actor, order)
        else:
            self.policy.ensure_customer_owns_order(actor, order)

        self.apply_transition(order, actor, "cancel", note=note)
        return self.finish(order_id)

    def ship(self, order_id: int, actor: Actor, note: str | None = None) -> Dict[str, Any]:
        order = self.load(order_id)
        self.policy.ensure_seller_in_order(actor, order)

        self.apply_transition(order, actor, "ship", note=note)
        return self.finish(order_id)

    def deliver(self, order_id: int, actor: Actor, note: str | None = None) -> Dict[str, Any]:
        order = self.load(order_id)
        self.policy.ensure_seller_in_order(actor, order)

        self.apply_transition(order, actor, "deliver", note=note)
        return self.finish(order_id)

    def update_payment_status(self, order_id: int, actor: Actor, payment_status: str) -> Dict[str, Any]:
        order = self.load(order_id)
        self.policy.ensure_seller_in_order(actor, order)

        try:
            target = PaymentStatus(payment_status)
        except ValueError:
            raise ValidationError(f"Nieznany status platnosci: {payment_status}", ["payment_status"])

        if order.status == OrderStatus.CANCELED.value:
            raise InvalidTransition("Status platnosci anulowanego zamowienia jest zamrozony")

        current = PaymentStatus(order.payment_status)
        if target not in PAYMENT_TRANSITIONS[current]:
            raise InvalidTransition(f"Nie mozna zmienic platnosci z {current.value} na {target.value}")

        rowcount = self.repo.compare_and_set_payment(order.id, current.value, target.value)
        if rowcount == 0:
            self.repo.rollback()
            raise InvalidTransition(f"Zamowienie {order_id} zostalo zmienione przez inna operacje")

        self.repo.commit()
        logger.info(f"Order {order_id} payment {current.value} -> {target.value}")
        return self.to_dict(self.load(order_id), with_history=True)

    # ---------- engine ----------

    def load(self, order_id: int) -> OrderModel:
        order = self.repo.get_order(order_id)
        if not order:
            raise NotFound(f"Zamowienie {order_id} nie istnieje")
        return order

    def apply_transition(
        self,
        order: OrderModel,
        actor: Actor,
        event: str,
        values: dict | None = None,
        note: str | None = None,
    ) -> OrderModel:
        """
        Przejscie bez commita. Wolajacy dopina swoje zmiany i wola finish().
        Autoryzacja wlasnosci jest po stronie wolajacego.
        """
        transition = TRANSITIONS[event]
        require_role(actor, *transition.actors)

        current = order.status
        if OrderStatus(current) not in transition.sources:
            raise InvalidTransition(
                f"Nie mozna wykonac '{event}' dla zamowienia {order.id} w statusie {current}"
            )

        #dane linii zbierane przed CAS, potem sesja jest odswiezana
        lines = [
            (i.product_id, i.store_id, Selection.of(i.variant_id, i.option_ids or []), i.quantity, i.subtotal)
            for i in order.items
        ]
        already_restored = order.stock_restored_at is not None

        values = dict(values or {})
        if transition.target == OrderStatus.CANCELED:
            values["stock_restored_at"] = datetime.now(timezone.utc)

        # Optimistic locking warunek na status
        rowcount = self.repo.compare_and_set_status(
            order.id,
            [s.value for s in transition.sources],
            transition.target.value,
            values,
        )
        if rowcount == 0:
            self.repo.rollback()
            raise InvalidTransition(
                f"Zamowienie {order.id} zostalo zmienione przez inna operacje"
            )

        self.repo.add_event(
            OrderStatusEventModel(
                order_id=order.id,
                status=transition.target.value,
                actor_id=actor.user_id,
                actor_role=actor.role.value,
                note=note,
            )
        )

        if transition.target == OrderStatus.CANCELED and not already_restored:
            self._restore_stock(order.id, lines)
        elif transition.target == OrderStatus.DELIVERED:
            self._credit_sellers(order.id, lines)

        self.repo.sync()
        logger.info(f"Order {order.id} {current} -> {transition.target.value} ({actor.role.value} {actor.user_id})")
        return order

    def finish(self, order_id: int) -> Dict[str, Any]:
        self.repo.commit()
        order = self.load(order_id)

        #dopiero po commicie, blad kolejki nie cofa przejscia
        self.notification_service.send_status_change(order.customer_id, order.id, order.status)
        return self.to_dict(order, with_history=True)

    def _restore_stock(self, order_id: int, lines: Iterable) -> None:
        for product_id, _store_id, selection, quantity, _subtotal in lines:
            self.catalog.restore_stock(product_id, selection, quantity)
        logger.info(f"Order {order_id}: stock restored")

    def _credit_sellers(self, order_id: int, lines: Iterable) -> None:
        per_store: Dict[int, Decimal] = defaultdict(lambda: Decimal("0.00"))
        for _product_id, store_id, _selection, _quantity, subtotal in lines:
            per_store[store_id] += Decimal(subtotal)

        for store_id, amount in per_store.items():
            self.accounting.credit_seller_earnings(store_id, amount)
        logger.info(f"Order {order_id}: earnings credited to stores {sorted(per_store)}")

    # ---------- serializacja ----------

    @staticmethod
    def to_dict(order: OrderModel, store_ids=None, with_history: bool = False) -> Dict[str, Any]:
        items = order.items
        if store_ids is not None:
            #sprzedawca widzi tylko linie swojego sklepu
            items = [i for i in items if i.store_id in store_ids]

        data = {
            "id": order.id,
            "customer_id": order.customer_id,
            "status": order.status,
            "payment_status": order.payment_status,
            "items": [
                {
                    "product_id": i.product_id,
                    "store_id": i.store_id,
                    "product_name": i.product_name,
                    "selection": {
                        "variant_id": i.variant_id,
                        "option_ids": list(i.option_ids or []),
                        "key": Selection.of(i.variant_id, i.option_ids or []).key,
                    },
                    "selection_label": i.selection_label,
                    "quantity": i.quantity,
                    "price_at_purchase": i.price_at_purchase,
                    "subtotal": i.subtotal,
                }
                for i in items
            ],
            "total_amount": order.total_amount,
            "shipping_fee": order.shipping_fee,
            "estimated_delivery_minutes": order.estimated_delivery_minutes,
            "customer_name": order.customer_name,
            "contact_number": order.contact_number,
            "delivery_location": order.delivery_location,
            "payment_method": order.payment_method,
            "notes": order.notes,
            "created_at": order.created_at,
            "history": [],
        }
        if with_history:
            data["history"] = [
                {
                    "status": e.status,
                    "actor_id": e.actor_id,
                    "actor_role": e.actor_role,
                    "note": e.note,
                    "created_at": e.created_at,
                }
                for e in order.history
            ]
        return data
