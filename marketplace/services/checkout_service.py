# marketplace/services/checkout_service.py
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Tuple

import redis
from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel, OrderItemModel, OrderStatusEventModel
from marketplace.domain.errors import (
    CheckoutInProgress,
    EmptyCartError,
    InsufficientStock,
    InvalidTransition,
    MarketplaceError,
    ProductUnavailable,
    ValidationError,
)
from marketplace.domain.schemas import PlaceOrderIn
from marketplace.domain.selection import Selection
from marketplace.domain.status import (
    Availability,
    DEFAULT_PAYMENT_METHOD,
    OrderStatus,
    PAYMENT_METHODS,
    PaymentStatus,
    Role,
)
from marketplace.repos.cart_repo import CartRepo
from marketplace.services.access_policy import Actor, require_role
from marketplace.services.catalog_service import CatalogService
from marketplace.services.lock_service import LockService
from marketplace.services.order_service import OrderService
from marketplace.utils.settings import (
    CHECKOUT_LOCK_TTL_SECONDS,
    DEFAULT_ESTIMATED_MINUTES,
    PREPAID_PAYMENT_METHODS,
)
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)

_REQUIRED_DETAILS = ("customer_name", "contact_number", "delivery_location", "payment_method")


class CheckoutService:
    """
    Koszyk -> zamowienie w dwoch krokach:

    1. checkout_from_cart: rezerwuje stan dla wszystkich linii (wszystko albo nic)
       i tworzy zamowienie Pending ze snapshotem cen. Koszyk zostaje.
       checkout_from_product robi to samo dla jednego produktu, bez koszyka.
    2. place_order: klient podaje dane dostawy, Pending -> Placed, koszyk czyszczony.
    """

    def __init__(
        self,
        db: Session,
        lock_service: LockService | None = None,
        catalog: CatalogService | None = None,
        orders: OrderService | None = None,
    ):
        self.carts = CartRepo(db)
        self.lock_service = lock_service
        self.catalog = catalog or CatalogService(db)
        self.orders = orders or OrderService(db, catalog=self.catalog)

    def checkout_from_cart(self, actor: Actor) -> Dict[str, Any]:
        require_role(actor, Role.CUSTOMER)

        # Redis lock, jeden checkout naraz dla koszyka klienta
        token = uuid.uuid4().hex
        locked = self.lock_service.acquire_checkout_lock(
            customer_id=actor.user_id,
            token=token,
            ttl=CHECKOUT_LOCK_TTL_SECONDS,
        )
        if not locked:
            raise CheckoutInProgress("Checkout tego koszyka juz trwa")

        try:
            return self._checkout(actor)
        finally:
            self._release_lock(actor.user_id, token)

    def _release_lock(self, customer_id: int, token: str) -> None:
        #wynik checkoutu jest juz zacommitowany, lock i tak wygasnie po TTL
        try:
            self.lock_service.release_checkout_lock(customer_id, token)
        except redis.RedisError as e:
            logger.warning(
                f"Nie udalo sie zwolnic locka checkoutu klienta {customer_id}, "
                f"wygasnie po {CHECKOUT_LOCK_TTL_SECONDS}s: {e}"
            )

    def checkout_from_product(
        self,
        actor: Actor,
        product_id: int,
        selection: Selection,
        quantity: int,
    ) -> Dict[str, Any]:
        """
        "Kup teraz": zamowienie Pending dla jednego produktu, z pominieciem koszyka.
        Zamowienie nie ma cart_id, wiec place_order niczego nie czysci.
        """
        require_role(actor, Role.CUSTOMER)

        if quantity < 1:
            raise ValidationError("Ilosc musi byc wieksza niz 0", ["quantity"])

        #nieznany produkt to 404
        self.catalog.get_product(product_id)

        logger.info(f"Checkout produktu {product_id} [{selection.key}] x{quantity} klienta {actor.user_id}")
        return self._create_pending(actor, None, [(product_id, selection, quantity)])

    def _checkout(self, actor: Actor) -> Dict[str, Any]:
        cart = self.carts.get_cart_by_customer(actor.user_id)
        items = self.carts.get_cart_items(cart.id) if cart else []

        if not items:
            raise EmptyCartError("Koszyk jest pusty")

        logger.info(f"Checkout koszyka {cart.id} klienta {actor.user_id} ({len(items)} linii)")

        lines = [
            (i.product_id, Selection.of(i.variant_id, i.option_ids or []), i.quantity)
            for i in items
        ]
        return self._create_pending(actor, cart.id, lines)

    def _create_pending(
        self,
        actor: Actor,
        cart_id: int | None,
        lines: List[Tuple[int, Selection, int]],
    ) -> Dict[str, Any]:
        source = f"koszyka {cart_id}" if cart_id is not None else "produktu"

        snapshot = []
        shipping_fees: Dict[int, Decimal] = {}
        estimated = []

        try:
            for position, (product_id, selection, quantity) in enumerate(lines):
                product = self.catalog.repo.get_product(product_id)
                if product is None:
                    raise ProductUnavailable(f"Produkt {product_id} nie jest juz dostepny")

                if product.availability == Availability.OUT_OF_STOCK.value:
                    raise InsufficientStock(
                        f"Produkt {product_id} [{selection.key}] jest wyprzedany",
                        product_id=product_id,
                        selection_key=selection.key,
                    )

                resolved = self.catalog.resolve_selection(product, selection)
                #cena z tego odczytu trafia do zamowienia
                price = self.catalog.unit_price(product, resolved)

                snapshot.append(
                    OrderItemModel(
                        position=position,
                        product_id=product.id,
                        store_id=product.store_id,
                        product_name=product.name,
                        variant_id=selection.variant_id,
                        option_ids=list(selection.option_ids),
                        selection_label=resolved.label,
                        quantity=quantity,
                        price_at_purchase=price,
                        subtotal=price * quantity,
                    )
                )
                shipping_fees[product.id] = Decimal(product.shipping_fee or 0)
                estimated.append(product.estimated_time_minutes or DEFAULT_ESTIMATED_MINUTES)

                self.catalog.decrement_stock(product_id, selection, quantity)

        except MarketplaceError as e:
            #cofa wszystkie zdjete w tej probie stany
            self.carts.rollback()
            logger.info(f"Checkout {source} przerwany: {e.kind} {e.message}")
            raise

        order = OrderModel(
            customer_id=actor.user_id,
            cart_id=cart_id,
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.UNPAID.value,
            total_amount=sum((line.subtotal for line in snapshot), Decimal("0.00")),
            shipping_fee=sum(shipping_fees.values(), Decimal("0.00")),
            estimated_delivery_minutes=max(estimated),
            payment_method=DEFAULT_PAYMENT_METHOD,
        )
        order.items = snapshot
        order.history = [
            OrderStatusEventModel(
                status=OrderStatus.PENDING.value,
                actor_id=actor.user_id,
                actor_role=Role.SYSTEM.value,
                note="checkout",
            )
        ]

        created = self.orders.repo.create_order(order)
        order_id = created.id

        logger.info(f"Order {order_id} created from {source}, total {created.total_amount}")
        return self.orders.finish(order_id)

    def place_order(self, order_id: int, actor: Actor, details: PlaceOrderIn) -> Dict[str, Any]:
        require_role(actor, Role.CUSTOMER)

        order = self.orders.load(order_id)

        #cudze albo nie-Pending zamowienie to nieprawidlowe przejscie
        if order.customer_id != actor.user_id:
            raise InvalidTransition(f"Zamowienie {order_id} nie nalezy do klienta {actor.user_id}")

        if order.status != OrderStatus.PENDING.value:
            raise InvalidTransition(
                f"Zamowienie {order_id} ma status {order.status}, mozna zlozyc tylko Pending"
            )

        values = self._validate_details(details)

        if values["payment_method"] in PREPAID_PAYMENT_METHODS:
            values["payment_status"] = PaymentStatus.PENDING.value

        cart_id = order.cart_id
        self.orders.apply_transition(order, actor, "place", values=values, note=details.notes)

        if cart_id is not None:
            removed = self.carts.clear_cart_items(cart_id)
            self.carts.touch_cart(cart_id)
            logger.info(f"Koszyk {cart_id} wyczyszczony po zlozeniu zamowienia {order_id} ({removed} linii)")

        return self.orders.finish(order_id)

    @staticmethod
    def _validate_details(details: PlaceOrderIn) -> Dict[str, Any]:
        cleaned = {name: (getattr(details, name) or "").strip() for name in _REQUIRED_DETAILS}

        missing = [name for name, value in cleaned.items() if not value]
        if missing:
            raise ValidationError(f"Brakujace pola: {', '.join(missing)}", missing)

        if cleaned["payment_method"] not in PAYMENT_METHODS:
            raise ValidationError(
                f"Nieznana metoda platnosci: {cleaned['payment_method']}",
                ["payment_method"],
            )

        if details.notes is not None:
            cleaned["notes"] = details.notes.strip() or None

        return cleaned
