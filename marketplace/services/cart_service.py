from decimal import Decimal
from typing import Dict, Any
from sqlalchemy.orm import Session
from marketplace.data.models.cart import CartModel
from marketplace.data.models.cart_item import CartItemModel
from marketplace.domain.errors import ItemNotFound, ProductUnavailable, ValidationError
from marketplace.domain.selection import Selection
from marketplace.domain.status import Availability, Role
from marketplace.repos.cart_repo import CartRepo
from marketplace.services.access_policy import Actor, require_role
from marketplace.services.catalog_service import CatalogService
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


class CartService:
    """
    Prosta implementacja cqrs dla domeny cart
    commands (add, update, remove, clear) modyfikuja stan
    query (view) tylko odczyt, ceny liczone na zywo z katalogu
    koszyk jest doradczy - stan magazynu rezerwuje dopiero checkout
    """

    def __init__(self, db: Session, catalog: CatalogService | None = None):
        self.repo = CartRepo(db)
        self.catalog = catalog or CatalogService(db)

    #query - odczyt
    def view_cart(self, actor: Actor) -> Dict[str, Any]:
        require_role(actor, Role.CUSTOMER)
        cart = self.repo.get_cart_by_customer(actor.user_id)

        #brak koszyka to pusty koszyk, odczyt niczego nie tworzy
        if not cart:
            return {
                "cart_id": None,
                "customer_id": actor.user_id,
                "items": [],
                "item_count": 0,
                "total": Decimal("0.00"),
            }

        lines = [self._line(i) for i in self.repo.get_cart_items(cart.id)]

        return {
            "cart_id": cart.id,
            "customer_id": cart.customer_id,
            "items": lines,
            "item_count": sum(line["quantity"] for line in lines),
            "total": sum((line["subtotal"] for line in lines), Decimal("0.00")),
        }

    def _line(self, item: CartItemModel) -> Dict[str, Any]:
        selection = Selection.of(item.variant_id, item.option_ids or [])
        unit_price = Decimal(item.price)
        product_name = None
        available = False

        product = self.catalog.repo.get_product(item.product_id)
        if product is not None:
            product_name = product.name
            try:
                resolved = self.catalog.resolve_selection(product, selection)
            except ValidationError:
                #wariant/opcja usunieta po dodaniu do koszyka
                resolved = None
            if resolved is not None:
                unit_price = self.catalog.unit_price(product, resolved)
                available = (
                    product.availability == Availability.AVAILABLE.value
                    and self.catalog.available_stock(product, resolved) >= item.quantity
                )

        return {
            "product_id": item.product_id,
            "product_name": product_name,
            "selection": {
                "variant_id": selection.variant_id,
                "option_ids": list(selection.option_ids),
                "key": selection.key,
            },
            "quantity": item.quantity,
            "unit_price": unit_price,
            "subtotal": unit_price * item.quantity,
            "available": available,
            "price_changed": unit_price != Decimal(item.price),
        }

    #commands
    def add_item(
        self,
        actor: Actor,
        product_id: int,
        selection: Selection,
        quantity: int,
    ) -> Dict[str, Any]:

        require_role(actor, Role.CUSTOMER)

        # Walidacje
        if quantity < 1:
            raise ValidationError("Ilosc musi byc wieksza niz 0", ["quantity"])

        product = self.catalog.get_product(product_id)

        if product.availability == Availability.OUT_OF_STOCK.value:
            raise ProductUnavailable(f"Produkt {product_id} jest niedostepny")

        resolved = self.catalog.resolve_selection(product, selection)
        price = self.catalog.unit_price(product, resolved)

        #koszyk tworzony leniwie przy pierwszym dodaniu
        cart = self.repo.get_cart_by_customer(actor.user_id)
        if not cart:
            cart = self.repo.create_cart(CartModel(customer_id=actor.user_id))
            logger.info(f"Utworzono nowy koszyk {cart.id} dla klienta {actor.user_id}")

        existing_item = self.repo.get_cart_item(cart.id, product_id, selection.key)
        wanted = quantity + (existing_item.quantity if existing_item else 0)

        #podpowiedz stanu, rezerwacja dopiero przy checkout
        if self.catalog.available_stock(product, resolved) < wanted:
            self.repo.rollback()
            raise ProductUnavailable(
                f"Produkt {product_id} [{selection.key}]: niewystarczajacy stan dla ilosci {wanted}"
            )

        if existing_item:
            logger.info(
                f"Produkt {product_id} [{selection.key}] juz jest w koszyku, zwiekszam ilosc "
                f"z {existing_item.quantity} do {wanted}"
            )
            existing_item.quantity = wanted
            existing_item.price = price  # update ceny
            self.repo.add_cart_item(existing_item)
        else:
            logger.info(f"Dodaje nowy produkt {product_id} [{selection.key}] do koszyka {cart.id}")
            self.repo.add_cart_item(
                CartItemModel(
                    cart_id=cart.id,
                    product_id=product_id,
                    variant_id=selection.variant_id,
                    option_ids=list(selection.option_ids),
                    selection_key=selection.key,
                    quantity=quantity,
                    price=price,
                )
            )

        self.repo.touch_cart(cart.id)
        self.repo.commit()

        return self.view_cart(actor)

    def update_item(
        self,
        actor: Actor,
        product_id: int,
        selection: Selection,
        quantity: int,
    ) -> Dict[str, Any]:

        require_role(actor, Role.CUSTOMER)

        cart = self.repo.get_cart_by_customer(actor.user_id)
        item = self.repo.get_cart_item(cart.id, product_id, selection.key) if cart else None

        if not item:
            raise ItemNotFound(f"Produktu {product_id} [{selection.key}] nie ma w koszyku")

        if quantity < 1:
            return self.remove_item(actor, product_id, selection)

        logger.info(f"Zmiana ilosci produktu {product_id} [{selection.key}] na {quantity}")

        #last-write-wins na linii
        item.quantity = quantity
        self.repo.add_cart_item(item)
        self.repo.touch_cart(cart.id)
        self.repo.commit()

        return self.view_cart(actor)

    def remove_item(
        self,
        actor: Actor,
        product_id: int,
        selection: Selection,
    ) -> Dict[str, Any]:

        require_role(actor, Role.CUSTOMER)

        cart = self.repo.get_cart_by_customer(actor.user_id)

        #idempotentne - brak linii to tez sukces
        if cart:
            logger.info(f"Usuwanie produktu {product_id} [{selection.key}] z koszyka {cart.id}")
            if self.repo.delete_cart_item(cart.id, product_id, selection.key):
                self.repo.touch_cart(cart.id)
            self.repo.commit()

        return self.view_cart(actor)

    def clear_cart(self, actor: Actor) -> Dict[str, Any]:
        require_role(actor, Role.CUSTOMER)

        cart = self.repo.get_cart_by_customer(actor.user_id)
        if cart:
            removed = self.repo.clear_cart_items(cart.id)
            self.repo.touch_cart(cart.id)
            self.repo.commit()
            logger.info(f"Koszyk {cart.id} wyczyszczony ({removed} linii)")

        return self.view_cart(actor)

