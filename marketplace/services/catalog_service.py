# marketplace/services/catalog_service.py
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Tuple

from sqlalchemy.orm import Session

from marketplace.data.models.product import (
    ProductModel,
    ProductVariantModel,
    ChoiceGroupModel,
    ChoiceOptionModel,
)
from marketplace.data.models.store import StoreModel
from marketplace.domain.errors import (
    InsufficientStock,
    NotFound,
    ProductInUse,
    ValidationError,
)
from marketplace.domain.schemas import ProductCreate, ProductUpdate, StoreCreate
from marketplace.domain.selection import Selection
from marketplace.domain.status import ACTIVE_STATUSES, Role
from marketplace.repos.order_repo import OrderRepo
from marketplace.repos.product_repo import ProductRepo
from marketplace.repos.store_repo import StoreRepo
from marketplace.services.access_policy import AccessPolicy, Actor, require_role
from marketplace.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class ResolvedSelection:
    """Selection zamieniona na obiekty katalogu."""

    selection: Selection
    variant: ProductVariantModel | None = None
    options: List[ChoiceOptionModel] = field(default_factory=list)

    @property
    def label(self) -> str:
        parts = []
        if self.variant is not None:
            parts.append(self.variant.name)
        for o in self.options:
            parts.append(f"{o.group.name}: {o.name}")
        return " / ".join(parts)


class CatalogService:
    """
    Katalog sprzedawcy: sklepy, produkty, warianty i grupy wyboru.
    Jedyne miejsce, ktore zmienia stany magazynowe.
    """

    def __init__(self, db: Session):
        self.repo = ProductRepo(db)
        self.stores = StoreRepo(db)
        self.orders = OrderRepo(db)
        self.policy = AccessPolicy(db)

    #query - odczyt

    def get_store(self, store_id: int) -> StoreModel:
        store = self.stores.get_store(store_id)
        if not store:
            raise NotFound(f"Sklep {store_id} nie istnieje")
        return store

    def get_product(self, product_id: int) -> ProductModel:
        product = self.repo.get_product(product_id)
        if not product:
            raise NotFound(f"Produkt {product_id} nie istnieje")
        return product

    def list_store_products(self, store_id: int) -> List[ProductModel]:
        self.get_store(store_id)
        return self.repo.list_by_store(store_id)

    #commands - sklepy i produkty

    def create_store(self, actor: Actor, payload: StoreCreate) -> StoreModel:
        require_role(actor, Role.SELLER)
        store = self.stores.create_store(
            StoreModel(
                owner_id=actor.user_id,
                name=payload.name,
                description=payload.description,
                completed_orders=0,
                total_earnings=Decimal("0.00"),
            )
        )
        logger.info(f"Utworzono sklep {store.id} dla sprzedawcy {actor.user_id}")
        return store

    def create_product(self, actor: Actor, payload: ProductCreate) -> ProductModel:
        store = self.get_store(payload.store_id)
        self.policy.ensure_store_owner(actor, store)

        product = ProductModel(
            store_id=store.id,
            name=payload.name,
            description=payload.description,
            category=payload.category,
            price=payload.price,
            stock=payload.stock,
            estimated_time_minutes=payload.estimated_time_minutes,
            shipping_fee=payload.shipping_fee,
        )
        product.variants = [
            ProductVariantModel(position=pos, name=v.name, price=v.price, stock=v.stock, image=v.image)
            for pos, v in enumerate(payload.variants)
        ]
        product.choice_groups = [self._new_group(pos, g) for pos, g in enumerate(payload.choice_groups)]

        self.repo.add_product(product)
        self.repo.refresh_availability(product.id)
        self.repo.commit()

        logger.info(f"Produkt {product.id} dodany do sklepu {store.id}")
        return self.get_product(product.id)

    def update_product(self, actor: Actor, product_id: int, payload: ProductUpdate) -> ProductModel:
        product = self.get_product(product_id)
        self.policy.ensure_store_owner(actor, self.get_store(product.store_id))

        data = payload.model_dump(exclude_unset=True, exclude={"variants", "choice_groups"})
        for name, value in data.items():
            if value is None and name not in ("estimated_time_minutes",):
                continue
            setattr(product, name, value)

        if payload.variants is not None or payload.choice_groups is not None:
            in_use_variants, in_use_options = self._referenced_selection_ids(product.id)
            if payload.variants is not None:
                self._sync_variants(product, payload.variants, in_use_variants)
            if payload.choice_groups is not None:
                self._sync_groups(product, payload.choice_groups, in_use_options)

        self.repo.add_product(product)
        availability = self.repo.refresh_availability(product.id)
        self.repo.commit()

        logger.info(f"Produkt {product.id} zaktualizowany, availability: {availability}")
        return self.get_product(product.id)

    def delete_product(self, actor: Actor, product_id: int) -> None:
        product = self.get_product(product_id)
        self.policy.ensure_store_owner(actor, self.get_store(product.store_id))

        if self.orders.active_items_for_product(product_id, [s.value for s in ACTIVE_STATUSES]):
            raise ProductInUse(f"Produkt {product_id} jest w aktywnym zamowieniu")

        self.repo.delete_product(product)
        self.repo.commit()
        logger.info(f"Produkt {product_id} usuniety")

    # ---------- selection / cena ----------

    def resolve_selection(self, product: ProductModel, selection: Selection) -> ResolvedSelection:
        """
        Sprawdza wybor klienta wzgledem produktu:
        - produkt z wariantami wymaga wariantu, bez wariantow nie przyjmuje go
        - wymagane grupy musza miec wybrana opcje
        - grupa bez allow_multiple przyjmuje najwyzej jedna opcje
        """
        resolved = ResolvedSelection(selection=selection)

        if product.variants:
            if selection.variant_id is None:
                raise ValidationError("Wybierz wariant produktu", ["selection.variant_id"])
            variant = next((v for v in product.variants if v.id == selection.variant_id), None)
            if variant is None:
                raise ValidationError(
                    f"Wariant {selection.variant_id} nie nalezy do produktu {product.id}",
                    ["selection.variant_id"],
                )
            resolved.variant = variant
        elif selection.variant_id is not None:
            raise ValidationError(f"Produkt {product.id} nie ma wariantow", ["selection.variant_id"])

        options_by_id = {o.id: o for g in product.choice_groups for o in g.options}
        unknown = [oid for oid in selection.option_ids if oid not in options_by_id]
        if unknown:
            raise ValidationError(f"Nieznane opcje: {unknown}", ["selection.option_ids"])

        resolved.options = [options_by_id[oid] for oid in selection.option_ids]

        for group in product.choice_groups:
            picked = [o for o in resolved.options if o.group_id == group.id]
            if group.is_required and not picked:
                raise ValidationError(f"Wybierz opcje z grupy {group.name}", ["selection.option_ids"])
            if len(picked) > 1 and not group.allow_multiple:
                raise ValidationError(
                    f"Grupa {group.name} pozwala wybrac tylko jedna opcje",
                    ["selection.option_ids"],
                )

        return resolved

    @staticmethod
    def unit_price(product: ProductModel, resolved: ResolvedSelection) -> Decimal:
        #cena wariantu zastepuje cene bazowa, opcje sa doplata
        base = resolved.variant.price if resolved.variant is not None else product.price
        extras = sum((o.price for o in resolved.options), Decimal("0.00"))
        return Decimal(base) + extras

    @staticmethod
    def available_stock(product: ProductModel, resolved: ResolvedSelection) -> int:
        stocks = [resolved.variant.stock if resolved.variant is not None else product.stock]
        stocks.extend(o.stock for o in resolved.options)
        return min(stocks)

    # ---------- stock ----------

    def _stock_parts(self, product_id: int, selection: Selection) -> List[Tuple[str, int | None]]:
        parts: List[Tuple[str, int | None]] = []
        if selection.variant_id is not None:
            parts.append(("variant", selection.variant_id))
        else:
            parts.append(("base", None))
        parts.extend(("option", oid) for oid in selection.option_ids)
        return parts

    def _apply(self, product_id: int, kind: str, ref: int | None, delta: int) -> int:
        if kind == "variant":
            return self.repo.change_variant_stock(product_id, ref, delta)
        if kind == "option":
            return self.repo.change_option_stock(product_id, ref, delta)
        return self.repo.change_base_stock(product_id, delta)

    def decrement_stock(self, product_id: int, selection: Selection, quantity: int) -> None:
        """
        Atomowe sprawdz-i-zmniejsz dla jednej linii. Kazda czesc (wariant/baza
        i kazda opcja) to osobny warunkowy UPDATE; jesli ktoras sie nie uda,
        juz zdjete czesci tej linii sa oddawane i leci InsufficientStock.
        Commit nalezy do wolajacego.
        """
        if quantity < 1:
            raise ValidationError("Ilosc musi byc wieksza niz 0", ["quantity"])

        applied = []
        for kind, ref in self._stock_parts(product_id, selection):
            if self._apply(product_id, kind, ref, -quantity) == 0:
                for done_kind, done_ref in applied:
                    self._apply(product_id, done_kind, done_ref, quantity)
                self.repo.sync()
                logger.info(
                    f"Brak towaru: produkt {product_id} [{selection.key}] ({kind} {ref}), potrzeba {quantity}"
                )
                raise InsufficientStock(
                    f"Niewystarczajacy stan produktu {product_id} [{selection.key}]",
                    product_id=product_id,
                    selection_key=selection.key,
                )
            applied.append((kind, ref))

        availability = self.repo.refresh_availability(product_id)
        self.repo.sync()
        logger.info(
            f"Stock produktu {product_id} [{selection.key}] -{quantity}, availability: {availability}"
        )

    def restore_stock(self, product_id: int, selection: Selection, quantity: int) -> None:
        """Odwrotnosc decrement_stock. Idempotencja jest po stronie zamowienia."""
        for kind, ref in self._stock_parts(product_id, selection):
            if self._apply(product_id, kind, ref, quantity) == 0:
                logger.warning(
                    f"Nie mozna oddac stanu: produkt {product_id} ({kind} {ref}) nie istnieje"
                )

        availability = self.repo.refresh_availability(product_id)
        self.repo.sync()
        logger.info(
            f"Stock produktu {product_id} [{selection.key}] +{quantity}, availability: {availability}"
        )

    # ---------- helpers ----------

    @staticmethod
    def _new_group(pos: int, g) -> ChoiceGroupModel:
        group = ChoiceGroupModel(
            position=pos,
            name=g.name,
            is_required=g.is_required,
            allow_multiple=g.allow_multiple,
        )
        group.options = [
            ChoiceOptionModel(position=i, name=o.name, price=o.price, stock=o.stock, image=o.image)
            for i, o in enumerate(g.options)
        ]
        return group

    def _referenced_selection_ids(self, product_id: int):
        items = self.orders.active_items_for_product(product_id, [s.value for s in ACTIVE_STATUSES])
        variants = {i.variant_id for i in items if i.variant_id is not None}
        options = {oid for i in items for oid in (i.option_ids or [])}
        return variants, options

    def _sync_variants(self, product: ProductModel, payloads, in_use: set) -> None:
        existing = {v.id: v for v in product.variants}
        keep = []
        for pos, p in enumerate(payloads):
            if p.id is not None:
                variant = existing.get(p.id)
                if variant is None:
                    raise ValidationError(f"Wariant {p.id} nie nalezy do produktu", ["variants"])
            else:
                variant = ProductVariantModel()
            variant.position = pos
            variant.name = p.name
            variant.price = p.price
            variant.stock = p.stock
            variant.image = p.image
            keep.append(variant)

        removed = set(existing) - {v.id for v in keep if v.id is not None}
        if removed & in_use:
            raise ProductInUse(f"Warianty {sorted(removed & in_use)} sa w aktywnych zamowieniach")
        product.variants = keep

    def _sync_groups(self, product: ProductModel, payloads, in_use: set) -> None:
        existing_groups = {g.id: g for g in product.choice_groups}
        existing_options = {o.id: o for g in product.choice_groups for o in g.options}
        keep_groups = []
        kept_options = set()

        for pos, g in enumerate(payloads):
            if g.id is not None:
                group = existing_groups.get(g.id)
                if group is None:
                    raise ValidationError(f"Grupa {g.id} nie nalezy do produktu", ["choice_groups"])
            else:
                group = ChoiceGroupModel()
            group.position = pos
            group.name = g.name
            group.is_required = g.is_required
            group.allow_multiple = g.allow_multiple

            options = []
            for i, o in enumerate(g.options):
                if o.id is not None:
                    option = existing_options.get(o.id)
                    if option is None:
                        raise ValidationError(f"Opcja {o.id} nie nalezy do produktu", ["choice_groups"])
                    kept_options.add(o.id)
                else:
                    option = ChoiceOptionModel()
                option.position = i
                option.name = o.name
                option.price = o.price
                option.stock = o.stock
                option.image = o.image
                options.append(option)
            group.options = options
            keep_groups.append(group)

        removed = set(existing_options) - kept_options
        if removed & in_use:
            raise ProductInUse(f"Opcje {sorted(removed & in_use)} sa w aktywnych zamowieniach")
        product.choice_groups = keep_groups
