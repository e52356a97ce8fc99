# marketplace/repos/product_repo.py
from typing import List

from sqlalchemy import select, update, func
from sqlalchemy.orm import Session

from marketplace.data.models.product import (
    ProductModel,
    ProductVariantModel,
    ChoiceGroupModel,
    ChoiceOptionModel,
)
from marketplace.domain.status import Availability


class ProductRepo:
    """
    Dostep do produktow. Operacje na stanie magazynu to warunkowe UPDATE
    (compare-and-swap w bazie), rowcount == 0 oznacza brak towaru.
    """

    def __init__(self, db: Session):
        self.db = db

    def get_product(self, product_id: int) -> ProductModel | None:
        return self.db.get(ProductModel, product_id)

    def list_by_store(self, store_id: int) -> List[ProductModel]:
        return list(
            self.db.execute(
                select(ProductModel)
                .where(ProductModel.store_id == store_id)
                .order_by(ProductModel.id)
            ).scalars().all()
        )

    def add_product(self, product: ProductModel) -> ProductModel:
        self.db.add(product)
        self.db.flush()
        return product

    def delete_product(self, product: ProductModel) -> None:
        self.db.delete(product)
        self.db.flush()

    # ---------- stock ----------

    def _change(self, model, where, delta: int) -> int:
        self.db.flush()
        stmt = update(model).where(*where).values(stock=model.stock + delta)
        if delta < 0:
            #nigdy ponizej zera
            stmt = stmt.where(model.stock >= -delta)
        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        return result.rowcount

    def change_base_stock(self, product_id: int, delta: int) -> int:
        return self._change(ProductModel, [ProductModel.id == product_id], delta)

    def change_variant_stock(self, product_id: int, variant_id: int, delta: int) -> int:
        return self._change(
            ProductVariantModel,
            [ProductVariantModel.id == variant_id, ProductVariantModel.product_id == product_id],
            delta,
        )

    def change_option_stock(self, product_id: int, option_id: int, delta: int) -> int:
        group_ids = select(ChoiceGroupModel.id).where(ChoiceGroupModel.product_id == product_id)
        return self._change(
            ChoiceOptionModel,
            [ChoiceOptionModel.id == option_id, ChoiceOptionModel.group_id.in_(group_ids)],
            delta,
        )

    def refresh_availability(self, product_id: int) -> str:
        """
        Przelicza availability z aktualnych stanow w bazie:
        z wariantami -> Available gdy choc jeden wariant ma stock > 0,
        bez wariantow -> wedlug stanu bazowego.
        """
        variants, variant_stock = self.db.execute(
            select(func.count(ProductVariantModel.id), func.max(ProductVariantModel.stock))
            .where(ProductVariantModel.product_id == product_id)
        ).one()

        if variants:
            in_stock = (variant_stock or 0) > 0
        else:
            base = self.db.execute(
                select(ProductModel.stock).where(ProductModel.id == product_id)
            ).scalar_one_or_none()
            in_stock = (base or 0) > 0

        availability = Availability.AVAILABLE.value if in_stock else Availability.OUT_OF_STOCK.value
        self.db.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(availability=availability)
            .execution_options(synchronize_session=False)
        )
        return availability

    def sync(self):
        #po UPDATE z pominieciem ORM obiekty w sesji sa nieaktualne
        self.db.flush()
        self.db.expire_all()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
