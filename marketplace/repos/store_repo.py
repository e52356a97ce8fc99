from decimal import Decimal
from typing import List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from marketplace.data.models.store import StoreModel


class StoreRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_store(self, store_id: int) -> StoreModel | None:
        return self.db.get(StoreModel, store_id)

    def create_store(self, store: StoreModel) -> StoreModel:
        self.db.add(store)
        self.db.commit()
        self.db.refresh(store)
        return store

    def store_ids_for_owner(self, owner_id: int) -> List[int]:
        return list(
            self.db.execute(
                select(StoreModel.id).where(StoreModel.owner_id == owner_id)
            ).scalars().all()
        )

    def credit(self, store_id: int, amount: Decimal) -> int:
        #inkrementacja po stronie bazy, bez read-modify-write
        result = self.db.execute(
            update(StoreModel)
            .where(StoreModel.id == store_id)
            .values(
                completed_orders=StoreModel.completed_orders + 1,
                total_earnings=StoreModel.total_earnings + amount,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
