# marketplace/repos/order_repo.py
from datetime import datetime, timezone
from typing import Iterable, List

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from marketplace.data.models.order import OrderModel, OrderItemModel, OrderStatusEventModel


class OrderRepo:
    def __init__(self, db: Session):
        self.db = db

    def create_order(self, order: OrderModel) -> OrderModel:
        self.db.add(order)
        self.db.flush()
        return order

    def get_order(self, order_id: int) -> OrderModel | None:
        return self.db.get(OrderModel, order_id)

    def list_by_customer(self, customer_id: int) -> List[OrderModel]:
        return list(
            self.db.execute(
                select(OrderModel)
                .where(OrderModel.customer_id == customer_id)
                .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars().all()
        )

    def list_by_stores(self, store_ids: Iterable[int], status: str | None = None) -> List[OrderModel]:
        store_ids = list(store_ids)
        if not store_ids:
            return []

        order_ids = select(OrderItemModel.order_id).where(OrderItemModel.store_id.in_(store_ids))
        stmt = select(OrderModel).where(OrderModel.id.in_(order_ids))
        if status:
            stmt = stmt.where(OrderModel.status == status)

        return list(
            self.db.execute(
                stmt.order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            ).scalars().all()
        )

    def compare_and_set_status(
        self,
        order_id: int,
        expected: Iterable[str],
        new_status: str,
        values: dict | None = None,
    ) -> int:
        """
        Optimistic locking na statusie:
        UPDATE orders SET status = :new, version = version + 1
        WHERE id = :id AND status IN (:expected)
        """
        result = self.db.execute(
            update(OrderModel)
            .where(OrderModel.id == order_id, OrderModel.status.in_(list(expected)))
            .values(
                status=new_status,
                version=OrderModel.version + 1,
                updated_at=datetime.now(timezone.utc),
                **(values or {}),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def compare_and_set_payment(self, order_id: int, expected: str, new_status: str) -> int:
        result = self.db.execute(
            update(OrderModel)
            .where(
                OrderModel.id == order_id,
                OrderModel.payment_status == expected,
                OrderModel.status != "Canceled",
            )
            .values(
                payment_status=new_status,
                version=OrderModel.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    def add_event(self, event: OrderStatusEventModel) -> None:
        self.db.add(event)

    def active_items_for_product(self, product_id: int, statuses: Iterable[str]) -> List[OrderItemModel]:
        return list(
            self.db.execute(
                select(OrderItemModel)
                .join(OrderModel, OrderModel.id == OrderItemModel.order_id)
                .where(
                    OrderItemModel.product_id == product_id,
                    OrderModel.status.in_(list(statuses)),
                )
            ).scalars().all()
        )

    def sync(self):
        self.db.flush()
        self.db.expire_all()

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
