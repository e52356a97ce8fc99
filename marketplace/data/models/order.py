from sqlalchemy import Column, Integer, ForeignKey, String, Text, DateTime, Numeric, JSON
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from marketplace.data.database import Base


def _now():
    return datetime.now(timezone.utc)


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    customer_id = Column(Integer, nullable=False, index=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="SET NULL"), nullable=True)

    status = Column(String, nullable=False, default="Pending")  # Pending, Placed, Shipped, Delivered, Canceled
    payment_status = Column(String, nullable=False, default="Unpaid")  # Unpaid, Pending, Paid
    version = Column(Integer, nullable=False, default=1)

    total_amount = Column(Numeric(12, 2), nullable=False)
    shipping_fee = Column(Numeric(10, 2), nullable=False, default=0)
    estimated_delivery_minutes = Column(Integer, nullable=True)

    customer_name = Column(String, nullable=True)
    contact_number = Column(String, nullable=True)
    delivery_location = Column(String, nullable=True)
    payment_method = Column(String, nullable=False, default="Cash on Delivery")
    notes = Column(Text, nullable=True)

    #ustawiane w tej samej transakcji co przejscie do Canceled
    stock_restored_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderItemModel.position",
    )
    history = relationship(
        "OrderStatusEventModel",
        back_populates="order",
        cascade="all, delete-orphan",
        order_by="OrderStatusEventModel.id",
    )


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    product_id = Column(Integer, nullable=False, index=True)
    store_id = Column(Integer, nullable=False, index=True)
    product_name = Column(String, nullable=False)

    variant_id = Column(Integer, nullable=True)
    option_ids = Column(JSON, nullable=False, default=list)
    selection_label = Column(String, nullable=False, default="")

    quantity = Column(Integer, nullable=False)
    price_at_purchase = Column(Numeric(10, 2), nullable=False)
    subtotal = Column(Numeric(12, 2), nullable=False)

    order = relationship("OrderModel", back_populates="items")


class OrderStatusEventModel(Base):
    __tablename__ = "order_status_events"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)

    status = Column(String, nullable=False)
    actor_id = Column(Integer, nullable=True)
    actor_role = Column(String, nullable=False)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)

    order = relationship("OrderModel", back_populates="history")
