from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    Numeric,
    DateTime,
    Boolean,
    ForeignKey,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from marketplace.data.database import Base


class ProductModel(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_price"),
        CheckConstraint("stock >= 0", name="ck_product_stock"),
        CheckConstraint("shipping_fee >= 0", name="ck_product_shipping_fee"),
    )

    id = Column(Integer, primary_key=True)
    store_id = Column(Integer, ForeignKey("stores.id"), nullable=False, index=True)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    category = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)

    #stan bazowy, uzywany tylko gdy produkt nie ma wariantow
    stock = Column(Integer, nullable=False, default=0)
    availability = Column(String, nullable=False, default="Available")

    estimated_time_minutes = Column(Integer, nullable=True)
    shipping_fee = Column(Numeric(10, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    variants = relationship(
        "ProductVariantModel",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductVariantModel.position",
    )
    choice_groups = relationship(
        "ChoiceGroupModel",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ChoiceGroupModel.position",
    )


class ProductVariantModel(Base):
    __tablename__ = "product_variants"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_variant_price"),
        CheckConstraint("stock >= 0", name="ck_variant_stock"),
    )

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    image = Column(String, nullable=False, default="")

    product = relationship("ProductModel", back_populates="variants")


class ChoiceGroupModel(Base):
    __tablename__ = "choice_groups"

    id = Column(Integer, primary_key=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    name = Column(String, nullable=False)
    is_required = Column(Boolean, nullable=False, default=False)
    allow_multiple = Column(Boolean, nullable=False, default=False)

    product = relationship("ProductModel", back_populates="choice_groups")
    options = relationship(
        "ChoiceOptionModel",
        back_populates="group",
        cascade="all, delete-orphan",
        order_by="ChoiceOptionModel.position",
    )


class ChoiceOptionModel(Base):
    __tablename__ = "choice_options"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_option_price"),
        CheckConstraint("stock >= 0", name="ck_option_stock"),
    )

    id = Column(Integer, primary_key=True)
    group_id = Column(Integer, ForeignKey("choice_groups.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    name = Column(String, nullable=False)
    price = Column(Numeric(10, 2), nullable=False, default=0)
    stock = Column(Integer, nullable=False, default=0)
    image = Column(String, nullable=False, default="")

    group = relationship("ChoiceGroupModel", back_populates="options")
