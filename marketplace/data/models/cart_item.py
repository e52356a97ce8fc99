from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, JSON, UniqueConstraint
from sqlalchemy.orm import relationship

from marketplace.data.database import Base


class CartItemModel(Base):
    __tablename__ = "cart_items"
    __table_args__ = (
        UniqueConstraint("cart_id", "product_id", "selection_key", name="u_cart_product_selection"),
    )

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, nullable=False)

    variant_id = Column(Integer, nullable=True)
    option_ids = Column(JSON, nullable=False, default=list)
    selection_key = Column(String, nullable=False, default="")

    quantity = Column(Integer, nullable=False)
    #cena z momentu dodania, tylko do wyswietlania
    price = Column(Numeric(10, 2), nullable=False)

    cart = relationship("CartModel", back_populates="items")
