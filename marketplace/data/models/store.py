from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Text, Numeric, DateTime

from marketplace.data.database import Base


class StoreModel(Base):
    __tablename__ = "stores"

    id = Column(Integer, primary_key=True)
    owner_id = Column(Integer, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")

    #liczniki ksiegowe, zmieniane tylko przy Delivered
    completed_orders = Column(Integer, nullable=False, default=0)
    total_earnings = Column(Numeric(12, 2), nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
