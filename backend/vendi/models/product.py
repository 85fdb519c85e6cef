from sqlalchemy import Boolean, Column, Numeric, String

from vendi.db.base import Base


class Product(Base):
    """
    Catalog product, owned by the catalog subsystem.

    The agent engine only reads this table: prices shown and charged always
    come from here, never from model output.
    """
    __tablename__ = "products"

    id = Column(String(64), primary_key=True)
    tenant_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    active = Column(Boolean, nullable=False, default=True)
