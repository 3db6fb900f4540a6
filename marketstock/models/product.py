# marketstock/models/product.py
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, CheckConstraint
from marketstock.database import Base

# Model Product
# A catalogue item sold on one or more markets.
# Status is one of available / low / out; prices are optional and non-negative.
# Market membership lives in the product_markets join table.
class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    code = Column(String, nullable=True, index=True)

    status = Column(
        String(16),
        CheckConstraint("status IN ('available', 'low', 'out')"),
        nullable=False,
        default="available",
    )

    purchase_price = Column(Numeric(10, 2, asdecimal=False), CheckConstraint("purchase_price >= 0"), nullable=True)
    sale_price = Column(Numeric(10, 2, asdecimal=False), CheckConstraint("sale_price >= 0"), nullable=True)

    # Plain references, integrity is handled by the delete policy in the mutation layer
    supplier_id = Column(Integer, ForeignKey("suppliers.id"), nullable=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)
