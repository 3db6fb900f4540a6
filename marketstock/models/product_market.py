# marketstock/models/product_market.py
from sqlalchemy import Column, Integer, ForeignKey
from marketstock.database import Base

# Join row between a product and a market. No attributes of its own,
# and the same pair may appear more than once.
class ProductMarket(Base):
    __tablename__ = "product_markets"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True)
    market_id = Column(Integer, ForeignKey("markets.id"), nullable=False, index=True)
