# marketstock/models/market.py
from sqlalchemy import Column, Integer, String
from marketstock.database import Base

# A place of sale (weekly market, shop...) products can be associated with
class Market(Base):
    __tablename__ = "markets"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
