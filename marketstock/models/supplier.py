# marketstock/models/supplier.py
from sqlalchemy import Column, Integer, String
from marketstock.database import Base

class Supplier(Base):
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
    phone_number = Column(String, nullable=True)
