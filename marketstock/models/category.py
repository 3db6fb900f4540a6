# marketstock/models/category.py
from sqlalchemy import Column, Integer, String
from marketstock.database import Base

class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, index=True)
