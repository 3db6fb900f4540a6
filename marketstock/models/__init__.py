from marketstock.models.category import Category
from marketstock.models.log import Log
from marketstock.models.market import Market
from marketstock.models.product import Product
from marketstock.models.product_market import ProductMarket
from marketstock.models.supplier import Supplier

__all__ = ["Category", "Log", "Market", "Product", "ProductMarket", "Supplier"]
