# marketstock/schemas/purchase_order.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from marketstock.schemas.product import StockStatus


class CompanyInfo(BaseModel):
    name: str
    address: Optional[str] = None
    phone: Optional[str] = None


class PurchaseOrderLine(BaseModel):
    name: str
    category: Optional[str] = None
    status: StockStatus
    unit_price: float = 0.0


# Restocking order sent to a supplier for its low / out products
class PurchaseOrder(BaseModel):
    number: str
    created_at: datetime
    supplier_name: str
    supplier_phone: Optional[str] = None
    company: CompanyInfo
    lines: List[PurchaseOrderLine]
    vat_rate: float
    total_ht: float
    total_vat: float
    total_ttc: float
