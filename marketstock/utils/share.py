# marketstock/utils/share.py
"""Outbound share targets for a supplier: phone call, messaging, purchase order."""
import re
from datetime import datetime
from typing import Dict, Optional, Sequence
from urllib.parse import quote

from marketstock.schemas.product import ProductOut
from marketstock.schemas.purchase_order import CompanyInfo, PurchaseOrder, PurchaseOrderLine
from marketstock.schemas.supplier import SupplierOut, SupplierShare
from marketstock.utils.filters import critical_products

STATUS_LABELS = {
    "available": "Disponible",
    "low": "Presque fini",
    "out": "Épuisé",
}


def tel_url(phone_number: Optional[str]) -> Optional[str]:
    if not phone_number:
        return None
    return f"tel:{phone_number.replace(' ', '')}"


def restock_message(supplier: SupplierOut, products: Sequence[ProductOut]) -> str:
    lines = [f"• {p.name} ({STATUS_LABELS[p.status]})" for p in critical_products(products)]
    return (
        "🛒 Liste de réapprovisionnement\n\n"
        f"Fournisseur: {supplier.name}\n\n"
        "Produits à commander:\n" + "\n".join(lines)
    )


def whatsapp_url(phone_number: Optional[str], message: str) -> Optional[str]:
    digits = re.sub(r"\D", "", phone_number or "")
    if not digits:
        return None
    return f"https://wa.me/{digits}?text={quote(message, safe='')}"


def build_share(supplier: SupplierOut, products: Sequence[ProductOut]) -> SupplierShare:
    message = restock_message(supplier, products)
    return SupplierShare(
        supplier_id=supplier.id,
        message=message,
        tel_url=tel_url(supplier.phone_number),
        whatsapp_url=whatsapp_url(supplier.phone_number, message),
    )


def build_purchase_order(
    supplier: SupplierOut,
    products: Sequence[ProductOut],
    company: CompanyInfo,
    category_names: Optional[Dict[int, str]] = None,
    vat_rate: float = 20.0,
    now: Optional[datetime] = None,
) -> PurchaseOrder:
    """Purchase order for the supplier's low / out products, priced at purchase price."""
    now = now or datetime.now()
    category_names = category_names or {}

    lines = [
        PurchaseOrderLine(
            name=p.name,
            category=category_names.get(p.category_id) if p.category_id is not None else None,
            status=p.status,
            unit_price=p.purchase_price or 0.0,
        )
        for p in critical_products(products)
    ]
    total_ht = round(sum(line.unit_price for line in lines), 2)
    total_vat = round(total_ht * vat_rate / 100, 2)

    return PurchaseOrder(
        number=f"CMD-{int(now.timestamp() * 1000)}",
        created_at=now,
        supplier_name=supplier.name,
        supplier_phone=supplier.phone_number,
        company=company,
        lines=lines,
        vat_rate=vat_rate,
        total_ht=total_ht,
        total_vat=total_vat,
        total_ttc=round(total_ht + total_vat, 2),
    )
