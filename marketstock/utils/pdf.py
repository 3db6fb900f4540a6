# marketstock/utils/pdf.py
import io
import logging
from pathlib import Path

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

from marketstock.config import settings
from marketstock.schemas.purchase_order import PurchaseOrder
from marketstock.utils.share import STATUS_LABELS

logger = logging.getLogger(__name__)

# Built-in fonts are used unless DejaVu is available in FONT_DIR
FONT_DIR = Path(settings.FONT_DIR)
FONT_REGULAR_PATH = FONT_DIR / "DejaVuSans.ttf"
FONT_BOLD_PATH = FONT_DIR / "DejaVuSans-Bold.ttf"

FONT_REGULAR_NAME = "Helvetica"
FONT_BOLD_NAME = "Helvetica-Bold"

_fonts_inited = False
def _init_fonts():
    """Registers DejaVu fonts in ReportLab when the files are present."""
    global _fonts_inited, FONT_REGULAR_NAME, FONT_BOLD_NAME
    if _fonts_inited:
        return
    _fonts_inited = True

    if not FONT_REGULAR_PATH.exists():
        logger.info("DejaVu font not found at %s, using Helvetica", FONT_REGULAR_PATH)
        return

    pdfmetrics.registerFont(TTFont("DejaVuSans", str(FONT_REGULAR_PATH)))
    FONT_REGULAR_NAME = "DejaVuSans"
    if FONT_BOLD_PATH.exists():
        pdfmetrics.registerFont(TTFont("DejaVuSans-Bold", str(FONT_BOLD_PATH)))
        FONT_BOLD_NAME = "DejaVuSans-Bold"
    else:
        FONT_BOLD_NAME = FONT_REGULAR_NAME


def _money(value: float) -> str:
    return f"{value:.2f} €"


def render_purchase_order_pdf(order: PurchaseOrder) -> bytes:
    """
    Renders a purchase order as PDF:
    - header with order number and date
    - supplier (left) + company (right)
    - table of products to order
    - totals HT / VAT / TTC
    - signature footer
    """
    _init_fonts()

    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=A4)
    width, height = A4

    def draw_text(x, y, text, font=None, size=10, align="left"):
        c.setFont(font or FONT_REGULAR_NAME, size)
        text_str = str(text) if text is not None else ""
        if align == "right":
            c.drawRightString(x, y, text_str)
        elif align == "center":
            c.drawCentredString(x, y, text_str)
        else:
            c.drawString(x, y, text_str)

    # --- 1. HEADER ---
    y = height - 20 * mm
    draw_text(190 * mm, y, "BON DE COMMANDE", font=FONT_BOLD_NAME, size=16, align="right")
    y -= 8 * mm
    draw_text(190 * mm, y, f"N° Commande: {order.number}", size=10, align="right")
    y -= 5 * mm
    draw_text(190 * mm, y, f"Date: {order.created_at.strftime('%d/%m/%Y')}", size=10, align="right")

    y -= 6 * mm
    c.setLineWidth(0.5)
    c.line(20 * mm, y, 190 * mm, y)
    y -= 10 * mm

    # --- 2. SUPPLIER vs COMPANY ---
    y_start_columns = y
    draw_text(20 * mm, y, "FOURNISSEUR:", font=FONT_BOLD_NAME)
    y -= 5 * mm
    draw_text(20 * mm, y, order.supplier_name, font=FONT_BOLD_NAME)
    if order.supplier_phone:
        y -= 5 * mm
        draw_text(20 * mm, y, f"Tél: {order.supplier_phone}")

    y = y_start_columns
    draw_text(110 * mm, y, "ENTREPRISE:", font=FONT_BOLD_NAME)
    y -= 5 * mm
    draw_text(110 * mm, y, order.company.name, font=FONT_BOLD_NAME)
    for extra in (order.company.address, order.company.phone):
        if extra:
            y -= 5 * mm
            draw_text(110 * mm, y, extra)

    y = y_start_columns - 30 * mm

    # --- 3. LINES ---
    draw_text(20 * mm, y, "PRODUITS À COMMANDER:", font=FONT_BOLD_NAME, size=10)
    y -= 10 * mm

    c.setFillColorRGB(0.95, 0.95, 0.95)
    c.rect(20 * mm, y - 2 * mm, 170 * mm, 8 * mm, fill=1, stroke=0)
    c.setFillColorRGB(0, 0, 0)

    c.setFont(FONT_BOLD_NAME, 9)
    c.drawString(22 * mm, y, "N°")
    c.drawString(32 * mm, y, "Produit")
    c.drawString(100 * mm, y, "Catégorie")
    c.drawString(135 * mm, y, "État")
    c.drawRightString(185 * mm, y, "Prix unitaire HT")
    y -= 8 * mm

    c.setFont(FONT_REGULAR_NAME, 9)
    for idx, line in enumerate(order.lines, start=1):
        c.drawString(22 * mm, y, str(idx))
        c.drawString(32 * mm, y, line.name[:40])
        c.drawString(100 * mm, y, (line.category or "N/A")[:20])
        c.drawString(135 * mm, y, STATUS_LABELS[line.status])
        c.drawRightString(185 * mm, y, _money(line.unit_price))

        c.setLineWidth(0.1)
        c.line(20 * mm, y - 2 * mm, 190 * mm, y - 2 * mm)
        y -= 6 * mm

        # New page when the table runs out of room
        if y < 40 * mm:
            c.showPage()
            y = height - 20 * mm
            c.setFont(FONT_REGULAR_NAME, 9)

    # --- 4. TOTALS ---
    y -= 5 * mm
    if y < 40 * mm:
        c.showPage()
        y = height - 30 * mm

    c.setFont(FONT_BOLD_NAME, 10)
    c.drawRightString(150 * mm, y, "Total HT:")
    c.drawRightString(185 * mm, y, _money(order.total_ht))
    y -= 5 * mm
    c.drawRightString(150 * mm, y, f"TVA ({order.vat_rate:g}%):")
    c.drawRightString(185 * mm, y, _money(order.total_vat))
    y -= 6 * mm
    c.setFont(FONT_BOLD_NAME, 12)
    c.drawRightString(150 * mm, y, "Total TTC:")
    c.drawRightString(185 * mm, y, _money(order.total_ttc))

    # --- 5. SIGNATURES ---
    y_signatures = 35 * mm
    if y < y_signatures + 20 * mm:
        c.showPage()

    c.setLineWidth(0.5)
    c.setFont(FONT_REGULAR_NAME, 8)
    c.line(25 * mm, y_signatures, 85 * mm, y_signatures)
    c.drawCentredString(55 * mm, y_signatures - 4 * mm, "Signature client")
    c.line(125 * mm, y_signatures, 185 * mm, y_signatures)
    c.drawCentredString(155 * mm, y_signatures - 4 * mm, "Signature fournisseur")

    c.showPage()
    c.save()
    return buffer.getvalue()
