"""
PDF receipts and packing slips for orders (reportlab canvas)
"""
import io
import logging
from django.utils import timezone
from reportlab.lib.pagesizes import letter
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas

logger = logging.getLogger(__name__)

PAGE_WIDTH, PAGE_HEIGHT = letter
MARGIN = 0.75 * inch
LINE_HEIGHT = 14
BOTTOM_LIMIT = 1.25 * inch

# x positions of the item table columns
COL_ITEM = MARGIN
COL_QTY = 4.4 * inch
COL_PRICE = 5.5 * inch
COL_AMOUNT = PAGE_WIDTH - MARGIN


def _money(value):
    return f"${value:,.2f}"


def _label(value):
    return str(value or '').replace('_', ' ').title()


def _address_lines(order, relation):
    # Missing reverse one-to-one raises a subclass of AttributeError
    address = getattr(order, relation, None)
    return address.lines() if address is not None else []


def _draw_header(c, title, order, store):
    y = PAGE_HEIGHT - MARGIN
    c.setFont('Helvetica-Bold', 20)
    c.drawString(MARGIN, y, title)
    c.setFont('Helvetica', 11)
    c.drawString(MARGIN, y - 18, order.order_number)

    c.setFont('Helvetica-Bold', 12)
    c.drawRightString(PAGE_WIDTH - MARGIN, y, store.get('name') or '')
    c.setFont('Helvetica', 9)
    line_y = y - 14
    for line in store.get('address_lines') or []:
        c.drawRightString(PAGE_WIDTH - MARGIN, line_y, line)
        line_y -= 12
    return min(y - 40, line_y - 10)


def _draw_block(c, x, y, heading, lines):
    c.setFont('Helvetica-Bold', 10)
    c.drawString(x, y, heading)
    c.setFont('Helvetica', 9)
    for line in lines:
        y -= 12
        c.drawString(x, y, line)
    return y


def _draw_parties(c, order, y):
    bill_to = [order.customer_name or 'Guest']
    if order.customer_email:
        bill_to.append(order.customer_email)
    bill_to.extend(_address_lines(order, 'billing_address')[1:])
    ship_to = _address_lines(order, 'shipping_address') or ['No shipping address']

    end_left = _draw_block(c, MARGIN, y, 'Bill To', bill_to)
    end_right = _draw_block(c, PAGE_WIDTH / 2, y, 'Ship To', ship_to)
    return min(end_left, end_right) - 24


def _draw_table_header(c, y, with_prices):
    c.setFont('Helvetica-Bold', 10)
    c.drawString(COL_ITEM, y, 'Item')
    if with_prices:
        c.drawRightString(COL_QTY + 0.4 * inch, y, 'Quantity')
        c.drawRightString(COL_PRICE + 0.6 * inch, y, 'Unit Price')
        c.drawRightString(COL_AMOUNT, y, 'Amount')
    else:
        c.drawRightString(COL_AMOUNT, y, 'Quantity')
    c.line(MARGIN, y - 4, PAGE_WIDTH - MARGIN, y - 4)
    return y - LINE_HEIGHT - 4


def _draw_items(c, items, y, with_prices):
    y = _draw_table_header(c, y, with_prices)
    c.setFont('Helvetica', 9)
    for item in items:
        if y < BOTTOM_LIMIT:
            c.showPage()
            y = _draw_table_header(c, PAGE_HEIGHT - MARGIN, with_prices)
            c.setFont('Helvetica', 9)
        name = item.product_name
        if item.options:
            name = f"{name} ({', '.join(f'{k}: {v}' for k, v in item.options.items())})"
        c.drawString(COL_ITEM, y, name[:70])
        if with_prices:
            c.drawRightString(COL_QTY + 0.4 * inch, y, str(item.quantity))
            c.drawRightString(COL_PRICE + 0.6 * inch, y, _money(item.price))
            c.drawRightString(COL_AMOUNT, y, _money(item.total))
        else:
            c.drawRightString(COL_AMOUNT, y, str(item.quantity))
        y -= LINE_HEIGHT
    c.line(MARGIN, y + 4, PAGE_WIDTH - MARGIN, y + 4)
    return y - 8


def _draw_totals(c, order, y):
    rows = [('Subtotal', order.subtotal)]
    if order.discount:
        label = f"Discount ({order.discount_code})" if order.discount_code else 'Discount'
        rows.append((label, -order.discount))
    rows.extend([('Shipping', order.shipping), ('Tax', order.tax)])

    if y - LINE_HEIGHT * (len(rows) + 2) < BOTTOM_LIMIT:
        c.showPage()
        y = PAGE_HEIGHT - MARGIN

    c.setFont('Helvetica', 10)
    for label, value in rows:
        c.drawString(COL_PRICE - 0.6 * inch, y, label)
        c.drawRightString(COL_AMOUNT, y, _money(value))
        y -= LINE_HEIGHT
    c.setFont('Helvetica-Bold', 11)
    c.drawString(COL_PRICE - 0.6 * inch, y - 4, 'Total')
    c.drawRightString(COL_AMOUNT, y - 4, _money(order.total))
    return y - LINE_HEIGHT * 2


def build_receipt_pdf(order, store=None):
    """
    Render an order receipt and return the PDF bytes.

    `store` is a dict with `name` and `address_lines`.
    """
    store = store or {}
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=letter)
    c.setTitle(f"Receipt {order.order_number}")

    y = _draw_header(c, 'INVOICE', order, store)
    c.setFont('Helvetica', 9)
    invoice_date = timezone.localtime(timezone.now()).strftime('%B %d, %Y')
    order_date = timezone.localtime(order.created_at).strftime('%B %d, %Y')
    c.drawString(MARGIN, y, f"Invoice Date: {invoice_date}")
    c.drawString(MARGIN + 2.3 * inch, y, f"Order Date: {order_date}")
    c.drawString(MARGIN + 4.6 * inch, y, f"Payment Status: {_label(order.payment_status)}")
    y -= 30

    y = _draw_parties(c, order, y)
    y = _draw_items(c, order.items.all(), y, with_prices=True)
    y = _draw_totals(c, order, y)

    c.setFont('Helvetica-Oblique', 9)
    c.drawString(MARGIN, max(y, MARGIN), 'Thank you for your business!')
    c.showPage()
    c.save()
    logger.info(f"Rendered receipt for {order.order_number}")
    return buffer.getvalue()


def build_packing_slip_pdf(order, store=None):
    """Packing slip: ship-to address and quantities, no prices"""
    store = store or {}
    buffer = io.BytesIO()
    c = canvas.Canvas(buffer, pagesize=letter)
    c.setTitle(f"Packing slip {order.order_number}")

    y = _draw_header(c, 'PACKING SLIP', order, store)
    c.setFont('Helvetica', 9)
    c.drawString(MARGIN, y, f"Order Date: {timezone.localtime(order.created_at).strftime('%B %d, %Y')}")
    c.drawString(MARGIN + 2.3 * inch, y, f"Fulfillment: {_label(order.fulfillment_status)}")
    y -= 30

    y = _draw_parties(c, order, y)
    y = _draw_items(c, order.items.all(), y, with_prices=False)

    for entry in order.tracking_info or []:
        c.setFont('Helvetica', 9)
        c.drawString(MARGIN, y, f"{entry.get('carrier')}: {entry.get('tracking_number')}")
        y -= 12

    if order.notes:
        c.setFont('Helvetica-Oblique', 9)
        c.drawString(MARGIN, max(y - 12, MARGIN), f"Notes: {order.notes[:100]}")
    c.showPage()
    c.save()
    logger.info(f"Rendered packing slip for {order.order_number}")
    return buffer.getvalue()
