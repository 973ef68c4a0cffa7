"""
Utility functions for catalog operations
"""
import random
import re
import uuid
from decimal import Decimal, ROUND_HALF_UP

# stock_status=low_stock filter range is 1..LOW_STOCK_THRESHOLD
LOW_STOCK_THRESHOLD = 10
# Inventory screen label threshold
LOW_STOCK_LABEL_THRESHOLD = 5

OUT_OF_STOCK = 'Out of Stock'
LOW_STOCK = 'Low Stock'
IN_STOCK = 'In Stock'


def generate_sku(title):
    """
    Generate a SKU from a product title: initials of the words (at most 3)
    plus 4 random digits, e.g. "Blue Cotton Shirt" -> "BCS-0427"
    """
    words = (title or '').split()
    prefix = ''.join(word[0] for word in words).upper()[:3] or 'PRD'
    return f"{prefix}-{random.randint(0, 9999):04d}"


def generate_unique_sku(title, queryset):
    """Generate a SKU that no row in `queryset` uses yet"""
    for _ in range(20):
        sku = generate_sku(title)
        if not queryset.filter(sku=sku).exists():
            return sku
    # Initials space exhausted for this prefix
    return f"{generate_sku(title)}-{str(uuid.uuid4())[:4].upper()}"


def generate_slug(title):
    """Lower-case, strip special characters, collapse whitespace and hyphens"""
    slug = (title or '').lower()
    slug = re.sub(r'[^\w\s-]', '', slug)
    slug = re.sub(r'\s+', '-', slug.strip())
    slug = re.sub(r'-+', '-', slug)
    return slug.replace('_', '-').strip('-')


def generate_unique_slug(title, queryset, exclude_pk=None):
    """Slug for `title`, suffixed with -2, -3, ... when already taken"""
    base = generate_slug(title) or 'item'
    existing = queryset
    if exclude_pk is not None:
        existing = existing.exclude(pk=exclude_pk)
    slug = base
    counter = 2
    while existing.filter(slug=slug).exists():
        slug = f"{base}-{counter}"
        counter += 1
    return slug


def get_inventory_status(quantity):
    if quantity is None or quantity <= 0:
        return OUT_OF_STOCK
    if quantity <= LOW_STOCK_LABEL_THRESHOLD:
        return LOW_STOCK
    return IN_STOCK


def calculate_discount_percentage(price, compare_at_price):
    """Whole-number percentage saved against compare_at_price; 0 when not discounted"""
    if price is None or not compare_at_price:
        return 0
    price = Decimal(str(price))
    compare_at_price = Decimal(str(compare_at_price))
    if compare_at_price <= price:
        return 0
    discount = (compare_at_price - price) / compare_at_price * 100
    return int(discount.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def move_item(items, old_index, new_index):
    """
    Return a copy of `items` with the element at old_index moved to new_index.

    Raises IndexError when either index is outside the list.
    """
    items = list(items)
    size = len(items)
    if not (0 <= old_index < size) or not (0 <= new_index < size):
        raise IndexError(f"Move from {old_index} to {new_index} is outside a list of {size} items")
    moved = items.pop(old_index)
    items.insert(new_index, moved)
    return items


def apply_positions(objects, field='position'):
    """Rewrite `field` to 0..n-1 in list order; returns the objects that changed"""
    changed = []
    for index, obj in enumerate(objects):
        if getattr(obj, field) != index:
            setattr(obj, field, index)
            changed.append(obj)
    return changed
