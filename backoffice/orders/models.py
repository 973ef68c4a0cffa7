from django.conf import settings
from django.db import models
from decimal import Decimal


class Order(models.Model):
    """Customer orders"""
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('authorized', 'Authorized'),
        ('paid', 'Paid'),
        ('refunded', 'Refunded'),
        ('failed', 'Failed'),
    ]
    FULFILLMENT_STATUS_CHOICES = [
        ('unfulfilled', 'Unfulfilled'),
        ('partially_fulfilled', 'Partially Fulfilled'),
        ('fulfilled', 'Fulfilled'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
    ]

    order_number = models.CharField(max_length=50, unique=True, db_index=True)
    customer = models.ForeignKey('customers.Customer', on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    customer_name = models.CharField(max_length=255, blank=True)
    customer_email = models.EmailField(blank=True)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending', db_index=True)
    fulfillment_status = models.CharField(max_length=20, choices=FULFILLMENT_STATUS_CHOICES, default='unfulfilled', db_index=True)
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    tax = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    shipping = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount_code = models.CharField(max_length=50, blank=True)
    notes = models.TextField(blank=True)
    is_open = models.BooleanField(default=True)
    tracking_info = models.JSONField(default=list, blank=True)  # [{"tracking_number", "carrier"}]
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders_created')
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.order_number

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']


class OrderItem(models.Model):
    """Order line items; product_name and price are copied at order time"""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey('catalog.Product', on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    product_name = models.CharField(max_length=255)
    quantity = models.PositiveIntegerField(default=1)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    total = models.DecimalField(max_digits=12, decimal_places=2)
    options = models.JSONField(default=dict, blank=True)

    def __str__(self):
        return f"{self.order.order_number} - {self.product_name} x {self.quantity}"

    class Meta:
        db_table = 'order_items'
        ordering = ['id']


class Address(models.Model):
    first_name = models.CharField(max_length=150, blank=True)
    last_name = models.CharField(max_length=150, blank=True)
    address_line1 = models.CharField(max_length=255, blank=True)
    address_line2 = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=120, blank=True)
    state = models.CharField(max_length=120, blank=True)
    postal_code = models.CharField(max_length=20, blank=True)
    country = models.CharField(max_length=120)
    phone = models.CharField(max_length=30, blank=True)

    def lines(self):
        """Printable address lines, skipping empty parts"""
        name = f"{self.first_name} {self.last_name}".strip()
        city_line = ' '.join(part for part in [self.city, self.state, self.postal_code] if part)
        return [line for line in [name, self.address_line1, self.address_line2, city_line, self.country, self.phone] if line]

    class Meta:
        abstract = True


class ShippingAddress(Address):
    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name='shipping_address')

    class Meta:
        db_table = 'shipping_addresses'


class BillingAddress(Address):
    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name='billing_address')

    class Meta:
        db_table = 'billing_addresses'


class OrderHistory(models.Model):
    """Status change trail for an order"""
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='history')
    status_from = models.CharField(max_length=30, blank=True)
    status_to = models.CharField(max_length=30)
    notes = models.TextField(blank=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_history')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.order.order_number}: {self.status_from or '-'} -> {self.status_to}"

    class Meta:
        db_table = 'order_history'
        ordering = ['-created_at', '-id']
