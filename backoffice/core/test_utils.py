"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backoffice.catalog.models import Collection, Product, ProductImage
from backoffice.customers.models import Customer
from backoffice.discounts.models import Discount
from backoffice.orders.models import Order, OrderItem, ShippingAddress
from backoffice.orders.services import next_order_number, calculate_total
from backoffice.store.models import StoreRole, StoreUser
from backoffice.store.services import get_current_store
from decimal import Decimal
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(username=None, email=None, password='testpass123', is_staff=False, is_superuser=False):
        """Create a test user"""
        if not username:
            username = f'testuser_{TestDataFactory.random_string(6)}'
        if not email:
            email = f'{username}@test.com'
        return User.objects.create_user(
            username=username,
            email=email,
            password=password,
            is_staff=is_staff,
            is_superuser=is_superuser
        )

    @staticmethod
    def create_staff(username=None):
        return TestDataFactory.create_user(username=username, is_staff=True)

    @staticmethod
    def create_collection(name=None, position=0, is_featured=False):
        """Create a test collection"""
        if not name:
            name = f'Collection {TestDataFactory.random_string(6)}'
        return Collection.objects.create(
            name=name,
            slug=name.lower().replace(' ', '-'),
            position=position,
            is_featured=is_featured
        )

    @staticmethod
    def create_product(title=None, sku=None, price=None, quantity=20, status='active', collection=None,
                       vendor='', track_inventory=True):
        """Create a test product"""
        if not title:
            title = f'Product {TestDataFactory.random_string(6)}'
        if sku is None:
            sku = f'SKU-{TestDataFactory.random_string(8).upper()}'
        if price is None:
            price = Decimal('25.00')
        return Product.objects.create(
            title=title,
            slug=f'{title.lower().replace(" ", "-")}-{TestDataFactory.random_string(4).lower()}',
            sku=sku,
            price=price,
            quantity=quantity,
            status=status,
            collection=collection,
            vendor=vendor,
            track_inventory=track_inventory
        )

    @staticmethod
    def create_product_image(product, position=0, url=None):
        return ProductImage.objects.create(
            product=product,
            url=url or f'https://cdn.test.com/{TestDataFactory.random_string(8)}.jpg',
            position=position
        )

    @staticmethod
    def create_customer(first_name=None, last_name='Tester', email=None, country='', email_subscription=False):
        """Create a test customer"""
        if not first_name:
            first_name = f'Customer{TestDataFactory.random_string(4)}'
        if email is None:
            email = f'{first_name.lower()}@test.com'
        return Customer.objects.create(
            first_name=first_name,
            last_name=last_name,
            email=email,
            country=country,
            email_subscription=email_subscription
        )

    @staticmethod
    def create_discount(code=None, discount_type='percentage', discount_value=None, **kwargs):
        """Create a test discount code"""
        if not code:
            code = f'SAVE{TestDataFactory.random_string(4).upper()}'
        if discount_value is None:
            discount_value = Decimal('10.00')
        return Discount.objects.create(
            code=code,
            discount_type=discount_type,
            discount_value=discount_value,
            **kwargs
        )

    @staticmethod
    def create_order(customer=None, items=None, payment_status='pending', fulfillment_status='unfulfilled',
                     tax=Decimal('0.00'), shipping=Decimal('0.00'), discount=Decimal('0.00'),
                     created_at=None, user=None, with_address=False, **kwargs):
        """
        Create a test order.

        `items` is a list of (product, quantity) or (product, quantity, price);
        defaults to one unit of a new product.
        """
        if items is None:
            items = [(TestDataFactory.create_product(), 1)]

        lines = []
        subtotal = Decimal('0.00')
        for entry in items:
            product, quantity = entry[0], entry[1]
            price = entry[2] if len(entry) > 2 else product.price
            subtotal += price * quantity
            lines.append((product, quantity, price))

        customer_name = kwargs.pop('customer_name', customer.full_name if customer else '')
        customer_email = kwargs.pop('customer_email', customer.email if customer else '')
        order = Order.objects.create(
            order_number=next_order_number(),
            customer=customer,
            customer_name=customer_name,
            customer_email=customer_email,
            payment_status=payment_status,
            fulfillment_status=fulfillment_status,
            subtotal=subtotal,
            tax=tax,
            shipping=shipping,
            discount=discount,
            total=calculate_total(subtotal, tax, shipping, discount),
            created_by=user,
            **kwargs
        )
        for product, quantity, price in lines:
            OrderItem.objects.create(
                order=order,
                product=product,
                product_name=product.title,
                quantity=quantity,
                price=price,
                total=price * quantity
            )
        if with_address:
            ShippingAddress.objects.create(
                order=order, first_name='Ada', last_name='Lovelace', address_line1='1 Main St',
                city='Springfield', state='IL', postal_code='62701', country='United States'
            )
        if created_at is not None:
            # auto_now_add ignores the value passed to create()
            Order.objects.filter(pk=order.pk).update(created_at=created_at)
            order.refresh_from_db()
        return order

    @staticmethod
    def create_role(name=None, permissions=None, store=None):
        if not name:
            name = f'Role {TestDataFactory.random_string(4)}'
        return StoreRole.objects.create(
            store=store or get_current_store(),
            name=name,
            permissions=permissions or []
        )

    @staticmethod
    def add_store_user(user, role=None, status='active', store=None):
        """Make `user` a member of the store with the given role"""
        return StoreUser.objects.create(
            store=store or get_current_store(),
            user=user,
            role=role,
            status=status
        )


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
