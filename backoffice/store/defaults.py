"""
Default store configuration: shipping and payment methods, the permission
catalog and the built-in roles.
"""

SITE_VISIBILITY_CHOICES = [
    ('live', 'Live'),
    ('coming-soon', 'Coming Soon'),
]


def default_address():
    return {'line1': '', 'line2': '', 'city': '', 'state': '', 'postcode': '', 'country': ''}


def default_shipping_methods():
    return [
        {'id': 'free-shipping', 'name': 'Free Shipping', 'enabled': True,
         'settings': {'requires': 'no_requirement', 'minOrderAmount': 0}},
        {'id': 'local-pickup', 'name': 'Local Pickup', 'enabled': False,
         'settings': {'cost': 0, 'locations': []}},
        {'id': 'flat-rate', 'name': 'Flat Rate', 'enabled': False,
         'settings': {'cost': 5.99, 'taxable': False}},
        {'id': 'calculated', 'name': 'Calculated Shipping', 'enabled': False,
         'settings': {'taxable': False, 'calculateBy': 'weight', 'zones': []}},
    ]


def default_payment_methods():
    return [
        {'id': 'cod', 'name': 'Cash on Delivery', 'enabled': False,
         'settings': {'instructions': ''}},
        {'id': 'paypal', 'name': 'PayPal', 'enabled': False,
         'settings': {'email': '', 'sandboxMode': True, 'clientId': '', 'clientSecret': ''}},
        {'id': 'stripe', 'name': 'Stripe', 'enabled': False,
         'settings': {'publishableKey': '', 'secretKey': '', 'testMode': True}},
    ]


# (name, description, category)
# Only settings.manage and staff.manage are checked by the API; the rest
# decide which screens and actions the admin UI offers.
PERMISSIONS = [
    ('products.view', 'Show products, collections and inventory in the admin UI', 'Products'),
    ('products.edit', 'Show product and collection editing in the admin UI', 'Products'),
    ('orders.view', 'Show orders in the admin UI', 'Orders'),
    ('orders.edit', 'Show order creation, status changes and fulfillment in the admin UI', 'Orders'),
    ('customers.view', 'Show customers in the admin UI', 'Customers'),
    ('customers.edit', 'Show customer editing, import and deletion in the admin UI', 'Customers'),
    ('discounts.manage', 'Show discount code management in the admin UI', 'Discounts'),
    ('reports.view', 'Show dashboard, finance and transactions in the admin UI', 'Analytics'),
    ('settings.manage', 'Change store settings', 'Settings'),
    ('staff.manage', 'Manage roles and staff accounts', 'Settings'),
]

OWNER_ROLE = 'Owner'

DEFAULT_ROLES = {
    OWNER_ROLE: ('Full access to everything in the store', [name for name, _, _ in PERMISSIONS]),
    'Admin': ('Manage the catalog, orders, customers and discounts', [
        'products.view', 'products.edit', 'orders.view', 'orders.edit', 'customers.view',
        'customers.edit', 'discounts.manage', 'reports.view', 'settings.manage',
    ]),
    'Staff': ('Handle day-to-day orders', [
        'products.view', 'orders.view', 'orders.edit', 'customers.view',
    ]),
}
