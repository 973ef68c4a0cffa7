"""
Test suite for the Catalog module
Tests: Products, bulk actions, images, CSV import/export, labels, inventory and collections
"""
from decimal import Decimal
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from rest_framework import status
from backoffice.core.models import AuditLog
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backoffice.catalog.models import Collection, Product, ProductImage
from backoffice.catalog.utils import (
    generate_sku, generate_slug, generate_unique_slug, get_inventory_status,
    calculate_discount_percentage, move_item, apply_positions
)


class CatalogUtilsTests(TestCase):
    """Test the pure catalog helpers"""

    def test_generate_sku_uses_initials(self):
        """Test SKU prefix is the upper-cased initials of the first three words"""
        sku = generate_sku('blue cotton shirt large')
        self.assertRegex(sku, r'^BCS-\d{4}$')

    def test_generate_sku_empty_title(self):
        """Test SKU for an empty title falls back to PRD"""
        self.assertRegex(generate_sku(''), r'^PRD-\d{4}$')

    def test_generate_slug(self):
        """Test slug strips punctuation and collapses spaces and hyphens"""
        self.assertEqual(generate_slug('  Hello,  World -- Candles! '), 'hello-world-candles')

    def test_generate_unique_slug_appends_counter(self):
        """Test taken slugs get -2, -3 suffixes"""
        TestDataFactory.create_collection(name='Summer')
        Collection.objects.create(name='Summer 2', slug='summer-2')
        self.assertEqual(generate_unique_slug('Summer', Collection.objects.all()), 'summer-3')

    def test_inventory_status_thresholds(self):
        """Test stock labels at the boundaries"""
        self.assertEqual(get_inventory_status(0), 'Out of Stock')
        self.assertEqual(get_inventory_status(-2), 'Out of Stock')
        self.assertEqual(get_inventory_status(5), 'Low Stock')
        self.assertEqual(get_inventory_status(6), 'In Stock')

    def test_discount_percentage(self):
        """Test percentage saved is rounded half up"""
        self.assertEqual(calculate_discount_percentage(Decimal('75.00'), Decimal('100.00')), 25)
        self.assertEqual(calculate_discount_percentage(Decimal('66.50'), Decimal('100.00')), 34)
        self.assertEqual(calculate_discount_percentage(Decimal('100.00'), Decimal('90.00')), 0)
        self.assertEqual(calculate_discount_percentage(Decimal('10.00'), None), 0)

    def test_move_item(self):
        """Test moving an element returns a reordered copy"""
        items = ['a', 'b', 'c', 'd']
        self.assertEqual(move_item(items, 0, 2), ['b', 'c', 'a', 'd'])
        self.assertEqual(move_item(items, 3, 0), ['d', 'a', 'b', 'c'])
        self.assertEqual(items, ['a', 'b', 'c', 'd'])

    def test_move_item_out_of_range(self):
        """Test out-of-range indexes raise IndexError"""
        with self.assertRaises(IndexError):
            move_item(['a', 'b'], 0, 2)

    def test_apply_positions_returns_changed(self):
        """Test only objects whose position moved are returned"""
        first = TestDataFactory.create_collection(position=0)
        second = TestDataFactory.create_collection(position=5)
        changed = apply_positions([first, second])
        self.assertEqual(changed, [second])
        self.assertEqual(second.position, 1)


class ProductAPITests(TestCase):
    """Test Product API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.collection = TestDataFactory.create_collection(name='Candles')

    def test_requires_authentication(self):
        """Test anonymous requests are rejected"""
        self.client.logout()
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_create_product_generates_slug_and_sku(self):
        """Test creating a product without slug or SKU"""
        data = {
            'title': 'Lavender Soy Candle',
            'price': '18.50',
            'quantity': 12,
            'collection_id': self.collection.id,
            'tags': 'soy, lavender',
            'image_urls': ['https://cdn.test.com/a.jpg', 'https://cdn.test.com/b.jpg'],
        }
        response = self.client.post('/api/v1/products/', data, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'lavender-soy-candle')
        self.assertRegex(response.data['sku'], r'^LSC-\d{4}$')
        self.assertEqual(response.data['status'], 'draft')
        self.assertEqual(response.data['tags'], ['soy', 'lavender'])
        self.assertEqual(response.data['collection']['id'], self.collection.id)
        self.assertEqual([image['url'] for image in response.data['images']],
                         ['https://cdn.test.com/a.jpg', 'https://cdn.test.com/b.jpg'])
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='Product').exists())

    def test_create_product_blank_title(self):
        """Test a blank title is rejected"""
        response = self.client.post('/api/v1/products/', {'title': '   ', 'price': '5.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('title', response.data)

    def test_create_product_negative_price(self):
        """Test a negative price is rejected"""
        response = self.client.post('/api/v1/products/', {'title': 'Bad', 'price': '-1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_products_filters(self):
        """Test search, status and collection filters"""
        TestDataFactory.create_product(title='Vanilla Bean', collection=self.collection)
        TestDataFactory.create_product(title='Ocean Breeze', status='draft')
        TestDataFactory.create_product(title='Vanilla Sky', status='archived')

        response = self.client.get('/api/v1/products/', {'search': 'vanilla'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

        response = self.client.get('/api/v1/products/', {'status': 'draft'})
        self.assertEqual([p['title'] for p in response.data['results']], ['Ocean Breeze'])

        response = self.client.get('/api/v1/products/', {'collection': self.collection.id})
        self.assertEqual([p['title'] for p in response.data['results']], ['Vanilla Bean'])

        response = self.client.get('/api/v1/products/', {'collection': 'uncategorized'})
        self.assertEqual(response.data['count'], 2)

    def test_list_products_stock_status(self):
        """Test stock status filter buckets"""
        TestDataFactory.create_product(title='Empty', quantity=0)
        TestDataFactory.create_product(title='Few', quantity=3)
        TestDataFactory.create_product(title='Plenty', quantity=50)

        response = self.client.get('/api/v1/products/', {'stock_status': 'out_of_stock'})
        self.assertEqual([p['title'] for p in response.data['results']], ['Empty'])
        response = self.client.get('/api/v1/products/', {'stock_status': 'low_stock'})
        self.assertEqual([p['title'] for p in response.data['results']], ['Few'])
        response = self.client.get('/api/v1/products/', {'stock_status': 'in_stock'})
        self.assertEqual(response.data['count'], 2)

    def test_list_products_pagination(self):
        """Test page and limit parameters"""
        for _ in range(5):
            TestDataFactory.create_product()
        response = self.client.get('/api/v1/products/', {'limit': 2, 'page': 2})
        self.assertEqual(response.data['count'], 5)
        self.assertEqual(len(response.data['results']), 2)
        self.assertEqual(response.data['page'], 2)
        self.assertEqual(response.data['total_pages'], 3)
        self.assertEqual(response.data['next'], 3)
        self.assertEqual(response.data['previous'], 1)

    def test_update_price_writes_price_change_audit(self):
        """Test a price change is audited with old and new price"""
        product = TestDataFactory.create_product(price=Decimal('10.00'))
        response = self.client.patch(f'/api/v1/products/{product.id}/', {'price': '12.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        log = AuditLog.objects.get(action='price_change', object_id=str(product.id))
        self.assertEqual(log.changes, {'old_price': '10.00', 'new_price': '12.00'})

    def test_delete_product(self):
        """Test deleting a product"""
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.filter(pk=product.id).exists())

    def test_duplicate_product(self):
        """Test duplicate copies fields and images with a new SKU and slug"""
        product = TestDataFactory.create_product(title='Cedar Candle', price=Decimal('22.00'))
        TestDataFactory.create_product_image(product, position=0)
        TestDataFactory.create_product_image(product, position=1)

        response = self.client.post(f'/api/v1/products/{product.id}/duplicate/')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['title'], 'Cedar Candle (Copy)')
        self.assertNotEqual(response.data['sku'], product.sku)
        self.assertNotEqual(response.data['slug'], product.slug)
        self.assertEqual(Decimal(str(response.data['price'])), Decimal('22.00'))
        self.assertEqual(len(response.data['images']), 2)

    def test_update_quantity(self):
        """Test setting quantity and rejecting negatives"""
        product = TestDataFactory.create_product(quantity=10)
        response = self.client.patch(f'/api/v1/products/{product.id}/quantity/', {'quantity': 3}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['inventory_status'], 'Low Stock')
        self.assertTrue(AuditLog.objects.filter(action='stock_adjust').exists())

        response = self.client.patch(f'/api/v1/products/{product.id}/quantity/', {'quantity': -1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_label(self):
        """Test label returns a PNG data URL"""
        product = TestDataFactory.create_product(sku='CANDLE-001')
        response = self.client.get(f'/api/v1/products/{product.id}/label/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['sku'], 'CANDLE-001')
        self.assertTrue(response.data['label'].startswith('data:image/png;base64,'))

    def test_label_without_sku(self):
        """Test label for a product without SKU fails"""
        product = TestDataFactory.create_product(sku='')
        Product.objects.filter(pk=product.pk).update(sku=None)
        response = self.client.get(f'/api/v1/products/{product.id}/label/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ProductBulkTests(TestCase):
    """Test bulk product actions"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.products = [TestDataFactory.create_product(status='draft') for _ in range(3)]
        self.ids = [p.id for p in self.products]

    def test_bulk_activate(self):
        """Test bulk status change"""
        response = self.client.post('/api/v1/products/bulk/', {'action': 'activate', 'ids': self.ids}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'updated': 3})
        self.assertEqual(Product.objects.filter(status='active').count(), 3)

    def test_bulk_delete(self):
        """Test bulk delete reports the number of products removed"""
        TestDataFactory.create_product_image(self.products[0])
        response = self.client.post('/api/v1/products/bulk/', {'action': 'delete', 'ids': self.ids[:2]}, format='json')
        self.assertEqual(response.data, {'deleted': 2})
        self.assertEqual(Product.objects.count(), 1)

    def test_bulk_set_collection(self):
        """Test assigning and clearing a collection"""
        collection = TestDataFactory.create_collection()
        self.client.post('/api/v1/products/bulk/',
                         {'action': 'set_collection', 'ids': self.ids, 'collection': collection.id}, format='json')
        self.assertEqual(Product.objects.filter(collection=collection).count(), 3)

        self.client.post('/api/v1/products/bulk/',
                         {'action': 'set_collection', 'ids': self.ids, 'collection': None}, format='json')
        self.assertEqual(Product.objects.filter(collection__isnull=True).count(), 3)

    def test_bulk_set_price_invalid(self):
        """Test set_price rejects negative and non-numeric prices"""
        response = self.client.post('/api/v1/products/bulk/',
                                    {'action': 'set_price', 'ids': self.ids, 'price': '-5'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post('/api/v1/products/bulk/',
                                    {'action': 'set_price', 'ids': self.ids, 'price': 'abc'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bulk_set_price(self):
        """Test set_price writes the new price to every product"""
        response = self.client.post('/api/v1/products/bulk/',
                                    {'action': 'set_price', 'ids': self.ids, 'price': '19.99'}, format='json')
        self.assertEqual(response.data, {'updated': 3})
        self.assertEqual(Product.objects.filter(price=Decimal('19.99')).count(), 3)

    def test_bulk_set_price_out_of_range(self):
        """Test set_price rejects NaN, overflowing and over-precise prices without touching products"""
        for price in ('NaN', 'Infinity', '1e20', '12.345', None):
            response = self.client.post('/api/v1/products/bulk/',
                                        {'action': 'set_price', 'ids': self.ids, 'price': price}, format='json')
            self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST, price)
            self.assertIn('price', response.data)
        self.assertEqual(Product.objects.filter(price=Decimal('25.00')).count(), 3)

    def test_bulk_unknown_action(self):
        """Test an unknown action is rejected"""
        response = self.client.post('/api/v1/products/bulk/', {'action': 'explode', 'ids': self.ids}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bulk_without_ids(self):
        """Test bulk actions require ids"""
        response = self.client.post('/api/v1/products/bulk/', {'action': 'activate', 'ids': []}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class ProductImageTests(TestCase):
    """Test product gallery endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product()
        self.images = [TestDataFactory.create_product_image(self.product, position=i) for i in range(3)]

    def test_add_image_appends(self):
        """Test a new image goes to the end"""
        response = self.client.post(f'/api/v1/products/{self.product.id}/images/',
                                    {'url': 'https://cdn.test.com/new.jpg'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['position'], 3)

    def test_reorder_images(self):
        """Test moving the last image to the front"""
        response = self.client.post(f'/api/v1/products/{self.product.id}/images/reorder/',
                                    {'old_index': 2, 'new_index': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([image['id'] for image in response.data],
                         [self.images[2].id, self.images[0].id, self.images[1].id])
        self.assertEqual(ProductImage.objects.get(pk=self.images[2].id).position, 0)

    def test_reorder_images_out_of_range(self):
        """Test reordering with a bad index fails"""
        response = self.client.post(f'/api/v1/products/{self.product.id}/images/reorder/',
                                    {'old_index': 0, 'new_index': 9}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_image_closes_gap(self):
        """Test deleting an image renumbers the rest"""
        response = self.client.delete(f'/api/v1/products/{self.product.id}/images/{self.images[0].id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        positions = list(self.product.images.order_by('position').values_list('position', flat=True))
        self.assertEqual(positions, [0, 1])


class ProductCSVTests(TestCase):
    """Test product CSV export and import"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_export(self):
        """Test export writes a header row and one row per product"""
        TestDataFactory.create_product(title='Export Me', sku='EXP-1')
        response = self.client.get('/api/v1/products/export/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'text/csv; charset=utf-8')
        lines = response.content.decode('utf-8').strip().splitlines()
        self.assertTrue(lines[0].startswith('ID,Title,SKU,Status,Price'))
        self.assertEqual(len(lines), 2)
        self.assertIn('EXP-1', lines[1])

    def test_import_reports_bad_rows(self):
        """Test valid rows are created and invalid rows reported by line"""
        content = (
            'title,price,quantity,status,tags\n'
            'Good Candle,12.00,4,active,"soy, wax"\n'
            ',5.00,1,draft,\n'
        ).encode('utf-8')
        upload = SimpleUploadedFile('products.csv', content, content_type='text/csv')
        response = self.client.post('/api/v1/products/import/', {'file': upload}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['created'], 1)
        self.assertEqual(response.data['errors'][0]['row'], 3)
        product = Product.objects.get(title='Good Candle')
        self.assertEqual(product.tags, ['soy', 'wax'])

    def test_import_without_file(self):
        """Test import without a file fails"""
        response = self.client.post('/api/v1/products/import/', {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class InventoryTests(TestCase):
    """Test the inventory list"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_inventory_lists_tracked_products_lowest_first(self):
        """Test untracked products are excluded and stock is ascending"""
        TestDataFactory.create_product(title='Tracked Many', quantity=40)
        TestDataFactory.create_product(title='Tracked Few', quantity=2)
        TestDataFactory.create_product(title='Untracked', quantity=1, track_inventory=False)
        response = self.client.get('/api/v1/inventory/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['title'] for p in response.data['results']], ['Tracked Few', 'Tracked Many'])
        self.assertEqual(response.data['results'][0]['inventory_status'], 'Low Stock')


class CollectionAPITests(TestCase):
    """Test Collection API endpoints"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_create_collection_appends_position(self):
        """Test new collections get a slug and the next position"""
        TestDataFactory.create_collection(position=0)
        response = self.client.post('/api/v1/collections/', {'name': 'Gift Sets'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'gift-sets')
        self.assertEqual(response.data['position'], 1)

    def test_list_collections_with_counts(self):
        """Test collections are listed in position order with product counts"""
        second = TestDataFactory.create_collection(name='B', position=1)
        first = TestDataFactory.create_collection(name='A', position=0)
        TestDataFactory.create_product(collection=second)
        TestDataFactory.create_product(collection=second)
        response = self.client.get('/api/v1/collections/')
        self.assertEqual([c['id'] for c in response.data], [first.id, second.id])
        self.assertEqual(response.data[1]['product_count'], 2)

    def test_reorder_by_index(self):
        """Test moving a collection by index"""
        collections = [TestDataFactory.create_collection(name=f'C{i}', position=i) for i in range(3)]
        response = self.client.post('/api/v1/collections/reorder/', {'old_index': 0, 'new_index': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([c['id'] for c in response.data],
                         [collections[1].id, collections[2].id, collections[0].id])
        self.assertEqual([c['position'] for c in response.data], [0, 1, 2])
        self.assertTrue(AuditLog.objects.filter(action='reorder').exists())

    def test_reorder_by_id_list(self):
        """Test reordering by explicit ids keeps unlisted collections after"""
        collections = [TestDataFactory.create_collection(name=f'C{i}', position=i) for i in range(3)]
        response = self.client.post('/api/v1/collections/reorder/', {'order': [collections[2].id]}, format='json')
        self.assertEqual([c['id'] for c in response.data],
                         [collections[2].id, collections[0].id, collections[1].id])

    def test_reorder_unknown_id(self):
        """Test reordering with an unknown id fails"""
        TestDataFactory.create_collection()
        response = self.client.post('/api/v1/collections/reorder/', {'order': [99999]}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_toggle(self):
        """Test toggle flips featured and visible together"""
        collection = TestDataFactory.create_collection(is_featured=False)
        response = self.client.post(f'/api/v1/collections/{collection.id}/toggle/')
        self.assertTrue(response.data['is_featured'])
        self.assertTrue(response.data['is_visible'])
        response = self.client.post(f'/api/v1/collections/{collection.id}/toggle/')
        self.assertFalse(response.data['is_featured'])
        self.assertFalse(response.data['is_visible'])

    def test_delete_collection_keeps_products(self):
        """Test deleting a collection uncategorizes its products and renumbers the rest"""
        first = TestDataFactory.create_collection(position=0)
        second = TestDataFactory.create_collection(position=1)
        product = TestDataFactory.create_product(collection=first)
        response = self.client.delete(f'/api/v1/collections/{first.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        product.refresh_from_db()
        self.assertIsNone(product.collection)
        second.refresh_from_db()
        self.assertEqual(second.position, 0)
