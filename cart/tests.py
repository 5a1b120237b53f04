from decimal import Decimal
from types import SimpleNamespace

from rest_framework import status
from rest_framework.exceptions import ValidationError
from rest_framework.test import APITestCase

from product.models import Product
from user.models import User
from user.tokens import issue_token
from . import ledger
from .models import CartItem

CART_URL = "/api/cart/"
ITEMS_URL = "/api/cart/items/"


def item_url(product_id):
    return f"{ITEMS_URL}{product_id}/"


class CartTotalTests(APITestCase):
    def test_total_of_empty_cart_is_zero(self):
        self.assertEqual(ledger.cart_total([]), Decimal("0"))

    def test_total_is_sum_of_price_times_quantity(self):
        items = [
            SimpleNamespace(product=SimpleNamespace(price=Decimal("9.99")), quantity=2),
            SimpleNamespace(product=SimpleNamespace(price=Decimal("0.50")), quantity=3),
        ]
        self.assertEqual(ledger.cart_total(items), Decimal("21.48"))


class CartApiTests(APITestCase):
    def setUp(self):
        self.buyer = User.objects.create_user(email="b1@example.com", name="b1", password="pw123456")
        seller = User.objects.create_user(
            email="s1@example.com", name="s1", password="pw123456", role="seller", store_name="S1",
        )
        self.mug = Product.objects.create(
            seller=seller, store_owner_id=seller.id, store_name="S1", name="Mug", price=Decimal("9.99"),
        )
        self.cup = Product.objects.create(
            seller=seller, store_owner_id=seller.id, store_name="S1", name="Cup", price=Decimal("4.50"),
        )
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token(self.buyer)}")

    def add(self, product, quantity):
        return self.client.post(ITEMS_URL, {"product": product.id, "quantity": quantity}, format="json")

    def test_cart_is_created_empty_on_first_read(self):
        res = self.client.get(CART_URL)

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["items"], [])
        self.assertEqual(res.data["total"], Decimal("0.00"))
        self.assertTrue(self.buyer.cart.pk)

    def test_cart_requires_token(self):
        self.client.credentials()
        self.assertEqual(self.client.get(CART_URL).status_code, status.HTTP_401_UNAUTHORIZED)

    def test_setting_quantity_twice_keeps_one_line_with_last_quantity(self):
        self.add(self.mug, 2)
        res = self.add(self.mug, 5)

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(len(res.data["items"]), 1)
        self.assertEqual(res.data["items"][0]["product"]["id"], self.mug.id)
        self.assertEqual(res.data["items"][0]["quantity"], 5)
        self.assertEqual(res.data["total"], 5 * self.mug.price)
        self.assertEqual(CartItem.objects.filter(product=self.mug).count(), 1)

    def test_items_keep_insertion_order(self):
        self.add(self.cup, 1)
        self.add(self.mug, 1)
        res = self.add(self.cup, 3)

        self.assertEqual([i["product"]["id"] for i in res.data["items"]], [self.cup.id, self.mug.id])

    def test_total_follows_current_price(self):
        self.add(self.mug, 2)
        self.add(self.cup, 1)
        self.assertEqual(self.client.get(CART_URL).data["total"], Decimal("24.48"))

        Product.objects.filter(pk=self.mug.pk).update(price=Decimal("10.00"))
        res = self.client.get(CART_URL)

        self.assertEqual(res.data["total"], Decimal("24.50"))
        self.assertEqual(res.data["items"][0]["subtotal"], Decimal("20.00"))

    def test_zero_negative_and_garbage_quantities_rejected(self):
        for quantity in (0, -2, "lots"):
            res = self.add(self.mug, quantity)
            self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST, quantity)
            self.assertIn("quantity", res.data["errors"])
        self.assertFalse(CartItem.objects.exists())

    def test_unknown_product_is_not_found(self):
        res = self.client.post(ITEMS_URL, {"product": 999999, "quantity": 1}, format="json")

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)

    def test_put_sets_quantity(self):
        self.add(self.mug, 1)
        res = self.client.put(item_url(self.mug.id), {"quantity": 4}, format="json")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["items"][0]["quantity"], 4)

    def test_remove_item(self):
        self.add(self.mug, 1)
        self.add(self.cup, 1)
        res = self.client.delete(item_url(self.mug.id))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual([i["product"]["id"] for i in res.data["items"]], [self.cup.id])

    def test_removing_absent_item_is_a_no_op(self):
        res = self.client.delete(item_url(self.mug.id))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data["items"], [])

    def test_clear_cart(self):
        self.add(self.mug, 1)
        res = self.client.delete(CART_URL)

        self.assertEqual(res.data["items"], [])
        self.assertEqual(res.data["total"], Decimal("0.00"))

    def test_carts_are_per_user(self):
        self.add(self.mug, 2)
        other = User.objects.create_user(email="b2@example.com", name="b2", password="pw123456")
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token(other)}")

        self.assertEqual(self.client.get(CART_URL).data["items"], [])

    def test_deleted_product_drops_out_of_cart(self):
        self.add(self.mug, 2)
        self.mug.delete()

        self.assertEqual(self.client.get(CART_URL).data["items"], [])


class LedgerTests(APITestCase):
    def setUp(self):
        self.user = User.objects.create_user(email="b1@example.com", name="b1", password="pw123456")
        self.product = Product.objects.create(
            seller=self.user, store_owner_id=self.user.id, store_name="S", name="Mug", price=Decimal("2.00"),
        )

    def test_add_rejects_quantity_below_one(self):
        with self.assertRaises(ValidationError):
            ledger.add_or_update_item(self.user, self.product.id, 0)

    def test_add_then_update(self):
        cart = ledger.add_or_update_item(self.user, self.product.id, 2)
        ledger.add_or_update_item(self.user, self.product.id, 7)

        items = ledger.cart_items(cart)
        self.assertEqual([(i.product_id, i.quantity) for i in items], [(self.product.id, 7)])
        self.assertEqual(ledger.cart_total(items), Decimal("14.00"))
