import io
import os
import re
import shutil
import tempfile
from datetime import timedelta
from decimal import Decimal
from unittest import mock

from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError
from django.test import override_settings
from PIL import Image
from rest_framework import status
from rest_framework.test import APITestCase
from rest_framework_simplejwt.tokens import AccessToken

from user.models import User
from user.tokens import issue_token
from . import uploads
from .models import Product

PRODUCTS_URL = "/api/products/"
MY_STORE_URL = "/api/products/my-store/"


def product_url(pk):
    return f"{PRODUCTS_URL}{pk}/"


def make_image(name="mug.png", color="red"):
    buf = io.BytesIO()
    Image.new("RGB", (4, 4), color).save(buf, format="PNG")
    return SimpleUploadedFile(name, buf.getvalue(), content_type="image/png")


def make_seller(email="s1@example.com", store="S1 Store"):
    return User.objects.create_user(
        email=email, name=email.split("@")[0], password="pw123456", role="seller", store_name=store,
    )


def make_buyer(email="b1@example.com"):
    return User.objects.create_user(email=email, name=email.split("@")[0], password="pw123456", role="buyer")


class MediaRootMixin:
    """Each test gets an empty MEDIA_ROOT so stored files can be counted."""

    def setUp(self):
        super().setUp()
        self.media_root = tempfile.mkdtemp()
        media = override_settings(MEDIA_ROOT=self.media_root)
        media.enable()
        self.addCleanup(media.disable)
        self.addCleanup(shutil.rmtree, self.media_root, ignore_errors=True)

    def stored_files(self):
        folder = os.path.join(self.media_root, uploads.UPLOAD_DIR)
        if not os.path.isdir(folder):
            return []
        return sorted(os.listdir(folder))

    def login(self, user):
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {issue_token(user)}")


class ProductCreateTests(MediaRootMixin, APITestCase):
    def setUp(self):
        super().setUp()
        self.seller = make_seller()

    def test_seller_creates_product_with_image(self):
        self.login(self.seller)
        res = self.client.post(
            PRODUCTS_URL,
            {"name": "Mug", "description": "Blue mug", "price": "9.99", "image": make_image()},
            format="multipart",
        )

        self.assertEqual(res.status_code, status.HTTP_201_CREATED)
        self.assertEqual(res.data["seller"]["id"], self.seller.id)
        self.assertEqual(res.data["store"], {"id": self.seller.id, "name": "S1 Store"})
        self.assertEqual(res.data["price"], Decimal("9.99"))

        product = Product.objects.get(pk=res.data["id"])
        self.assertEqual(product.seller, self.seller)
        self.assertTrue(os.path.exists(product.image.path))
        self.assertEqual(len(self.stored_files()), 1)
        self.assertIn(f"/uploads/{product.image.name}", res.data["image"])

    def test_stored_name_is_timestamp_plus_random_suffix(self):
        self.login(self.seller)
        self.client.post(PRODUCTS_URL, {"name": "Mug", "price": "1", "image": make_image("My Mug.PNG")}, format="multipart")

        (name,) = self.stored_files()
        self.assertRegex(name, r"^\d{13}-\d{9}\.png$")

    def test_buyer_cannot_create(self):
        self.login(make_buyer())
        res = self.client.post(PRODUCTS_URL, {"name": "Mug", "price": "9.99", "image": make_image()}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(Product.objects.exists())
        self.assertEqual(self.stored_files(), [])

    def test_buyer_is_refused_before_payload_checks(self):
        self.login(make_buyer())
        text = SimpleUploadedFile("notes.txt", b"hello", content_type="text/plain")
        res = self.client.post(PRODUCTS_URL, {"name": "", "price": "cheap", "image": text}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(self.stored_files(), [])

    def test_anonymous_cannot_create(self):
        res = self.client.post(PRODUCTS_URL, {"name": "Mug", "price": "9.99", "image": make_image()}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_image_is_required(self):
        self.login(self.seller)
        res = self.client.post(PRODUCTS_URL, {"name": "Mug", "price": "9.99"}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["message"], "Please upload an image")

    def test_non_image_upload_rejected(self):
        self.login(self.seller)
        text = SimpleUploadedFile("notes.txt", b"hello", content_type="text/plain")
        res = self.client.post(PRODUCTS_URL, {"name": "Mug", "price": "9.99", "image": text}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("image", res.data["errors"])
        self.assertEqual(self.stored_files(), [])

    def test_negative_price_rejected(self):
        self.login(self.seller)
        res = self.client.post(PRODUCTS_URL, {"name": "Mug", "price": "-1", "image": make_image()}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["message"], "Price cannot be negative")
        self.assertEqual(self.stored_files(), [])

    def test_non_numeric_price_rejected(self):
        self.login(self.seller)
        res = self.client.post(PRODUCTS_URL, {"name": "Mug", "price": "cheap", "image": make_image()}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(res.data["message"], "Price must be a number")

    @override_settings(MAX_IMAGE_UPLOAD_SIZE=32)
    def test_oversize_image_rejected(self):
        self.login(self.seller)
        res = self.client.post(PRODUCTS_URL, {"name": "Mug", "price": "1", "image": make_image()}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("image", res.data["errors"])
        self.assertEqual(self.stored_files(), [])

    @override_settings(MAX_IMAGE_UPLOAD_SIZE=32)
    def test_oversize_body_refused_before_parsing(self):
        self.login(self.seller)
        res = self.client.post(
            PRODUCTS_URL,
            {"name": "Mug", "price": "1", "description": "x" * (uploads.MULTIPART_OVERHEAD + 64), "image": make_image()},
            format="multipart",
        )

        self.assertEqual(res.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("image", res.data["errors"])
        self.assertEqual(self.stored_files(), [])

    def test_failed_write_rolls_back_committed_image(self):
        self.login(self.seller)
        with mock.patch.object(Product.objects, "create", side_effect=DatabaseError("disk full")):
            res = self.client.post(PRODUCTS_URL, {"name": "Mug", "price": "9.99", "image": make_image()}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        self.assertEqual(res.data, {"message": "Server error"})
        self.assertEqual(self.stored_files(), [])
        self.assertFalse(Product.objects.exists())


class ProductListTests(MediaRootMixin, APITestCase):
    def setUp(self):
        super().setUp()
        self.s1 = make_seller()
        self.s2 = make_seller("s2@example.com", store="S2 Store")
        self.first = Product.objects.create(seller=self.s1, store_owner_id=self.s1.id, store_name="S1 Store", name="Mug", price=Decimal("9.99"))
        self.second = Product.objects.create(seller=self.s2, store_owner_id=self.s2.id, store_name="S2 Store", name="Cup", price=Decimal("4.50"))
        self.third = Product.objects.create(seller=self.s1, store_owner_id=self.s1.id, store_name="S1 Store", name="Plate", price=Decimal("12.00"))

    def test_public_listing_is_newest_first_with_seller_name(self):
        res = self.client.get(PRODUCTS_URL)

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual([p["id"] for p in res.data], [self.third.id, self.second.id, self.first.id])
        self.assertEqual(res.data[0]["seller"], {"id": self.s1.id, "name": "s1"})

    def test_listing_filters_by_seller(self):
        res = self.client.get(PRODUCTS_URL, {"seller": self.s2.id})

        self.assertEqual([p["id"] for p in res.data], [self.second.id])

    def test_listing_search(self):
        res = self.client.get(PRODUCTS_URL, {"search": "plat"})

        self.assertEqual([p["id"] for p in res.data], [self.third.id])

    def test_detail_and_missing_detail(self):
        self.assertEqual(self.client.get(product_url(self.second.id)).data["name"], "Cup")
        self.assertEqual(self.client.get(product_url(999999)).status_code, status.HTTP_404_NOT_FOUND)

    def test_my_store_lists_only_own_products(self):
        self.login(self.s1)
        res = self.client.get(MY_STORE_URL)

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual([p["id"] for p in res.data], [self.third.id, self.first.id])

    def test_my_store_requires_token(self):
        self.assertEqual(self.client.get(MY_STORE_URL).status_code, status.HTTP_401_UNAUTHORIZED)

    def test_public_reads_ignore_a_stale_token(self):
        expired = AccessToken.for_user(self.s1)
        expired.set_exp(lifetime=-timedelta(seconds=1))
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {expired}")

        self.assertEqual(self.client.get(PRODUCTS_URL).status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get(product_url(self.first.id)).status_code, status.HTTP_200_OK)
        self.assertEqual(self.client.get(MY_STORE_URL).status_code, status.HTTP_401_UNAUTHORIZED)


class ProductOwnershipTests(MediaRootMixin, APITestCase):
    def setUp(self):
        super().setUp()
        self.owner = make_seller()
        self.login(self.owner)
        res = self.client.post(
            PRODUCTS_URL,
            {"name": "Mug", "description": "Blue", "price": "9.99", "image": make_image()},
            format="multipart",
        )
        self.product = Product.objects.get(pk=res.data["id"])
        self.client.credentials()

    def test_owner_updates_fields(self):
        self.login(self.owner)
        res = self.client.put(product_url(self.product.id), {"price": "12.50"}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.price, Decimal("12.50"))
        self.assertEqual(self.product.name, "Mug")
        self.assertEqual(self.product.seller, self.owner)

    def test_owner_replaces_image_and_old_file_is_removed(self):
        old_path = self.product.image.path
        self.login(self.owner)
        res = self.client.patch(product_url(self.product.id), {"image": make_image("new.png", "blue")}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertFalse(os.path.exists(old_path))
        self.assertTrue(os.path.exists(self.product.image.path))
        self.assertEqual(len(self.stored_files()), 1)

    def test_seller_field_cannot_be_changed(self):
        other = make_seller("s2@example.com")
        self.login(self.owner)
        self.client.put(product_url(self.product.id), {"seller": other.id, "name": "Big Mug"}, format="multipart")

        self.product.refresh_from_db()
        self.assertEqual(self.product.name, "Big Mug")
        self.assertEqual(self.product.seller, self.owner)

    def test_other_seller_cannot_update(self):
        self.login(make_seller("s2@example.com"))
        res = self.client.put(
            product_url(self.product.id),
            {"name": "Stolen", "image": make_image("x.png", "green")},
            format="multipart",
        )

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.product.refresh_from_db()
        self.assertEqual(self.product.name, "Mug")
        # the upload that came with the rejected request is gone again
        self.assertEqual(self.stored_files(), [os.path.basename(self.product.image.name)])

    def test_update_missing_product(self):
        self.login(self.owner)
        res = self.client.put(product_url(999999), {"name": "Ghost", "image": make_image()}, format="multipart")

        self.assertEqual(res.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(res.data["message"], "Product not found")
        self.assertEqual(len(self.stored_files()), 1)

    def test_owner_deletes_product_and_its_image(self):
        path = self.product.image.path
        self.login(self.owner)
        res = self.client.delete(product_url(self.product.id))

        self.assertEqual(res.status_code, status.HTTP_200_OK)
        self.assertEqual(res.data, {"message": "Product removed"})
        self.assertFalse(Product.objects.filter(pk=self.product.id).exists())
        self.assertFalse(os.path.exists(path))

    def test_delete_missing_product(self):
        self.login(self.owner)
        self.assertEqual(self.client.delete(product_url(999999)).status_code, status.HTTP_404_NOT_FOUND)

    def test_buyer_delete_is_forbidden_and_product_stays_listed(self):
        self.login(make_buyer())
        res = self.client.delete(product_url(self.product.id))

        self.assertEqual(res.status_code, status.HTTP_403_FORBIDDEN)
        self.client.credentials()
        listed = self.client.get(PRODUCTS_URL).data
        self.assertIn(self.product.id, [p["id"] for p in listed])
        self.assertTrue(os.path.exists(self.product.image.path))


class MugScenarioTests(MediaRootMixin, APITestCase):
    def test_seller_lists_mug_and_buyer_cannot_delete_it(self):
        seller = self.client.post(
            "/api/auth/register/",
            {"email": "s1@example.com", "password": "pw123456", "name": "s1", "role": "seller", "store_info": {"name": "S1"}},
            format="json",
        ).data
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {seller['token']}")
        created = self.client.post(
            PRODUCTS_URL, {"name": "Mug", "price": "9.99", "image": make_image("mug.png")}, format="multipart",
        )
        self.assertEqual(created.status_code, status.HTTP_201_CREATED)
        self.assertEqual(created.data["seller"]["id"], seller["user"]["id"])

        buyer = self.client.post(
            "/api/auth/register/",
            {"email": "b1@example.com", "password": "pw123456", "name": "b1", "role": "buyer"},
            format="json",
        ).data
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {buyer['token']}")
        self.assertEqual(self.client.delete(product_url(created.data["id"])).status_code, status.HTTP_403_FORBIDDEN)

        self.client.credentials()
        self.assertIn(created.data["id"], [p["id"] for p in self.client.get(PRODUCTS_URL).data])


class UploadManagerTests(MediaRootMixin, APITestCase):
    def test_unique_names_keep_extension(self):
        names = {uploads.unique_image_name("photo.JPG") for _ in range(50)}

        self.assertEqual(len(names), 50)
        for name in names:
            self.assertTrue(re.match(r"^products/\d+-\d{9}\.jpg$", name), name)

    def test_staged_image_rolls_back_on_error(self):
        with self.assertRaises(RuntimeError):
            with uploads.staged_image(make_image()) as reference:
                self.assertEqual(len(self.stored_files()), 1)
                self.assertTrue(reference.startswith("products/"))
                raise RuntimeError("write failed")

        self.assertEqual(self.stored_files(), [])

    def test_staged_image_without_upload_yields_none(self):
        with uploads.staged_image(None) as reference:
            self.assertIsNone(reference)

    def test_discard_logs_storage_failures(self):
        with mock.patch("product.uploads.default_storage") as storage:
            storage.delete.side_effect = OSError("busy")
            with self.assertLogs("product.uploads", level="ERROR"):
                uploads.discard("products/old.png")

    def test_check_image_rejects_non_images(self):
        from rest_framework.exceptions import ValidationError

        with self.assertRaises(ValidationError):
            uploads.check_image(SimpleUploadedFile("a.txt", b"x", content_type="text/plain"))
