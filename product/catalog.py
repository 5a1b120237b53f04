"""
Catalog operations.

Every function takes the acting user explicitly. Mutations are issued as a
single statement filtered on both the product id and its seller, so the
ownership check and the write cannot be separated by a concurrent request.
"""
import logging

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound, PermissionDenied, ValidationError

from .models import Product
from .uploads import discard, staged_image

logger = logging.getLogger(__name__)


def list_all():
    return Product.objects.select_related("seller").newest_first()


def list_by_seller(user):
    return Product.objects.select_related("seller").owned_by(user).newest_first()


def _missing_or_forbidden(product_id):
    if Product.objects.filter(pk=product_id).exists():
        return PermissionDenied("Not authorized")
    return NotFound("Product not found")


def create_product(user, fields, image):
    if not user.is_seller:
        raise PermissionDenied("Only sellers can create products")
    if image is None:
        raise ValidationError({"image": ["Please upload an image"]})

    with staged_image(image) as reference:
        with transaction.atomic():
            product = Product.objects.create(
                seller=user,
                store_owner_id=user.id,
                store_name=user.store_name or user.name or "Unknown Seller",
                image=reference,
                **fields,
            )

    logger.info("Seller %s created product %s", user.id, product.id)
    return product


def update_product(user, product_id, fields, image=None):
    """
    Apply `fields` (and a replacement image, if given) to a product `user` owns.
    The previous image is discarded only once the new reference is stored.
    """
    with staged_image(image) as reference:
        with transaction.atomic():
            owned = Product.objects.owned_by(user).filter(pk=product_id)
            old_image = owned.select_for_update().values_list("image", flat=True).first()

            changes = dict(fields)
            if reference:
                changes["image"] = reference
            matched = owned.update(updated_at=timezone.now(), **changes)
            if not matched:
                raise _missing_or_forbidden(product_id)

    if reference and old_image:
        discard(old_image)

    logger.info("Seller %s updated product %s", user.id, product_id)
    return Product.objects.select_related("seller").get(pk=product_id)


def delete_product(user, product_id):
    with transaction.atomic():
        owned = Product.objects.owned_by(user).filter(pk=product_id)
        image = owned.select_for_update().values_list("image", flat=True).first()
        deleted, _ = owned.delete()
        if not deleted:
            raise _missing_or_forbidden(product_id)

    discard(image)
    logger.info("Seller %s deleted product %s", user.id, product_id)
