"""Per-user cart: lazily created, one line per product, total priced live."""
from decimal import Decimal

from django.shortcuts import get_object_or_404
from rest_framework.exceptions import ValidationError

from product.models import Product
from .models import Cart, CartItem


def cart_total(items):
    """Sum of current product price times quantity over `items`."""
    return sum((item.product.price * item.quantity for item in items), Decimal("0.00"))


def get_cart(user):
    cart, _ = Cart.objects.get_or_create(user=user)
    return cart


def cart_items(cart):
    return list(cart.items.select_related("product").order_by("id"))


def add_or_update_item(user, product_id, quantity):
    """Set the quantity of `product_id` in the cart, adding the line if it is not there yet."""
    if quantity < 1:
        raise ValidationError({"quantity": ["Quantity must be >= 1"]})
    product = get_object_or_404(Product, pk=product_id)
    cart = get_cart(user)
    CartItem.objects.update_or_create(cart=cart, product=product, defaults={"quantity": quantity})
    return cart


def remove_item(user, product_id):
    # removing a product that is not in the cart is not an error
    cart = get_cart(user)
    cart.items.filter(product_id=product_id).delete()
    return cart


def clear(user):
    cart = get_cart(user)
    cart.items.all().delete()
    return cart
