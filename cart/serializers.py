from decimal import Decimal

from rest_framework import serializers

from product.models import Product
from .ledger import cart_items, cart_total

CENTS = Decimal("0.01")

QUANTITY_ERRORS = {
    "invalid": "Invalid 'quantity' value",
    "min_value": "Quantity must be >= 1",
    "required": "Missing 'quantity' in payload.",
}


class ProductBriefSerializer(serializers.ModelSerializer):
    image = serializers.ImageField(read_only=True)

    class Meta:
        model = Product
        fields = ("id", "name", "price", "image")


class CartItemSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    product = ProductBriefSerializer(read_only=True)
    quantity = serializers.IntegerField(read_only=True)
    subtotal = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)


class CartSerializer(serializers.Serializer):
    """Cart with its lines and a total computed from current product prices."""

    def to_representation(self, cart):
        items = cart_items(cart)
        return {
            "id": cart.id,
            "items": CartItemSerializer(items, many=True, context=self.context).data,
            "total": cart_total(items).quantize(CENTS),
        }


class CartItemWriteSerializer(serializers.Serializer):
    product = serializers.IntegerField(error_messages={"required": "Missing 'product' in payload."})
    quantity = serializers.IntegerField(min_value=1, error_messages=QUANTITY_ERRORS)


class QuantitySerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1, error_messages=QUANTITY_ERRORS)
