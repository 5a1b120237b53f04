from rest_framework import serializers

from .models import Product
from .uploads import check_image


class SellerSerializer(serializers.Serializer):
    id = serializers.IntegerField(read_only=True)
    name = serializers.CharField(read_only=True)


class ProductSerializer(serializers.ModelSerializer):
    seller = SellerSerializer(read_only=True)
    store = serializers.SerializerMethodField()
    image = serializers.ImageField(read_only=True)

    class Meta:
        model = Product
        fields = (
            "id", "name", "description", "price", "image",
            "seller", "store", "created_at", "updated_at",
        )
        read_only_fields = fields

    def get_store(self, obj):
        return obj.store


class ProductWriteSerializer(serializers.Serializer):
    """
    Multipart body for create and update.
    `seller` and the store snapshot are never accepted from the client.
    """
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(required=False, allow_blank=True)
    price = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=0,
        error_messages={"invalid": "Price must be a number", "min_value": "Price cannot be negative"},
    )
    image = serializers.ImageField(required=False, write_only=True)

    def validate_image(self, value):
        return check_image(value)

    def split(self):
        """(fields, image) from validated data."""
        data = dict(self.validated_data)
        image = data.pop("image", None)
        return data, image
