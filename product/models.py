from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

User = settings.AUTH_USER_MODEL


class ProductQuerySet(models.QuerySet):
    def owned_by(self, user):
        # ownership is decided on `seller` only, never on the store snapshot
        return self.filter(seller=user)

    def newest_first(self):
        return self.order_by("-created_at", "-id")


class Product(models.Model):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    image = models.ImageField(upload_to="products/", max_length=255, blank=True, null=True)
    # set once at creation, no write path changes it
    seller = models.ForeignKey(User, on_delete=models.CASCADE, related_name="products")
    # display-only copy of the seller's store at creation time
    store_owner_id = models.PositiveBigIntegerField()
    store_name = models.CharField(max_length=150)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.CheckConstraint(condition=models.Q(price__gte=0), name="product_price_non_negative"),
        ]

    def __str__(self):
        return self.name

    @property
    def store(self):
        return {"id": self.store_owner_id, "name": self.store_name}
