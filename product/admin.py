# product/admin.py
from django.contrib import admin

from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "price", "seller", "store_name", "created_at")
    list_filter = ("store_name",)
    search_fields = ("name", "description", "seller__email")
    readonly_fields = ("seller", "store_owner_id", "store_name", "created_at", "updated_at")
