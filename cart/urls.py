from django.urls import path

from .views import CartAPIView, CartItemDetailAPIView, CartItemListAPIView

urlpatterns = [
    path("", CartAPIView.as_view(), name="cart"),
    path("items/", CartItemListAPIView.as_view(), name="cart-items"),
    path("items/<int:product_id>/", CartItemDetailAPIView.as_view(), name="cart-item-detail"),
]
