from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from . import ledger
from .serializers import CartItemWriteSerializer, CartSerializer, QuantitySerializer


def cart_response(cart, request, status_code=status.HTTP_200_OK):
    return Response(CartSerializer(cart, context={"request": request}).data, status=status_code)


class CartAPIView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request, format=None):
        return cart_response(ledger.get_cart(request.user), request)

    def delete(self, request, format=None):
        """Empty the cart."""
        return cart_response(ledger.clear(request.user), request)


class CartItemListAPIView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request, format=None):
        """
        Expected payload:
        {
            "product": <id>,
            "quantity": <int>
        }
        The quantity replaces whatever was in the cart for that product.
        """
        serializer = CartItemWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cart = ledger.add_or_update_item(
            request.user,
            serializer.validated_data["product"],
            serializer.validated_data["quantity"],
        )
        return cart_response(cart, request)


class CartItemDetailAPIView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def put(self, request, product_id, format=None):
        serializer = QuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        cart = ledger.add_or_update_item(request.user, product_id, serializer.validated_data["quantity"])
        return cart_response(cart, request)

    def delete(self, request, product_id, format=None):
        return cart_response(ledger.remove_item(request.user, product_id), request)
