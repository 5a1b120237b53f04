from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import permissions, status, viewsets
from rest_framework.exceptions import PermissionDenied
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.parsers import FormParser, JSONParser
from rest_framework.response import Response

from . import catalog
from .models import Product
from .serializers import ProductSerializer, ProductWriteSerializer
from .uploads import ImageMultiPartParser


class ProductViewSet(viewsets.GenericViewSet):
    """
    GET    /api/products/            public listing, newest first
    GET    /api/products/<id>/       public detail
    GET    /api/products/my-store/   the caller's own products
    POST   /api/products/            seller creates (multipart, image required)
    PUT    /api/products/<id>/       owner updates (multipart, every field optional)
    DELETE /api/products/<id>/       owner deletes
    """
    queryset = Product.objects.all()
    serializer_class = ProductSerializer
    parser_classes = (ImageMultiPartParser, FormParser, JSONParser)
    lookup_value_regex = r"\d+"
    filter_backends = [DjangoFilterBackend, OrderingFilter, SearchFilter]
    filterset_fields = ["seller"]
    ordering_fields = ["created_at", "price"]
    search_fields = ["name", "description"]

    public_actions = ("list", "retrieve")

    def get_authenticators(self):
        # self.action is not set yet here, so resolve it from the method
        request = getattr(self, "request", None)
        action_map = getattr(self, "action_map", None) or {}
        if request is not None and action_map.get(request.method.lower()) in self.public_actions:
            return []
        return super().get_authenticators()

    def get_permissions(self):
        if self.action in self.public_actions:
            return [permissions.AllowAny()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        return catalog.list_all()

    def list(self, request):
        qs = self.filter_queryset(self.get_queryset())
        serializer = ProductSerializer(qs, many=True, context={"request": request})
        return Response(serializer.data)

    def retrieve(self, request, pk=None):
        product = self.get_object()
        return Response(ProductSerializer(product, context={"request": request}).data)

    @action(detail=False, methods=["get"], url_path="my-store")
    def my_store(self, request):
        qs = catalog.list_by_seller(request.user)
        serializer = ProductSerializer(qs, many=True, context={"request": request})
        return Response(serializer.data)

    def create(self, request):
        if not request.user.is_seller:
            raise PermissionDenied("Only sellers can create products")
        serializer = ProductWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        fields, image = serializer.split()

        product = catalog.create_product(request.user, fields, image)
        return Response(
            ProductSerializer(product, context={"request": request}).data,
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, pk=None):
        serializer = ProductWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        fields, image = serializer.split()

        product = catalog.update_product(request.user, pk, fields, image)
        return Response(ProductSerializer(product, context={"request": request}).data)

    def partial_update(self, request, pk=None):
        return self.update(request, pk)

    def destroy(self, request, pk=None):
        catalog.delete_product(request.user, pk)
        return Response({"message": "Product removed"}, status=status.HTTP_200_OK)
