# user/views.py
import logging

from django.contrib.auth import authenticate
from django.db import IntegrityError, transaction
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView

from storefront.exceptions import ConflictError, InvalidCredentials
from .models import User
from .serializers import LoginSerializer, RegisterSerializer, UserSerializer
from .tokens import issue_token

logger = logging.getLogger(__name__)


class RegisterView(APIView):
    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            with transaction.atomic():
                user = serializer.save()
        except IntegrityError:
            # lost a race with a concurrent registration for the same email
            raise ConflictError("User already exists")

        logger.info("Registered user id=%s role=%s", user.id, user.role)
        return Response(
            {"token": issue_token(user), "user": UserSerializer(user).data},
            status=status.HTTP_201_CREATED,
        )


class LoginView(APIView):
    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        email = User.objects.normalize_email(serializer.validated_data["email"])
        password = serializer.validated_data["password"]

        user = authenticate(request, email=email, password=password)
        if user is None:
            logger.info("Failed login attempt")
            raise InvalidCredentials()

        logger.info("Login successful user id=%s", user.id)
        return Response(
            {"token": issue_token(user), "user": UserSerializer(user).data},
            status=status.HTTP_200_OK,
        )


class MeView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        return Response(UserSerializer(request.user).data)
