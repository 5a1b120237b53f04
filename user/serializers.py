# user/serializers.py
from django.conf import settings
from rest_framework import serializers

from storefront.exceptions import ConflictError
from .models import User


class StoreInfoSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    description = serializers.CharField(required=False, allow_blank=True)


class RegisterSerializer(serializers.Serializer):
    email = serializers.EmailField(
        error_messages={
            "required": "Please provide all required fields",
            "blank": "Please provide all required fields",
            "invalid": "Please provide a valid email address",
        }
    )
    password = serializers.CharField(
        write_only=True,
        trim_whitespace=False,
        error_messages={
            "required": "Please provide all required fields",
            "blank": "Please provide all required fields",
        },
    )
    name = serializers.CharField(
        max_length=150,
        error_messages={
            "required": "Please provide all required fields",
            "blank": "Please provide all required fields",
        },
    )
    role = serializers.ChoiceField(
        choices=User.Role.choices,
        error_messages={
            "required": "Invalid role specified",
            "invalid_choice": "Invalid role specified",
        },
    )
    store_info = StoreInfoSerializer(required=False, allow_null=True)

    def validate_email(self, value):
        return User.objects.normalize_email(value)

    def validate_password(self, value):
        if len(value) < settings.PASSWORD_MIN_LENGTH:
            raise serializers.ValidationError(
                f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long"
            )
        return value

    # ----------------------------
    # SELLERS NEED A STORE, EMAILS ARE UNIQUE
    # ----------------------------
    def validate(self, attrs):
        store_info = attrs.get("store_info") or {}
        if attrs["role"] == User.Role.SELLER and not (store_info.get("name") or "").strip():
            raise serializers.ValidationError(
                {"store_info": ["Store information is required for sellers"]}
            )
        if User.objects.filter(email=attrs["email"]).exists():
            raise ConflictError("User already exists")
        return attrs

    def create(self, validated_data):
        store_info = validated_data.pop("store_info", None) or {}
        extra = {}
        if validated_data["role"] == User.Role.SELLER:
            extra["store_name"] = store_info["name"].strip()
            extra["store_description"] = store_info.get("description", "")
        return User.objects.create_user(
            email=validated_data["email"],
            name=validated_data["name"],
            password=validated_data["password"],
            role=validated_data["role"],
            **extra,
        )


class LoginSerializer(serializers.Serializer):
    email = serializers.CharField(
        error_messages={"required": "Please provide email and password", "blank": "Please provide email and password"}
    )
    password = serializers.CharField(
        trim_whitespace=False,
        error_messages={"required": "Please provide email and password", "blank": "Please provide email and password"},
    )


class UserSerializer(serializers.ModelSerializer):
    store_info = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = ["id", "email", "name", "role", "store_info", "date_joined"]
        read_only_fields = fields

    def get_store_info(self, obj):
        return obj.store_info
