from django.contrib.auth import authenticate
from rest_framework import serializers
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer
from rest_framework_simplejwt.tokens import RefreshToken

from .models import Company, CompanyMembership, User


class CompanySerializer(serializers.ModelSerializer):
    class Meta:
        model = Company
        fields = ("id", "public_id", "name", "slug", "default_currency", "business_type", "is_active")


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ("id", "public_id", "email", "name")


class MembershipSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)
    permissions = serializers.SerializerMethodField()

    class Meta:
        model = CompanyMembership
        fields = ("id", "public_id", "user", "role", "is_active", "permissions")

    def get_permissions(self, obj):
        return sorted(obj.permissions.values_list("code", flat=True))


class RegistrationSerializer(serializers.Serializer):
    """Creates the user; the view then creates their first company through the command layer."""

    email = serializers.EmailField()
    name = serializers.CharField(max_length=150)
    password = serializers.CharField(min_length=8, write_only=True)
    company_name = serializers.CharField(max_length=255)
    default_currency = serializers.CharField(max_length=3, default="IDR")
    business_type = serializers.ChoiceField(
        choices=Company.BusinessType.choices,
        default=Company.BusinessType.TRADING,
    )

    def validate_email(self, value: str):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError("A user with this email already exists.")
        return value.lower()

    def validate_default_currency(self, value: str):
        return value.upper()


class CompanyCreateSerializer(serializers.Serializer):
    company_name = serializers.CharField(max_length=255)
    default_currency = serializers.CharField(max_length=3, default="IDR")
    business_type = serializers.ChoiceField(
        choices=Company.BusinessType.choices,
        default=Company.BusinessType.TRADING,
    )
    seed_chart = serializers.BooleanField(default=True)


class MembershipCreateSerializer(serializers.Serializer):
    user_id = serializers.IntegerField()
    role = serializers.ChoiceField(
        choices=CompanyMembership.Role.choices,
        default=CompanyMembership.Role.USER,
    )


class SwitchCompanySerializer(serializers.Serializer):
    company_id = serializers.IntegerField()


def tokens_for(user) -> dict:
    refresh = RefreshToken.for_user(user)
    return {"access": str(refresh.access_token), "refresh": str(refresh)}


class EmailTokenObtainPairSerializer(TokenObtainPairSerializer):
    username_field = User.EMAIL_FIELD

    def validate(self, attrs):
        authenticate_kwargs = {
            self.username_field: attrs.get("email"),
            "password": attrs.get("password"),
        }
        user = authenticate(request=self.context.get("request"), **authenticate_kwargs)
        if not user:
            raise AuthenticationFailed("Invalid credentials")
        return tokens_for(user)
