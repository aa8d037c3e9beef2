# accounts/views.py
"""
Auth, company and membership endpoints.

Company and membership changes go through accounts.commands so they emit
events like every other mutation.
"""

from django.db import transaction
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken

from .authz import resolve_actor, require
from .commands import add_user_to_company, create_company, switch_active_company
from .models import CompanyMembership, User
from .serializers import (
    CompanyCreateSerializer,
    CompanySerializer,
    EmailTokenObtainPairSerializer,
    MembershipCreateSerializer,
    MembershipSerializer,
    RegistrationSerializer,
    SwitchCompanySerializer,
    UserSerializer,
    tokens_for,
)


class RegisterView(APIView):
    """POST /api/auth/register/ -> user + first company (OWNER), returns tokens."""
    permission_classes = [permissions.AllowAny]

    def post(self, request):
        serializer = RegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        with transaction.atomic():
            user = User.objects.create_user(
                email=data["email"],
                name=data["name"],
                password=data["password"],
            )
            result = create_company(
                user,
                data["company_name"],
                default_currency=data["default_currency"],
                business_type=data["business_type"],
            )
            if not result.success:
                transaction.set_rollback(True)
                return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)

        return Response(
            {
                "user": UserSerializer(user).data,
                "company": CompanySerializer(result.data["company"]).data,
                **tokens_for(user),
            },
            status=status.HTTP_201_CREATED,
        )


class LoginView(generics.GenericAPIView):
    serializer_class = EmailTokenObtainPairSerializer
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(serializer.validated_data, status=status.HTTP_200_OK)


class LogoutView(APIView):
    permission_classes = [permissions.AllowAny]

    def post(self, request, *args, **kwargs):
        refresh_token = request.data.get("refresh")
        if not refresh_token:
            return Response({"detail": "Refresh token required"}, status=status.HTTP_400_BAD_REQUEST)
        try:
            token = RefreshToken(refresh_token)
            token.blacklist()
        except TokenError:
            return Response({"detail": "Invalid token"}, status=status.HTTP_400_BAD_REQUEST)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MeView(APIView):
    """GET /api/auth/me/ -> user, active company and the actor's permissions."""

    def get(self, request):
        actor = resolve_actor(request)
        return Response({
            "user": UserSerializer(request.user).data,
            "company": CompanySerializer(actor.company).data,
            "membership": MembershipSerializer(actor.membership).data,
        })


class SwitchCompanyView(APIView):
    def post(self, request):
        serializer = SwitchCompanySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = switch_active_company(request.user, serializer.validated_data["company_id"])
        if not result.success:
            return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)
        return Response(CompanySerializer(request.user.active_company).data)


class CompanyListCreateView(APIView):
    """
    GET  /api/companies/ -> companies the user belongs to
    POST /api/companies/ -> create a company owned by the user
    """

    def get(self, request):
        memberships = CompanyMembership.objects.filter(
            user=request.user, is_active=True,
        ).select_related("company")
        return Response(CompanySerializer([m.company for m in memberships], many=True).data)

    def post(self, request):
        serializer = CompanyCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = create_company(request.user, **serializer.validated_data)
        if not result.success:
            return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)
        return Response(CompanySerializer(result.data["company"]).data, status=status.HTTP_201_CREATED)


class MembershipListCreateView(APIView):
    """
    GET  /api/memberships/ -> members of the active company
    POST /api/memberships/ -> add an existing user with a role
    """

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "company.view")
        memberships = CompanyMembership.objects.filter(
            company=actor.company,
        ).select_related("user").prefetch_related("permissions").order_by("id")
        return Response(MembershipSerializer(memberships, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)
        serializer = MembershipCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = add_user_to_company(actor, **serializer.validated_data)
        if not result.success:
            return Response({"detail": result.error}, status=status.HTTP_400_BAD_REQUEST)
        return Response(MembershipSerializer(result.data).data, status=status.HTTP_201_CREATED)
