# accounts/models.py
"""
Tenancy and access-control models.

Every business row in the system is scoped to exactly one Company.
Users reach a company through a CompanyMembership, which carries a role
and an explicit set of permission codes (role defaults + manual grants).
"""

import uuid

from django.conf import settings
from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models
from django.utils.translation import gettext_lazy as _


class UserManager(BaseUserManager):
    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError("The given email must be set")
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault("is_staff", False)
        extra_fields.setdefault("is_superuser", False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password, **extra_fields):
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self._create_user(email, password, **extra_fields)


class Company(models.Model):
    """A tenant. All ledger, document and stock data hangs off a company."""

    class BusinessType(models.TextChoices):
        TRADING = "trading", "Trading"
        SERVICE = "service", "Service"
        MANUFACTURING = "manufacturing", "Manufacturing"

    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    name = models.CharField(max_length=255)
    slug = models.SlugField(max_length=100, unique=True)
    default_currency = models.CharField(max_length=3, default="IDR")
    business_type = models.CharField(
        max_length=20,
        choices=BusinessType.choices,
        default=BusinessType.TRADING,
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name = _("Company")
        verbose_name_plural = _("Companies")
        ordering = ["name"]

    def __str__(self):
        return self.name


class User(AbstractUser):
    username = None
    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    email = models.EmailField("email address", unique=True)
    name = models.CharField(max_length=150)
    active_company = models.ForeignKey(
        Company,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["name"]

    objects = UserManager()

    def __str__(self):
        return self.email

    def get_active_membership(self):
        if not self.active_company_id:
            return None
        return CompanyMembership.objects.filter(
            user=self,
            company_id=self.active_company_id,
            is_active=True,
        ).first()


class AppPermission(models.Model):
    """A permission code such as ``journal.post`` or ``pos.sell``."""

    code = models.CharField(max_length=100, unique=True)
    name = models.CharField(max_length=255)
    module = models.CharField(max_length=50, db_index=True)
    description = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["module", "code"]

    def __str__(self):
        return self.code


class CompanyMembership(models.Model):
    class Role(models.TextChoices):
        OWNER = "OWNER", "Owner"
        ADMIN = "ADMIN", "Admin"
        USER = "USER", "User"
        VIEWER = "VIEWER", "Viewer"

    public_id = models.UUIDField(default=uuid.uuid4, editable=False, unique=True)
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="memberships",
    )
    role = models.CharField(max_length=20, choices=Role.choices, default=Role.USER)
    is_active = models.BooleanField(default=True)
    permissions = models.ManyToManyField(
        AppPermission,
        through="CompanyMembershipPermission",
        related_name="memberships",
        blank=True,
    )
    joined_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "user"],
                name="uniq_membership_company_user",
            ),
        ]

    def __str__(self):
        return f"{self.user} @ {self.company} ({self.role})"

    def has_permission(self, code: str) -> bool:
        if not self.is_active:
            return False
        if self.role == self.Role.OWNER:
            return True
        return self.permissions.filter(code=code).exists()


class CompanyMembershipPermission(models.Model):
    membership = models.ForeignKey(
        CompanyMembership,
        on_delete=models.CASCADE,
        related_name="permission_grants",
    )
    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="+",
    )
    permission = models.ForeignKey(
        AppPermission,
        on_delete=models.CASCADE,
        related_name="grants",
    )
    granted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="+",
    )
    granted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["membership", "permission"],
                name="uniq_membership_permission",
            ),
        ]

    def __str__(self):
        return f"{self.membership_id}:{self.permission_id}"
