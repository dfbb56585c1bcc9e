# forum/models/user.py
"""
User model for forum members.

This module contains:
- Role: Role constants
- UserManager: Custom manager for creating users
- User: Forum member with a public handle used for @mentions
"""

from django.contrib.auth.models import AbstractBaseUser, BaseUserManager
from django.core.exceptions import ValidationError
from django.core.validators import validate_email
from django.db import models

from .base import TimeStampedModel


class Role:
    """User role constants."""

    ADMIN = "Admin"
    USER = "User"
    MODERATOR = "Moderator"

    CHOICES = [
        (ADMIN, "Administrator"),
        (USER, "Standard User"),
        (MODERATOR, "Moderator"),
    ]


class UserManager(BaseUserManager):
    """
    Custom manager for User model.

    Provides create_user() and create_superuser() methods
    compatible with Django's auth system.
    """

    def create_user(self, email, username, password=None, **extra_fields):
        """
        Create and return a regular user with an email, handle and password.
        """
        if not email:
            raise ValueError("The Email field must be set")
        if not username:
            raise ValueError("The Username field must be set")
        email = self.normalize_email(email)
        extra_fields.setdefault("role", Role.USER)
        extra_fields.setdefault("is_active", True)
        extra_fields.setdefault("is_staff", False)

        user = self.model(email=email, username=username, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, username, password=None, **extra_fields):
        """
        Create and return a superuser with admin privileges.
        """
        extra_fields.setdefault("role", Role.ADMIN)
        extra_fields.setdefault("is_staff", True)
        extra_fields.setdefault("is_superuser", True)

        if extra_fields.get("is_staff") is not True:
            raise ValueError("Superuser must have is_staff=True.")
        if extra_fields.get("is_superuser") is not True:
            raise ValueError("Superuser must have is_superuser=True.")

        return self.create_user(email, username, password, **extra_fields)


class User(AbstractBaseUser, TimeStampedModel):
    """
    Forum member.

    The ``username`` is the public handle matched by @mentions; the
    ``display_name`` is what other members see in notifications.
    """

    user_id = models.AutoField(
        db_column="UserID",
        primary_key=True,
        help_text="Unique identifier for the user",
    )
    username = models.CharField(
        db_column="Username",
        unique=True,
        max_length=50,
        help_text="Public handle used for @mentions",
    )
    display_name = models.CharField(
        db_column="DisplayName",
        max_length=255,
        blank=True,
        default="",
        help_text="Name shown to other members",
    )
    email = models.CharField(
        db_column="Email",
        unique=True,
        max_length=255,
        help_text="User's email address (used for login)",
    )
    password = models.CharField(
        db_column="PasswordHash",
        max_length=255,
        help_text="Hashed password",
    )
    role = models.CharField(
        db_column="Role",
        max_length=12,
        choices=Role.CHOICES,
        default=Role.USER,
        help_text="User role determining permissions",
    )
    is_active = models.BooleanField(
        db_column="IsActive",
        default=True,
        help_text="Whether the account can sign in",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Designates whether the user can log into the admin site.",
    )
    is_superuser = models.BooleanField(
        default=False,
        help_text="Designates that this user has all permissions.",
    )
    last_login = models.DateTimeField(
        db_column="LastLogin",
        blank=True,
        null=True,
        help_text="Last login timestamp",
    )

    objects = UserManager()

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["username"]

    class Meta:
        managed = True
        db_table = "Users"
        verbose_name = "User"
        verbose_name_plural = "Users"
        indexes = [
            models.Index(fields=["username"], name="users_username_idx"),
            models.Index(fields=["role", "is_active"], name="users_role_active_idx"),
        ]
        app_label = "forum"

    def __str__(self) -> str:
        return f"{self.name} ({self.email})"

    @property
    def id(self) -> int:
        """Alias for user_id to support generic access patterns."""
        return self.user_id

    @property
    def name(self) -> str:
        """Display name, falling back to the handle."""
        return self.display_name or self.username

    def clean(self) -> None:
        """Validate email format before saving."""
        if self.email:
            try:
                validate_email(self.email)
            except ValidationError:
                raise ValidationError(
                    {"email": "Enter a valid email address."}
                ) from None

    def is_admin(self) -> bool:
        """Check if user has admin role."""
        return self.role == Role.ADMIN

    def is_moderator(self) -> bool:
        """Check if user can review moderation tickets."""
        return self.role in (Role.ADMIN, Role.MODERATOR)

    def has_perm(self, perm, obj=None) -> bool:
        """
        Return True if the user has the specified permission.
        Superusers have all permissions.
        """
        if self.is_superuser:
            return True
        return self.role == Role.ADMIN

    def has_module_perms(self, app_label) -> bool:
        """
        Return True if the user has permissions in the given app.
        Superusers have all permissions.
        """
        if self.is_superuser:
            return True
        return self.role == Role.ADMIN
