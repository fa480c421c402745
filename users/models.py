"""
User Models
===========
This module contains:
1. User - Custom user model; the acting user recorded on ledger writes
   (location moves, allocations, disposals, GRNs)
"""

import uuid
from django.db import models
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.core.validators import RegexValidator


# ============================================================================
# CUSTOM USER MANAGER
# ============================================================================

class CustomUserManager(BaseUserManager):
    """
    Custom user manager for creating users and superusers.
    """

    def create_user(self, username, email, password=None, **extra_fields):
        """Create and save a regular user."""
        if not username:
            raise ValueError('Users must have a username')
        if not email:
            raise ValueError('Users must have an email address')

        email = self.normalize_email(email)
        user = self.model(username=username, email=email, **extra_fields)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, username, email, password=None, **extra_fields):
        """Create and save a superuser."""
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)

        if extra_fields.get('is_staff') is not True:
            raise ValueError('Superuser must have is_staff=True.')
        if extra_fields.get('is_superuser') is not True:
            raise ValueError('Superuser must have is_superuser=True.')

        return self.create_user(username, email, password, **extra_fields)


# ============================================================================
# USER MODEL
# ============================================================================

class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom User model.

    Uses username for login and carries the employee fields shown next to
    allocations and location moves.
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False
    )

    # Authentication fields
    username = models.CharField(
        max_length=50,
        unique=True,
        validators=[
            RegexValidator(
                regex=r'^[a-zA-Z0-9_]+$',
                message='Username must contain only letters, numbers, and underscores.'
            )
        ],
        help_text="Unique username for login"
    )
    email = models.EmailField(
        unique=True,
        help_text="Email address"
    )

    # Personal information
    full_name = models.CharField(
        max_length=100,
        help_text="Full name of the user"
    )
    employee_id = models.CharField(
        max_length=50,
        unique=True,
        null=True,
        blank=True,
        help_text="Employee ID from HR system"
    )
    phone = models.CharField(
        max_length=20,
        blank=True,
        null=True,
        help_text="Contact phone number"
    )
    position = models.CharField(
        max_length=100,
        blank=True,
        null=True,
        help_text="Job title"
    )

    # Status fields
    is_active = models.BooleanField(
        default=True,
        help_text="Is user account active?"
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Can user access admin site?"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Required for Django's authentication
    USERNAME_FIELD = 'username'
    REQUIRED_FIELDS = ['email', 'full_name']

    objects = CustomUserManager()

    class Meta:
        db_table = 'users'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['username']
        indexes = [
            models.Index(fields=['employee_id']),
        ]

    def __str__(self):
        return f"{self.username} - {self.full_name}"

    def get_full_name(self):
        """Return full name."""
        return self.full_name

    def get_short_name(self):
        """Return username."""
        return self.username
