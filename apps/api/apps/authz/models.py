"""
Authz models: auth_user, auth_role, auth_user_role, password setup tokens.

Every user belongs to at most one clinic. Clinic staff carry the
`clinic_admin` role; patients carry the `patient` role and are the subjects
of protocol assignments, injection completions, appointments and documents.
"""
import hashlib
import uuid
from django.db import models
from django.contrib.auth.models import AbstractBaseUser, BaseUserManager, PermissionsMixin
from django.utils import timezone


# ============================================================================
# User Management
# ============================================================================

class UserManager(BaseUserManager):
    """Custom user manager for email-based authentication."""

    def create_user(self, email, password=None, **extra_fields):
        if not email:
            raise ValueError('Email is required')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        # None leaves the account without a usable password (patients set theirs via setup link)
        user.set_password(password)
        user.save(using=self._db)
        return user

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('is_active', True)
        return self.create_user(email, password, **extra_fields)


class User(AbstractBaseUser, PermissionsMixin):
    """
    Custom user model for authentication.

    Fields:
    - id: UUID PK
    - email: unique, used as login
    - name: display name
    - date_of_birth: patients only
    - clinic: tenant the user belongs to (null for platform superusers)
    - is_active, is_staff
    - created_at, updated_at
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = models.EmailField(unique=True, max_length=255)
    name = models.CharField(max_length=255, blank=True)
    date_of_birth = models.DateField(null=True, blank=True)
    clinic = models.ForeignKey(
        'core.Clinic',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='users'
    )
    is_active = models.BooleanField(default=True)
    is_staff = models.BooleanField(default=False)  # Required for admin access
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = UserManager()

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = []

    class Meta:
        db_table = 'auth_user'
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        indexes = [
            models.Index(fields=['email'], name='idx_user_email'),
            models.Index(fields=['is_active'], name='idx_user_active'),
            models.Index(fields=['clinic'], name='idx_user_clinic'),
        ]

    def __str__(self):
        return self.email

    def has_role(self, role_name):
        return self.user_roles.filter(role__name=role_name).exists()

    @property
    def is_clinic_admin(self):
        return self.has_role(RoleChoices.CLINIC_ADMIN)

    @property
    def is_patient(self):
        return self.has_role(RoleChoices.PATIENT)


class RoleChoices(models.TextChoices):
    """Fixed role names."""
    CLINIC_ADMIN = 'clinic_admin', 'Clinic Admin'
    PATIENT = 'patient', 'Patient'


class Role(models.Model):
    """
    System roles.

    Fields:
    - id: UUID PK
    - name: unique (clinic_admin|patient)
    - created_at
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(
        max_length=50,
        unique=True,
        choices=RoleChoices.choices
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'auth_role'
        verbose_name = 'Role'
        verbose_name_plural = 'Roles'

    def __str__(self):
        return self.get_name_display()


class UserRole(models.Model):
    """
    Many-to-many relationship between users and roles.

    - user_id: FK -> auth_user
    - role_id: FK -> auth_role
    - Unique (user_id, role_id)
    """
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='user_roles'
    )
    role = models.ForeignKey(
        Role,
        on_delete=models.CASCADE,
        related_name='user_roles'
    )

    class Meta:
        db_table = 'auth_user_role'
        verbose_name = 'User Role'
        verbose_name_plural = 'User Roles'
        unique_together = [('user', 'role')]
        indexes = [
            models.Index(fields=['user'], name='idx_user_role_user'),
            models.Index(fields=['role'], name='idx_user_role_role'),
        ]

    def __str__(self):
        return f"{self.user.email} - {self.role.name}"


# ============================================================================
# Password setup (patient onboarding)
# ============================================================================

def hash_setup_token(raw_token):
    """SHA-256 hex digest; only the digest is stored."""
    return hashlib.sha256(raw_token.encode('utf-8')).hexdigest()


class PasswordSetupToken(models.Model):
    """
    Single-use token that lets a newly created patient choose a password.

    Fields:
    - id: UUID PK
    - user: FK -> auth_user
    - token_hash: SHA-256 of the raw token (unique)
    - expires_at: creation time + PASSWORD_SETUP_TOKEN_TTL_MINUTES
    - used_at: set when the password is chosen
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(
        User,
        on_delete=models.CASCADE,
        related_name='password_setup_tokens'
    )
    token_hash = models.CharField(max_length=64, unique=True)
    expires_at = models.DateTimeField()
    used_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'auth_password_setup_token'
        verbose_name = 'Password Setup Token'
        verbose_name_plural = 'Password Setup Tokens'
        indexes = [
            models.Index(fields=['expires_at'], name='idx_setup_token_expires'),
        ]

    def __str__(self):
        return f"Setup token for {self.user.email}"

    @property
    def is_usable(self):
        return self.used_at is None and self.expires_at > timezone.now()
