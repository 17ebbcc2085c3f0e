from django.contrib.auth.models import AbstractUser, BaseUserManager
from django.db import models


class UserManager(BaseUserManager):
    """Manager for the email-identified User model."""

    use_in_migrations = True

    def _create_user(self, email, password, **extra_fields):
        if not email:
            raise ValueError('An email address is required')
        email = self.normalize_email(email)
        user = self.model(email=email, **extra_fields)
        if password:
            user.set_password(password)
        else:
            user.set_unusable_password()
        user.save(using=self._db)
        return user

    def create_user(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', False)
        extra_fields.setdefault('is_superuser', False)
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email, password=None, **extra_fields):
        extra_fields.setdefault('is_staff', True)
        extra_fields.setdefault('is_superuser', True)
        extra_fields.setdefault('role', User.Role.ADMIN)
        return self._create_user(email, password, **extra_fields)


class User(AbstractUser):
    """
    Store owner account.

    Users sign in with email + password or through a federated provider
    (see Account). A user owns contacts, addresses and stores; deleting the
    user removes all of them.
    """

    class Role(models.TextChoices):
        ADMIN = 'ADMIN', 'Admin'
        CUSTOMER = 'CUSTOMER', 'Customer'

    username = None
    first_name = None
    last_name = None

    name = models.CharField(max_length=100)
    email = models.EmailField(max_length=100, unique=True)
    email_verified = models.DateTimeField(blank=True, null=True)
    access_token = models.TextField(
        blank=True,
        null=True,
        help_text='Currently valid bearer token; cleared on logout'
    )
    refresh_token = models.TextField(
        blank=True,
        null=True,
        help_text='Hash of the currently valid refresh token'
    )
    image = models.URLField(max_length=500, blank=True, null=True)
    role = models.CharField(
        max_length=20,
        choices=Role.choices,
        default=Role.CUSTOMER,
        help_text='User role for permission management'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = 'email'
    REQUIRED_FIELDS = ['name']

    objects = UserManager()

    class Meta:
        db_table = 'users'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.email} ({self.get_role_display()})"

    @property
    def is_admin(self):
        return self.role == self.Role.ADMIN

    @property
    def is_customer(self):
        return self.role == self.Role.CUSTOMER


class Account(models.Model):
    """Link between a local user and an identity at a federated provider."""

    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name='accounts')
    provider = models.CharField(max_length=50)
    provider_account_id = models.CharField(max_length=255)
    access_token = models.TextField(blank=True, null=True)
    refresh_token = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'accounts'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['provider', 'provider_account_id'],
                name='unique_account_per_provider'
            )
        ]
        indexes = [
            models.Index(fields=['user', 'provider_account_id'], name='accounts_user_provider_idx'),
        ]

    def __str__(self):
        return f"{self.provider}:{self.provider_account_id} -> {self.user.email}"
