from django.conf import settings
from django.core.validators import MinLengthValidator, RegexValidator
from django.db import models
from django.db.models import Q

phone_validator = RegexValidator(
    regex=r'^\+?[0-9\s\-()]+$',
    message='Phone number may contain only digits, spaces, dashes, parentheses and a leading +.'
)


class Contact(models.Model):
    """A phone number the user can be reached at"""
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='contacts'
    )
    phone = models.CharField(
        max_length=20,
        validators=[MinLengthValidator(10), phone_validator]
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'contacts'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['user', 'phone'],
                name='unique_phone_per_user'
            )
        ]

    def __str__(self):
        return self.phone


class Address(models.Model):
    """
    A postal address owned by a user.

    At most one address per user is primary. profiles.services keeps it that way
    and the partial unique constraint below refuses a second primary row.
    """
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='addresses'
    )
    street = models.CharField(max_length=255)
    city = models.CharField(max_length=100)
    province = models.CharField(max_length=100)
    country = models.CharField(max_length=100)
    postal_code = models.CharField(max_length=10)
    is_primary = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'addresses'
        ordering = ['-is_primary', '-created_at']
        verbose_name_plural = 'Addresses'
        constraints = [
            models.UniqueConstraint(
                fields=['user'],
                condition=Q(is_primary=True),
                name='unique_primary_address_per_user'
            ),
            models.UniqueConstraint(
                fields=['user', 'street', 'city', 'province', 'country', 'postal_code'],
                name='unique_address_per_user'
            ),
        ]

    def __str__(self):
        return f"{self.street}, {self.city}, {self.country}"
