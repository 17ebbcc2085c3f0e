from django.conf import settings
from django.db import models


class Store(models.Model):
    """Root of a tenant's catalog: banners, categories, colors and products hang off it."""
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='stores',
        help_text='Owner of this store'
    )
    name = models.CharField(max_length=255, help_text='Store name unique per owner')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'stores'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(fields=['user', 'name'], name='unique_store_name_per_user'),
        ]

    def __str__(self):
        return self.name


class Banner(models.Model):
    store = models.ForeignKey(Store, on_delete=models.CASCADE, related_name='banners')
    name = models.CharField(max_length=255)
    image_url = models.URLField(max_length=500)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'banners'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.name} ({self.store.name})"
