from django.db import models
from django.core.validators import MinLengthValidator, MinValueValidator
from decimal import Decimal


class Category(models.Model):
    """Product categories of one store"""

    store = models.ForeignKey(
        'stores.Store',
        on_delete=models.CASCADE,
        related_name='categories'
    )
    name = models.CharField(max_length=100)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'categories'
        ordering = ['-created_at']
        verbose_name_plural = 'Categories'
        indexes = [
            models.Index(fields=['store'], name='categories_store_idx'),
        ]

    def __str__(self):
        return self.name


class Color(models.Model):
    """A named color; ``value`` is usually a hex code such as #fff or #1a2b3c"""

    store = models.ForeignKey(
        'stores.Store',
        on_delete=models.CASCADE,
        related_name='colors'
    )
    name = models.CharField(max_length=100)
    value = models.CharField(max_length=7, validators=[MinLengthValidator(3)])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'colors'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['store'], name='colors_store_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.value})"


class Product(models.Model):
    """
    A product of one store.

    Its category and color must belong to the same store as the product.
    """

    store = models.ForeignKey(
        'stores.Store',
        on_delete=models.CASCADE,
        related_name='products'
    )
    category = models.ForeignKey(Category, on_delete=models.CASCADE, related_name='products')
    color = models.ForeignKey(Color, on_delete=models.CASCADE, related_name='products')
    name = models.CharField(max_length=255)
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.00'))]
    )
    description = models.TextField(blank=True, default='')
    is_featured = models.BooleanField(default=True)
    is_archived = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'products'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['store'], name='products_store_idx'),
            models.Index(fields=['category'], name='products_category_idx'),
            models.Index(fields=['color'], name='products_color_idx'),
        ]

    def __str__(self):
        return self.name


class Image(models.Model):
    """
    A product image stored on the external image host.

    ``public_id`` is the host's identifier, needed to delete the remote file.
    """

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='images')
    url = models.URLField(max_length=500)
    public_id = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'images'
        ordering = ['created_at']
        indexes = [
            models.Index(fields=['product'], name='images_product_idx'),
        ]

    def __str__(self):
        return self.public_id
