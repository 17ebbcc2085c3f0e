import django_filters

from .models import Product


class ProductFilter(django_filters.FilterSet):
    """
    Product list filters.

    ``category`` and ``color`` take raw ids and only narrow the store's own
    products, so an id from another store answers like a missing one.
    """
    category = django_filters.NumberFilter(field_name='category_id')
    color = django_filters.NumberFilter(field_name='color_id')

    class Meta:
        model = Product
        fields = ['category', 'color', 'is_featured', 'is_archived']
