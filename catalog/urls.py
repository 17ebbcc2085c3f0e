from django.urls import path
from . import views

urlpatterns = [
    # Categories
    path('categories/', views.CategoryListCreateView.as_view(), name='category-list-create'),
    path('categories/<int:pk>/', views.CategoryDetailView.as_view(), name='category-detail'),

    # Colors
    path('colors/', views.ColorListCreateView.as_view(), name='color-list-create'),
    path('colors/<int:pk>/', views.ColorDetailView.as_view(), name='color-detail'),

    # Products
    path('products/', views.ProductListCreateView.as_view(), name='product-list-create'),
    path('products/<int:pk>/', views.ProductDetailView.as_view(), name='product-detail'),

    # Product images
    path('products/<int:product_id>/images/', views.ImageListCreateView.as_view(), name='image-list-create'),
    path('products/<int:product_id>/images/<int:pk>/', views.ImageDetailView.as_view(), name='image-detail'),
]
