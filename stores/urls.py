from django.urls import path
from rest_framework.routers import SimpleRouter
from . import views

router = SimpleRouter()
router.register(r'stores', views.StoreViewSet, basename='store')

urlpatterns = router.urls + [
    path('stores/<int:store_id>/banners/', views.BannerListCreateView.as_view(), name='banner-list-create'),
    path('stores/<int:store_id>/banners/<int:pk>/', views.BannerDetailView.as_view(), name='banner-detail'),
]
