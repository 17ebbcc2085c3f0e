from django.urls import path
from . import views

urlpatterns = [
    path('register/', views.register_view, name='register'),
    path('login/', views.login_view, name='login'),
    path('logout/', views.logout_view, name='logout'),
    path('refresh/', views.refresh_view, name='token-refresh'),

    # Google sign-in (browser flow)
    path('google/login/', views.google_login_view, name='google-login'),
    path('google/redirect/', views.google_redirect_view, name='google-redirect'),
]
