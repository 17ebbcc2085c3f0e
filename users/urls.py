from django.urls import path
from . import views

urlpatterns = [
    path('current/', views.CurrentUserView.as_view(), name='current-user'),
    path('<int:user_id>/', views.UserDetailView.as_view(), name='user-detail'),
]
