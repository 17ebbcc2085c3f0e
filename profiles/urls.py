from django.urls import path
from . import views

urlpatterns = [
    # Contacts
    path('contacts/', views.ContactListCreateView.as_view(), name='contact-list-create'),
    path('contacts/<int:pk>/', views.ContactDetailView.as_view(), name='contact-detail'),

    # Addresses
    path('addresses/', views.AddressListCreateView.as_view(), name='address-list-create'),
    path('addresses/main/', views.PrimaryAddressView.as_view(), name='address-primary'),
    path('addresses/<int:pk>/', views.AddressDetailView.as_view(), name='address-detail'),
]
