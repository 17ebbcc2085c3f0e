from rest_framework import generics
from rest_framework.response import Response

from main.mixins import DeleteMessageMixin, EmptyListMixin, NotFoundMessageMixin, PartialUpdateMixin
from users.mixins import UserScopedMixin
from . import services
from .models import Address, Contact
from .serializers import AddressSerializer, ContactSerializer


# ============== Contact Views ==============

class ContactListCreateView(UserScopedMixin, EmptyListMixin, generics.ListCreateAPIView):
    """List or add the user's phone numbers"""
    queryset = Contact.objects.all()
    serializer_class = ContactSerializer
    empty_message = 'Contacts not found'

    def perform_create(self, serializer):
        serializer.instance = services.create_contact(self.path_user, serializer.validated_data)


class ContactDetailView(UserScopedMixin, NotFoundMessageMixin, PartialUpdateMixin,
                        DeleteMessageMixin, generics.RetrieveUpdateDestroyAPIView):
    """Retrieve, update or delete one phone number"""
    queryset = Contact.objects.all()
    serializer_class = ContactSerializer
    not_found_message = 'Contact not found'
    delete_message = 'Contact successfully deleted'

    def perform_update(self, serializer):
        serializer.instance = services.update_contact(
            self.path_user, serializer.instance, serializer.validated_data
        )

    def perform_destroy(self, instance):
        services.delete_contact(self.path_user, instance)


# ============== Address Views ==============

class AddressListCreateView(UserScopedMixin, EmptyListMixin, generics.ListCreateAPIView):
    """
    List or add the user's addresses.

    The first address, or any address created with ``is_primary``, becomes
    the primary one. An empty list is a normal 200.
    """
    queryset = Address.objects.all()
    serializer_class = AddressSerializer
    page_size = 5

    def perform_create(self, serializer):
        serializer.instance = services.create_address(self.path_user, serializer.validated_data)


class PrimaryAddressView(UserScopedMixin, generics.GenericAPIView):
    """The user's primary address"""
    queryset = Address.objects.all()
    serializer_class = AddressSerializer

    def get(self, request, *args, **kwargs):
        address = services.get_primary_address(self.path_user)
        return Response(self.get_serializer(address).data)


class AddressDetailView(UserScopedMixin, NotFoundMessageMixin, PartialUpdateMixin,
                        DeleteMessageMixin, generics.RetrieveUpdateDestroyAPIView):
    """Retrieve, update or delete one address"""
    queryset = Address.objects.all()
    serializer_class = AddressSerializer
    not_found_message = 'Address not found'
    delete_message = 'Address successfully deleted'

    def perform_update(self, serializer):
        serializer.instance = services.update_address(
            self.path_user, serializer.instance, serializer.validated_data
        )

    def perform_destroy(self, instance):
        services.delete_address(self.path_user, instance)
