"""
Contact and address services.

Addresses carry the primary-address rule: at most one address per user is
primary. Every write that can change which address is primary runs in one
transaction with the owning user's row locked, so concurrent requests for
the same user are serialized.
"""
import logging

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from rest_framework.exceptions import NotFound

from main.exceptions import ConflictError
from .models import Address, Contact

logger = logging.getLogger(__name__)

DUPLICATE_PHONE_MESSAGE = 'You have already added this phone number'
DUPLICATE_ADDRESS_MESSAGE = 'This address already exists'
PRIMARY_CONFLICT_MESSAGE = 'Another address was made primary at the same time, please try again'
PRIMARY_ADDRESS_CONSTRAINT = 'unique_primary_address_per_user'
ADDRESS_FIELDS = ['street', 'city', 'province', 'country', 'postal_code']


def _lock_user(user):
    """Take the row lock that serializes address writes for one user."""
    return get_user_model().objects.select_for_update().get(pk=user.pk)


# ============== Contacts ==============

def _check_duplicate_phone(user, phone, exclude_id=None):
    duplicates = Contact.objects.filter(user=user, phone=phone)
    if exclude_id is not None:
        duplicates = duplicates.exclude(pk=exclude_id)
    if duplicates.exists():
        raise ConflictError(DUPLICATE_PHONE_MESSAGE)


def create_contact(user, validated_data):
    _check_duplicate_phone(user, validated_data['phone'])

    try:
        with transaction.atomic():
            contact = Contact.objects.create(user=user, **validated_data)
    except IntegrityError as e:
        raise ConflictError(DUPLICATE_PHONE_MESSAGE) from e

    logger.info(f"Contact {contact.id} created by user {user.id}")
    return contact


def update_contact(user, contact, validated_data):
    if 'phone' in validated_data:
        _check_duplicate_phone(user, validated_data['phone'], exclude_id=contact.pk)

    for field, value in validated_data.items():
        setattr(contact, field, value)

    try:
        with transaction.atomic():
            contact.save()
    except IntegrityError as e:
        raise ConflictError(DUPLICATE_PHONE_MESSAGE) from e

    logger.info(f"Contact {contact.id} updated by user {user.id}")
    return contact


def delete_contact(user, contact):
    contact_id = contact.id
    contact.delete()
    logger.info(f"Contact {contact_id} deleted by user {user.id}")


# ============== Addresses ==============

def _has_duplicate_address(user, values, exclude_id=None):
    duplicates = Address.objects.filter(user=user, **{field: values[field] for field in ADDRESS_FIELDS})
    if exclude_id is not None:
        duplicates = duplicates.exclude(pk=exclude_id)
    return duplicates.exists()


def _check_duplicate_address(user, values, exclude_id=None):
    if _has_duplicate_address(user, values, exclude_id):
        raise ConflictError(DUPLICATE_ADDRESS_MESSAGE)


def _address_conflict(error, user, values, exclude_id=None):
    """Map an IntegrityError on addresses to the rule it broke."""
    if PRIMARY_ADDRESS_CONSTRAINT not in str(error) and _has_duplicate_address(user, values, exclude_id):
        return ConflictError(DUPLICATE_ADDRESS_MESSAGE)
    logger.warning(f"Concurrent primary address change refused for user {user.id}")
    return ConflictError(PRIMARY_CONFLICT_MESSAGE)


def _demote_primary(user, exclude_id=None):
    primaries = Address.objects.filter(user=user, is_primary=True)
    if exclude_id is not None:
        primaries = primaries.exclude(pk=exclude_id)
    return primaries.update(is_primary=False)


def create_address(user, validated_data):
    """
    Create an address for ``user``.

    The new address becomes primary when it asks to be, or when the user has
    no primary address yet.
    """
    try:
        with transaction.atomic():
            _lock_user(user)
            _check_duplicate_address(user, validated_data)

            has_primary = Address.objects.filter(user=user, is_primary=True).exists()
            make_primary = bool(validated_data.get('is_primary')) or not has_primary
            if make_primary:
                _demote_primary(user)

            address = Address.objects.create(
                user=user,
                **{**validated_data, 'is_primary': make_primary}
            )
    except IntegrityError as e:
        raise _address_conflict(e, user, validated_data) from e

    logger.info(f"Address {address.id} created by user {user.id} (primary={address.is_primary})")
    return address


def update_address(user, address, validated_data):
    """
    Apply a partial update.

    Setting ``is_primary`` demotes every other address of the user first.
    Clearing it leaves the user without a primary address.
    """
    values = {field: validated_data.get(field, getattr(address, field)) for field in ADDRESS_FIELDS}

    try:
        with transaction.atomic():
            _lock_user(user)
            address = Address.objects.get(pk=address.pk)

            if any(field in validated_data for field in ADDRESS_FIELDS):
                merged = {field: validated_data.get(field, getattr(address, field)) for field in ADDRESS_FIELDS}
                _check_duplicate_address(user, merged, exclude_id=address.pk)

            if validated_data.get('is_primary'):
                _demote_primary(user, exclude_id=address.pk)

            for field, value in validated_data.items():
                setattr(address, field, value)
            address.save()
    except IntegrityError as e:
        raise _address_conflict(e, user, values, exclude_id=address.pk) from e

    logger.info(f"Address {address.id} updated by user {user.id}")
    return address


def delete_address(user, address):
    # Removing the primary address leaves the user without one.
    address_id = address.id
    was_primary = address.is_primary
    address.delete()
    logger.info(f"Address {address_id} deleted by user {user.id} (was primary={was_primary})")


def get_primary_address(user):
    address = Address.objects.filter(user=user, is_primary=True).first()
    if address is None:
        raise NotFound('Primary address not found')
    return address
