"""
Tests for Profiles Module.
Tests for: contacts, addresses and the single-primary-address rule.
"""
import threading
from unittest import mock

import pytest
from django.db import IntegrityError, connections, transaction
from rest_framework import status

from main.exceptions import ConflictError
from profiles import services
from profiles.models import Address, Contact


def address_payload(**overrides):
    payload = {
        'street': 'Jl. Braga 10',
        'city': 'Bandung',
        'province': 'West Java',
        'country': 'Indonesia',
        'postal_code': '40115',
    }
    payload.update(overrides)
    return payload


# ============== Contact API Tests ==============

@pytest.mark.django_db
class TestContactAPI:
    """Test contact endpoints"""

    def test_create_contact(self, auth_client, user):
        response = auth_client.post(f'/api/users/{user.id}/contacts/', {'phone': '081234567890'})

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['data']['phone'] == '081234567890'
        assert Contact.objects.filter(user=user).count() == 1

    def test_duplicate_phone_is_conflict(self, auth_client, user, contact):
        response = auth_client.post(f'/api/users/{user.id}/contacts/', {'phone': contact.phone})

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.json()['errors'][0]['message'] == 'You have already added this phone number'

    def test_same_phone_for_other_user_is_fine(self, other_client, other_user, contact):
        response = other_client.post(f'/api/users/{other_user.id}/contacts/', {'phone': contact.phone})

        assert response.status_code == status.HTTP_201_CREATED

    @pytest.mark.parametrize('phone', ['12345', 'call-me-maybe!', '+1' + '2' * 25])
    def test_invalid_phone(self, auth_client, user, phone):
        response = auth_client.post(f'/api/users/{user.id}/contacts/', {'phone': phone})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.json()['errors'][0]['path'] == 'phone'

    def test_list_contacts(self, auth_client, user, contact):
        response = auth_client.get(f'/api/users/{user.id}/contacts/')

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert [item['id'] for item in body['data']] == [contact.id]
        assert body['paging'] == {'current_page': 1, 'size': 10, 'total_page': 1}

    def test_empty_contact_list_is_not_found(self, auth_client, user):
        response = auth_client.get(f'/api/users/{user.id}/contacts/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Contacts not found'

    def test_update_contact(self, auth_client, user, contact):
        response = auth_client.put(f'/api/users/{user.id}/contacts/{contact.id}/', {'phone': '0222 123 4567'})

        assert response.status_code == status.HTTP_200_OK
        contact.refresh_from_db()
        assert contact.phone == '0222 123 4567'

    def test_update_to_own_phone_is_not_conflict(self, auth_client, user, contact):
        response = auth_client.patch(f'/api/users/{user.id}/contacts/{contact.id}/', {'phone': contact.phone})

        assert response.status_code == status.HTTP_200_OK

    def test_delete_contact(self, auth_client, user, contact):
        response = auth_client.delete(f'/api/users/{user.id}/contacts/{contact.id}/')

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data'] == {'message': 'Contact successfully deleted', 'success': True}
        assert not Contact.objects.filter(pk=contact.pk).exists()

    def test_missing_contact(self, auth_client, user):
        response = auth_client.get(f'/api/users/{user.id}/contacts/999999/')

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()['errors'][0]['message'] == 'Contact not found'

    def test_foreign_user_path_is_forbidden(self, other_client, user, contact):
        response = other_client.get(f'/api/users/{user.id}/contacts/')

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_foreign_user_path_checked_before_body(self, other_client, user):
        """An invalid body still yields 403, not a validation error"""
        response = other_client.post(f'/api/users/{user.id}/contacts/', {'phone': 'x'})

        assert response.status_code == status.HTTP_403_FORBIDDEN


# ============== Address API Tests ==============

@pytest.mark.django_db
class TestAddressAPI:
    """Test address endpoints"""

    def test_first_address_becomes_primary(self, auth_client, user):
        response = auth_client.post(f'/api/users/{user.id}/addresses/', address_payload())

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['data']['is_primary'] is True

    def test_second_address_is_not_primary(self, auth_client, user, address):
        response = auth_client.post(f'/api/users/{user.id}/addresses/', address_payload())

        assert response.status_code == status.HTTP_201_CREATED
        assert response.json()['data']['is_primary'] is False
        address.refresh_from_db()
        assert address.is_primary

    def test_new_primary_demotes_old(self, auth_client, user, address):
        response = auth_client.post(
            f'/api/users/{user.id}/addresses/',
            address_payload(is_primary=True)
        )

        assert response.status_code == status.HTTP_201_CREATED
        address.refresh_from_db()
        assert not address.is_primary
        assert Address.objects.filter(user=user, is_primary=True).count() == 1

    def test_duplicate_address_is_conflict(self, auth_client, user, address):
        payload = address_payload(
            street=address.street,
            city=address.city,
            province=address.province,
            country=address.country,
            postal_code=address.postal_code,
        )

        response = auth_client.post(f'/api/users/{user.id}/addresses/', payload)

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_missing_fields(self, auth_client, user):
        response = auth_client.post(f'/api/users/{user.id}/addresses/', {'street': 'Somewhere'})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        paths = {error['path'] for error in response.json()['errors']}
        assert paths == {'city', 'province', 'country', 'postal_code'}

    def test_empty_address_list_is_ok(self, auth_client, user):
        response = auth_client.get(f'/api/users/{user.id}/addresses/')

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body['data'] == []
        assert body['paging'] == {'current_page': 1, 'size': 5, 'total_page': 0}

    def test_address_pagination(self, auth_client, user):
        for number in range(7):
            Address.objects.create(user=user, **address_payload(street=f'Street {number}'))

        response = auth_client.get(f'/api/users/{user.id}/addresses/', {'page': 2})

        body = response.json()
        assert len(body['data']) == 2
        assert body['paging'] == {'current_page': 2, 'size': 5, 'total_page': 2}

    def test_page_past_end_is_empty(self, auth_client, user, address):
        response = auth_client.get(f'/api/users/{user.id}/addresses/', {'page': 5})

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data'] == []

    @pytest.mark.parametrize('params', [{'page': 0}, {'page': 'abc'}, {'limit': -1}])
    def test_invalid_paging(self, auth_client, user, params):
        response = auth_client.get(f'/api/users/{user.id}/addresses/', params)

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_get_primary_address(self, auth_client, user, address, second_address):
        response = auth_client.get(f'/api/users/{user.id}/addresses/main/')

        assert response.status_code == status.HTTP_200_OK
        assert response.json()['data']['id'] == address.id

    def test_no_primary_address(self, auth_client, user):
        response = auth_client.get(f'/api/users/{user.id}/addresses/main/')

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_promote_existing_address(self, auth_client, user, address, second_address):
        response = auth_client.patch(
            f'/api/users/{user.id}/addresses/{second_address.id}/',
            {'is_primary': True}
        )

        assert response.status_code == status.HTTP_200_OK
        address.refresh_from_db()
        second_address.refresh_from_db()
        assert second_address.is_primary
        assert not address.is_primary

    def test_update_to_existing_tuple_is_conflict(self, auth_client, user, address, second_address):
        response = auth_client.patch(
            f'/api/users/{user.id}/addresses/{second_address.id}/',
            {'street': address.street, 'postal_code': address.postal_code}
        )

        assert response.status_code == status.HTTP_409_CONFLICT

    def test_deleting_primary_does_not_promote(self, auth_client, user, address, second_address):
        response = auth_client.delete(f'/api/users/{user.id}/addresses/{address.id}/')

        assert response.status_code == status.HTTP_200_OK
        second_address.refresh_from_db()
        assert not second_address.is_primary
        assert not Address.objects.filter(user=user, is_primary=True).exists()

    def test_foreign_user_path_is_forbidden(self, other_client, user, address):
        """Requests for another user's addresses never return them"""
        for method, url in [
            ('get', f'/api/users/{user.id}/addresses/'),
            ('post', f'/api/users/{user.id}/addresses/'),
            ('get', f'/api/users/{user.id}/addresses/{address.id}/'),
            ('patch', f'/api/users/{user.id}/addresses/{address.id}/'),
        ]:
            response = getattr(other_client, method)(url, address_payload(is_primary=True))

            assert response.status_code == status.HTTP_403_FORBIDDEN
            assert 'data' not in response.json()


# ============== Primary Address Service Tests ==============

@pytest.mark.django_db
class TestPrimaryAddressService:
    """Test the at-most-one-primary rule at the service level"""

    def test_database_refuses_second_primary(self, user, address):
        with pytest.raises(IntegrityError):
            with transaction.atomic():
                Address.objects.create(user=user, is_primary=True, **address_payload())

    def test_create_non_primary_when_none_exists_promotes(self, user):
        created = services.create_address(user, address_payload(is_primary=False))

        assert created.is_primary

    def test_clearing_primary_flag(self, user, address):
        services.update_address(user, address, {'is_primary': False})

        assert not Address.objects.filter(user=user, is_primary=True).exists()

    def test_duplicate_raises_conflict(self, user, address):
        with pytest.raises(ConflictError):
            services.create_address(user, {
                'street': address.street,
                'city': address.city,
                'province': address.province,
                'country': address.country,
                'postal_code': address.postal_code,
            })

    def test_lost_primary_race_on_create_is_not_reported_as_duplicate(self, user, address):
        # The other writer's demotion never lands, so the partial constraint fires.
        with mock.patch('profiles.services._demote_primary', return_value=0):
            with pytest.raises(ConflictError) as excinfo:
                services.create_address(user, address_payload(is_primary=True))

        assert excinfo.value.detail == services.PRIMARY_CONFLICT_MESSAGE
        assert Address.objects.filter(user=user).count() == 1

    def test_lost_primary_race_on_update_is_not_reported_as_duplicate(self, user, address, second_address):
        with mock.patch('profiles.services._demote_primary', return_value=0):
            with pytest.raises(ConflictError) as excinfo:
                services.update_address(user, second_address, {'is_primary': True})

        assert excinfo.value.detail == services.PRIMARY_CONFLICT_MESSAGE
        second_address.refresh_from_db()
        assert not second_address.is_primary

    def test_duplicate_tuple_race_is_reported_as_duplicate(self, user, address):
        with mock.patch('profiles.services._check_duplicate_address'):
            with pytest.raises(ConflictError) as excinfo:
                services.create_address(user, {
                    'street': address.street,
                    'city': address.city,
                    'province': address.province,
                    'country': address.country,
                    'postal_code': address.postal_code,
                })

        assert excinfo.value.detail == services.DUPLICATE_ADDRESS_MESSAGE


@pytest.mark.django_db(transaction=True)
class TestPrimaryAddressConcurrency:
    """Parallel promotions must leave exactly one primary address"""

    def test_parallel_promotions(self, user):
        first = services.create_address(user, address_payload(street='Street 0'))
        candidates = [first] + [
            services.create_address(user, address_payload(street=f'Street {number}'))
            for number in range(1, 6)
        ]
        barrier = threading.Barrier(len(candidates))
        errors = []

        def promote(address):
            try:
                barrier.wait(timeout=10)
                services.update_address(user, address, {'is_primary': True})
            except Exception as e:
                # SQLite refuses concurrent writers outright; the rule must still hold
                errors.append(e)
            finally:
                connections.close_all()

        threads = [threading.Thread(target=promote, args=(address,)) for address in candidates]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        primaries = Address.objects.filter(user=user, is_primary=True)
        assert primaries.count() == 1
        assert primaries.get().pk in {address.pk for address in candidates}
