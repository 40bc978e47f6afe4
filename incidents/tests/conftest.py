import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from incidents.models import User
from incidents.session import Identity
from incidents.store import ReportStore


@pytest.fixture(autouse=True)
def _clear_throttle_cache():
    # throttling counts live in the cache and would leak between tests
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def driver(db):
    return User.objects.create_user(username='driver1', email='driver1@example.com',
                                    password='P@ssw0rd1', role=User.ROLE_DRIVER)


@pytest.fixture
def other_driver(db):
    return User.objects.create_user(username='driver2', email='driver2@example.com',
                                    password='P@ssw0rd1', role=User.ROLE_DRIVER)


@pytest.fixture
def hospital(db):
    return User.objects.create_user(username='sagar', email='desk@sagar.example.com',
                                    password='P@ssw0rd1', role=User.ROLE_HOSPITAL)


@pytest.fixture
def store():
    return ReportStore()


@pytest.fixture
def driver_identity(driver):
    return Identity.from_user(driver)


@pytest.fixture
def hospital_identity(hospital):
    return Identity.from_user(hospital)


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def banashankari_form():
    return {
        'location': 'Banashankari',
        'hospital': '550e8400-e29b-41d4-a716-446655440000',
        'incidentType': 'fire',
        'consciousnessState': 'conscious',
        'personsInjured': 2,
    }
