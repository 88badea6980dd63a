"""
Pytest configuration and fixtures.
"""
import pytest
from django.conf import settings
import django
from django.core.management import call_command


def pytest_configure(config):
    """Configure Django settings for tests."""
    settings.DATABASES['default'] = {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
        'ATOMIC_REQUESTS': False,
    }
    django.setup()


@pytest.fixture(scope='session')
def django_db_setup(django_db_setup, django_db_blocker):
    """Set up test database, including apps without migrations."""
    with django_db_blocker.unblock():
        call_command('migrate', '--run-syncdb', verbosity=0)


@pytest.fixture
def api_client():
    """Return DRF API client."""
    from rest_framework.test import APIClient
    return APIClient()


@pytest.fixture
def make_user(db):
    """Factory for Django users."""
    from django.contrib.auth import get_user_model
    User = get_user_model()

    def _make(username, is_superuser=False):
        return User.objects.create_user(
            username=username,
            password='test-pass-123',
            is_superuser=is_superuser,
        )

    return _make


@pytest.fixture
def owner_user(make_user):
    return make_user('owner')


@pytest.fixture
def business_admin_user(make_user):
    return make_user('admin')


@pytest.fixture
def employee_user(make_user):
    return make_user('employee')


@pytest.fixture
def viewer_user(make_user):
    return make_user('viewer')


@pytest.fixture
def outsider_user(make_user):
    return make_user('outsider')


@pytest.fixture
def superadmin_user(make_user):
    return make_user('root', is_superuser=True)


@pytest.fixture
def business(db, owner_user):
    """Create a test business owned by owner_user."""
    from apps.businesses.models import Business
    return Business.objects.create(
        name='Test Business',
        owner_id=str(owner_user.pk),
    )


@pytest.fixture
def other_business(db, make_user):
    """Create another business for isolation tests."""
    from apps.businesses.models import Business
    other_owner = make_user('other-owner')
    return Business.objects.create(
        name='Other Business',
        owner_id=str(other_owner.pk),
    )


@pytest.fixture
def make_membership(db):
    """Factory for memberships."""
    from apps.rbac.models import Membership

    def _make(business, user, role='employee', status='active', custom_permissions=None):
        return Membership.objects.create(
            business=business,
            user_id=str(user.pk),
            role=role,
            status=status,
            custom_permissions=custom_permissions,
        )

    return _make


@pytest.fixture
def admin_membership(business, business_admin_user, make_membership):
    return make_membership(business, business_admin_user, role='admin')


@pytest.fixture
def employee_membership(business, employee_user, make_membership):
    return make_membership(business, employee_user, role='employee')


@pytest.fixture
def viewer_membership(business, viewer_user, make_membership):
    return make_membership(business, viewer_user, role='viewer')
