from decimal import Decimal

import pytest
from django.contrib.messages.storage.fallback import FallbackStorage

from assets.models import Asset
from users.models import User


@pytest.fixture
def user(db):
    return User.objects.create_user(
        username='kho_vien',
        email='kho@example.com',
        password='secret',
        full_name='Nguyen Van Kho',
    )


@pytest.fixture
def other_user(db):
    return User.objects.create_user(
        username='ky_su',
        email='kysu@example.com',
        password='secret',
        full_name='Tran Thi Ky Su',
    )


@pytest.fixture
def make_asset(db):
    counter = {'n': 0}

    def _make(**kwargs):
        counter['n'] += 1
        defaults = {
            'asset_id': f'TS-{counter["n"]:04d}',
            'asset_name': f'Asset {counter["n"]}',
            'cost_basis': Decimal('1200000'),
            'depreciation_method': Asset.STRAIGHT_LINE,
            'useful_life_months': 12,
            'current_status': 'active',
        }
        defaults.update(kwargs)
        return Asset.objects.create(**defaults)

    return _make


@pytest.fixture
def staff_user(db):
    return User.objects.create_superuser(
        username='quan_tri',
        email='admin@example.com',
        password='secret',
        full_name='Le Van Quan Tri',
    )


@pytest.fixture
def admin_request(rf, staff_user):
    request = rf.post('/admin/')
    request.user = staff_user
    request.session = {}
    request._messages = FallbackStorage(request)
    return request
