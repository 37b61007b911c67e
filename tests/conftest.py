from datetime import timedelta

import fakeredis
import pytest
from django.contrib.auth import get_user_model
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone

from artmarket import locks
from artmarket.exceptions import ImageUploadFailed
from artmarket.models import Artwork, Auction
from config.celery import app as celery_app


class FakeImageStorage:
    """메모리 저장소 (fail_after 번째 업로드부터 실패)"""

    def __init__(self, fail_after=None, fail_delete=False):
        self.objects = {}
        self.deleted = []
        self.fail_after = fail_after
        self.fail_delete = fail_delete

    def upload(self, file, key):
        if self.fail_after is not None and len(self.objects) >= self.fail_after:
            raise ImageUploadFailed()
        file.seek(0)
        self.objects[key] = file.read()

    def delete(self, key):
        if self.fail_delete:
            raise RuntimeError('storage unavailable')
        self.objects.pop(key, None)
        self.deleted.append(key)


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch):
    client = fakeredis.FakeStrictRedis(decode_responses=True)
    monkeypatch.setattr(locks, 'redis_client', client)
    locks.redis_circuit_breaker.reset()
    yield client
    locks.redis_circuit_breaker.reset()


@pytest.fixture(autouse=True)
def eager_celery(settings):
    # Celery 는 Django settings 에서 설정을 읽으므로 settings 를 바꾼 뒤 다시 로드
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True
    celery_app.config_from_object('django.conf:settings', namespace='CELERY', force=True)
    yield celery_app


@pytest.fixture
def storage():
    return FakeImageStorage()


@pytest.fixture
def make_member(db):
    User = get_user_model()
    counter = {'n': 0}

    def _make(username=None):
        counter['n'] += 1
        username = username or f'member{counter["n"]}'
        return User.objects.create(username=username, email=f'{username}@example.com')

    return _make


@pytest.fixture
def make_auction(db):
    turns = {'last': 0}

    def _make(turn=None, status=Auction.ACTIVE, starts_in=timedelta(days=-1), ends_in=timedelta(days=1)):
        if turn is None:
            turn = turns['last'] + 1
        turns['last'] = max(turns['last'], turn)
        now = timezone.now()
        return Auction.objects.create(
            turn=turn,
            status=status,
            start_date=now + starts_in,
            end_date=now + ends_in
        )

    return _make


@pytest.fixture
def make_artwork(db, make_member, make_auction):
    def _make(auction=None, member=None, price=100_000, sale_status=Artwork.PROCESSING, title='무제'):
        return Artwork.objects.create(
            member=member or make_member(),
            auction=auction or make_auction(),
            title=title,
            price=price,
            guarantee_image='guarantee.png',
            main_image='main.png',
            sale_status=sale_status
        )

    return _make


@pytest.fixture
def make_image():
    def _make(name='art.png', content=b'\x89PNG fake image'):
        return SimpleUploadedFile(name, content, content_type='image/png')

    return _make


@pytest.fixture
def make_storage():
    return FakeImageStorage
