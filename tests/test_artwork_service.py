import pytest
from django.db import DatabaseError

from artmarket.exceptions import (
    ArtworkNotFound,
    ImageUploadFailed,
    MemberNotFound,
    MissingRequiredImage,
    NoScheduledAuction,
    UnknownKeyword,
    ValidationFailed,
)
from artmarket.models import (
    Artwork,
    ArtworkImage,
    ArtworkKeyword,
    Auction,
    Bid,
    Notification,
)
from artmarket.services import ArtworkService

pytestmark = pytest.mark.django_db

ATTRIBUTES = {
    'title': '바다의 기억',
    'material': '캔버스에 유채',
    'price': 100_000,
    'genre': '서양화',
    'size': '10호',
    'width': 53,
    'height': 45,
    'frame': True,
    'production_year': 2021,
}


@pytest.fixture
def scheduled(make_auction):
    make_auction(status=Auction.CLOSED)
    return make_auction(status=Auction.SCHEDULED)


def test_register_artwork(scheduled, storage, make_member, make_image, django_capture_on_commit_callbacks):
    artist = make_member()
    service = ArtworkService(storage=storage)

    with django_capture_on_commit_callbacks(execute=True):
        artwork_id = service.register_artwork(
            artist.id,
            ATTRIBUTES,
            make_image('guarantee.jpg'),
            [make_image('main.png'), make_image('side.png')],
            ['추상', '따뜻한']
        )

    artwork = Artwork.objects.get(id=artwork_id)
    assert artwork.auction == scheduled
    assert artwork.sale_status == Artwork.REGISTERED
    assert artwork.member == artist
    assert artwork.price == 100_000
    assert artwork.guarantee_image.endswith('.jpg')

    images = list(ArtworkImage.objects.filter(artwork=artwork).values_list('image', flat=True))
    assert len(images) == 2
    assert artwork.main_image == images[0]
    assert set(storage.objects) == {artwork.guarantee_image, *images}

    keyword_ids = list(ArtworkKeyword.objects.filter(artwork=artwork).values_list('keyword_id', flat=True))
    assert keyword_ids == [2, 8]

    notification = Notification.objects.get(member=artist)
    assert notification.code == Notification.SAVE_ARTWORK
    assert notification.artwork_id == artwork_id


def test_register_binds_latest_scheduled_auction(make_auction, storage, make_member, make_image):
    make_auction(turn=1, status=Auction.ACTIVE)
    scheduled = make_auction(turn=2, status=Auction.SCHEDULED)

    artwork_id = ArtworkService(storage=storage).register_artwork(
        make_member().id, ATTRIBUTES, make_image(), [make_image()]
    )

    assert Artwork.objects.get(id=artwork_id).auction_id == scheduled.id


def test_register_without_scheduled_auction(make_auction, storage, make_member, make_image):
    make_auction(status=Auction.ACTIVE)

    with pytest.raises(NoScheduledAuction):
        ArtworkService(storage=storage).register_artwork(
            make_member().id, ATTRIBUTES, make_image(), [make_image()]
        )

    assert Artwork.objects.count() == 0
    assert storage.objects == {}


def test_register_unknown_member(scheduled, storage, make_image):
    with pytest.raises(MemberNotFound):
        ArtworkService(storage=storage).register_artwork(999_999, ATTRIBUTES, make_image(), [make_image()])


@pytest.mark.parametrize('guarantee_empty, images', [
    (True, ['ok']),
    (False, []),
    (False, ['empty']),
])
def test_register_requires_images(scheduled, storage, make_member, make_image, guarantee_empty, images):
    guarantee = make_image(content=b'') if guarantee_empty else make_image()
    gallery = [make_image(content=b'' if kind == 'empty' else b'img') for kind in images]

    with pytest.raises(MissingRequiredImage):
        ArtworkService(storage=storage).register_artwork(make_member().id, ATTRIBUTES, guarantee, gallery)

    assert storage.objects == {}


def test_register_unknown_keyword_creates_nothing(scheduled, storage, make_member, make_image):
    with pytest.raises(UnknownKeyword):
        ArtworkService(storage=storage).register_artwork(
            make_member().id, ATTRIBUTES, make_image(), [make_image()], ['추상', '없는키워드']
        )

    assert Artwork.objects.count() == 0
    assert storage.objects == {}


def test_register_uses_injected_keyword_map(scheduled, storage, make_member, make_image):
    service = ArtworkService(storage=storage, keyword_map={'blue': 100})

    artwork_id = service.register_artwork(
        make_member().id, ATTRIBUTES, make_image(), [make_image()], ['blue', 'blue']
    )

    assert list(ArtworkKeyword.objects.filter(artwork_id=artwork_id).values_list('keyword_id', flat=True)) == [100]
    with pytest.raises(UnknownKeyword):
        service.register_artwork(make_member().id, ATTRIBUTES, make_image(), [make_image()], ['추상'])


def test_register_requires_title_and_price(scheduled, storage, make_member, make_image):
    service = ArtworkService(storage=storage)

    with pytest.raises(ValidationFailed):
        service.register_artwork(make_member().id, {'price': 1000}, make_image(), [make_image()])
    with pytest.raises(ValidationFailed):
        service.register_artwork(make_member().id, {'title': 'x', 'price': 0}, make_image(), [make_image()])


@pytest.mark.parametrize('key, value', [
    ('length', -5),
    ('width', '53cm'),
    ('height', 4.5),
    ('production_year', True),
])
def test_register_rejects_invalid_dimensions(scheduled, storage, make_member, make_image, key, value):
    attributes = {**ATTRIBUTES, key: value}

    with pytest.raises(ValidationFailed) as excinfo:
        ArtworkService(storage=storage).register_artwork(
            make_member().id, attributes, make_image(), [make_image()]
        )

    assert excinfo.value.kind == 'BAD_REQUEST_VALIDATION'
    assert Artwork.objects.count() == 0
    assert storage.objects == {}


def test_register_accepts_missing_dimensions(scheduled, storage, make_member, make_image):
    attributes = {**ATTRIBUTES, 'length': None}
    del attributes['width']

    artwork_id = ArtworkService(storage=storage).register_artwork(
        make_member().id, attributes, make_image(), [make_image()]
    )

    artwork = Artwork.objects.get(id=artwork_id)
    assert artwork.length is None
    assert artwork.width is None
    assert artwork.height == ATTRIBUTES['height']


def test_upload_failure_removes_uploaded_images(scheduled, make_storage, make_member, make_image):
    storage = make_storage(fail_after=2)

    with pytest.raises(ImageUploadFailed):
        ArtworkService(storage=storage).register_artwork(
            make_member().id, ATTRIBUTES, make_image(), [make_image(), make_image(), make_image()]
        )

    assert storage.objects == {}
    assert len(storage.deleted) == 2
    assert Artwork.objects.count() == 0


def test_db_failure_removes_uploaded_images(
    scheduled, storage, make_member, make_image, monkeypatch, django_capture_on_commit_callbacks
):
    def broken(*args, **kwargs):
        raise DatabaseError('disk full')

    monkeypatch.setattr(ArtworkKeyword.objects, 'bulk_create', broken)

    with django_capture_on_commit_callbacks() as callbacks:
        with pytest.raises(DatabaseError):
            ArtworkService(storage=storage).register_artwork(
                make_member().id, ATTRIBUTES, make_image(), [make_image()], ['추상']
            )

    assert storage.objects == {}
    assert len(storage.deleted) == 2
    assert Artwork.objects.count() == 0
    assert callbacks == []


def test_failed_cleanup_is_scheduled_for_retry(scheduled, make_storage, make_member, make_image, monkeypatch):
    from artmarket import tasks

    storage = make_storage(fail_after=1, fail_delete=True)
    scheduled_keys = []
    monkeypatch.setattr(
        tasks.delete_uploaded_image,
        'apply_async',
        lambda args, countdown: scheduled_keys.append(args[0])
    )

    with pytest.raises(ImageUploadFailed):
        ArtworkService(storage=storage).register_artwork(
            make_member().id, ATTRIBUTES, make_image(), [make_image()]
        )

    assert scheduled_keys == list(storage.objects)


def test_artwork_auction_is_immutable(make_artwork, make_auction):
    artwork = make_artwork()
    artwork.auction = make_auction()

    with pytest.raises(ValueError):
        artwork.save()


def test_classify_registered_artwork_hides_top_price(make_artwork, make_member):
    artwork = make_artwork(sale_status=Artwork.REGISTERED)
    Bid.objects.create(artwork=artwork, member=make_member(), price=150_000)

    result = ArtworkService.classify_artwork(artwork)

    assert result['top_price'] is None
    assert result['sale_status'] == Artwork.REGISTERED
    assert result['auction_turn'] == artwork.auction.turn
    assert result['artist_name'] == artwork.member.username
    assert result['image'].endswith('main.png')


def test_classify_processing_artwork(make_artwork, make_member):
    artwork = make_artwork(sale_status=Artwork.PROCESSING)
    assert ArtworkService.classify_artwork(artwork)['top_price'] is None

    Bid.objects.create(artwork=artwork, member=make_member(), price=150_000)
    Bid.objects.create(artwork=artwork, member=make_member(), price=180_000)

    assert ArtworkService.classify_artwork(artwork)['top_price'] == 180_000


def test_get_member_artworks(storage, make_artwork, make_member):
    artist = make_member()
    make_artwork(member=artist, title='첫번째')
    make_artwork(member=artist, title='두번째')
    make_artwork(title='다른 작가')

    result = ArtworkService(storage=storage).get_member_artworks(artist.id)

    assert {item['title'] for item in result} == {'첫번째', '두번째'}


def test_get_member_artworks_unknown_member(storage, db):
    with pytest.raises(MemberNotFound):
        ArtworkService(storage=storage).get_member_artworks(999_999)


def test_get_artwork_detail(scheduled, storage, make_member, make_image):
    artist = make_member('painter')
    service = ArtworkService(storage=storage)
    artwork_id = service.register_artwork(
        artist.id, ATTRIBUTES, make_image(), [make_image(), make_image()], ['풍경']
    )

    detail = service.get_artwork(artwork_id)

    assert detail['artist']['name'] == 'painter'
    assert detail['artwork']['title'] == ATTRIBUTES['title']
    assert detail['artwork']['keywords'] == ['풍경']
    assert len(detail['artwork']['images']) == 2
    assert detail['artwork']['top_price'] == ATTRIBUTES['price']
    assert detail['artwork']['auction_turn'] == scheduled.turn


def test_get_artwork_unknown(storage, db):
    with pytest.raises(ArtworkNotFound):
        ArtworkService(storage=storage).get_artwork(999_999)
