import logging

from django.contrib.auth import get_user_model
from django.db import transaction

from ..events import DomainEvent, EventDispatcher
from ..exceptions import (
    ArtworkNotFound,
    MemberNotFound,
    MissingRequiredImage,
    NoScheduledAuction,
    ValidationFailed,
)
from ..keywords import DEFAULT_KEYWORDS, keyword_names, lookup_keyword_id
from ..models import Artwork, ArtworkImage, ArtworkKeyword, Auction, Bid, Notification
from ..storage import S3ImageStorage, generate_image_name, image_url, is_empty_file
from .auction_service import AuctionService
from .bid_service import BidService

logger = logging.getLogger(__name__)

ARTWORK_ATTRIBUTES = (
    'title',
    'material',
    'price',
    'condition',
    'condition_description',
    'genre',
    'size',
    'length',
    'width',
    'height',
    'frame',
    'description',
    'production_year',
)

DIMENSION_ATTRIBUTES = ('length', 'width', 'height', 'production_year')


class ArtworkService:
    """작품 등록 및 조회"""

    def __init__(self, storage=None, keyword_map=None, dispatcher=None):
        self.storage = storage or S3ImageStorage()
        self.keyword_map = keyword_map if keyword_map is not None else DEFAULT_KEYWORDS
        self.dispatcher = dispatcher or EventDispatcher()

    def register_artwork(self, member_id, attributes, guarantee_image, images, keywords=()):
        """
        작품 등록

        검증(예정 경매, 회원, 필수 이미지, 키워드)을 모두 마친 뒤 업로드하고,
        DB 저장이 실패하면 업로드한 이미지를 지운다.

        Returns:
            등록된 작품 ID
        """
        auction = AuctionService.latest_scheduled_auction()
        member = self._get_member(member_id)

        self.check_exists_image(guarantee_image, images)
        fields = self._clean_attributes(attributes)
        keyword_ids = self._resolve_keywords(keywords)

        gallery = [image for image in images if not is_empty_file(image)]
        guarantee_name = generate_image_name(guarantee_image.name)
        gallery_names = [generate_image_name(image.name) for image in gallery]

        uploaded = []
        try:
            self._upload(guarantee_image, guarantee_name, uploaded)
            for image, name in zip(gallery, gallery_names):
                self._upload(image, name, uploaded)

            with transaction.atomic():
                # 업로드 도중 경매가 시작됐을 수 있으므로 재확인
                auction = Auction.objects.select_for_update().get(id=auction.id)
                if auction.status != Auction.SCHEDULED:
                    raise NoScheduledAuction()

                artwork = Artwork.objects.create(
                    member=member,
                    auction=auction,
                    guarantee_image=guarantee_name,
                    main_image=gallery_names[0],
                    sale_status=Artwork.REGISTERED,
                    **fields
                )
                ArtworkImage.objects.bulk_create([
                    ArtworkImage(artwork=artwork, image=name) for name in gallery_names
                ])
                ArtworkKeyword.objects.bulk_create([
                    ArtworkKeyword(artwork=artwork, keyword_id=keyword_id) for keyword_id in keyword_ids
                ])

                self.dispatcher.publish(DomainEvent(
                    code=Notification.SAVE_ARTWORK,
                    member_id=member.id,
                    artwork_id=artwork.id,
                    message=f"'{artwork.title}' 작품이 {auction.turn}회차 경매에 등록되었습니다."
                ))

        except Exception:
            self._discard_uploads(uploaded)
            raise

        logger.info(
            f"Artwork registered: member={member.id}, artwork={artwork.id}, "
            f"auction_turn={auction.turn}, images={len(gallery_names)}, keywords={len(keyword_ids)}"
        )
        return artwork.id

    @staticmethod
    def check_exists_image(guarantee_image, images):
        if is_empty_file(guarantee_image) or not images or is_empty_file(images[0]):
            raise MissingRequiredImage()

    def get_artwork(self, artwork_id):
        try:
            artwork = (
                Artwork.objects.select_related('auction', 'member')
                .prefetch_related('images', 'keywords')
                .get(id=artwork_id)
            )
        except Artwork.DoesNotExist:
            raise ArtworkNotFound()

        artist = artwork.member
        return {
            'artist': {
                'id': artist.id,
                'name': artist.get_username(),
                'email': artist.email,
            },
            'artwork': {
                'id': artwork.id,
                'title': artwork.title,
                'material': artwork.material,
                'price': artwork.price,
                'top_price': BidService.top_price(artwork),
                'condition': artwork.condition,
                'condition_description': artwork.condition_description,
                'genre': artwork.genre,
                'size': artwork.size,
                'length': artwork.length,
                'width': artwork.width,
                'height': artwork.height,
                'frame': artwork.frame,
                'description': artwork.description,
                'production_year': artwork.production_year,
                'auction_turn': artwork.auction.turn,
                'sale_status': artwork.sale_status,
                'guarantee_image': image_url(artwork.guarantee_image),
                'main_image': image_url(artwork.main_image),
                'images': [image_url(image.image) for image in artwork.images.all()],
                'keywords': keyword_names(
                    self.keyword_map,
                    [keyword.keyword_id for keyword in artwork.keywords.all()]
                ),
            },
        }

    def get_member_artworks(self, member_id):
        member = self._get_member(member_id)
        artworks = (
            Artwork.objects.filter(member=member)
            .select_related('auction', 'member')
            .order_by('-created_at', '-id')
        )
        return [self.classify_artwork(artwork) for artwork in artworks]

    @staticmethod
    def classify_artwork(artwork):
        # 등록 상태(경매 시작 전)이거나 입찰이 없으면 최고가 없음
        top_price = None
        if artwork.sale_status != Artwork.REGISTERED:
            if Bid.objects.filter(artwork=artwork).exists():
                top_price = BidService.top_price(artwork)

        return {
            'id': artwork.id,
            'title': artwork.title,
            'auction_turn': artwork.auction.turn,
            'image': image_url(artwork.main_image),
            'artist_name': artwork.member.get_username(),
            'sale_status': artwork.sale_status,
            'top_price': top_price,
        }

    def _upload(self, file, name, uploaded):
        self.storage.upload(file, name)
        uploaded.append(name)

    def _discard_uploads(self, names):
        """보상 처리: 이미 올라간 이미지 삭제 (실패분은 Celery 재시도)"""
        for name in names:
            try:
                self.storage.delete(name)
            except Exception as e:
                logger.error(f"Image cleanup failed, scheduling retry: key={name}, error={e}")
                from ..tasks import delete_uploaded_image
                delete_uploaded_image.apply_async(args=[name], countdown=60)

    def _resolve_keywords(self, keywords):
        keyword_ids = [lookup_keyword_id(self.keyword_map, keyword) for keyword in keywords]
        return list(dict.fromkeys(keyword_ids))

    @staticmethod
    def _clean_attributes(attributes):
        fields = {key: attributes[key] for key in ARTWORK_ATTRIBUTES if key in attributes}

        if not fields.get('title'):
            raise ValidationFailed('작품명은 필수입니다.')
        price = fields.get('price')
        if not isinstance(price, int) or isinstance(price, bool) or price <= 0:
            raise ValidationFailed('시작가는 0보다 큰 정수여야 합니다.')

        # 크기, 제작연도는 선택 항목 (0 이상 정수)
        for key in DIMENSION_ATTRIBUTES:
            value = fields.get(key)
            if value is None:
                continue
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                raise ValidationFailed(f'{key} 값은 0 이상의 정수여야 합니다.')

        return fields

    @staticmethod
    def _get_member(member_id):
        User = get_user_model()
        try:
            return User.objects.get(id=member_id)
        except User.DoesNotExist:
            raise MemberNotFound()
