import logging
import time
from typing import Any, Dict

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import IntegrityError, OperationalError, transaction
from django.utils import timezone

from ..events import DomainEvent, EventDispatcher
from ..exceptions import ArtworkNotFound, ConcurrentBidConflict, MemberNotFound
from ..locks import ArtworkBidLock, LockBackendUnavailable
from ..models import Artwork, Bid, Notification
from ..storage import image_url

logger = logging.getLogger(__name__)

CONFLICT_MARKERS = (
    'deadlock',
    'could not serialize',
    'database is locked',
    'database table is locked',
    'lock wait timeout',
)


def is_conflict_error(error):
    message = str(error).lower()
    return any(marker in message for marker in CONFLICT_MARKERS)


class BidService:
    """
    입찰 서비스

    단계:
    1. 작품 단위 Redis 락 (대기 시간 제한, 장애 시 DB 락만 사용)
    2. 트랜잭션 + 작품 row 잠금 안에서 최고가 조회 및 입찰 기록 갱신
    3. 충돌(유니크 위반, 데드락)은 ConcurrentBidConflict 로 바꿔 제한 횟수만큼 재시도
    4. 이전 최고 입찰자에게 상회 입찰 알림 (커밋 후)
    """

    RETRY_DELAY = 0.1  # 100ms

    def __init__(
        self,
        dispatcher=None,
        lock_timeout=None,
        lock_wait=None,
        max_retries=None,
        check_window_on_every_bid=None,
        clock=None
    ):
        self.dispatcher = dispatcher or EventDispatcher()
        self.lock_timeout = lock_timeout
        self.lock_wait = lock_wait
        if max_retries is None:
            max_retries = settings.ARTMARKET_BID_MAX_RETRIES
        # 최소 1회는 실행
        self.max_retries = max(1, max_retries)
        if check_window_on_every_bid is None:
            check_window_on_every_bid = settings.ARTMARKET_CHECK_WINDOW_ON_EVERY_BID
        self.check_window_on_every_bid = check_window_on_every_bid
        self.clock = clock or timezone.now

    def place_bid(self, member_id: int, artwork_id: int, price: int) -> Dict[str, Any]:
        lock = ArtworkBidLock(artwork_id, timeout=self.lock_timeout, wait=self.lock_wait)

        try:
            lock.acquire()
        except LockBackendUnavailable as e:
            # Graceful degradation: 작품 row 잠금만으로 직렬화
            logger.warning(f"Redis unavailable, using DB-only lock: artwork={artwork_id}, error={e}")
            result = self._execute_with_retry(member_id, artwork_id, price)
            result['degraded_mode'] = True
            return result

        try:
            result = self._execute_with_retry(member_id, artwork_id, price)
        finally:
            lock.release()

        result['degraded_mode'] = False
        return result

    def _execute_with_retry(self, member_id, artwork_id, price):
        for attempt in range(1, self.max_retries + 1):
            try:
                return self._execute_bid(member_id, artwork_id, price)
            except ConcurrentBidConflict:
                if attempt >= self.max_retries:
                    logger.error(
                        f"Bid conflict retries exhausted: member={member_id}, "
                        f"artwork={artwork_id}, attempts={attempt}"
                    )
                    raise
                logger.warning(
                    f"Bid conflict, retrying: member={member_id}, "
                    f"artwork={artwork_id}, attempt={attempt}"
                )
                time.sleep(self.RETRY_DELAY * attempt)

    def _execute_bid(self, member_id, artwork_id, price):
        try:
            with transaction.atomic():
                artwork = self._get_artwork_for_update(artwork_id)
                member = self._get_member(member_id)

                top_bid = self._top_bid(artwork)
                top_price = top_bid.price if top_bid else artwork.price

                bid = Bid.objects.filter(artwork=artwork, member=member).first()
                created = bid is None

                if created:
                    bid = Bid(artwork=artwork, member=member)
                    artwork.auction.validate_bidding_period(self.clock())
                elif self.check_window_on_every_bid:
                    artwork.auction.validate_bidding_period(self.clock())

                bid.raise_price(top_price, price)
                bid.save()

                if top_bid and top_bid.member_id != member.id:
                    self.dispatcher.publish(DomainEvent(
                        code=Notification.OUTBID,
                        member_id=top_bid.member_id,
                        artwork_id=artwork.id,
                        message=f"'{artwork.title}' 작품에 더 높은 입찰가({price}원)가 등록되었습니다."
                    ))

        except IntegrityError as e:
            # 같은 입찰자의 첫 입찰이 동시에 들어온 경우
            raise ConcurrentBidConflict() from e
        except OperationalError as e:
            if is_conflict_error(e):
                raise ConcurrentBidConflict() from e
            raise

        logger.info(
            f"Bid placed: member={member_id}, artwork={artwork_id}, "
            f"price={price}, previous_top={top_price}, created={created}"
        )

        return {
            'bid_id': bid.id,
            'artwork_id': artwork.id,
            'price': bid.price,
            'previous_top_price': top_price,
            'created': created,
        }

    @staticmethod
    def _top_bid(artwork):
        return Bid.objects.filter(artwork=artwork).order_by('-price', 'updated_at', 'id').first()

    @staticmethod
    def top_price(artwork):
        """최고 입찰가 (입찰이 없으면 시작가)"""
        top_bid = BidService._top_bid(artwork)
        if top_bid is None:
            return artwork.price
        return top_bid.price

    @staticmethod
    def get_bidding_list(artwork_id):
        try:
            artwork = Artwork.objects.select_related('auction').get(id=artwork_id)
        except Artwork.DoesNotExist:
            raise ArtworkNotFound()

        bids = list(
            Bid.objects.filter(artwork=artwork)
            .select_related('member')
            .order_by('-price', 'updated_at', 'id')
        )
        top_price = bids[0].price if bids else artwork.price
        auction = artwork.auction

        return {
            'artwork': {
                'id': artwork.id,
                'title': artwork.title,
                'image': image_url(artwork.main_image),
                'price': artwork.price,
                'top_price': top_price,
            },
            'auction': {
                'id': auction.id,
                'turn': auction.turn,
                'status': auction.status,
                'start_date': auction.start_date,
                'end_date': auction.end_date,
            },
            'bids': [
                {
                    'id': bid.id,
                    'member_id': bid.member_id,
                    'member_name': bid.member.get_username(),
                    'price': bid.price,
                    'updated_at': bid.updated_at,
                }
                for bid in bids
            ],
            'total_bid_count': len(bids),
        }

    @staticmethod
    def _get_artwork_for_update(artwork_id):
        try:
            return (
                Artwork.objects.select_for_update(of=('self',))
                .select_related('auction')
                .get(id=artwork_id)
            )
        except Artwork.DoesNotExist:
            raise ArtworkNotFound()

    @staticmethod
    def _get_member(member_id):
        User = get_user_model()
        try:
            return User.objects.get(id=member_id)
        except User.DoesNotExist:
            raise MemberNotFound()
