import logging

from django.db import IntegrityError, transaction
from django.db.models import Exists, OuterRef
from django.utils import timezone

from ..exceptions import (
    AuctionAlreadyScheduled,
    AuctionNotFound,
    InvalidAuctionPeriod,
    InvalidAuctionTransition,
    NoScheduledAuction,
)
from ..models import Artwork, Auction, Bid

logger = logging.getLogger(__name__)


class AuctionService:
    """경매 회차 관리 (작품 등록 대상 경매 조회, 상태 전이)"""

    @staticmethod
    def latest_scheduled_auction():
        auction = (
            Auction.objects.filter(status=Auction.SCHEDULED)
            .order_by('-turn')
            .first()
        )
        if auction is None:
            raise NoScheduledAuction()
        return auction

    @staticmethod
    def schedule_auction(turn, start_date, end_date):
        if end_date <= start_date:
            raise InvalidAuctionPeriod()

        try:
            with transaction.atomic():
                auction = Auction.objects.create(
                    turn=turn,
                    status=Auction.SCHEDULED,
                    start_date=start_date,
                    end_date=end_date
                )
        except IntegrityError:
            # 예정 경매 중복 또는 회차 중복
            raise AuctionAlreadyScheduled()

        logger.info(f"Auction scheduled: turn={turn}, start={start_date}, end={end_date}")
        return auction

    @staticmethod
    def start_auction(auction_id):
        with transaction.atomic():
            auction = AuctionService._get_for_update(auction_id)
            if auction.status != Auction.SCHEDULED:
                raise InvalidAuctionTransition()

            auction.status = Auction.ACTIVE
            auction.save(update_fields=['status'])

            moved = Artwork.objects.filter(
                auction=auction,
                sale_status=Artwork.REGISTERED
            ).update(sale_status=Artwork.PROCESSING)

        logger.info(f"Auction started: turn={auction.turn}, artworks={moved}")
        return auction

    @staticmethod
    def close_auction(auction_id):
        with transaction.atomic():
            auction = AuctionService._get_for_update(auction_id)
            if auction.status != Auction.ACTIVE:
                raise InvalidAuctionTransition()

            auction.status = Auction.CLOSED
            auction.save(update_fields=['status'])

            processing = Artwork.objects.filter(auction=auction, sale_status=Artwork.PROCESSING)
            has_bid = Exists(Bid.objects.filter(artwork=OuterRef('pk')))

            sold = processing.filter(has_bid).update(sale_status=Artwork.SOLD)
            failed = processing.filter(~has_bid).update(sale_status=Artwork.FAILED)

        logger.info(f"Auction closed: turn={auction.turn}, sold={sold}, failed={failed}")
        return auction

    @staticmethod
    def refresh_statuses(now=None):
        """시간 경과에 따른 상태 전이 (Celery beat 주기 실행)"""
        now = now or timezone.now()
        started = 0
        closed = 0

        for auction_id in Auction.objects.filter(
            status=Auction.SCHEDULED,
            start_date__lte=now
        ).values_list('id', flat=True):
            AuctionService.start_auction(auction_id)
            started += 1

        for auction_id in Auction.objects.filter(
            status=Auction.ACTIVE,
            end_date__lt=now
        ).values_list('id', flat=True):
            AuctionService.close_auction(auction_id)
            closed += 1

        return {'started': started, 'closed': closed}

    @staticmethod
    def _get_for_update(auction_id):
        try:
            return Auction.objects.select_for_update().get(id=auction_id)
        except Auction.DoesNotExist:
            raise AuctionNotFound()
