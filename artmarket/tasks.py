import logging

from botocore.exceptions import BotoCoreError, ClientError
from celery import shared_task
from django.db import DatabaseError

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=5,
    default_retry_delay=60
)
def dispatch_event(self, payload):
    """도메인 이벤트 -> 회원 알림 저장"""
    from .models import Notification

    try:
        notification = Notification.objects.create(
            member_id=payload['member_id'],
            artwork_id=payload.get('artwork_id'),
            code=payload['code'],
            message=payload.get('message', '')
        )
    except DatabaseError as e:
        logger.error(f"Event dispatch failed: payload={payload}, error={e}")

        # Exponential backoff
        retry_delay = 60 * (2 ** self.request.retries)
        raise self.retry(exc=e, countdown=retry_delay)

    logger.info(
        f"Notification created: member={payload['member_id']}, "
        f"code={payload['code']}, notification={notification.id}"
    )
    return notification.id


@shared_task(
    bind=True,
    max_retries=5,
    default_retry_delay=60
)
def delete_uploaded_image(self, key):
    """등록 실패로 남은 이미지 삭제 재시도"""
    from .storage import S3ImageStorage

    try:
        S3ImageStorage().delete(key)
    except (BotoCoreError, ClientError) as e:
        logger.error(f"Retry image delete failed: key={key}, error={e}")
        retry_delay = 60 * (2 ** self.request.retries)
        raise self.retry(exc=e, countdown=retry_delay)


@shared_task
def refresh_auction_statuses():
    """
    경매 상태 갱신

    Celery Beat 로 주기적 실행
    """
    from .services.auction_service import AuctionService

    result = AuctionService.refresh_statuses()
    if result['started'] or result['closed']:
        logger.info(f"Auction statuses refreshed: {result}")
    return result
