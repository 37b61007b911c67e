import logging
from dataclasses import asdict, dataclass
from typing import Optional

from django.db import transaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DomainEvent:
    """도메인 이벤트 (알림 발송 등 비동기 후처리 대상)"""
    code: str
    member_id: int
    artwork_id: Optional[int] = None
    message: str = ''

    def as_payload(self):
        return asdict(self)


class EventDispatcher:
    """
    이벤트를 Celery 큐로 전달

    트랜잭션 안에서 호출되면 커밋 이후에만 발행 (롤백 시 발행 안 됨)
    """

    def publish(self, event: DomainEvent):
        transaction.on_commit(lambda: self._send(event))

    def _send(self, event: DomainEvent):
        from .tasks import dispatch_event

        dispatch_event.delay(event.as_payload())
        logger.info(
            f"Event published: code={event.code}, member={event.member_id}, "
            f"artwork={event.artwork_id}"
        )
