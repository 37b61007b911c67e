import logging

from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ArtMarketError(APIException):
    """도메인 예외 공통 부모 (kind, message) 쌍으로 호출자에게 전달"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = '잘못된 요청입니다.'
    default_code = 'bad_request'
    kind = 'BAD_REQUEST'

    @property
    def message(self):
        return str(self.detail)


# 조회 실패
class NotFoundError(ArtMarketError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = '대상을 찾을 수 없습니다.'
    default_code = 'not_found'
    kind = 'NOT_FOUND'


class MemberNotFound(NotFoundError):
    default_detail = '해당 유저를 찾을 수 없습니다.'
    kind = 'NOT_FOUND_MEMBER'


class ArtworkNotFound(NotFoundError):
    default_detail = '해당 작품을 찾을 수 없습니다.'
    kind = 'NOT_FOUND_ARTWORK'


class AuctionNotFound(NotFoundError):
    default_detail = '해당 경매를 찾을 수 없습니다.'
    kind = 'NOT_FOUND_AUCTION'


class NoScheduledAuction(NotFoundError):
    default_detail = '예정된 경매가 없습니다.'
    kind = 'NOT_FOUND_AUCTION_SCHEDULED'


class UnknownKeyword(NotFoundError):
    default_detail = '해당 키워드를 찾을 수 없습니다.'
    kind = 'NOT_FOUND_KEYWORD'


# 검증 실패 (재시도 없음)
class ValidationFailed(ArtMarketError):
    default_detail = '검증에 실패하였습니다.'
    default_code = 'invalid'
    kind = 'BAD_REQUEST_VALIDATION'


class MissingRequiredImage(ValidationFailed):
    default_detail = '보증서 이미지와 작품 이미지는 필수입니다.'
    kind = 'SHOULD_EXIST_IMAGE'


class BidTooLow(ValidationFailed):
    default_detail = '입찰가는 현재 최고가보다 높아야 합니다.'
    kind = 'BID_TOO_LOW'


class AuctionNotOpen(ValidationFailed):
    default_detail = '아직 경매가 시작되지 않았습니다.'
    kind = 'AUCTION_NOT_OPEN'


class AuctionClosed(ValidationFailed):
    default_detail = '이미 종료된 경매입니다.'
    kind = 'AUCTION_CLOSED'


class InvalidAuctionPeriod(ValidationFailed):
    default_detail = '경매 종료 시각은 시작 시각 이후여야 합니다.'
    kind = 'INVALID_AUCTION_PERIOD'


class InvalidAuctionTransition(ValidationFailed):
    default_detail = '현재 경매 상태에서 변경할 수 없습니다.'
    kind = 'INVALID_AUCTION_TRANSITION'


# 충돌 (ConcurrentBidConflict 만 내부 재시도 대상)
class ConflictError(ArtMarketError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = '요청이 충돌하였습니다.'
    default_code = 'conflict'
    kind = 'CONFLICT'


class AuctionAlreadyScheduled(ConflictError):
    default_detail = '이미 예정된 경매가 있습니다.'
    kind = 'EXIST_AUCTION_SCHEDULED'


class ConcurrentBidConflict(ConflictError):
    default_detail = '동시에 다른 입찰이 처리되었습니다. 다시 시도해주세요.'
    kind = 'CONCURRENT_BID_CONFLICT'


class BidLockTimeout(ConflictError):
    default_detail = '입찰 처리 대기 시간이 초과되었습니다.'
    kind = 'BID_LOCK_TIMEOUT'


# 외부 저장소
class ImageUploadFailed(ArtMarketError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = '이미지 업로드에 실패하였습니다.'
    default_code = 'upload_failed'
    kind = 'IMAGE_UPLOAD_FAILED'


def as_error_payload(exc):
    return {'kind': exc.kind, 'message': exc.message}


def artmarket_exception_handler(exc, context):
    """DRF EXCEPTION_HANDLER: 도메인 예외는 (kind, message) 형태로 응답"""
    if isinstance(exc, ArtMarketError):
        if exc.status_code >= 500:
            logger.error(f"{exc.kind}: {exc.message}")
        else:
            logger.warning(f"{exc.kind}: {exc.message}")
        return Response(as_error_payload(exc), status=exc.status_code)

    return exception_handler(exc, context)
