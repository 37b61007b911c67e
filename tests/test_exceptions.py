from rest_framework.exceptions import NotFound

from artmarket.exceptions import (
    ArtMarketError,
    BidTooLow,
    ConcurrentBidConflict,
    ImageUploadFailed,
    NoScheduledAuction,
    NotFoundError,
    UnknownKeyword,
    ValidationFailed,
    artmarket_exception_handler,
    as_error_payload,
)


def test_error_payload_is_kind_and_message():
    payload = as_error_payload(BidTooLow('입찰가는 현재 최고가 150000원보다 높아야 합니다.'))

    assert payload == {
        'kind': 'BID_TOO_LOW',
        'message': '입찰가는 현재 최고가 150000원보다 높아야 합니다.',
    }


def test_default_message():
    assert as_error_payload(NoScheduledAuction())['message'] == '예정된 경매가 없습니다.'


def test_taxonomy_status_codes():
    assert issubclass(NoScheduledAuction, NotFoundError)
    assert issubclass(BidTooLow, ValidationFailed)
    assert issubclass(UnknownKeyword, NotFoundError)
    assert NoScheduledAuction.status_code == 404
    assert UnknownKeyword.status_code == 404
    assert BidTooLow.status_code == 400
    assert ConcurrentBidConflict.status_code == 409
    assert ImageUploadFailed.status_code == 502


def test_handler_renders_domain_error():
    response = artmarket_exception_handler(ConcurrentBidConflict(), {})

    assert response.status_code == 409
    assert response.data['kind'] == 'CONCURRENT_BID_CONFLICT'


def test_handler_falls_back_to_rest_framework():
    response = artmarket_exception_handler(NotFound(), {})

    assert response.status_code == 404
    assert 'kind' not in response.data


def test_handler_ignores_unknown_errors():
    assert artmarket_exception_handler(ValueError('boom'), {}) is None


def test_domain_errors_share_base():
    assert isinstance(ImageUploadFailed(), ArtMarketError)
