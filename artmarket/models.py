from django.conf import settings
from django.db import models
from django.db.models import Q
from django.utils import timezone

from .exceptions import AuctionClosed, AuctionNotOpen, BidTooLow


class Auction(models.Model):
    """경매 회차"""
    SCHEDULED = 'scheduled'
    ACTIVE = 'active'
    CLOSED = 'closed'
    STATUS_CHOICES = [
        (SCHEDULED, 'Scheduled'),
        (ACTIVE, 'Active'),
        (CLOSED, 'Closed'),
    ]

    turn = models.PositiveIntegerField(unique=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=SCHEDULED)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-turn']
        constraints = [
            # 작품 등록을 받는 예정 경매는 하나뿐
            models.UniqueConstraint(
                fields=['status'],
                condition=Q(status='scheduled'),
                name='single_scheduled_auction',
            ),
        ]

    def validate_bidding_period(self, now=None):
        now = now or timezone.now()

        if self.status == Auction.CLOSED or now > self.end_date:
            raise AuctionClosed()
        if now < self.start_date:
            raise AuctionNotOpen()

    def __str__(self):
        return f"{self.turn}회차 ({self.status})"


class Artwork(models.Model):
    REGISTERED = 'registered'
    PROCESSING = 'processing'
    SOLD = 'sold'
    FAILED = 'failed'
    SALE_STATUS_CHOICES = [
        (REGISTERED, 'Registered'),
        (PROCESSING, 'Processing'),
        (SOLD, 'Sold'),
        (FAILED, 'Failed'),
    ]

    member = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='artworks'
    )
    auction = models.ForeignKey(Auction, on_delete=models.PROTECT, related_name='artworks')
    title = models.CharField(max_length=200)
    material = models.CharField(max_length=100, blank=True)
    price = models.PositiveBigIntegerField()  # 시작가
    condition = models.CharField(max_length=50, blank=True)  # 작품 상태
    condition_description = models.TextField(blank=True)
    guarantee_image = models.CharField(max_length=255)
    main_image = models.CharField(max_length=255)
    genre = models.CharField(max_length=50, blank=True)
    size = models.CharField(max_length=20, blank=True)  # 호수
    length = models.PositiveIntegerField(null=True, blank=True)
    width = models.PositiveIntegerField(null=True, blank=True)
    height = models.PositiveIntegerField(null=True, blank=True)
    frame = models.BooleanField(default=False)
    description = models.TextField(blank=True)
    production_year = models.PositiveIntegerField(null=True, blank=True)
    sale_status = models.CharField(
        max_length=20,
        choices=SALE_STATUS_CHOICES,
        default=REGISTERED
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def save(self, *args, **kwargs):
        # 경매 회차는 등록 시점에 고정
        if self.pk is not None:
            bound_auction_id = (
                Artwork.objects.filter(pk=self.pk)
                .values_list('auction_id', flat=True)
                .first()
            )
            if bound_auction_id is not None and bound_auction_id != self.auction_id:
                raise ValueError(f'Artwork {self.pk} is already bound to auction {bound_auction_id}')
        super().save(*args, **kwargs)

    def __str__(self):
        return self.title


class ArtworkImage(models.Model):
    artwork = models.ForeignKey(Artwork, on_delete=models.CASCADE, related_name='images')
    image = models.CharField(max_length=255)  # 저장소 키 (uuid.ext)

    class Meta:
        ordering = ['id']


class ArtworkKeyword(models.Model):
    artwork = models.ForeignKey(Artwork, on_delete=models.CASCADE, related_name='keywords')
    keyword_id = models.PositiveIntegerField()

    class Meta:
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['artwork', 'keyword_id'], name='unique_artwork_keyword'),
        ]


class Bid(models.Model):
    """작품별, 입찰자별 단일 입찰 기록 (재입찰 시 가격만 갱신)"""
    artwork = models.ForeignKey(Artwork, on_delete=models.CASCADE, related_name='bids')
    member = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='bids'
    )
    price = models.PositiveBigIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-price', 'updated_at', 'id']
        constraints = [
            models.UniqueConstraint(fields=['artwork', 'member'], name='unique_bid_per_artwork_member'),
        ]
        indexes = [
            models.Index(fields=['artwork', '-price'], name='bid_artwork_price_idx'),
        ]

    def raise_price(self, top_price, price):
        if price <= top_price:
            raise BidTooLow(f'입찰가는 현재 최고가 {top_price}원보다 높아야 합니다.')
        self.price = price

    def __str__(self):
        return f"{self.member_id} -> {self.artwork_id}: {self.price}"


class Notification(models.Model):
    SAVE_ARTWORK = 'save_artwork'
    OUTBID = 'outbid'
    CODE_CHOICES = [
        (SAVE_ARTWORK, 'Artwork registered'),
        (OUTBID, 'Outbid'),
    ]

    member = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications'
    )
    artwork = models.ForeignKey(
        Artwork,
        null=True,
        blank=True,
        on_delete=models.SET_NULL
    )
    code = models.CharField(max_length=30, choices=CODE_CHOICES)
    message = models.CharField(max_length=255)
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
