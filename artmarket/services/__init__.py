from .artwork_service import ArtworkService
from .auction_service import AuctionService
from .bid_service import BidService

__all__ = ['ArtworkService', 'AuctionService', 'BidService']
