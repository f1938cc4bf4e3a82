"""
Auction error hierarchy.

Every error here is a local, non-fatal rejection of a single operator
action: the auction state is left exactly as it was.
"""


class AuctionError(Exception):
    """Base class for operator-visible auction failures"""


class RosterImportError(AuctionError):
    """Players/teams source is missing, unreadable or malformed"""


class SnapshotError(AuctionError):
    """Persisted snapshot could not be decoded into an auction state"""


class NotFoundError(AuctionError):
    """Requested player or team does not exist"""


class NoActiveLotError(AuctionError):
    """Action needs a player on the block and there is none"""


class BidNotFinalizedError(NoActiveLotError):
    """Award attempted before the bid was finalized"""


class BidFinalizedError(AuctionError):
    """Bid is locked; it can no longer be raised"""


class InsufficientFundsError(AuctionError):
    """Team balance is lower than the current bid"""


class RosterFullError(AuctionError):
    """Team already holds the maximum number of players"""


class InvalidAmountError(AuctionError):
    """Bid amount or increment out of range"""
