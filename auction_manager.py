# auction_manager.py
"""
Auction Manager Module
The single writer of the auction state. Every operator action goes through
here, produces a complete new state and is published straight away.
"""

import copy
import logging
import math
from typing import Optional

from auction_state import Amount, AuctionState, LotPhase, Player
from config import DEFAULT_INCREMENT, EXPORT_FILE, MAX_PLAYERS_PER_TEAM, MESSAGES
from errors import (
    BidFinalizedError,
    BidNotFinalizedError,
    InsufficientFundsError,
    InvalidAmountError,
    NoActiveLotError,
    NotFoundError,
    RosterFullError,
    SnapshotError,
)
from roster_store import RosterStore
from sync import SyncChannel
from utils import FileManager, MessageFormatter, format_amount

logger = logging.getLogger("AuctionBot.Manager")


class AuctionManager:
    """
    Main auction management class.

    Mutations work on a copy of the state; the copy is published (snapshot
    first, then broadcast) and only then becomes the current state. A failed
    precondition raises before anything is published, so the state is left
    untouched.
    """

    def __init__(
        self,
        roster_store: RosterStore,
        sync: SyncChannel,
        increment: Amount = DEFAULT_INCREMENT,
        roster_cap: int = MAX_PLAYERS_PER_TEAM,
    ):
        self.roster_store = roster_store
        self.sync = sync
        self.roster_cap = roster_cap
        self.file_manager = FileManager()
        self.formatter = MessageFormatter()

        self._state = AuctionState()
        self._increment = increment

    # ==================== STATE ACCESS ====================

    @property
    def state(self) -> AuctionState:
        return self._state

    @property
    def current_player(self) -> Optional[Player]:
        return self._state.current_player

    @property
    def current_bid(self) -> Amount:
        return self._state.current_bid

    @property
    def increment(self) -> Amount:
        return self._increment

    def _draft(self) -> AuctionState:
        return copy.deepcopy(self._state)

    def _commit(self, new_state: AuctionState):
        self.sync.publish(new_state)
        self._state = new_state

    def _require_lot(self) -> Player:
        player = self._state.current_player
        if player is None:
            raise NoActiveLotError("No player is on the block")
        return player

    # ==================== SESSION ====================

    def start(self) -> str:
        """Restore the persisted snapshot, or import a fresh roster."""
        try:
            restored = self.sync.restore()
        except SnapshotError as e:
            logger.warning(f"Discarding unreadable snapshot: {e}")
            self.sync.discard_snapshot()
            restored = None

        if restored is not None:
            self._state = restored
            logger.info(
                f"Restored auction: {len(restored.players)} players remaining, "
                f"{len(restored.teams)} teams"
            )
            return "Restored saved auction state."

        self._load_fresh()
        return MESSAGES["auction_ready"].format(
            players=len(self._state.players), teams=len(self._state.teams)
        )

    def _load_fresh(self):
        players, teams = self.roster_store.load()
        new_state = AuctionState(players=players, teams=teams)
        new_state.open_first_lot()
        self._commit(new_state)

    def reset(self) -> str:
        """Discard everything, tell observers to go idle, then re-import.

        If the re-import fails the state stays empty and the error propagates.
        """
        self.sync.publish_reset()
        self._state = AuctionState()
        self._load_fresh()
        logger.info("Auction reset from import files")
        return MESSAGES["auction_reset"]

    # ==================== LOT SELECTION ====================

    def select_by_serial(self, serial_number: int) -> str:
        idx = self._state.find_player(serial_number)
        if idx is None:
            raise NotFoundError(f"Player #{serial_number} not found")

        new_state = self._draft()
        new_state.current_index = idx
        new_state.phase = LotPhase.OPEN
        new_state.current_bid = new_state.players[idx].base_price
        self._commit(new_state)

        player = new_state.current_player
        return MESSAGES["lot_loaded"].format(
            player=player.name, amount=format_amount(player.base_price)
        )

    # ==================== BIDDING ====================

    def override_base(self, amount: Amount) -> str:
        """Start bidding on the current lot from a different amount.

        The player's stored base price is not changed.
        """
        self._require_lot()
        if not math.isfinite(amount) or amount < 0:
            raise InvalidAmountError("Bid amount must be a non-negative number")

        new_state = self._draft()
        new_state.current_bid = amount
        new_state.phase = LotPhase.OPEN
        self._commit(new_state)
        return MESSAGES["bid_overridden"].format(amount=format_amount(amount))

    def set_increment(self, amount: Amount) -> str:
        if not math.isfinite(amount) or amount <= 0:
            raise InvalidAmountError("Increment must be greater than zero")
        self._increment = amount
        return MESSAGES["increment_set"].format(amount=format_amount(amount))

    def raise_bid(self, increment: Optional[Amount] = None) -> str:
        step = self._increment if increment is None else increment
        if not math.isfinite(step) or step <= 0:
            raise InvalidAmountError("Increment must be greater than zero")
        self._require_lot()
        if self._state.phase is LotPhase.FINALIZED:
            raise BidFinalizedError(
                "Bid is finalized. Override the bid or reload the player to reopen it."
            )

        new_state = self._draft()
        new_state.current_bid += step
        self._commit(new_state)
        return MESSAGES["bid_raised"].format(amount=format_amount(new_state.current_bid))

    def finalize_bid(self) -> str:
        self._require_lot()

        new_state = self._draft()
        new_state.phase = LotPhase.FINALIZED
        self._commit(new_state)
        return MESSAGES["bid_finalized"].format(
            amount=format_amount(new_state.current_bid)
        )

    # ==================== SALE ====================

    def award_to_team(self, team_name: str) -> str:
        idx = self._state.find_team(team_name)
        if idx is None:
            # Lot checks still come first so the operator sees the real problem
            self._require_lot()
            if not self._state.bid_finalized:
                raise BidNotFinalizedError("Finalize the bid first")
            raise NotFoundError(f"Team '{team_name}' not found")
        return self.award_to(idx)

    def award_to(self, team_index: int) -> str:
        """Sell the current player to a team at the finalized bid."""
        player = self._require_lot()
        state = self._state
        if not state.bid_finalized:
            raise BidNotFinalizedError("Finalize the bid first")
        if not 0 <= team_index < len(state.teams):
            raise NotFoundError(f"Team #{team_index} not found")

        team = state.teams[team_index]
        bid = state.current_bid
        if team.players_taken >= self.roster_cap:
            raise RosterFullError(
                f"{team.name} already has {self.roster_cap} players"
            )
        if team.balance < bid:
            raise InsufficientFundsError(
                f"{team.name} has {format_amount(team.balance)}, "
                f"bid is {format_amount(bid)}"
            )

        new_state = self._draft()
        sold = new_state.players.pop(new_state.current_index)
        sold.sold_price = bid
        buyer = new_state.teams[team_index]
        buyer.balance -= bid
        buyer.players.append(sold)
        new_state.open_first_lot()
        self._commit(new_state)

        logger.info(f"{player.name} sold to {team.name} for {bid}")
        msg = MESSAGES["player_sold"].format(
            player=player.name, team=team.name, amount=format_amount(bid)
        )
        if new_state.current_player is None:
            msg += "\n" + MESSAGES["auction_complete"]
        return msg

    def mark_unsold(self) -> str:
        """Count an unsold round for the current player and go back to the top.

        The player stays in the pool; the next lot is always the first
        remaining player.
        """
        self._require_lot()

        new_state = self._draft()
        player = new_state.players[new_state.current_index]
        player.unsold_count += 1
        new_state.open_first_lot()
        self._commit(new_state)

        logger.info(f"{player.name} unsold ({player.unsold_count}x)")
        return MESSAGES["player_unsold"].format(
            player=player.name, count=player.unsold_count
        )

    # ==================== PRESENTATION ====================

    def set_intro(self, show: bool) -> str:
        new_state = self._draft()
        new_state.show_intro = show
        self._commit(new_state)
        return MESSAGES["intro_on"] if show else MESSAGES["intro_off"]

    def export(self, filepath: str = EXPORT_FILE) -> str:
        """Write the sold/unsold workbook for the current state."""
        self.file_manager.export_results(filepath, self._state)
        logger.info(f"Exported auction results to {filepath}")
        return filepath

    def get_status_display(self) -> str:
        return self.formatter.format_status(
            self._state, self._increment, self.roster_cap
        )
