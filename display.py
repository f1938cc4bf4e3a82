# display.py
"""
Display Observer Module
Read-only mirror of the auction for the audience screen.
"""

import logging
from typing import Any, Callable, Optional

from auction_state import AuctionState
from config import MAX_PLAYERS_PER_TEAM
from errors import SnapshotError
from sync import SyncChannel, is_reset
from utils import MessageFormatter

logger = logging.getLogger("AuctionBot.Display")


class DisplayObserver:
    """
    Holds the latest state received from the controller.

    Starts from the persisted snapshot so a freshly opened display does not
    wait for the next broadcast, then overwrites its copy with every message.
    It never writes the state back.
    """

    def __init__(
        self,
        sync: SyncChannel,
        on_change: Optional[Callable[["DisplayObserver"], None]] = None,
        roster_cap: int = MAX_PLAYERS_PER_TEAM,
    ):
        self.sync = sync
        self.on_change = on_change
        self.roster_cap = roster_cap
        self.formatter = MessageFormatter()
        self.state: Optional[AuctionState] = None

    def start(self):
        try:
            self.state = self.sync.restore()
        except SnapshotError as e:
            logger.warning(f"Ignoring unreadable snapshot: {e}")
            self.state = None
        self.sync.subscribe(self.handle_message)

    def handle_message(self, message: Any):
        if is_reset(message):
            self.state = None
        else:
            try:
                self.state = AuctionState.from_dict(message)
            except SnapshotError as e:
                # keep showing the last good state
                logger.error(f"Dropped malformed broadcast: {e}")
                return

        if self.on_change:
            self.on_change(self)

    @property
    def is_idle(self) -> bool:
        return self.state is None or self.state.current_player is None

    def render(self) -> str:
        return self.formatter.format_display(self.state, self.roster_cap)

    def close(self):
        self.sync.close()
