# auction_state.py
"""
Auction State Module
The single snapshot shared between the controller and every display.
Also owns the JSON wire format used for the persisted snapshot and broadcasts.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from errors import SnapshotError

Amount = Union[int, float]


class LotPhase(Enum):
    """Lifecycle of the player on the block"""

    IDLE = "idle"  # no player on the block
    OPEN = "open"  # bid can be raised or overridden
    FINALIZED = "finalized"  # bid locked, ready to award


@dataclass
class Player:
    serial_number: int
    name: str
    role: str
    base_price: Amount
    sold_price: Optional[Amount] = None
    unsold_count: int = 0

    def to_dict(self) -> dict:
        data = {
            "SNo": self.serial_number,
            "Name": self.name,
            "Role": self.role,
            "BasePrice": self.base_price,
        }
        if self.sold_price is not None:
            data["soldPrice"] = self.sold_price
        if self.unsold_count:
            data["unsoldCount"] = self.unsold_count
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Player":
        return cls(
            serial_number=int(data["SNo"]),
            name=str(data["Name"]),
            role=str(data.get("Role") or ""),
            base_price=data["BasePrice"],
            sold_price=data.get("soldPrice"),
            unsold_count=int(data.get("unsoldCount") or 0),
        )


@dataclass
class Team:
    name: str
    balance: Amount
    players: List[Player] = field(default_factory=list)

    @property
    def players_taken(self) -> int:
        return len(self.players)

    def to_dict(self) -> dict:
        return {
            "TeamName": self.name,
            "Balance": self.balance,
            "players": [p.to_dict() for p in self.players],
            "playersTaken": self.players_taken,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Team":
        return cls(
            name=str(data["TeamName"]),
            balance=data["Balance"],
            players=[Player.from_dict(p) for p in data.get("players") or []],
        )


@dataclass
class AuctionState:
    """
    Remaining players, teams and the lot currently on the block.

    The current player is never stored separately: it is always
    players[current_index] while a lot is open or finalized.
    """

    players: List[Player] = field(default_factory=list)
    teams: List[Team] = field(default_factory=list)
    current_index: int = 0
    phase: LotPhase = LotPhase.IDLE
    current_bid: Amount = 0
    show_intro: bool = False

    @property
    def current_player(self) -> Optional[Player]:
        if self.phase is LotPhase.IDLE:
            return None
        return self.players[self.current_index]

    @property
    def bid_finalized(self) -> bool:
        return self.phase is LotPhase.FINALIZED

    def find_player(self, serial_number: int) -> Optional[int]:
        """Index of the remaining player with this serial number, if any"""
        for idx, player in enumerate(self.players):
            if player.serial_number == serial_number:
                return idx
        return None

    def find_team(self, name: str) -> Optional[int]:
        wanted = name.strip().lower()
        for idx, team in enumerate(self.teams):
            if team.name.lower() == wanted:
                return idx
        return None

    def open_first_lot(self):
        """Put the first remaining player on the block, or go idle"""
        self.current_index = 0
        if self.players:
            self.phase = LotPhase.OPEN
            self.current_bid = self.players[0].base_price
        else:
            self.phase = LotPhase.IDLE
            self.current_bid = 0

    # ==================== WIRE FORMAT ====================

    def to_dict(self) -> dict:
        current = self.current_player
        return {
            "players": [p.to_dict() for p in self.players],
            "teams": [t.to_dict() for t in self.teams],
            "currentIndex": self.current_index,
            "currentPlayer": current.to_dict() if current else None,
            "currentBid": self.current_bid,
            "bidFinalized": self.bid_finalized,
            "showIntro": self.show_intro,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "AuctionState":
        """Rebuild a state from its snapshot form.

        Raises SnapshotError when the payload does not describe a valid state.
        """
        try:
            players = [Player.from_dict(p) for p in data["players"]]
            teams = [Team.from_dict(t) for t in data["teams"]]
            current = data.get("currentPlayer")
            current_index = int(data.get("currentIndex") or 0)
            current_bid = data.get("currentBid") or 0
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise SnapshotError(f"Malformed auction snapshot: {e}") from e

        state = cls(
            players=players,
            teams=teams,
            current_bid=current_bid,
            show_intro=bool(data.get("showIntro", False)),
        )
        if not current:
            state.current_bid = 0
            return state

        try:
            serial = int(current["SNo"])
        except (KeyError, TypeError, ValueError) as e:
            raise SnapshotError(f"Malformed current player: {e}") from e

        if not (
            0 <= current_index < len(players)
            and players[current_index].serial_number == serial
        ):
            current_index = state.find_player(serial)
            if current_index is None:
                raise SnapshotError(
                    f"Current player {serial} is not among the remaining players"
                )

        state.current_index = current_index
        state.phase = (
            LotPhase.FINALIZED if data.get("bidFinalized") else LotPhase.OPEN
        )
        return state
