import pytest

from auction_manager import AuctionManager
from auction_state import Player, Team
from database import Database
from sync import SyncChannel


class StaticRoster:
    """Roster source returning fresh copies of fixed players and teams"""

    def __init__(self, players, teams):
        self.players = players
        self.teams = teams
        self.calls = 0

    def load(self):
        self.calls += 1
        return (
            [Player(p.serial_number, p.name, p.role, p.base_price) for p in self.players],
            [Team(t.name, t.balance) for t in self.teams],
        )


@pytest.fixture
def roster():
    return StaticRoster(
        [
            Player(1, "S1", "Batter", 1000),
            Player(2, "S2", "Bowler", 2000),
            Player(3, "S3", "All-Rounder", 1500),
        ],
        [Team("T1", 5000), Team("T2", 3000)],
    )


@pytest.fixture
def db(tmp_path):
    return Database(str(tmp_path / "auction.db"))


@pytest.fixture
def channel_name(request):
    # isolate broadcast channels between tests
    return f"test_channel_{request.node.name}"


@pytest.fixture
def make_sync(db, channel_name):
    opened = []

    def _make():
        sync = SyncChannel(db, channel_name=channel_name)
        opened.append(sync)
        return sync

    yield _make
    for sync in opened:
        sync.close()


@pytest.fixture
def manager(roster, make_sync):
    mgr = AuctionManager(roster, make_sync())
    mgr.start()
    return mgr
