import json

import pytest

from auction_state import AuctionState, LotPhase, Player, Team
from errors import SnapshotError
from sync import RESET_SIGNAL, BroadcastChannel, is_reset


def _sample_state() -> AuctionState:
    sold = Player(1, "S1", "Batter", 1000, sold_price=1200)
    state = AuctionState(
        players=[Player(2, "S2", "Bowler", 2000), Player(3, "S3", "Keeper", 1500.5, unsold_count=2)],
        teams=[Team("T1", 3800, [sold]), Team("T2", 3000)],
        current_index=1,
        phase=LotPhase.FINALIZED,
        current_bid=1750,
        show_intro=True,
    )
    return state


def test_publish_round_trip(make_sync):
    sender, receiver = make_sync(), make_sync()
    received = []
    receiver.subscribe(received.append)

    state = _sample_state()
    sender.publish(state)

    assert len(received) == 1
    assert AuctionState.from_dict(received[0]) == state


def test_sender_does_not_receive_its_own_messages(make_sync):
    sender = make_sync()
    received = []
    sender.subscribe(received.append)
    sender.publish(_sample_state())
    assert received == []


def test_publish_writes_snapshot_for_late_joiners(make_sync):
    sender = make_sync()
    state = _sample_state()
    sender.publish(state)

    late = make_sync()
    missed = []
    late.subscribe(missed.append)

    assert missed == []
    assert late.restore() == state


def test_each_receiver_gets_its_own_copy(make_sync):
    sender, a, b = make_sync(), make_sync(), make_sync()
    got_a, got_b = [], []
    a.subscribe(got_a.append)
    b.subscribe(got_b.append)

    sender.publish(_sample_state())
    got_a[0]["currentBid"] = 0

    assert got_b[0]["currentBid"] == 1750


def test_failing_subscriber_does_not_block_others(make_sync):
    sender, bad, good = make_sync(), make_sync(), make_sync()
    received = []

    def explode(message):
        raise RuntimeError("render failed")

    bad.subscribe(explode)
    good.subscribe(received.append)
    sender.publish(_sample_state())

    assert len(received) == 1


def test_publish_reset_clears_snapshot(make_sync):
    sender, receiver = make_sync(), make_sync()
    received = []
    receiver.subscribe(received.append)
    sender.publish(_sample_state())

    sender.publish_reset()

    assert received[-1] == RESET_SIGNAL
    assert is_reset(received[-1])
    assert sender.restore() is None


def test_restore_empty_store_is_fresh_session(make_sync):
    assert make_sync().restore() is None


@pytest.mark.parametrize(
    "payload",
    [
        "{broken",
        "[1, 2, 3]",
        json.dumps({"players": []}),
        json.dumps(
            {
                "players": [],
                "teams": [],
                "currentPlayer": {"SNo": 9, "Name": "Ghost", "Role": "", "BasePrice": 1},
            }
        ),
    ],
)
def test_restore_malformed_snapshot_raises(db, make_sync, payload):
    sync = make_sync()
    db.save_snapshot(sync.key, payload)
    with pytest.raises(SnapshotError):
        sync.restore()


def test_restore_original_tool_snapshot(db, make_sync):
    """Snapshots without the newer optional keys still load"""
    sync = make_sync()
    p = {"SNo": 4, "Name": "Old", "Role": "Batter", "BasePrice": 500}
    db.save_snapshot(
        sync.key,
        json.dumps(
            {
                "players": [p],
                "teams": [{"TeamName": "T1", "Balance": 100, "players": [], "playersTaken": 0}],
                "currentIndex": 3,
                "currentPlayer": p,
                "currentBid": 700,
            }
        ),
    )

    state = sync.restore()
    assert state.current_index == 0
    assert state.current_player.name == "Old"
    assert state.phase is LotPhase.OPEN
    assert state.current_bid == 700
    assert not state.show_intro


def test_restore_player_with_null_role(db, make_sync):
    sync = make_sync()
    p = {"SNo": 1, "Name": "NoRole", "Role": None, "BasePrice": 10}
    db.save_snapshot(
        sync.key,
        json.dumps(
            {
                "players": [p],
                "teams": [{"TeamName": "T1", "Balance": 100, "players": []}],
                "currentIndex": 0,
                "currentBid": 10,
            }
        ),
    )

    state = sync.restore()
    assert state.players[0].role == ""
    assert Player.from_dict(p).to_dict()["Role"] == ""


def test_broadcast_channels_are_scoped_by_name():
    a = BroadcastChannel("scope_a")
    other = BroadcastChannel("scope_b")
    peer = BroadcastChannel("scope_a")
    got_peer, got_other = [], []
    peer.subscribe(got_peer.append)
    other.subscribe(got_other.append)

    try:
        a.post_message({"n": 1})
        assert got_peer == [{"n": 1}]
        assert got_other == []
    finally:
        for ch in (a, other, peer):
            ch.close()


def test_closed_channel_stops_receiving():
    sender = BroadcastChannel("closing")
    receiver = BroadcastChannel("closing")
    received = []
    receiver.subscribe(received.append)
    receiver.close()

    try:
        sender.post_message({"n": 1})
        assert received == []
        with pytest.raises(RuntimeError):
            receiver.post_message({"n": 2})
    finally:
        sender.close()


def test_messages_arrive_in_order():
    sender = BroadcastChannel("ordering")
    receiver = BroadcastChannel("ordering")
    received = []
    receiver.subscribe(received.append)
    try:
        for n in range(5):
            sender.post_message({"n": n})
        assert [m["n"] for m in received] == [0, 1, 2, 3, 4]
    finally:
        sender.close()
        receiver.close()
