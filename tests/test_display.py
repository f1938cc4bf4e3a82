from auction_manager import AuctionManager
from display import DisplayObserver


def test_display_restores_snapshot_on_start(manager, make_sync):
    manager.raise_bid(500)

    display = DisplayObserver(make_sync())
    display.start()

    assert display.state == manager.state
    assert not display.is_idle


def test_display_follows_controller(manager, make_sync):
    changes = []
    display = DisplayObserver(make_sync(), on_change=changes.append)
    display.start()

    manager.raise_bid(250)
    assert display.state.current_bid == 1250
    manager.finalize_bid()
    manager.award_to(1)

    assert display.state == manager.state
    assert len(changes) == 3
    assert "S2" in display.render()


def test_display_goes_idle_on_reset_signal(manager, make_sync):
    views = []
    display = DisplayObserver(make_sync())
    display.on_change = lambda d: views.append((d.is_idle, d.render()))
    display.start()
    assert not display.is_idle

    manager.reset()

    idle, text = views[0]
    assert idle
    assert "Auction Dashboard" in text
    # fresh import is broadcast right after the reset signal
    assert not display.is_idle


def test_reset_signal_blanks_populated_display(manager, make_sync):
    display = DisplayObserver(make_sync())
    display.start()
    display.handle_message({"reset": True})

    assert display.state is None
    assert display.is_idle
    assert "Auction Dashboard" in display.render()


def test_display_without_snapshot_is_idle(make_sync):
    display = DisplayObserver(make_sync())
    display.start()
    assert display.is_idle


def test_display_ignores_corrupt_snapshot(db, make_sync):
    sync = make_sync()
    db.save_snapshot(sync.key, "not json")
    display = DisplayObserver(sync)
    display.start()
    assert display.is_idle


def test_malformed_broadcast_keeps_last_state(manager, make_sync):
    display = DisplayObserver(make_sync())
    display.start()
    before = display.state

    display.handle_message({"players": "nope"})

    assert display.state == before


def test_render_lists_rosters_by_price_with_empty_slots(roster, make_sync):
    mgr = AuctionManager(roster, make_sync(), roster_cap=3)
    mgr.start()
    mgr.finalize_bid()
    mgr.award_to(0)  # S1 for 1000
    mgr.override_base(2500)
    mgr.finalize_bid()
    mgr.award_to(0)  # S2 for 2500

    display = DisplayObserver(make_sync(), roster_cap=3)
    display.start()
    text = display.render()

    assert "# S3" in text
    assert "Current Bid: 1,500" in text
    assert text.index("S2") < text.index("S1")
    assert text.count("  —") == 1 + 3  # one open slot for T1, three for T2


def test_render_intro_card(manager, make_sync):
    display = DisplayObserver(make_sync())
    display.start()
    manager.set_intro(True)

    assert display.state.show_intro
    assert "about to begin" in display.render()
