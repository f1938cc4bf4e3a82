import openpyxl

from auction_state import AuctionState, Player, Team
from utils import (
    SOLD_HEADERS,
    SOLD_SHEET,
    UNSOLD_HEADERS,
    UNSOLD_SHEET,
    build_report,
    format_amount,
    sanitize_csv_value,
)


def test_unsold_player_is_exported_with_original_base_price(manager, tmp_path):
    manager.override_base(400)
    manager.mark_unsold()
    assert manager.state.players[0].unsold_count == 1

    report = build_report(manager.state)
    assert (1, "S1", "Batter", 1000) in report.unsold
    assert report.sold == []

    path = manager.export(str(tmp_path / "results.xlsx"))
    wb = openpyxl.load_workbook(path)
    unsold = list(wb[UNSOLD_SHEET].iter_rows(values_only=True))
    assert unsold[0] == tuple(UNSOLD_HEADERS)
    assert unsold[1] == (1, "S1", "Batter", 1000)


def test_sold_rows_follow_team_then_purchase_order(manager, tmp_path):
    manager.finalize_bid()
    manager.award_to(1)  # S1 -> T2 @ 1000
    manager.raise_bid(100)
    manager.finalize_bid()
    manager.award_to(0)  # S2 -> T1 @ 2100

    report = build_report(manager.state)
    assert report.sold == [
        ("T1", "S2", "Bowler", 2100),
        ("T2", "S1", "Batter", 1000),
    ]
    assert report.unsold == [(3, "S3", "All-Rounder", 1500)]

    path = manager.export(str(tmp_path / "results.xlsx"))
    wb = openpyxl.load_workbook(path)
    assert wb.sheetnames == [SOLD_SHEET, UNSOLD_SHEET]
    sold = list(wb[SOLD_SHEET].iter_rows(values_only=True))
    assert sold == [tuple(SOLD_HEADERS), ("T1", "S2", "Bowler", 2100), ("T2", "S1", "Batter", 1000)]


def test_export_does_not_mutate_state(manager, tmp_path):
    before = manager.state.to_dict()
    manager.export(str(tmp_path / "results.xlsx"))
    assert manager.state.to_dict() == before


def test_formula_like_names_are_neutralised(tmp_path):
    from utils import FileManager

    state = AuctionState(
        players=[Player(1, "=HYPERLINK(\"x\")", "Batter", 10)],
        teams=[Team("@Team", 100, [Player(2, "+Plus", "Bowler", 5, sold_price=6)])],
    )
    path = str(tmp_path / "results.xlsx")
    FileManager.export_results(path, state)

    wb = openpyxl.load_workbook(path)
    assert wb[SOLD_SHEET]["A2"].value == "'@Team"
    assert wb[SOLD_SHEET]["B2"].value == "'+Plus"
    assert wb[UNSOLD_SHEET]["B2"].value.startswith("'=")


def test_sanitize_leaves_plain_text():
    assert sanitize_csv_value("Virat") == "Virat"
    assert sanitize_csv_value("") == ""


def test_format_amount():
    assert format_amount(None) == "0"
    assert format_amount(1000) == "1,000"
    assert format_amount(2500.0) == "2,500"
    assert format_amount(1500.5) == "1,500.5"
