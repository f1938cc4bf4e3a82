"""
Utility functions for the Auction bot
Contains helper functions for formatting, export, etc.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import openpyxl
from openpyxl.styles import Alignment, Font, PatternFill

from auction_state import Amount, AuctionState
from config import MAX_PLAYERS_PER_TEAM, MESSAGES

# Set up module-level logger
logger = logging.getLogger(__name__)

SOLD_SHEET = "Sold Players"
UNSOLD_SHEET = "Unsold Players"
SOLD_HEADERS = ["Team", "Player", "Role", "Price"]
UNSOLD_HEADERS = ["SNo", "Name", "Role", "BasePrice"]

# Discord rejects message content above 2000 characters
MAX_MESSAGE_LENGTH = 2000


def sanitize_csv_value(value: str) -> str:
    """Sanitize spreadsheet values to prevent formula injection attacks.

    Excel/Sheets can execute formulas starting with =, +, -, @, tab, or carriage return.
    This function prefixes such values with a single quote to prevent execution.
    """
    if not value:
        return value

    dangerous_chars = ("=", "+", "-", "@", "\t", "\r")
    if value.startswith(dangerous_chars):
        return f"'{value}"
    return value


# -----------------------------------------------------------
#  AMOUNT FORMATTER  → thousands separators, decimals only when needed
# -----------------------------------------------------------
def format_amount(num: Optional[Amount]) -> str:
    if num is None:
        return "0"

    try:
        n = float(num)
    except (TypeError, ValueError):
        return str(num)

    if n.is_integer():
        return f"{int(n):,}"
    return f"{n:,.2f}".rstrip("0").rstrip(".")


def _save_workbook_with_retry(
    wb, filepath: str, max_retries: int = 3, delay: float = 0.5
) -> None:
    """Save workbook with retry logic for file lock issues.

    Args:
        wb: openpyxl Workbook object
        filepath: Path to save to
        max_retries: Maximum number of retry attempts
        delay: Delay between retries in seconds

    Raises:
        PermissionError: If file is locked after all retries
    """
    import time as time_module

    last_error = None
    for attempt in range(max_retries):
        try:
            wb.save(filepath)
            return
        except PermissionError as e:
            last_error = e
            if attempt < max_retries - 1:
                logger.warning(
                    f"Excel file locked, retrying in {delay}s... (attempt {attempt + 1}/{max_retries})"
                )
                time_module.sleep(delay)

    logger.error(
        f"Failed to save Excel file after {max_retries} attempts: {last_error}"
    )
    raise PermissionError(
        f"Excel file '{filepath}' is locked by another process. Please close it and try again."
    )


# ==================== EXPORT ====================


@dataclass
class AuctionReport:
    """Tabular view of an auction: who was sold where, and who is left"""

    sold: List[Tuple[str, str, str, Amount]] = field(default_factory=list)
    unsold: List[Tuple[int, str, str, Amount]] = field(default_factory=list)


def build_report(state: AuctionState) -> AuctionReport:
    report = AuctionReport()
    for team in state.teams:
        for p in team.players:
            report.sold.append((team.name, p.name, p.role, p.sold_price))
    for p in state.players:
        report.unsold.append((p.serial_number, p.name, p.role, p.base_price))
    return report


def _style_header(ws) -> None:
    header_fill = PatternFill(
        start_color="366092", end_color="366092", fill_type="solid"
    )
    header_font = Font(bold=True, color="FFFFFF")
    for cell in ws[1]:
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center")


class FileManager:
    """Handles file operations for the auction bot"""

    @staticmethod
    def build_workbook(state: AuctionState) -> openpyxl.Workbook:
        report = build_report(state)

        wb = openpyxl.Workbook()
        sold_ws = wb.active
        sold_ws.title = SOLD_SHEET
        sold_ws.append(SOLD_HEADERS)
        _style_header(sold_ws)
        for team, player, role, price in report.sold:
            sold_ws.append(
                [
                    sanitize_csv_value(team),
                    sanitize_csv_value(player),
                    sanitize_csv_value(role),
                    price,
                ]
            )

        unsold_ws = wb.create_sheet(UNSOLD_SHEET)
        unsold_ws.append(UNSOLD_HEADERS)
        _style_header(unsold_ws)
        for serial, name, role, base_price in report.unsold:
            unsold_ws.append(
                [serial, sanitize_csv_value(name), sanitize_csv_value(role), base_price]
            )

        for ws in (sold_ws, unsold_ws):
            ws.column_dimensions["B"].width = 30
        return wb

    @staticmethod
    def export_results(filepath: str, state: AuctionState) -> None:
        """Write the Sold Players / Unsold Players workbook"""
        wb = FileManager.build_workbook(state)
        _save_workbook_with_retry(wb, filepath)


# ==================== MESSAGE FORMATTING ====================


class MessageFormatter:
    """Text views of the auction state for Discord"""

    @staticmethod
    def format_idle() -> str:
        return f"## {MESSAGES['idle_title']}\n*Waiting for the auction to start...*"

    @staticmethod
    def format_intro() -> str:
        return f"# 🏏 {MESSAGES['idle_title'].upper()}\n*The auction is about to begin!*"

    @staticmethod
    def format_team_board(state: AuctionState, roster_cap: int = MAX_PLAYERS_PER_TEAM) -> str:
        """Per-team balance and roster, most expensive buy first"""
        lines = []
        for team in state.teams:
            lines.append(f"{team.name:<18}{format_amount(team.balance):>14}")
            roster = sorted(
                team.players, key=lambda p: p.sold_price or 0, reverse=True
            )
            for p in roster:
                lines.append(f"  {p.name[:20]:<20}{format_amount(p.sold_price):>10}")
            for _ in range(max(roster_cap - len(roster), 0)):
                lines.append("  —")
        return "```\n" + "\n".join(lines) + "\n```" if lines else ""

    @staticmethod
    def format_display(state: Optional[AuctionState], roster_cap: int = MAX_PLAYERS_PER_TEAM) -> str:
        """Audience view. Idle when there is no state or no player on the block."""
        if state is None or state.current_player is None:
            return MessageFormatter.format_idle()
        if state.show_intro:
            return MessageFormatter.format_intro()

        player = state.current_player
        msg = f"# {player.name}\n"
        msg += f"{player.role} • Base {format_amount(player.base_price)}\n\n"
        msg += f"## Current Bid: {format_amount(state.current_bid)}\n"
        if state.bid_finalized:
            msg += "🔒 **Bid finalized**\n"
        msg += MessageFormatter.format_team_board(state, roster_cap)
        return _truncate(msg)

    @staticmethod
    def format_status(
        state: AuctionState, increment: Amount, roster_cap: int = MAX_PLAYERS_PER_TEAM
    ) -> str:
        """Controller view of the auction"""
        player = state.current_player
        if player:
            msg = f"**On the block:** #{player.serial_number} {player.name} ({player.role})\n"
            msg += f"Base: {format_amount(player.base_price)}"
            if player.unsold_count:
                msg += f" | Unsold {player.unsold_count}x"
            msg += f"\n**Current Bid:** {format_amount(state.current_bid)}"
            msg += " 🔒 finalized, select a team" if state.bid_finalized else ""
            msg += "\n"
        else:
            msg = MESSAGES["auction_complete"] + "\n"
        msg += f"Increment: {format_amount(increment)} | Remaining players: {len(state.players)}\n"

        lines = []
        for team in state.teams:
            left = roster_cap - team.players_taken
            lines.append(
                f"{team.name:<18}{format_amount(team.balance):>14}  {team.players_taken}/{roster_cap} ({left} left)"
            )
        if lines:
            msg += "```\n" + "\n".join(lines) + "\n```"
        return _truncate(msg)


def _truncate(msg: str) -> str:
    if len(msg) <= MAX_MESSAGE_LENGTH:
        return msg
    cut = msg[: MAX_MESSAGE_LENGTH - 8]
    # keep an opened code block closed
    if cut.count("```") % 2 == 1:
        return cut + "\n…\n```"
    return cut + "\n…"
