# roster_store.py
"""
Roster Store Module
Loads players and teams from the import workbooks (or CSV files).
Either both load completely or nothing is returned.
"""

import csv
import logging
import math
import os
from typing import Dict, Iterable, List, Sequence, Tuple

from auction_state import Amount, Player, Team
from config import PLAYER_COLUMNS, PLAYERS_FILE, TEAM_COLUMNS, TEAMS_FILE
from errors import RosterImportError

logger = logging.getLogger("AuctionBot.Roster")

# Header row must appear within the first N rows of a sheet
HEADER_SEARCH_ROWS = 10


def _to_number(value, column: str, row_idx: int) -> Amount:
    """Parse a numeric cell. Integral values come back as int."""
    if isinstance(value, bool) or value is None:
        raise RosterImportError(f"Row {row_idx}: '{column}' is empty or not a number")
    if isinstance(value, (int, float)):
        num = value
    else:
        raw = str(value).replace(",", "").strip()
        try:
            num = float(raw)
        except ValueError:
            raise RosterImportError(
                f"Row {row_idx}: '{column}' must be a number, got '{value}'"
            )
    if not math.isfinite(num):
        raise RosterImportError(
            f"Row {row_idx}: '{column}' must be a finite number, got '{value}'"
        )
    if isinstance(num, float) and num.is_integer():
        return int(num)
    return num


def _is_blank(row: Sequence) -> bool:
    return row is None or not any(
        cell is not None and str(cell).strip() for cell in row
    )


def _find_header(
    rows: List[Sequence], required: Sequence[str], source: str
) -> Tuple[int, Dict[str, int]]:
    """Locate the header row and map each required column to its index"""
    wanted = {name.upper(): name for name in required}
    for row_idx, row in enumerate(rows[:HEADER_SEARCH_ROWS]):
        if row is None:
            continue
        col_indices = {}
        for col_idx, cell in enumerate(row):
            key = str(cell).strip().upper() if cell is not None else ""
            if key in wanted and wanted[key] not in col_indices:
                col_indices[wanted[key]] = col_idx
        if len(col_indices) == len(required):
            return row_idx, col_indices

    raise RosterImportError(
        f"{source}: missing required columns ({', '.join(required)})"
    )


def _read_rows(filepath: str) -> List[Sequence]:
    """All rows of the first sheet (xlsx) or of the CSV file"""
    if not os.path.exists(filepath):
        raise RosterImportError(f"Import file not found: {filepath}")

    ext = os.path.splitext(filepath)[1].lower()
    try:
        if ext == ".csv":
            with open(filepath, "r", encoding="utf-8-sig", newline="") as f:
                return [row for row in csv.reader(f)]

        from openpyxl import load_workbook

        wb = load_workbook(filepath, read_only=True, data_only=True)
        try:
            ws = wb.worksheets[0]
            return [row for row in ws.iter_rows(values_only=True)]
        finally:
            wb.close()
    except RosterImportError:
        raise
    except (csv.Error, UnicodeDecodeError) as e:
        raise RosterImportError(f"Error parsing {filepath}: {e}") from e
    except Exception as e:
        raise RosterImportError(f"Could not read {filepath}: {e}") from e


def _records(
    filepath: str, required: Sequence[str]
) -> Iterable[Tuple[int, Dict[str, object]]]:
    """Yield (sheet row number, {column: value}) for every non-blank data row"""
    rows = _read_rows(filepath)
    header_idx, col_indices = _find_header(rows, required, filepath)
    for offset, row in enumerate(rows[header_idx + 1 :], start=header_idx + 2):
        if _is_blank(row):
            continue
        record = {}
        for column, col_idx in col_indices.items():
            record[column] = row[col_idx] if col_idx < len(row) else None
        yield offset, record


def _text(value) -> str:
    return str(value).strip() if value is not None else ""


class RosterStore:
    """Reads the players and teams import files"""

    def __init__(
        self, players_file: str = PLAYERS_FILE, teams_file: str = TEAMS_FILE
    ):
        self.players_file = players_file
        self.teams_file = teams_file

    def load(self) -> Tuple[List[Player], List[Team]]:
        """Load all players and teams.

        Raises:
            RosterImportError: a file is missing, unreadable or malformed
        """
        players = self.load_players()
        teams = self.load_teams()
        logger.info(
            f"Imported {len(players)} players and {len(teams)} teams "
            f"from {self.players_file}, {self.teams_file}"
        )
        return players, teams

    def load_players(self) -> List[Player]:
        players: List[Player] = []
        seen = set()
        for row_idx, record in _records(self.players_file, PLAYER_COLUMNS):
            serial = _to_number(record["SNo"], "SNo", row_idx)
            if not isinstance(serial, int):
                raise RosterImportError(
                    f"Row {row_idx}: 'SNo' must be a whole number, got {serial}"
                )
            if serial in seen:
                raise RosterImportError(f"Row {row_idx}: duplicate SNo {serial}")
            seen.add(serial)

            name = _text(record["Name"])
            if not name:
                raise RosterImportError(f"Row {row_idx}: player 'Name' is empty")

            base_price = _to_number(record["BasePrice"], "BasePrice", row_idx)
            if base_price < 0:
                raise RosterImportError(
                    f"Row {row_idx}: 'BasePrice' cannot be negative"
                )

            players.append(
                Player(
                    serial_number=serial,
                    name=name,
                    role=_text(record["Role"]),
                    base_price=base_price,
                )
            )
        return players

    def load_teams(self) -> List[Team]:
        teams: List[Team] = []
        seen = set()
        for row_idx, record in _records(self.teams_file, TEAM_COLUMNS):
            name = _text(record["TeamName"])
            if not name:
                raise RosterImportError(f"Row {row_idx}: 'TeamName' is empty")
            if name.lower() in seen:
                raise RosterImportError(f"Row {row_idx}: duplicate team '{name}'")
            seen.add(name.lower())

            balance = _to_number(record["Balance"], "Balance", row_idx)
            if balance < 0:
                raise RosterImportError(f"Row {row_idx}: 'Balance' cannot be negative")

            teams.append(Team(name=name, balance=balance))

        if not teams:
            raise RosterImportError(f"{self.teams_file}: no teams found")
        return teams
