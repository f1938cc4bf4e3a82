"""
Configuration for the Auction Controller / Display bot
"""

import os

# Bot token is loaded from environment variable DISCORD_TOKEN (put it in .env)
BOT_TOKEN = os.getenv("DISCORD_TOKEN", "")
# BOT ADMINS (superusers of the bot). Can be set as a comma-separated env var
# Example .env:
#   BOT_ADMINS="123456789012345678,987654321098765432"

_raw_bot_admins = os.getenv("BOT_ADMINS", "").strip()
if _raw_bot_admins:
    BOT_ADMINS = []
    for part in _raw_bot_admins.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            BOT_ADMINS.append(int(part))
        except ValueError:
            # skip invalid entries (non-numeric)
            pass
else:
    BOT_ADMINS = []

# Import sources (first sheet of each workbook, or CSV)
PLAYERS_FILE = os.getenv("PLAYERS_FILE", os.path.join("data", "players.xlsx"))
TEAMS_FILE = os.getenv("TEAMS_FILE", os.path.join("data", "teams.xlsx"))

# Required import columns
PLAYER_COLUMNS = ("SNo", "Name", "Role", "BasePrice")
TEAM_COLUMNS = ("TeamName", "Balance")

# SQLite file holding the persisted snapshot and channel configuration
AUCTION_DB = os.getenv("AUCTION_DB", "auction.db")

# Export workbook (one-shot download)
EXPORT_FILE = os.getenv("EXPORT_FILE", "auction_results.xlsx")

# Auction Settings
# =========================================
DEFAULT_INCREMENT = int(os.getenv("DEFAULT_INCREMENT", "1000"))

# Maximum players a team may acquire (hard limit)
MAX_PLAYERS_PER_TEAM = int(os.getenv("MAX_PLAYERS_PER_TEAM", "8"))

# Sync transport identifiers shared by the controller and every display
CHANNEL_NAME = "auction_sync_channel"
SNAPSHOT_KEY = "auction_state"

# Messages
MESSAGES = {
    "auction_ready": "Auction ready with {players} players and {teams} teams.",
    "auction_reset": "Auction reset. Fresh data loaded from the import files.",
    "auction_complete": "No player left. All players have been processed.",
    "lot_loaded": "Now on the block: {player} (base {amount})",
    "bid_raised": "Bid raised to {amount}",
    "bid_overridden": "Bid set to {amount}",
    "bid_finalized": "Bid finalized at {amount}. Select a team to award.",
    "increment_set": "Bid increment set to {amount}",
    "player_sold": "{player} SOLD to {team} for {amount}",
    "player_unsold": "{player} went UNSOLD (unsold {count}x).",
    "intro_on": "Intro card shown on the display.",
    "intro_off": "Intro card hidden.",
    "idle_title": "Auction Dashboard",
}
