from discord import app_commands
import discord
import logging
from typing import Callable
from config import BOT_ADMINS

logger = logging.getLogger("AuctionBot.AdminChecks")

# Channel type constants
CHANNEL_CONTROLLER = "controller"
CHANNEL_DISPLAY = "display"

# Commands that mutate or read the operator view. Only one controller channel
# drives the auction; once it is configured these are refused anywhere else.
CONTROLLER_COMMANDS = [
    "load",
    "override",
    "increment",
    "raise",
    "finalize",
    "award",
    "unsold",
    "intro",
    "export",
    "reset",
    "status",
]

# Commands that set channel configurations (always allowed everywhere for admins)
CHANNEL_CONFIG_COMMANDS = [
    "setcontroller",
    "setdisplay",
    "showchannelconfig",
    "clearchannelconfig",
]


async def is_admin_or_owner(interaction: discord.Interaction) -> bool:
    """
    Allows:
      - application owner
      - user IDs in config.BOT_ADMINS
      - OR guild members with Administrator permission
    """
    user = interaction.user
    client = interaction.client

    try:
        app_info = getattr(client, "_cached_app_info", None)
        if app_info is None:
            app_info = await client.application_info()
            setattr(client, "_cached_app_info", app_info)
        owner = getattr(app_info, "owner", None)
        owner_id = getattr(owner, "id", None)
        if owner_id and user.id == owner_id:
            return True
    except discord.HTTPException as e:
        logger.debug(f"app_info lookup failed: {e}")

    if user.id in BOT_ADMINS:
        return True

    if interaction.guild and getattr(user, "guild_permissions", None):
        if user.guild_permissions.administrator:
            return True

    return False


def admin_or_owner_check() -> Callable:
    async def predicate(interaction: discord.Interaction) -> bool:
        if await is_admin_or_owner(interaction):
            return True
        logger.info(f"admin_or_owner_check: DENIED for user {interaction.user.id}")
        return False

    return app_commands.check(predicate)


def controller_channel_check(command_name: str) -> Callable:
    """
    Keep controller commands inside the controller channel.

    Rules:
    1. Channel config commands are always allowed
    2. If no controller channel is configured, commands work everywhere
    3. Otherwise controller commands only run in the configured channel
    """

    async def predicate(interaction: discord.Interaction) -> bool:
        if command_name in CHANNEL_CONFIG_COMMANDS:
            return True
        if command_name not in CONTROLLER_COMMANDS:
            return True
        if not interaction.guild:
            return True

        db = interaction.client.db
        guild_id = str(interaction.guild.id)
        configured = db.get_channel_config(guild_id, CHANNEL_CONTROLLER)
        if not configured:
            logger.debug(
                f"controller_channel_check: no controller channel, allowing {command_name}"
            )
            return True

        if configured == str(interaction.channel.id):
            return True

        raise app_commands.CheckFailure(
            f"❌ This command (`/{command_name}`) can only be used in <#{configured}>"
        )

    return app_commands.check(predicate)
