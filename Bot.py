# Bot.py
"""
Discord Auction Bot - Main Application
One controller channel drives the auction with slash commands.
Display channels hold a single live board message mirroring the auction.
"""

import discord
from discord import app_commands
from discord.ext import commands
import asyncio
import os
import logging
from typing import Callable, Optional
from dotenv import load_dotenv

load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.FileHandler("auction_bot.log", encoding="utf-8"),
        logging.StreamHandler(),  # Also print to console
    ],
)
logger = logging.getLogger("AuctionBot")

from config import (
    BOT_TOKEN,
    AUCTION_DB,
    EXPORT_FILE,
    PLAYERS_FILE,
    TEAMS_FILE,
)
from admin_checks import (
    CHANNEL_CONTROLLER,
    CHANNEL_DISPLAY,
    admin_or_owner_check,
    controller_channel_check,
)
from auction_manager import AuctionManager
from database import Database
from display import DisplayObserver
from errors import AuctionError, RosterImportError
from roster_store import RosterStore
from sync import SyncChannel

TOKEN = BOT_TOKEN or os.getenv("DISCORD_TOKEN", "")


class AuctionBot(commands.Bot):
    """Custom bot class with the auction controller and display board"""

    def __init__(self):
        intents = discord.Intents.default()
        intents.guilds = True

        super().__init__(command_prefix="!", intents=intents)

        self.db = Database(AUCTION_DB)
        # Controller and display each get their own end of the channel
        self.auction_manager = AuctionManager(
            RosterStore(PLAYERS_FILE, TEAMS_FILE), SyncChannel(self.db)
        )
        self.display = DisplayObserver(
            SyncChannel(self.db), on_change=self._on_display_change
        )
        self.startup_error: Optional[str] = None

        # Background tasks set - prevents 'Task destroyed but pending' warnings
        self._background_tasks: set = set()
        self._display_lock = asyncio.Lock()

    def create_background_task(self, coro):
        """Create a background task that cleans up after itself."""
        task = asyncio.create_task(coro)
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)
        return task

    async def setup_hook(self):
        self.display.start()
        try:
            logger.info(self.auction_manager.start())
        except RosterImportError as e:
            self.startup_error = str(e)
            logger.critical(f"Could not import auction data: {e}")
            logger.critical("Fix the import files and use /reset to retry.")

        logger.info("Syncing slash commands globally...")
        await self.tree.sync()
        logger.info("Slash commands synced!")

    async def on_ready(self):
        logger.info(f"Logged in as {self.user.name} (ID: {self.user.id})")
        logger.info("Bot is ready! Use /help to see all commands.")
        await self.update_display_boards()

    def _on_display_change(self, observer: DisplayObserver):
        if self.is_ready():
            self.create_background_task(self.update_display_boards())

    async def update_display_boards(self):
        """Edit the live board message in every configured display channel"""
        async with self._display_lock:
            content = self.display.render()
            for guild_id, cfg in self.db.get_configs_by_type(CHANNEL_DISPLAY).items():
                channel = self.get_channel(int(cfg["channel_id"]))
                if not channel:
                    continue
                try:
                    if cfg["message_id"]:
                        try:
                            msg = await channel.fetch_message(int(cfg["message_id"]))
                            await msg.edit(content=content)
                            continue
                        except discord.NotFound:
                            pass  # Message deleted, send new one

                    msg = await channel.send(content)
                    self.db.set_channel_message(guild_id, CHANNEL_DISPLAY, str(msg.id))
                except discord.HTTPException as e:
                    logger.error(f"Error updating display board in {guild_id}: {e}")


bot = AuctionBot()


async def run_action(
    interaction: discord.Interaction, action: Callable[..., str], *args
):
    """Run one controller action and report the outcome to the operator."""
    try:
        msg = action(*args)
    except AuctionError as e:
        error_embed = discord.Embed(
            title="❌ Action Rejected", description=str(e), color=discord.Color.red()
        )
        await interaction.response.send_message(embed=error_embed, ephemeral=True)
        return

    # status text can outgrow an embed field (1024 chars), description allows 4096
    description = f"{msg}\n\n{bot.auction_manager.get_status_display()}"
    embed = discord.Embed(description=description, color=discord.Color.green())
    await interaction.response.send_message(embed=embed)


# ============================================================
# LANDING
# ============================================================


@bot.tree.command(name="help", description="Choose a mode and see the commands")
async def help_command(interaction: discord.Interaction):
    embed = discord.Embed(title="🏏 AUCTION SYSTEM", color=discord.Color.blue())
    embed.add_field(
        name="Controller Mode (Admin)",
        value=(
            "`/load SNO` - Put a player on the block\n"
            "`/override amount` - Start the bid from another amount\n"
            "`/increment amount` - Set the bid step\n"
            "`/raise [amount]` - Raise the bid\n"
            "`/finalize` - Lock the bid\n"
            "`/award TEAM` - Sell to a team\n"
            "`/unsold` - Mark unsold\n"
            "`/intro on|off` - Intro card on the display\n"
            "`/status` - Controller view\n"
            "`/export` - Download results (Excel)\n"
            "`/reset` - Reset the auction"
        ),
        inline=False,
    )
    embed.add_field(
        name="Display Mode",
        value=(
            "`/setdisplay` - Post the live board in this channel\n"
            "`/setcontroller` - Make this the controller channel\n"
            "`/showchannelconfig` - Show configured channels\n"
            "`/clearchannelconfig` - Remove channel configuration"
        ),
        inline=False,
    )
    await interaction.response.send_message(embed=embed, ephemeral=True)


# ============================================================
# CONTROLLER COMMANDS
# ============================================================


@bot.tree.command(name="load", description="Put a player on the block by serial number")
@app_commands.describe(serial="Player serial number (SNo)")
@admin_or_owner_check()
@controller_channel_check("load")
async def load_player(interaction: discord.Interaction, serial: int):
    await run_action(interaction, bot.auction_manager.select_by_serial, serial)


@bot.tree.command(name="override", description="Start bidding from a different amount")
@app_commands.describe(amount="New bid amount (the base price is not changed)")
@admin_or_owner_check()
@controller_channel_check("override")
async def override_base(interaction: discord.Interaction, amount: float):
    await run_action(interaction, bot.auction_manager.override_base, _as_amount(amount))


@bot.tree.command(name="increment", description="Set the default bid increment")
@app_commands.describe(amount="Amount added by /raise")
@admin_or_owner_check()
@controller_channel_check("increment")
async def set_increment(interaction: discord.Interaction, amount: float):
    await run_action(interaction, bot.auction_manager.set_increment, _as_amount(amount))


@bot.tree.command(name="raise", description="Raise the current bid")
@app_commands.describe(amount="Increment for this raise (default: configured increment)")
@admin_or_owner_check()
@controller_channel_check("raise")
async def raise_bid(interaction: discord.Interaction, amount: Optional[float] = None):
    step = _as_amount(amount) if amount is not None else None
    await run_action(interaction, bot.auction_manager.raise_bid, step)


@bot.tree.command(name="finalize", description="Lock the current bid")
@admin_or_owner_check()
@controller_channel_check("finalize")
async def finalize_bid(interaction: discord.Interaction):
    await run_action(interaction, bot.auction_manager.finalize_bid)


@bot.tree.command(name="award", description="Sell the current player to a team")
@app_commands.describe(team="Team name")
@admin_or_owner_check()
@controller_channel_check("award")
async def award(interaction: discord.Interaction, team: str):
    await run_action(interaction, bot.auction_manager.award_to_team, team)


@award.autocomplete("team")
async def award_team_autocomplete(interaction: discord.Interaction, current: str):
    current = current.lower()
    return [
        app_commands.Choice(name=t.name, value=t.name)
        for t in bot.auction_manager.state.teams
        if current in t.name.lower()
    ][:25]


@bot.tree.command(name="unsold", description="Mark the current player unsold")
@admin_or_owner_check()
@controller_channel_check("unsold")
async def mark_unsold(interaction: discord.Interaction):
    await run_action(interaction, bot.auction_manager.mark_unsold)


@bot.tree.command(name="intro", description="Show or hide the intro card on the display")
@app_commands.describe(show="True to show the intro card")
@admin_or_owner_check()
@controller_channel_check("intro")
async def intro(interaction: discord.Interaction, show: bool):
    await run_action(interaction, bot.auction_manager.set_intro, show)


@bot.tree.command(name="status", description="Show the controller view")
@admin_or_owner_check()
@controller_channel_check("status")
async def status(interaction: discord.Interaction):
    msg = bot.auction_manager.get_status_display()
    if bot.startup_error:
        msg = f"⚠️ Import failed: {bot.startup_error}\n\n{msg}"
    await interaction.response.send_message(msg, ephemeral=True)


@bot.tree.command(name="export", description="Download auction results (Excel)")
@admin_or_owner_check()
@controller_channel_check("export")
async def export_results(interaction: discord.Interaction):
    await interaction.response.defer(ephemeral=True)
    path = await asyncio.to_thread(bot.auction_manager.export, EXPORT_FILE)
    await interaction.followup.send(
        "📊 Auction results:",
        file=discord.File(path, filename=os.path.basename(EXPORT_FILE)),
        ephemeral=True,
    )


class ResetConfirmView(discord.ui.View):
    """Confirmation view for /reset with export option"""

    def __init__(self, user_id: int):
        super().__init__(timeout=60)
        self.user_id = user_id
        self.export_first = False
        self.confirmed = False

    async def on_timeout(self):
        for item in self.children:
            item.disabled = True

    async def _confirm(self, interaction: discord.Interaction, export_first: bool):
        if interaction.user.id != self.user_id:
            await interaction.response.send_message(
                "This is not your confirmation!", ephemeral=True
            )
            return
        self.export_first = export_first
        self.confirmed = True
        self.stop()
        await interaction.response.defer()

    @discord.ui.button(
        label="Export & Reset", style=discord.ButtonStyle.primary, emoji="💾"
    )
    async def export_button(
        self, interaction: discord.Interaction, button: discord.ui.Button
    ):
        await self._confirm(interaction, True)

    @discord.ui.button(label="Reset", style=discord.ButtonStyle.danger, emoji="🗑️")
    async def reset_button(
        self, interaction: discord.Interaction, button: discord.ui.Button
    ):
        await self._confirm(interaction, False)

    @discord.ui.button(label="Cancel", style=discord.ButtonStyle.secondary, emoji="❌")
    async def cancel_button(
        self, interaction: discord.Interaction, button: discord.ui.Button
    ):
        if interaction.user.id != self.user_id:
            await interaction.response.send_message(
                "This is not your confirmation!", ephemeral=True
            )
            return
        self.confirmed = False
        self.stop()
        await interaction.response.defer()


@bot.tree.command(name="reset", description="Reset the auction and reload the import files")
@admin_or_owner_check()
@controller_channel_check("reset")
async def reset_auction(interaction: discord.Interaction):
    view = ResetConfirmView(interaction.user.id)
    await interaction.response.send_message(
        "**⚠️ Reset Auction**\n\n"
        "This will:\n"
        "• Discard every sale, balance change and unsold count\n"
        "• Blank every display board\n"
        "• Reload players and teams from the import files\n\n"
        "**Do you want to export the current results first?**",
        view=view,
    )

    await view.wait()

    for item in view.children:
        item.disabled = True
    try:
        await interaction.edit_original_response(view=view)
    except discord.HTTPException:
        pass

    if not view.confirmed:
        await interaction.followup.send("❌ Reset cancelled.", ephemeral=True)
        return

    if view.export_first:
        path = await asyncio.to_thread(bot.auction_manager.export, EXPORT_FILE)
        await interaction.followup.send(
            "💾 Results before reset:",
            file=discord.File(path, filename=os.path.basename(EXPORT_FILE)),
            ephemeral=True,
        )

    try:
        msg = bot.auction_manager.reset()
        bot.startup_error = None
    except RosterImportError as e:
        bot.startup_error = str(e)
        await interaction.followup.send(
            f"❌ Auction cleared but the import failed: {e}", ephemeral=True
        )
        return

    await interaction.followup.send(f"✅ {msg}")


# ============================================================
# CHANNEL CONFIGURATION
# ============================================================


@bot.tree.command(name="setcontroller", description="Make this channel the controller")
@app_commands.guild_only()
@admin_or_owner_check()
async def set_controller(interaction: discord.Interaction):
    bot.db.set_channel_config(
        str(interaction.guild.id), CHANNEL_CONTROLLER, str(interaction.channel.id)
    )
    await interaction.response.send_message(
        f"✅ Controller commands now only run in {interaction.channel.mention}"
    )


@bot.tree.command(name="setdisplay", description="Post the live auction board here")
@app_commands.guild_only()
@admin_or_owner_check()
async def set_display(interaction: discord.Interaction):
    guild_id = str(interaction.guild.id)
    await interaction.response.send_message("📺 Display board:", ephemeral=True)
    msg = await interaction.channel.send(bot.display.render())
    bot.db.set_channel_config(
        guild_id, CHANNEL_DISPLAY, str(interaction.channel.id), str(msg.id)
    )


@bot.tree.command(name="showchannelconfig", description="Show configured auction channels")
@app_commands.guild_only()
@admin_or_owner_check()
async def show_channel_config(interaction: discord.Interaction):
    configs = bot.db.get_all_channel_configs(str(interaction.guild.id))
    if not configs:
        await interaction.response.send_message(
            "No channels configured. Commands work everywhere.", ephemeral=True
        )
        return
    lines = [f"**{ctype}**: <#{cid}>" for ctype, cid in sorted(configs.items())]
    await interaction.response.send_message("\n".join(lines), ephemeral=True)


@bot.tree.command(name="clearchannelconfig", description="Remove auction channel configuration")
@app_commands.guild_only()
@admin_or_owner_check()
async def clear_channel_config(interaction: discord.Interaction):
    removed = bot.db.clear_all_channel_configs(str(interaction.guild.id))
    await interaction.response.send_message(
        f"🧹 Removed {removed} channel configuration(s).", ephemeral=True
    )


def _as_amount(value: float):
    return int(value) if float(value).is_integer() else value


# ============================================================
# MISC (errors / main)
# ============================================================


@bot.tree.error
async def on_app_command_error(
    interaction: discord.Interaction, error: app_commands.AppCommandError
):
    if isinstance(error, app_commands.CheckFailure) and str(error).startswith("❌"):
        message = str(error)
    elif isinstance(error, app_commands.CheckFailure):
        message = "You don't have permission to use this command."
    else:
        logger.error(f"Command error: {error}", exc_info=True)
        message = f"An error occurred: {str(error)}"

    try:
        if not interaction.response.is_done():
            await interaction.response.send_message(message, ephemeral=True)
        else:
            await interaction.followup.send(message, ephemeral=True)
    except discord.HTTPException:
        logger.error(f"Could not send error message to user: {message}")


if __name__ == "__main__":
    if not TOKEN:
        logger.critical(
            "Please set your bot token in DISCORD_TOKEN environment variable or config.py"
        )
    else:
        logger.info("Starting Discord Auction Bot...")
        bot.run(TOKEN)
