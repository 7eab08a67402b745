"""
Chroniques de Valthera — Discord Bot Client

Core bot setup: environment, logging, shared services and cog loading.
All slash commands live in Cogs (bot/cogs/). Cogs pull the shared
services below (state manager, admin commands, agents) from this module.
"""

import os
import asyncio
import logging
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import discord
from discord.ext import commands
from dotenv import load_dotenv

from google import genai

from tools.state_manager import StateManager
from tools.image_store import ImageStore
from tools.admin_commands import AdminCommands, parse_admin_ids
from agents.campaign_muse import CampaignMuse
from agents.chronicler import ChroniclerAgent

logger = logging.getLogger("Valthera_Bot")

# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------
load_dotenv()
DISCORD_TOKEN = os.getenv("DISCORD_BOT_TOKEN")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
ADMIN_USER_IDS = parse_admin_ids(os.getenv("ADMIN_USER_IDS", ""))
SITE_BASE_URL = os.getenv("SITE_BASE_URL", "https://chroniques-valthera.fr").rstrip("/")
ANNOUNCE_CHANNEL_ID = os.getenv("ANNOUNCE_CHANNEL_ID")
MODEL_ID = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
if not os.path.exists("logs"):
    os.makedirs("logs")

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    handlers=[
        logging.FileHandler("logs/valthera_bot.log", encoding="utf-8"),
        logging.StreamHandler(),
    ],
)

# ---------------------------------------------------------------------------
# Calendar time zone — the group's wall clock
# ---------------------------------------------------------------------------
try:
    CALENDAR_TZ = ZoneInfo(os.getenv("CALENDAR_TIMEZONE", "Europe/Paris"))
except (ZoneInfoNotFoundError, ValueError):
    logger.error(f"Unknown CALENDAR_TIMEZONE {os.getenv('CALENDAR_TIMEZONE')!r}, falling back to Europe/Paris")
    CALENDAR_TZ = ZoneInfo("Europe/Paris")

# ---------------------------------------------------------------------------
# Gemini Client
# ---------------------------------------------------------------------------
if not GEMINI_API_KEY:
    logger.warning("GEMINI_API_KEY not found in environment. AI helpers are disabled.")
    gemini_client = None
else:
    gemini_client = genai.Client(api_key=GEMINI_API_KEY)

# ---------------------------------------------------------------------------
# Services
# ---------------------------------------------------------------------------
state_manager = StateManager()  # async connect happens in on_ready
campaign_muse = CampaignMuse(gemini_client, model_id=MODEL_ID)
chronicler = ChroniclerAgent(gemini_client, model_id=MODEL_ID)
admin_commands = AdminCommands(
    state_manager,
    ADMIN_USER_IDS,
    muse=campaign_muse,
    chronicler=chronicler,
    tz=CALENDAR_TZ,
)

_image_store: Optional[ImageStore] = None


def get_image_store() -> ImageStore:
    """GridFS-backed store, created once the database is connected."""
    global _image_store
    if _image_store is None:
        _image_store = ImageStore(state_manager.database, SITE_BASE_URL)
    return _image_store


if not ADMIN_USER_IDS:
    logger.warning("ADMIN_USER_IDS is empty: nobody can use the admin commands.")

# ---------------------------------------------------------------------------
# Discord Bot Instance
# ---------------------------------------------------------------------------
intents = discord.Intents.default()
bot = commands.Bot(command_prefix="!", intents=intents, help_command=None)


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
@bot.event
async def on_ready():
    logger.info(f"Logged in as {bot.user.name} ({bot.user.id})")
    logger.info(f"Calendar time zone: {CALENDAR_TZ.key}")

    # Async-connect StateManager (MongoDB) — non-blocking, commands report the outage
    if await state_manager.connect():
        logger.info("StateManager connected — campaigns and calendar available.")
    else:
        logger.warning("StateManager unavailable — content commands will fail until MongoDB is up.")

    try:
        synced = await bot.tree.sync()
        logger.info(f"Synced {len(synced)} slash command(s).")
    except Exception as e:
        logger.error(f"Slash command sync failed: {e}")

    print("Chroniques de Valthera online.")


@bot.tree.error
async def on_app_command_error(interaction: discord.Interaction, error: discord.app_commands.AppCommandError):
    original = getattr(error, "original", error)
    if isinstance(original, RuntimeError) and "not connected" in str(original):
        message = "⚠️ La base de données est indisponible pour le moment."
    else:
        logger.error(f"Slash command /{interaction.command.name if interaction.command else '?'} failed: {original}",
                     exc_info=original)
        message = "⚠️ Une erreur est survenue. Consultez le journal."
    if interaction.response.is_done():
        await interaction.followup.send(message, ephemeral=True)
    else:
        await interaction.response.send_message(message, ephemeral=True)


# ---------------------------------------------------------------------------
# Cog Loading & Entry Point
# ---------------------------------------------------------------------------
async def load_cogs():
    """Load all Cog extensions."""
    await bot.load_extension("bot.cogs.calendar_cog")
    await bot.load_extension("bot.cogs.campaign_cog")
    await bot.load_extension("bot.cogs.lore_cog")
    await bot.load_extension("bot.cogs.admin_cog")
    logger.info("All Cogs loaded.")


async def main():
    """Async entry point — load cogs then start the bot."""
    try:
        async with bot:
            await load_cogs()
            await bot.start(DISCORD_TOKEN)
    finally:
        await state_manager.close()


def run():
    """Synchronous entry point for scripts."""
    if not DISCORD_TOKEN:
        print("Error: DISCORD_BOT_TOKEN not found via os.getenv")
        return
    asyncio.run(main())


if __name__ == "__main__":
    run()
