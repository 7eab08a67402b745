"""
Calendar Views — Month navigation buttons for the /calendar embed.

Each message owns its own CalendarViewState; two users browsing different
months never interfere.
"""

import logging
from datetime import date, datetime
from typing import Awaitable, Callable, List

import discord
from discord import ButtonStyle

from models.session import PlannedSession
from tools.calendar_engine import CalendarViewState
from bot.embeds import calendar_embed

logger = logging.getLogger("CalendarViews")

SessionLoader = Callable[[int, int], Awaitable[List[PlannedSession]]]


class CalendarView(discord.ui.View):
    """◀ / Aujourd'hui / ▶ buttons driving one calendar message."""

    def __init__(self, state: CalendarViewState, load_sessions: SessionLoader, timeout: float = 600):
        super().__init__(timeout=timeout)
        self.state = state
        self.load_sessions = load_sessions

    def _today(self) -> date:
        return datetime.now(self.state.tz).date()

    async def render(self) -> discord.Embed:
        sessions = await self.load_sessions(self.state.reference.year, self.state.reference.month)
        return calendar_embed(self.state.build(sessions), self.state.tz, today=self._today())

    async def _refresh(self, interaction: discord.Interaction):
        try:
            embed = await self.render()
        except Exception as e:
            logger.error(f"Calendar refresh failed: {e}", exc_info=True)
            await interaction.response.send_message("⚠️ Impossible de charger le calendrier.", ephemeral=True)
            return
        await interaction.response.edit_message(embed=embed, view=self)

    @discord.ui.button(label="◀", style=ButtonStyle.secondary)
    async def previous_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.state.previous_month()
        await self._refresh(interaction)

    @discord.ui.button(label="Aujourd'hui", style=ButtonStyle.primary)
    async def today_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.state.today(self._today())
        await self._refresh(interaction)

    @discord.ui.button(label="▶", style=ButtonStyle.secondary)
    async def next_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.state.next_month()
        await self._refresh(interaction)
