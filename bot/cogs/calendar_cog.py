"""
Calendar Cog — The session calendar and the session lists.

Commands: /calendar, /sessions, /session, /prochaine-session
Background: 24h reminders posted to the announce channel.
"""

import logging
from datetime import date, datetime
from typing import List, Optional

import discord
from discord import app_commands
from discord.ext import commands, tasks

from tools.calendar_engine import (
    CalendarViewState,
    format_date,
    format_time,
    next_session,
    partition_sessions,
    sessions_needing_reminder,
)
from tools.admin_commands import parse_channel_id

logger = logging.getLogger("Calendar_Cog")


async def session_choices(state, tz, current: str) -> List[app_commands.Choice[str]]:
    """Autocomplete entries "Title — date" matching what the user typed."""
    current = current.lower()
    choices = []
    for s in await state.get_all_sessions():
        label = f"{s.title} — {format_date(s.scheduled_date, tz) or 'date à définir'}"
        if current in label.lower():
            choices.append(app_commands.Choice(name=label[:100], value=s.id))
    return choices[:25]


async def post_reminders(state, channel, tz) -> int:
    """Post one reminder per due session; returns how many went out.

    The flag is stored before posting; a session whose flag cannot be
    stored is skipped and never posted twice.
    """
    from bot.embeds import session_embed

    sent = 0
    for session in sessions_needing_reminder(await state.get_upcoming_sessions(), tz=tz):
        if await state.mark_reminder_sent(session.id) is None:
            logger.error(f"Could not flag reminder for {session.id}, skipping")
            continue
        try:
            await channel.send(
                f"⏰ Rappel : **{session.title}** commence "
                f"{format_date(session.scheduled_date, tz)} à {format_time(session.scheduled_date, tz)} !",
                embed=session_embed(session, tz),
            )
        except discord.HTTPException as e:
            logger.error(f"Failed to post reminder for {session.id}: {e}")
            continue
        sent += 1
        logger.info(f"Reminder sent for session {session.id}")
    return sent


class CalendarCog(commands.Cog, name="Calendar"):
    """Month grid, upcoming/past lists and session details."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        from bot.client import state_manager, admin_commands, CALENDAR_TZ, ANNOUNCE_CHANNEL_ID
        self.state = state_manager
        self.admin = admin_commands
        self.tz = CALENDAR_TZ
        self.announce_channel_id = parse_channel_id(ANNOUNCE_CHANNEL_ID)
        if self.announce_channel_id:
            self._reminder_loop.start()

    def cog_unload(self):
        self._reminder_loop.cancel()

    async def _load_month(self, year: int, month: int):
        return await self.state.get_sessions_for_month(year, month, self.tz)

    # ------------------------------------------------------------------
    # /calendar
    # ------------------------------------------------------------------
    @app_commands.command(name="calendar", description="Calendrier des sessions")
    @app_commands.describe(mois="Mois (1-12)", annee="Année")
    async def calendar_cmd(self, interaction: discord.Interaction,
                           mois: Optional[app_commands.Range[int, 1, 12]] = None,
                           annee: Optional[app_commands.Range[int, 1970, 2100]] = None):
        from bot.views.calendar_views import CalendarView

        today = datetime.now(self.tz).date()
        reference = date(annee or today.year, mois or today.month, 1)
        view = CalendarView(CalendarViewState(reference=reference, tz=self.tz), self._load_month)

        await interaction.response.defer()
        embed = await view.render()
        await interaction.followup.send(embed=embed, view=view)

    # ------------------------------------------------------------------
    # /sessions
    # ------------------------------------------------------------------
    @app_commands.command(name="sessions", description="Sessions à venir ou passées")
    @app_commands.choices(quand=[
        app_commands.Choice(name="À venir", value="upcoming"),
        app_commands.Choice(name="Passées", value="past"),
    ])
    async def sessions_cmd(self, interaction: discord.Interaction, quand: str = "upcoming"):
        from bot.embeds import session_list_embed

        await interaction.response.defer()
        partition = partition_sessions(await self.state.get_all_sessions(), tz=self.tz)
        if quand == "past":
            embed = session_list_embed("\U0001f4dc Sessions passées", partition.past, self.tz,
                                       empty="Aucune session passée.")
        else:
            embed = session_list_embed("\U0001f4c5 Sessions à venir", partition.upcoming, self.tz,
                                       empty="Aucune session planifiée.")
        await interaction.followup.send(embed=embed)

    # ------------------------------------------------------------------
    # /session
    # ------------------------------------------------------------------
    @app_commands.command(name="session", description="Détails d'une session")
    @app_commands.describe(session="La session à afficher")
    async def session_cmd(self, interaction: discord.Interaction, session: str):
        from bot.embeds import session_embed
        from bot.views.admin_views import SessionControlView

        found = await self.state.get_session(session)
        if found is None:
            await interaction.response.send_message("Session introuvable.", ephemeral=True)
            return

        if self.admin.is_admin(interaction.user.id):
            view = SessionControlView(self.admin, found, self.tz)
            await interaction.response.send_message(
                embed=session_embed(found, self.tz, show_gm_notes=True), view=view, ephemeral=True
            )
        else:
            await interaction.response.send_message(embed=session_embed(found, self.tz))

    @session_cmd.autocomplete("session")
    async def session_autocomplete(self, interaction: discord.Interaction,
                                   current: str) -> List[app_commands.Choice[str]]:
        return await session_choices(self.state, self.tz, current)

    @app_commands.command(name="prochaine-session", description="La prochaine session prévue")
    async def next_cmd(self, interaction: discord.Interaction):
        from bot.embeds import session_embed

        found = next_session(await self.state.get_all_sessions(), tz=self.tz)
        if found is None:
            await interaction.response.send_message("Aucune session planifiée pour le moment.")
            return
        await interaction.response.send_message(embed=session_embed(found, self.tz))

    # ------------------------------------------------------------------
    # Reminders — background task
    # ------------------------------------------------------------------
    @tasks.loop(minutes=15)
    async def _reminder_loop(self):
        """Post a reminder for sessions starting in the next 24 hours."""
        if not self.state.is_connected:
            return
        channel = self.bot.get_channel(self.announce_channel_id)
        if channel is None:
            return

        try:
            await post_reminders(self.state, channel, self.tz)
        except Exception as e:
            logger.error(f"Reminder loop error: {e}", exc_info=True)

    @_reminder_loop.before_loop
    async def _before_reminders(self):
        await self.bot.wait_until_ready()


async def setup(bot: commands.Bot):
    await bot.add_cog(CalendarCog(bot))
