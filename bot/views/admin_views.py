"""
Admin Views — Discord UI components for the GM's session management.

Contains:
  - SessionControlView: Start / End / Cancel buttons under a session embed
  - EndSessionModal: Optional replay link when closing a session
  - SummaryNotesModal: Raw notes in, AI chapter draft out
  - ConfirmDeleteView: Two-step confirmation for destructive commands

Every button re-checks the admin allow-list through AdminCommands; the
views themselves hold no permissions.
"""

import logging
import discord
from discord import ButtonStyle, TextStyle

from models.chapter_draft import ChapterDraft
from models.session import PlannedSession, SessionStatus
from tools.admin_commands import (
    AdminCommands,
    ChangeStatusRequest,
    CommandResult,
    DeleteRequest,
    EnhanceSummaryRequest,
)
from bot.embeds import FIELD_LIMIT, DESCRIPTION_LIMIT, session_embed, truncate

logger = logging.getLogger("AdminViews")


def draft_embed(draft: ChapterDraft) -> discord.Embed:
    embed = discord.Embed(
        title="\U0001f4dc Brouillon de chapitre",
        description=truncate(draft.summary or "(vide)", DESCRIPTION_LIMIT),
        color=discord.Color.blurple(),
    )
    if draft.highlights:
        embed.add_field(
            name="\U0001f4cc Moments forts",
            value=truncate("\n".join(f"• {h}" for h in draft.highlights), FIELD_LIMIT),
            inline=False,
        )
    if draft.loot:
        embed.add_field(
            name="\U0001f48e Butin",
            value=truncate("\n".join(f"• {item}" for item in draft.loot), FIELD_LIMIT),
            inline=False,
        )
    return embed


async def reply_with_result(interaction: discord.Interaction, result: CommandResult):
    prefix = "✅" if result.ok else "⚠️"
    if interaction.response.is_done():
        await interaction.followup.send(f"{prefix} {result.message}", ephemeral=True)
    else:
        await interaction.response.send_message(f"{prefix} {result.message}", ephemeral=True)


# ======================================================================
# Modals
# ======================================================================

class EndSessionModal(discord.ui.Modal, title="Terminer la session"):
    """Closes a live session, optionally recording the replay link."""

    youtube_link = discord.ui.TextInput(
        label="Lien du replay YouTube (optionnel)",
        required=False,
        placeholder="https://youtu.be/...",
        max_length=200,
    )

    def __init__(self, control_view: "SessionControlView"):
        super().__init__()
        self.control_view = control_view

    async def on_submit(self, interaction: discord.Interaction):
        await self.control_view.apply_status(
            interaction, SessionStatus.COMPLETED, self.youtube_link.value or None
        )


class SummaryNotesModal(discord.ui.Modal, title="Résumé de session"):
    """Raw GM notes sent to the Chronicler."""

    notes = discord.ui.TextInput(
        label="Notes brutes de la session",
        style=TextStyle.paragraph,
        placeholder="Les héros arrivent au col, embuscade de gobelins, Lyra trouve une amulette...",
        max_length=4000,
    )

    def __init__(self, admin: AdminCommands):
        super().__init__()
        self.admin = admin

    async def on_submit(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True, thinking=True)
        result = await self.admin.enhance_summary(
            interaction.user.id, EnhanceSummaryRequest(raw_notes=self.notes.value)
        )
        if not result.ok:
            await reply_with_result(interaction, result)
            return
        await interaction.followup.send(embed=draft_embed(result.data), ephemeral=True)


# ======================================================================
# Views
# ======================================================================

class SessionControlView(discord.ui.View):
    """Status buttons for one session, enabled according to its current status."""

    def __init__(self, admin: AdminCommands, session: PlannedSession, tz=None, timeout: float = 900):
        super().__init__(timeout=timeout)
        self.admin = admin
        self.session = session
        self.tz = tz
        self._sync_buttons()

    def _sync_buttons(self):
        status = self.session.status
        self.start_btn.disabled = not status.can_transition_to(SessionStatus.LIVE)
        self.end_btn.disabled = not status.can_transition_to(SessionStatus.COMPLETED)
        self.cancel_btn.disabled = not status.can_transition_to(SessionStatus.CANCELLED)

    async def apply_status(self, interaction: discord.Interaction, status: SessionStatus, youtube_link=None):
        result = await self.admin.change_status(
            interaction.user.id,
            ChangeStatusRequest(session_id=self.session.id, status=status, youtube_link=youtube_link),
        )
        if not result.ok:
            await reply_with_result(interaction, result)
            return
        self.session = result.data
        self._sync_buttons()
        await interaction.response.edit_message(
            embed=session_embed(self.session, self.tz, show_gm_notes=True), view=self
        )

    @discord.ui.button(label="Démarrer", style=ButtonStyle.success, emoji="▶️")
    async def start_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.apply_status(interaction, SessionStatus.LIVE)

    @discord.ui.button(label="Terminer", style=ButtonStyle.primary, emoji="✅")
    async def end_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        if not self.admin.is_admin(interaction.user.id):
            await reply_with_result(interaction, self.admin.deny(interaction.user.id, "end a session"))
            return
        await interaction.response.send_modal(EndSessionModal(self))

    @discord.ui.button(label="Annuler", style=ButtonStyle.danger, emoji="❌")
    async def cancel_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.apply_status(interaction, SessionStatus.CANCELLED)


class ConfirmDeleteView(discord.ui.View):
    """Asks the GM to confirm before anything is deleted."""

    def __init__(self, admin: AdminCommands, request: DeleteRequest, label: str, timeout: float = 60):
        super().__init__(timeout=timeout)
        self.admin = admin
        self.request = request
        self.label = label

    @discord.ui.button(label="Supprimer", style=ButtonStyle.danger)
    async def confirm_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        result = await self.admin.delete(interaction.user.id, self.request)
        self.stop()
        prefix = "✅" if result.ok else "⚠️"
        await interaction.response.edit_message(content=f"{prefix} {self.label} : {result.message}", view=None)

    @discord.ui.button(label="Garder", style=ButtonStyle.secondary)
    async def keep_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.stop()
        await interaction.response.edit_message(content="Suppression annulée.", view=None)
