"""
Admin Cog — GM commands for sessions, content imports, images and AI helpers.

Commands: /session-create, /session-edit, /session-status, /session-player,
          /session-lier, /session-annonce, /session-delete,
          /campagne-import, /campagne-delete, /lore-import,
          /image-upload, /image-delete, /idees, /resume

Every command is visible to everyone but answered through AdminCommands,
which refuses callers outside ADMIN_USER_IDS.
"""

import json
import logging
from datetime import datetime
from typing import List, Optional

import discord
from discord import app_commands
from discord.ext import commands

from models.session import SessionStatus
from tools.admin_commands import (
    ChangeStatusRequest,
    CreateSessionRequest,
    DeleteRequest,
    IdeasRequest,
    LinkChapterRequest,
    NotificationRequest,
    PlayerRequest,
    UpdateSessionRequest,
    build_request,
    parse_channel_id,
)
from bot.cogs.calendar_cog import session_choices
from bot.cogs.campaign_cog import campaign_choices

logger = logging.getLogger("Admin_Cog")

DATE_FORMATS = ("%Y-%m-%d %H:%M", "%d/%m/%Y %H:%M", "%Y-%m-%dT%H:%M")
MAX_IMPORT_BYTES = 2 * 1024 * 1024


def parse_form_date(value: str) -> Optional[datetime]:
    """'2026-03-14 20:30', '14/03/2026 20:30' or ISO; None when unreadable."""
    value = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


class AdminCog(commands.Cog, name="Admin"):
    """Game master tooling."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        from bot.client import state_manager, admin_commands, CALENDAR_TZ, ANNOUNCE_CHANNEL_ID
        self.state = state_manager
        self.admin = admin_commands
        self.tz = CALENDAR_TZ
        self.announce_channel_id = parse_channel_id(ANNOUNCE_CHANNEL_ID)

    async def _reply(self, interaction: discord.Interaction, result):
        from bot.views.admin_views import reply_with_result
        await reply_with_result(interaction, result)

    async def _invalid(self, interaction: discord.Interaction, message: str):
        await interaction.response.send_message(f"⚠️ {message}", ephemeral=True)

    async def _read_json(self, interaction: discord.Interaction, attachment: discord.Attachment):
        if attachment.size > MAX_IMPORT_BYTES:
            await self._invalid(interaction, "Fichier trop volumineux (2 Mo max).")
            return None
        try:
            return json.loads(await attachment.read())
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            await self._invalid(interaction, f"JSON illisible : {e}")
            return None

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------
    @app_commands.command(name="session-create", description="[MJ] Planifier une session")
    @app_commands.describe(date="AAAA-MM-JJ HH:MM", duree="Durée en minutes", joueurs_max="Places disponibles")
    async def create_cmd(self, interaction: discord.Interaction, campagne: str, titre: str, date: str,
                         duree: app_commands.Range[int, 1, 1440] = 180,
                         joueurs_max: Optional[app_commands.Range[int, 1, 20]] = None,
                         description: str = "", twitch: Optional[str] = None):
        when = parse_form_date(date)
        if when is None:
            await self._invalid(interaction, "Date illisible, utilisez AAAA-MM-JJ HH:MM.")
            return
        request = build_request(
            CreateSessionRequest, campaign_id=campagne, title=titre, scheduled_date=when,
            duration=duree, max_players=joueurs_max, description=description, twitch_link=twitch,
        )
        if request is None:
            await self._invalid(interaction, "Formulaire invalide.")
            return
        await self._reply(interaction, await self.admin.create_session(interaction.user.id, request))

    @app_commands.command(name="session-edit", description="[MJ] Modifier une session")
    @app_commands.describe(date="AAAA-MM-JJ HH:MM", duree="Durée en minutes")
    async def edit_cmd(self, interaction: discord.Interaction, session: str,
                       titre: Optional[str] = None, date: Optional[str] = None,
                       duree: Optional[app_commands.Range[int, 1, 1440]] = None,
                       joueurs_max: Optional[app_commands.Range[int, 1, 20]] = None,
                       description: Optional[str] = None, twitch: Optional[str] = None,
                       notes_publiques: Optional[str] = None, notes_mj: Optional[str] = None):
        when = None
        if date:
            when = parse_form_date(date)
            if when is None:
                await self._invalid(interaction, "Date illisible, utilisez AAAA-MM-JJ HH:MM.")
                return
        request = build_request(
            UpdateSessionRequest, session_id=session, title=titre, scheduled_date=when, duration=duree,
            max_players=joueurs_max, description=description, twitch_link=twitch,
            public_notes=notes_publiques, gm_notes=notes_mj,
        )
        if request is None:
            await self._invalid(interaction, "Formulaire invalide.")
            return
        await self._reply(interaction, await self.admin.update_session(interaction.user.id, request))

    @app_commands.command(name="session-status", description="[MJ] Changer le statut d'une session")
    @app_commands.choices(statut=[
        app_commands.Choice(name="En direct", value=SessionStatus.LIVE.value),
        app_commands.Choice(name="Terminée", value=SessionStatus.COMPLETED.value),
        app_commands.Choice(name="Annulée", value=SessionStatus.CANCELLED.value),
    ])
    async def status_cmd(self, interaction: discord.Interaction, session: str, statut: str,
                         youtube: Optional[str] = None):
        request = ChangeStatusRequest(session_id=session, status=SessionStatus(statut), youtube_link=youtube)
        await self._reply(interaction, await self.admin.change_status(interaction.user.id, request))

    @app_commands.command(name="session-player", description="[MJ] Inscrire, retirer ou confirmer un joueur")
    @app_commands.choices(action=[
        app_commands.Choice(name="Inscrire", value="add"),
        app_commands.Choice(name="Retirer", value="remove"),
        app_commands.Choice(name="Confirmer", value="confirm"),
        app_commands.Choice(name="Déconfirmer", value="unconfirm"),
    ])
    async def player_cmd(self, interaction: discord.Interaction, session: str, action: str,
                         joueur: discord.Member):
        request = PlayerRequest(
            session_id=session, action=action, player_id=str(joueur.id), player_name=joueur.display_name,
        )
        await self._reply(interaction, await self.admin.manage_player(interaction.user.id, request))

    @app_commands.command(name="session-lier", description="[MJ] Lier une session au chapitre écrit ensuite")
    async def link_cmd(self, interaction: discord.Interaction, session: str, chapitre: str):
        request = LinkChapterRequest(session_id=session, chapter_id=chapitre)
        await self._reply(interaction, await self.admin.link_chapter(interaction.user.id, request))

    @app_commands.command(name="session-annonce", description="[MJ] Annoncer une session")
    async def announce_cmd(self, interaction: discord.Interaction, session: str):
        from bot.embeds import session_embed

        if not self.admin.is_admin(interaction.user.id):
            await self._reply(interaction, self.admin.deny(interaction.user.id, "announce a session"))
            return
        found = await self.state.get_session(session)
        if found is None:
            await self._invalid(interaction, "Session introuvable.")
            return

        channel = interaction.channel
        if self.announce_channel_id:
            channel = self.bot.get_channel(self.announce_channel_id) or channel
        await channel.send("\U0001f4e3 Nouvelle session !", embed=session_embed(found, self.tz))
        result = await self.admin.mark_sent(interaction.user.id, NotificationRequest(session_id=found.id))
        await self._reply(interaction, result)

    @app_commands.command(name="session-delete", description="[MJ] Supprimer une session")
    async def delete_session_cmd(self, interaction: discord.Interaction, session: str):
        from bot.views.admin_views import ConfirmDeleteView

        if not self.admin.is_admin(interaction.user.id):
            await self._reply(interaction, self.admin.deny(interaction.user.id, "delete a session"))
            return
        view = ConfirmDeleteView(self.admin, DeleteRequest(kind="session", target_id=session), "Session")
        await interaction.response.send_message("Supprimer définitivement cette session ?", view=view, ephemeral=True)

    @edit_cmd.autocomplete("session")
    @status_cmd.autocomplete("session")
    @player_cmd.autocomplete("session")
    @link_cmd.autocomplete("session")
    @announce_cmd.autocomplete("session")
    @delete_session_cmd.autocomplete("session")
    async def session_autocomplete(self, interaction: discord.Interaction,
                                   current: str) -> List[app_commands.Choice[str]]:
        return await session_choices(self.state, self.tz, current)

    @link_cmd.autocomplete("chapitre")
    async def chapter_autocomplete(self, interaction: discord.Interaction,
                                   current: str) -> List[app_commands.Choice[str]]:
        session_id = getattr(interaction.namespace, "session", None)
        session = await self.state.get_session(session_id) if session_id else None
        campaign = await self.state.get_campaign(session.campaign_id) if session else None
        if campaign is None:
            return []
        current = current.lower()
        return [
            app_commands.Choice(name=f"{c.order}. {c.title}"[:100], value=c.id)
            for c in campaign.chapters if current in c.title.lower()
        ][:25]

    # ------------------------------------------------------------------
    # Campaigns & lore
    # ------------------------------------------------------------------
    @app_commands.command(name="campagne-import", description="[MJ] Créer ou remplacer une campagne depuis un JSON")
    async def import_campaign_cmd(self, interaction: discord.Interaction, fichier: discord.Attachment):
        if not self.admin.is_admin(interaction.user.id):
            await self._reply(interaction, self.admin.deny(interaction.user.id, "import a campaign"))
            return
        data = await self._read_json(interaction, fichier)
        if data is None:
            return
        if not isinstance(data, dict):
            await self._invalid(interaction, "Le fichier doit contenir un objet campagne.")
            return
        await self._reply(interaction, await self.admin.save_campaign(interaction.user.id, data))

    @app_commands.command(name="campagne-delete", description="[MJ] Supprimer une campagne et son contenu")
    async def delete_campaign_cmd(self, interaction: discord.Interaction, campagne: str):
        from bot.views.admin_views import ConfirmDeleteView

        if not self.admin.is_admin(interaction.user.id):
            await self._reply(interaction, self.admin.deny(interaction.user.id, "delete a campaign"))
            return
        view = ConfirmDeleteView(self.admin, DeleteRequest(kind="campaign", target_id=campagne), "Campagne")
        await interaction.response.send_message(
            "Supprimer la campagne, ses chapitres, personnages et sessions ?", view=view, ephemeral=True
        )

    @delete_campaign_cmd.autocomplete("campagne")
    async def campaign_autocomplete(self, interaction: discord.Interaction,
                                    current: str) -> List[app_commands.Choice[str]]:
        return await campaign_choices(self.state, current)

    @create_cmd.autocomplete("campagne")
    async def create_campaign_autocomplete(self, interaction: discord.Interaction,
                                           current: str) -> List[app_commands.Choice[str]]:
        return await campaign_choices(self.state, current)

    @app_commands.command(name="lore-import", description="[MJ] Importer des articles ou événements (JSON)")
    @app_commands.choices(contenu=[
        app_commands.Choice(name="Articles", value="article"),
        app_commands.Choice(name="Événements", value="event"),
    ])
    async def import_lore_cmd(self, interaction: discord.Interaction, contenu: str, fichier: discord.Attachment):
        if not self.admin.is_admin(interaction.user.id):
            await self._reply(interaction, self.admin.deny(interaction.user.id, "import lore"))
            return
        data = await self._read_json(interaction, fichier)
        if data is None:
            return
        entries = data if isinstance(data, list) else [data]

        await interaction.response.defer(ephemeral=True)
        saved, failed = 0, 0
        for entry in entries:
            result = await self.admin.save_lore(interaction.user.id, contenu, entry if isinstance(entry, dict) else {})
            if result.ok:
                saved += 1
            else:
                failed += 1
        await interaction.followup.send(f"✅ {saved} importé(s), {failed} rejeté(s).", ephemeral=True)

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------
    @app_commands.command(name="image-upload", description="[MJ] Héberger une image de campagne ou de personnage")
    @app_commands.choices(dossier=[
        app_commands.Choice(name="Campagnes", value="campaigns"),
        app_commands.Choice(name="Personnages", value="characters"),
    ])
    async def upload_cmd(self, interaction: discord.Interaction, fichier: discord.Attachment,
                         dossier: str = "campaigns"):
        from bot.client import get_image_store

        if not self.admin.is_admin(interaction.user.id):
            await self._reply(interaction, self.admin.deny(interaction.user.id, "upload images"))
            return
        if not (fichier.content_type or "").startswith("image/"):
            await self._invalid(interaction, "Ce fichier n'est pas une image.")
            return
        await interaction.response.defer(ephemeral=True)
        url = await get_image_store().upload_image(await fichier.read(), fichier.filename, dossier)
        if url is None:
            await interaction.followup.send("⚠️ L'envoi a échoué.", ephemeral=True)
            return
        await interaction.followup.send(f"✅ Image hébergée : {url}", ephemeral=True)

    @app_commands.command(name="image-delete", description="[MJ] Supprimer une image hébergée")
    async def delete_image_cmd(self, interaction: discord.Interaction, url: str):
        from bot.client import get_image_store

        if not self.admin.is_admin(interaction.user.id):
            await self._reply(interaction, self.admin.deny(interaction.user.id, "delete images"))
            return
        store = get_image_store()
        if not store.is_hosted_image(url):
            await self._invalid(interaction, "Cette image n'est pas hébergée ici.")
            return
        deleted = await store.delete_image(url)
        await interaction.response.send_message("✅ Image supprimée." if deleted else "⚠️ Image introuvable.",
                                                ephemeral=True)

    # ------------------------------------------------------------------
    # AI helpers
    # ------------------------------------------------------------------
    @app_commands.command(name="idees", description="[MJ] Trois idées de rebondissement")
    async def ideas_cmd(self, interaction: discord.Interaction, pitch: str, genre: str = "Valthera"):
        request = build_request(IdeasRequest, pitch=pitch, genre=genre)
        if request is None:
            await self._invalid(interaction, "Le pitch est vide.")
            return
        await interaction.response.defer(ephemeral=True, thinking=True)
        result = await self.admin.generate_ideas(interaction.user.id, request)
        if not result.ok:
            await self._reply(interaction, result)
            return
        text = result.message
        for i in range(0, len(text), 2000):
            await interaction.followup.send(text[i : i + 2000], ephemeral=True)

    @app_commands.command(name="resume", description="[MJ] Transformer des notes brutes en chapitre")
    async def summary_cmd(self, interaction: discord.Interaction):
        from bot.views.admin_views import SummaryNotesModal

        if not self.admin.is_admin(interaction.user.id):
            await self._reply(interaction, self.admin.deny(interaction.user.id, "enhance a summary"))
            return
        await interaction.response.send_modal(SummaryNotesModal(self.admin))


async def setup(bot: commands.Bot):
    await bot.add_cog(AdminCog(bot))
