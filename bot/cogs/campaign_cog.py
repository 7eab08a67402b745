"""
Campaign Cog — Browse campaigns, chapters, characters, bestiary and map.

Commands: /campagnes, /campagne, /chapitre, /personnages, /bestiaire,
          /carte, /rss, /export
"""

import io
import logging
from typing import List, Optional

import discord
from discord import app_commands
from discord.ext import commands

from tools.content_filters import sort_chapters
from tools.feed_service import generate_campaign_document, generate_rss_feed

logger = logging.getLogger("Campaign_Cog")


async def campaign_choices(state, current: str) -> List[app_commands.Choice[str]]:
    current = current.lower()
    return [
        app_commands.Choice(name=c.title[:100], value=c.id)
        for c in await state.get_campaigns()
        if current in c.title.lower()
    ][:25]


class CampaignCog(commands.Cog, name="Campaigns"):
    """Read-only access to every campaign and what hangs off it."""

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        from bot.client import state_manager, SITE_BASE_URL
        self.state = state_manager
        self.base_url = SITE_BASE_URL

    async def _campaign_or_reply(self, interaction: discord.Interaction, campaign_id: str):
        campaign = await self.state.get_campaign(campaign_id)
        if campaign is None:
            await interaction.response.send_message("Campagne introuvable.", ephemeral=True)
        return campaign

    # ------------------------------------------------------------------
    # Listing & details
    # ------------------------------------------------------------------
    @app_commands.command(name="campagnes", description="Toutes les campagnes")
    async def campaigns_cmd(self, interaction: discord.Interaction):
        from bot.embeds import campaign_list_embed

        await interaction.response.defer()
        await interaction.followup.send(embed=campaign_list_embed(await self.state.get_campaigns()))

    @app_commands.command(name="campagne", description="Détails d'une campagne et de ses chapitres")
    async def campaign_cmd(self, interaction: discord.Interaction, campagne: str):
        from bot.embeds import campaign_embed
        from bot.views.content_views import ChapterSelectView

        campaign = await self._campaign_or_reply(interaction, campagne)
        if campaign:
            await interaction.response.send_message(embed=campaign_embed(campaign), view=ChapterSelectView(campaign))

    @app_commands.command(name="chapitre", description="Lire un chapitre (le dernier par défaut)")
    async def chapter_cmd(self, interaction: discord.Interaction, campagne: str,
                          numero: Optional[int] = None):
        from bot.embeds import chapter_embed

        campaign = await self._campaign_or_reply(interaction, campagne)
        if not campaign:
            return
        chapters = sort_chapters(campaign.chapters)
        if not chapters:
            await interaction.response.send_message("Cette campagne n'a pas encore de chapitre.", ephemeral=True)
            return
        chapter = chapters[-1] if numero is None else next((c for c in chapters if c.order == numero), None)
        if chapter is None:
            await interaction.response.send_message(f"Pas de chapitre n°{numero}.", ephemeral=True)
            return
        await interaction.response.send_message(embed=chapter_embed(campaign, chapter))

    @app_commands.command(name="personnages", description="Les personnages d'une campagne et leurs relations")
    async def characters_cmd(self, interaction: discord.Interaction, campagne: str):
        from bot.embeds import characters_embed

        campaign = await self._campaign_or_reply(interaction, campagne)
        if campaign:
            await interaction.response.send_message(embed=characters_embed(campaign))

    @app_commands.command(name="bestiaire", description="Les créatures rencontrées")
    @app_commands.describe(recherche="Nom, description ou habitat")
    async def bestiary_cmd(self, interaction: discord.Interaction, campagne: str, recherche: str = ""):
        from bot.views.content_views import BestiaryView

        campaign = await self._campaign_or_reply(interaction, campagne)
        if campaign:
            view = BestiaryView(campaign, query=recherche)
            await interaction.response.send_message(embed=view.build_embed(), view=view)

    @app_commands.command(name="carte", description="La carte de la campagne")
    async def map_cmd(self, interaction: discord.Interaction, campagne: str):
        from bot.views.content_views import MapView

        campaign = await self._campaign_or_reply(interaction, campagne)
        if campaign:
            view = MapView(campaign)
            await interaction.response.send_message(embed=view.build_embed(), view=view)

    @campaign_cmd.autocomplete("campagne")
    @chapter_cmd.autocomplete("campagne")
    @characters_cmd.autocomplete("campagne")
    @bestiary_cmd.autocomplete("campagne")
    @map_cmd.autocomplete("campagne")
    async def campaign_autocomplete(self, interaction: discord.Interaction,
                                    current: str) -> List[app_commands.Choice[str]]:
        return await campaign_choices(self.state, current)

    # ------------------------------------------------------------------
    # Feeds & export
    # ------------------------------------------------------------------
    @app_commands.command(name="rss", description="Flux RSS des derniers chapitres")
    async def rss_cmd(self, interaction: discord.Interaction):
        await interaction.response.defer()
        feed = generate_rss_feed(await self.state.get_campaigns(), self.base_url)
        await interaction.followup.send(
            "\U0001f4e1 Flux RSS des Chroniques de Valthera",
            file=discord.File(io.BytesIO(feed.encode("utf-8")), filename="rss.xml"),
        )

    @app_commands.command(name="export", description="Exporter une campagne en document imprimable")
    async def export_cmd(self, interaction: discord.Interaction, campagne: str):
        campaign = await self._campaign_or_reply(interaction, campagne)
        if not campaign:
            return
        document = generate_campaign_document(campaign)
        filename = f"{campaign.title.replace(' ', '_')}.html"
        logger.info(f"Export of {campaign.title} requested by {interaction.user}")
        await interaction.response.send_message(
            f"\U0001f4c4 **{campaign.title}** — ouvrez le fichier et imprimez-le en PDF.",
            file=discord.File(io.BytesIO(document.encode("utf-8")), filename=filename),
        )

    @export_cmd.autocomplete("campagne")
    async def export_autocomplete(self, interaction: discord.Interaction,
                                  current: str) -> List[app_commands.Choice[str]]:
        return await campaign_choices(self.state, current)


async def setup(bot: commands.Bot):
    await bot.add_cog(CampaignCog(bot))
