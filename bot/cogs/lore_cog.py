"""
Lore Cog — The world wiki and the timeline.

Commands: /lore recherche, /lore article, /lore chronologie
"""

import logging
from typing import List, Optional

import discord
from discord import app_commands
from discord.ext import commands

from models.lore import WORLD_ERA_LABELS, WorldEra
from tools.content_filters import filter_events, related_articles

logger = logging.getLogger("Lore_Cog")


class LoreCog(commands.Cog, name="Lore"):
    """Encyclopedia of Valthera."""

    lore = app_commands.Group(name="lore", description="L'encyclopédie de Valthera")

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        from bot.client import state_manager
        self.state = state_manager

    @lore.command(name="recherche", description="Chercher dans l'encyclopédie")
    @app_commands.describe(texte="Titre, contenu ou tag")
    async def search_cmd(self, interaction: discord.Interaction, texte: str = ""):
        from bot.views.content_views import LoreView

        await interaction.response.defer()
        view = LoreView(await self.state.get_lore_articles(), query=texte)
        await interaction.followup.send(embed=view.build_embed(), view=view)

    @lore.command(name="article", description="Lire un article")
    async def article_cmd(self, interaction: discord.Interaction, slug: str):
        from bot.embeds import lore_article_embed

        article = await self.state.get_lore_article_by_slug(slug)
        if article is None:
            await interaction.response.send_message(f"Aucun article `{slug}`.", ephemeral=True)
            return
        related = related_articles(article, await self.state.get_lore_articles())
        await interaction.response.send_message(embed=lore_article_embed(article, related))

    @article_cmd.autocomplete("slug")
    async def slug_autocomplete(self, interaction: discord.Interaction,
                                current: str) -> List[app_commands.Choice[str]]:
        current = current.lower()
        return [
            app_commands.Choice(name=a.title[:100], value=a.slug)
            for a in await self.state.get_lore_articles()
            if current in a.title.lower() or current in a.slug
        ][:25]

    @lore.command(name="chronologie", description="La chronologie du monde")
    @app_commands.choices(ere=[
        app_commands.Choice(name=WORLD_ERA_LABELS[era], value=era.value) for era in WorldEra
    ])
    async def timeline_cmd(self, interaction: discord.Interaction, ere: Optional[str] = None):
        from bot.embeds import timeline_embed

        await interaction.response.defer()
        events = filter_events(await self.state.get_world_events(), WorldEra(ere) if ere else None)
        await interaction.followup.send(embed=timeline_embed(events))


async def setup(bot: commands.Bot):
    await bot.add_cog(LoreCog(bot))
