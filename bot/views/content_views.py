"""
Content Views — Filter and browse components for campaign content.

Contains:
  - BestiaryView: type / danger selects and a defeated-only toggle
  - LoreView: category select over the wiki search results
  - MapView: marker select showing the marker popup
  - ChapterSelectView: jump to a chapter of a campaign

Filter state lives on the view instance (one per message).
"""

import logging
from typing import List

import discord
from discord import ButtonStyle

from models.campaign import DANGER_LABELS, MARKER_ICONS, Campaign, CreatureType, DangerLevel
from models.lore import LORE_CATEGORY_ICONS, LORE_CATEGORY_LABELS, LoreArticle, LoreCategory
from tools.content_filters import BestiaryFilter, LoreFilter, sort_chapters
from bot.embeds import bestiary_embed, chapter_embed, lore_results_embed, map_embed

logger = logging.getLogger("ContentViews")

ALL = "__all__"
MAX_OPTIONS = 25


# ======================================================================
# Bestiary
# ======================================================================

class CreatureTypeSelect(discord.ui.Select):
    def __init__(self):
        options = [discord.SelectOption(label="Tous les types", value=ALL)] + [
            discord.SelectOption(label=t.value.capitalize(), value=t.value) for t in CreatureType
        ]
        super().__init__(placeholder="Type de créature", options=options[:MAX_OPTIONS], row=0)

    async def callback(self, interaction: discord.Interaction):
        value = self.values[0]
        self.view.filter.creature_type = None if value == ALL else CreatureType(value)
        await self.view.refresh(interaction)


class DangerSelect(discord.ui.Select):
    def __init__(self):
        options = [discord.SelectOption(label="Tous les dangers", value=ALL)] + [
            discord.SelectOption(label=DANGER_LABELS[d], value=d.value) for d in DangerLevel
        ]
        super().__init__(placeholder="Niveau de danger", options=options, row=1)

    async def callback(self, interaction: discord.Interaction):
        value = self.values[0]
        self.view.filter.danger = None if value == ALL else DangerLevel(value)
        await self.view.refresh(interaction)


class BestiaryView(discord.ui.View):
    """Bestiary browser for one campaign."""

    def __init__(self, campaign: Campaign, query: str = "", timeout: float = 600):
        super().__init__(timeout=timeout)
        self.campaign = campaign
        self.filter = BestiaryFilter(query=query)
        self.add_item(CreatureTypeSelect())
        self.add_item(DangerSelect())

    def build_embed(self) -> discord.Embed:
        return bestiary_embed(self.campaign, self.filter.apply(self.campaign.bestiary), self.filter.is_active)

    async def refresh(self, interaction: discord.Interaction):
        await interaction.response.edit_message(embed=self.build_embed(), view=self)

    @discord.ui.button(label="Vaincues seulement", style=ButtonStyle.secondary, row=2)
    async def defeated_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.filter.defeated_only = not self.filter.defeated_only
        button.style = ButtonStyle.success if self.filter.defeated_only else ButtonStyle.secondary
        await self.refresh(interaction)

    @discord.ui.button(label="Réinitialiser", style=ButtonStyle.danger, row=2)
    async def reset_btn(self, interaction: discord.Interaction, button: discord.ui.Button):
        self.filter = BestiaryFilter()
        self.defeated_btn.style = ButtonStyle.secondary
        await self.refresh(interaction)


# ======================================================================
# Lore
# ======================================================================

class LoreCategorySelect(discord.ui.Select):
    def __init__(self):
        options = [discord.SelectOption(label="Toutes les catégories", value=ALL)] + [
            discord.SelectOption(label=LORE_CATEGORY_LABELS[c], value=c.value, emoji=LORE_CATEGORY_ICONS[c])
            for c in LoreCategory
        ]
        super().__init__(placeholder="Catégorie", options=options)

    async def callback(self, interaction: discord.Interaction):
        value = self.values[0]
        self.view.filter.category = None if value == ALL else LoreCategory(value)
        await interaction.response.edit_message(embed=self.view.build_embed(), view=self.view)


class LoreView(discord.ui.View):
    def __init__(self, articles: List[LoreArticle], query: str = "", timeout: float = 600):
        super().__init__(timeout=timeout)
        self.articles = articles
        self.filter = LoreFilter(query=query)
        self.add_item(LoreCategorySelect())

    def build_embed(self) -> discord.Embed:
        heading = f"Recherche : {self.filter.query}" if self.filter.query else "Encyclopédie"
        if self.filter.category:
            heading += f" · {LORE_CATEGORY_LABELS[self.filter.category]}"
        return lore_results_embed(self.filter.apply(self.articles), heading)


# ======================================================================
# Map
# ======================================================================

class MarkerSelect(discord.ui.Select):
    def __init__(self, campaign: Campaign):
        options = [
            discord.SelectOption(label=m.label[:100], value=m.id, emoji=m.icon or MARKER_ICONS[m.type])
            for m in campaign.map_markers[:MAX_OPTIONS]
        ]
        super().__init__(placeholder="Voir un lieu", options=options)

    async def callback(self, interaction: discord.Interaction):
        self.view.selected_marker_id = self.values[0]
        await interaction.response.edit_message(embed=self.view.build_embed(), view=self.view)


class MapView(discord.ui.View):
    def __init__(self, campaign: Campaign, timeout: float = 600):
        super().__init__(timeout=timeout)
        self.campaign = campaign
        self.selected_marker_id = None
        if campaign.map_markers:
            self.add_item(MarkerSelect(campaign))

    def build_embed(self) -> discord.Embed:
        return map_embed(self.campaign, self.selected_marker_id)


# ======================================================================
# Chapters
# ======================================================================

class ChapterSelect(discord.ui.Select):
    def __init__(self, campaign: Campaign):
        options = [
            discord.SelectOption(label=f"{c.order}. {c.title}"[:100], value=c.id)
            for c in sort_chapters(campaign.chapters)[:MAX_OPTIONS]
        ]
        super().__init__(placeholder="Lire un chapitre", options=options)

    async def callback(self, interaction: discord.Interaction):
        chapter = self.view.campaign.get_chapter(self.values[0])
        if chapter is None:
            await interaction.response.send_message("Chapitre introuvable.", ephemeral=True)
            return
        await interaction.response.edit_message(embed=chapter_embed(self.view.campaign, chapter), view=self.view)


class ChapterSelectView(discord.ui.View):
    def __init__(self, campaign: Campaign, timeout: float = 600):
        super().__init__(timeout=timeout)
        self.campaign = campaign
        if campaign.chapters:
            self.add_item(ChapterSelect(campaign))
