"""
Embed builders — Turn models and calendar views into Discord embeds.

Pure functions of their arguments so views can rebuild an embed on every
button press. Discord limits are enforced here (4096 description, 1024 per
field, 25 fields).
"""

from datetime import tzinfo
from typing import List, Optional

import discord

from models.campaign import (
    CAMPAIGN_STATUS_LABELS,
    DANGER_LABELS,
    MARKER_ICONS,
    MARKER_LABELS,
    UNIVERSE_LABELS,
    BestiaryCreature,
    Campaign,
    Chapter,
    Character,
    Universe,
)
from models.lore import (
    EVENT_TYPE_ICONS,
    LORE_CATEGORY_ICONS,
    LORE_CATEGORY_LABELS,
    WORLD_ERA_LABELS,
    WORLD_ERA_YEARS,
    LoreArticle,
    WorldEvent,
)
from models.session import PlannedSession
from tools.calendar_engine import (
    WEEKDAY_ABBREVIATIONS,
    MonthView,
    format_date,
    format_duration,
    format_time,
    status_emoji,
    status_label,
)
from tools.content_filters import bestiary_stats, events_by_era, extract_youtube_id, sort_chapters
from tools.map_view import chapter_title_for, markers_by_type
from tools.relations import relations_for

FIELD_LIMIT = 1024
DESCRIPTION_LIMIT = 4096
TITLE_LIMIT = 256
MAX_FIELDS = 25

VALTHERA_COLOR = discord.Color.teal()
HORS_SERIE_COLOR = discord.Color.purple()


def truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 1] + "…"


def _universe_color(universe) -> discord.Color:
    return VALTHERA_COLOR if universe in (Universe.VALTHERA, "valthera") else HORS_SERIE_COLOR


# ----------------------------------------------------------------------
# Calendar
# ----------------------------------------------------------------------

def render_month_grid(view: MonthView, today=None) -> str:
    """Monospace 7-column grid; `*` marks days with sessions, `>` today.

    Days outside the displayed month are shown as dots.
    """
    lines = [" ".join(f"{abbr:>4}" for abbr in WEEKDAY_ABBREVIATIONS)]
    for week in view.weeks:
        cells = []
        for cell in week:
            if not cell.is_current_month:
                cells.append("   ·")
                continue
            marker = ">" if today is not None and cell.date == today else " "
            mark = "*" if cell.has_sessions else " "
            cells.append(f"{marker}{cell.date.day:>2}{mark}")
        lines.append(" ".join(cells))
    return "```\n" + "\n".join(lines) + "\n```"


def _session_line(session: PlannedSession, tz: Optional[tzinfo]) -> str:
    when = f"{format_date(session.scheduled_date, tz)} · {format_time(session.scheduled_date, tz)}"
    campaign = f" — {session.campaign_title}" if session.campaign_title else ""
    return f"{status_emoji(session.status)} **{session.title}**{campaign}\n{when} ({format_duration(session.duration)})"


def calendar_embed(view: MonthView, tz: Optional[tzinfo] = None, today=None) -> discord.Embed:
    embed = discord.Embed(
        title=f"\U0001f4c5 {view.title}",
        description=render_month_grid(view, today),
        color=VALTHERA_COLOR,
    )
    sessions = [s for cell in view.current_month_cells for s in cell.sessions]
    if sessions:
        lines = [_session_line(s, tz) for s in sessions]
        embed.add_field(
            name=f"Sessions du mois ({len(sessions)})",
            value=truncate("\n\n".join(lines), FIELD_LIMIT),
            inline=False,
        )
    else:
        embed.add_field(name="Sessions du mois", value="Aucune session planifiée.", inline=False)
    return embed


def session_embed(session: PlannedSession, tz: Optional[tzinfo] = None, show_gm_notes: bool = False) -> discord.Embed:
    embed = discord.Embed(
        title=truncate(f"{status_emoji(session.status)} {session.title}", TITLE_LIMIT),
        description=truncate(session.description or "", DESCRIPTION_LIMIT),
        color=_universe_color(session.universe),
    )
    if session.campaign_title:
        embed.set_author(name=truncate(session.campaign_title, TITLE_LIMIT))
    if session.campaign_image:
        embed.set_thumbnail(url=session.campaign_image)

    if session.scheduled_date:
        embed.add_field(name="Date", value=format_date(session.scheduled_date, tz), inline=True)
        embed.add_field(name="Heure", value=format_time(session.scheduled_date, tz), inline=True)
    else:
        embed.add_field(name="Date", value="À définir", inline=True)
    embed.add_field(name="Durée", value=format_duration(session.duration), inline=True)
    embed.add_field(name="Statut", value=status_label(session.status), inline=True)

    if session.players or session.max_players:
        roster = "\n".join(
            f"{'✅' if p.confirmed else '⏳'} {p.name}" for p in session.players
        ) or "Aucun joueur inscrit."
        capacity = f"{session.confirmed_count}/{len(session.players)} confirmés"
        if session.max_players:
            capacity += f" · {len(session.players)}/{session.max_players} places"
        embed.add_field(name=f"Joueurs ({capacity})", value=truncate(roster, FIELD_LIMIT), inline=False)

    links = []
    if session.twitch_link:
        links.append(f"[Twitch]({session.twitch_link})")
    if session.youtube_link:
        links.append(f"[Replay YouTube]({session.youtube_link})")
    if links:
        embed.add_field(name="Liens", value=" · ".join(links), inline=False)
    if session.public_notes:
        embed.add_field(name="Notes", value=truncate(session.public_notes, FIELD_LIMIT), inline=False)
    if show_gm_notes and session.gm_notes:
        embed.add_field(name="Notes du MJ", value=truncate(session.gm_notes, FIELD_LIMIT), inline=False)
    embed.set_footer(text=f"id: {session.id}")
    return embed


def session_list_embed(title: str, sessions: List[PlannedSession], tz: Optional[tzinfo] = None,
                       empty: str = "Aucune session.") -> discord.Embed:
    embed = discord.Embed(title=truncate(title, TITLE_LIMIT), color=VALTHERA_COLOR)
    if not sessions:
        embed.description = empty
        return embed
    for session in sessions[:MAX_FIELDS]:
        value = (
            f"{format_date(session.scheduled_date, tz) or 'Date à définir'} · "
            f"{format_time(session.scheduled_date, tz)} · {format_duration(session.duration)}\n"
            f"{status_label(session.status)}"
        )
        if session.campaign_title:
            value = f"*{session.campaign_title}*\n{value}"
        embed.add_field(name=truncate(f"{status_emoji(session.status)} {session.title}", TITLE_LIMIT), value=value, inline=False)
    if len(sessions) > MAX_FIELDS:
        embed.set_footer(text=f"+{len(sessions) - MAX_FIELDS} autres sessions")
    return embed


# ----------------------------------------------------------------------
# Campaigns
# ----------------------------------------------------------------------

def campaign_list_embed(campaigns: List[Campaign]) -> discord.Embed:
    embed = discord.Embed(title="\U0001f4da Les Campagnes", color=VALTHERA_COLOR)
    if not campaigns:
        embed.description = "Aucune campagne pour le moment."
        return embed
    for campaign in campaigns[:MAX_FIELDS]:
        header = f"{UNIVERSE_LABELS[campaign.universe]} · {CAMPAIGN_STATUS_LABELS[campaign.status]}"
        embed.add_field(
            name=truncate(campaign.title, TITLE_LIMIT),
            value=truncate(f"*{header}*\n{campaign.pitch}\n`{campaign.id}`", FIELD_LIMIT),
            inline=False,
        )
    return embed


def campaign_embed(campaign: Campaign) -> discord.Embed:
    embed = discord.Embed(
        title=truncate(campaign.title, TITLE_LIMIT),
        description=truncate(campaign.pitch, DESCRIPTION_LIMIT),
        color=_universe_color(campaign.universe),
    )
    if campaign.image_url:
        embed.set_image(url=campaign.image_url)
    embed.add_field(name="Univers", value=UNIVERSE_LABELS[campaign.universe], inline=True)
    embed.add_field(name="Statut", value=CAMPAIGN_STATUS_LABELS[campaign.status], inline=True)
    embed.add_field(name="Sessions", value=str(len(campaign.chapters)), inline=True)

    chapters = sort_chapters(campaign.chapters)
    if chapters:
        lines = [f"**{c.order}.** {c.title} ({c.session_date or '?'})" for c in chapters]
        embed.add_field(name="Chapitres", value=truncate("\n".join(lines), FIELD_LIMIT), inline=False)
    players = [c for c in campaign.characters if not c.is_npc]
    if players:
        embed.add_field(
            name="Aventuriers",
            value=truncate(", ".join(c.name for c in players), FIELD_LIMIT),
            inline=False,
        )
    embed.set_footer(text=f"id: {campaign.id}")
    return embed


def chapter_embed(campaign: Campaign, chapter: Chapter) -> discord.Embed:
    embed = discord.Embed(
        title=truncate(f"Chapitre {chapter.order} : {chapter.title}", TITLE_LIMIT),
        description=truncate(chapter.summary, DESCRIPTION_LIMIT),
        color=_universe_color(campaign.universe),
    )
    embed.set_author(name=truncate(campaign.title, TITLE_LIMIT))
    if chapter.highlights:
        embed.add_field(
            name="\U0001f4cc Moments forts",
            value=truncate("\n".join(f"• {h}" for h in chapter.highlights), FIELD_LIMIT),
            inline=False,
        )
    if chapter.loot:
        embed.add_field(
            name="\U0001f48e Butin",
            value=truncate("\n".join(f"• {item}" for item in chapter.loot), FIELD_LIMIT),
            inline=False,
        )
    video_id = extract_youtube_id(chapter.youtube_link)
    if video_id:
        embed.add_field(name="Replay", value=f"https://www.youtube.com/watch?v={video_id}", inline=False)
    if chapter.session_date:
        embed.set_footer(text=chapter.session_date)
    return embed


def characters_embed(campaign: Campaign) -> discord.Embed:
    embed = discord.Embed(title=truncate(f"\U0001f3ad {campaign.title} — Personnages", TITLE_LIMIT), color=_universe_color(campaign.universe))
    names = {c.id: c.name for c in campaign.characters}
    for character in campaign.characters[:MAX_FIELDS]:
        embed.add_field(
            name=truncate(_character_title(character), TITLE_LIMIT),
            value=truncate(_character_body(character, campaign.characters, names), FIELD_LIMIT),
            inline=False,
        )
    if not campaign.characters:
        embed.description = "Aucun personnage."
    return embed


def _character_title(character: Character) -> str:
    kind = "PNJ" if character.is_npc else f"joué par {character.player or '?'}"
    return f"{character.name} ({kind})"


def _character_body(character: Character, characters: List[Character], names: dict) -> str:
    lines = []
    kind = " ".join(part for part in (character.species, character.char_class) if part)
    if kind:
        lines.append(f"*{kind}*")
    if character.description:
        lines.append(character.description)
    for entry in relations_for(character, characters):
        target = names.get(entry.target_id)
        if target:
            lines.append(f"↔ {entry.label} {target}")
    return "\n".join(lines) or "—"


def bestiary_embed(campaign: Campaign, creatures: List[BestiaryCreature], filter_active: bool = False) -> discord.Embed:
    stats = bestiary_stats(campaign.bestiary)
    embed = discord.Embed(
        title=truncate(f"\U0001f409 Bestiaire — {campaign.title}", TITLE_LIMIT),
        description=(
            f"{stats['total']} créatures · {stats['defeated']} vaincues · "
            f"{stats['legendary']} légendaires"
        ),
        color=discord.Color.dark_red(),
    )
    if not creatures:
        embed.add_field(
            name="Aucun résultat",
            value="Aucune créature ne correspond aux filtres." if filter_active else "Le bestiaire est vide.",
            inline=False,
        )
        return embed
    for creature in creatures[:MAX_FIELDS]:
        defeated = " ☠️" if creature.is_defeated else ""
        value = f"*{creature.type.value} · {DANGER_LABELS[creature.danger_level]}*"
        if creature.habitat:
            value += f" · {creature.habitat}"
        if creature.description:
            value += f"\n{creature.description}"
        embed.add_field(name=truncate(f"{creature.name}{defeated}", TITLE_LIMIT), value=truncate(value, FIELD_LIMIT), inline=False)
    return embed


def map_embed(campaign: Campaign, selected_marker_id: Optional[str] = None) -> discord.Embed:
    embed = discord.Embed(title=truncate(f"\U0001f5fa️ Carte — {campaign.title}", TITLE_LIMIT), color=_universe_color(campaign.universe))
    if campaign.map_image_url:
        embed.set_image(url=campaign.map_image_url)
    else:
        embed.description = "Aucune carte pour cette campagne."

    for marker_type, markers in markers_by_type(campaign.map_markers).items():
        lines = [f"{m.display_icon} {m.label} ({m.x:.0f}%, {m.y:.0f}%)" for m in markers]
        embed.add_field(
            name=f"{MARKER_ICONS[marker_type]} {MARKER_LABELS[marker_type]}",
            value=truncate("\n".join(lines), FIELD_LIMIT),
            inline=True,
        )

    selected = next((m for m in campaign.map_markers if m.id == selected_marker_id), None)
    if selected:
        details = selected.description or "Pas de description."
        chapter_title = chapter_title_for(selected.linked_chapter_id, campaign.chapters)
        if chapter_title:
            details += f"\n\U0001f4d6 {chapter_title}"
        embed.add_field(name=truncate(f"{selected.display_icon} {selected.label}", TITLE_LIMIT), value=truncate(details, FIELD_LIMIT), inline=False)
    return embed


# ----------------------------------------------------------------------
# Lore
# ----------------------------------------------------------------------

def lore_article_embed(article: LoreArticle, related: List[LoreArticle]) -> discord.Embed:
    icon = LORE_CATEGORY_ICONS[article.category]
    embed = discord.Embed(
        title=truncate(f"{icon} {article.title}", TITLE_LIMIT),
        description=truncate(article.content, DESCRIPTION_LIMIT),
        color=discord.Color.gold(),
    )
    embed.add_field(name="Catégorie", value=LORE_CATEGORY_LABELS[article.category], inline=True)
    if article.tags:
        embed.add_field(name="Tags", value=", ".join(article.tags), inline=True)
    if related:
        embed.add_field(
            name="Articles liés",
            value=truncate("\n".join(f"• {a.title} (`{a.slug}`)" for a in related), FIELD_LIMIT),
            inline=False,
        )
    if article.image_url:
        embed.set_thumbnail(url=article.image_url)
    return embed


def lore_results_embed(articles: List[LoreArticle], heading: str) -> discord.Embed:
    embed = discord.Embed(title=truncate(f"\U0001f4d6 {heading}", TITLE_LIMIT), color=discord.Color.gold())
    if not articles:
        embed.description = "Aucun article trouvé."
        return embed
    lines = [
        f"{LORE_CATEGORY_ICONS[a.category]} **{a.title}** (`{a.slug}`)"
        + (f"\n{a.excerpt}" if a.excerpt else "")
        for a in articles
    ]
    embed.description = truncate("\n".join(lines), DESCRIPTION_LIMIT)
    return embed


def timeline_embed(events: List[WorldEvent]) -> discord.Embed:
    embed = discord.Embed(title="⏳ Chronologie de Valthera", color=discord.Color.dark_gold())
    for era, era_events in events_by_era(events).items():
        if not era_events:
            continue
        start, end = WORLD_ERA_YEARS[era]
        span = f"{start}–{end}" if end is not None else f"depuis {start}"
        lines = [f"{EVENT_TYPE_ICONS[e.type]} **{e.year}** · {e.title}" for e in era_events]
        embed.add_field(
            name=f"{WORLD_ERA_LABELS[era]} ({span})",
            value=truncate("\n".join(lines), FIELD_LIMIT),
            inline=False,
        )
    if not events:
        embed.description = "La chronologie est vide."
    return embed
