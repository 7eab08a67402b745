"""
Feed Service — RSS feed and printable campaign export.

Both outputs are plain strings built from validated models; serving them
(attachment, web endpoint, file) is the caller's business.
"""

import logging
from datetime import date, datetime, timezone
from email.utils import format_datetime
from typing import List, Optional, Tuple

from models.campaign import (
    CAMPAIGN_STATUS_LABELS,
    UNIVERSE_LABELS,
    Campaign,
    Chapter,
    Universe,
)
from tools.calendar_engine import MONTH_NAMES, format_date
from tools.content_filters import sort_chapters
from tools.markdown import escape_html, escape_xml, render_markdown_document, strip_markdown

logger = logging.getLogger("FeedService")

SITE_TITLE = "Chroniques de Valthera"
SITE_DESCRIPTION = (
    "Explorez les chroniques épiques de nos campagnes de jeu de rôle "
    "dans l'univers de Valthera et au-delà."
)
MAX_FEED_ITEMS = 50
DESCRIPTION_LIMIT = 500
HIGHLIGHTS_HEADING = "\U0001f4cc Moments forts"
LOOT_HEADING = "\U0001f48e Butin récupéré"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def parse_session_date(value: str) -> Optional[datetime]:
    """Chapter dates are ISO strings; a bare date means midnight UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparsable chapter date: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _rfc822(value: datetime) -> str:
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def _recent_chapters(campaigns: List[Campaign]) -> List[Tuple[Chapter, Campaign, Optional[datetime]]]:
    entries = [
        (chapter, campaign, parse_session_date(chapter.session_date))
        for campaign in campaigns
        for chapter in campaign.chapters
    ]
    entries.sort(key=lambda e: e[2] or _EPOCH, reverse=True)
    return entries[:MAX_FEED_ITEMS]


def _feed_item(chapter: Chapter, campaign: Campaign, published: Optional[datetime], base_url: str) -> str:
    link = f"{base_url}/campagne/{campaign.id}#chapitre-{chapter.id}"
    title = escape_xml(f"{campaign.title} - {chapter.title}")
    description = escape_xml(strip_markdown(chapter.summary)[:DESCRIPTION_LIMIT])
    highlights = ""
    if chapter.highlights:
        items = "".join(f"<li>{escape_xml(h)}</li>" for h in chapter.highlights)
        highlights = f"<p><strong>Moments forts:</strong></p><ul>{items}</ul>"
    pub_date = f"\n      <pubDate>{_rfc822(published)}</pubDate>" if published else ""
    category = "Valthera" if campaign.universe == Universe.VALTHERA else "Hors-Série"
    return f"""
    <item>
      <title>{title}</title>
      <link>{link}</link>
      <guid isPermaLink="true">{link}</guid>{pub_date}
      <description><![CDATA[{description}{highlights}]]></description>
      <category>{escape_xml(category)}</category>
    </item>"""


def generate_rss_feed(campaigns: List[Campaign], base_url: str, now: Optional[datetime] = None) -> str:
    """RSS 2.0 feed of the 50 most recent chapters across all campaigns."""
    base_url = base_url.rstrip("/")
    recent = _recent_chapters(campaigns)

    newest = recent[0][2] if recent else None
    last_build = _rfc822(newest or now or datetime.now(timezone.utc))
    items = "\n".join(_feed_item(ch, camp, published, base_url) for ch, camp, published in recent)

    logger.info(f"RSS feed generated with {len(recent)} item(s)")
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:atom="http://www.w3.org/2005/Atom">
  <channel>
    <title>{SITE_TITLE}</title>
    <link>{base_url}</link>
    <description>{escape_xml(SITE_DESCRIPTION)}</description>
    <language>fr</language>
    <lastBuildDate>{last_build}</lastBuildDate>
    <atom:link href="{base_url}/rss.xml" rel="self" type="application/rss+xml"/>
    <image>
      <url>{base_url}/og-image.png</url>
      <title>{SITE_TITLE}</title>
      <link>{base_url}</link>
    </image>
    {items}
  </channel>
</rss>"""


# ----------------------------------------------------------------------
# Printable export
# ----------------------------------------------------------------------

_DOCUMENT_STYLE = """
    @page { size: A4; margin: 2cm; }
    body { font-family: 'Georgia', serif; color: #1a1a2e; line-height: 1.6; max-width: 800px; margin: 0 auto; padding: 20px; }
    h1, h2, h3, h4 { font-family: 'Times New Roman', serif; color: #0f766e; margin-top: 1.5em; }
    h1 { font-size: 2.5em; text-align: center; border-bottom: 3px double #0f766e; padding-bottom: 0.5em; }
    .subtitle { text-align: center; color: #666; font-style: italic; margin-bottom: 2em; }
    .cover-image { width: 100%; max-height: 300px; object-fit: cover; border-radius: 8px; }
    .metadata { display: flex; justify-content: center; gap: 2em; padding: 1em; background: #f5f5f5; border-radius: 8px; }
    .metadata-label { font-size: 0.8em; color: #666; text-transform: uppercase; }
    .metadata-value { font-weight: bold; color: #0f766e; }
    .pitch { font-style: italic; padding: 1em; border-left: 4px solid #0f766e; background: #f9f9f9; margin: 2em 0; }
    .characters-grid { display: grid; grid-template-columns: repeat(2, 1fr); gap: 1em; }
    .character { display: flex; gap: 1em; padding: 1em; background: #f9f9f9; border-radius: 8px; page-break-inside: avoid; }
    .character-image { width: 80px; height: 80px; object-fit: cover; border-radius: 50%; }
    .chapter { margin: 2em 0; padding: 1.5em; border: 1px solid #ddd; border-radius: 8px; page-break-inside: avoid; }
    .chapter-header { display: flex; justify-content: space-between; align-items: baseline; border-bottom: 1px solid #eee; }
    .chapter-highlights, .chapter-loot { background: #f5f9f9; padding: 1em; border-radius: 4px; margin-top: 1em; }
    .footer { margin-top: 4em; text-align: center; color: #999; font-size: 0.8em; border-top: 1px solid #eee; }
"""


def _character_block(character) -> str:
    image = (
        f'<img src="{escape_html(character.image_url)}" alt="{escape_html(character.name)}" class="character-image"/>'
        if character.image_url else ""
    )
    desc = f'<p class="character-desc">{escape_html(character.description)}</p>' if character.description else ""
    return f"""
    <div class="character">
      {image}
      <div class="character-info">
        <h4>{escape_html(character.name)}</h4>
        <p class="character-details">{escape_html(character.species)} {escape_html(character.char_class)}</p>
        <p class="character-player">Joué par: {escape_html(character.player)}</p>
        {desc}
      </div>
    </div>"""


def _bullet_section(css_class: str, heading: str, entries: List[str]) -> str:
    if not entries:
        return ""
    items = "".join(f"<li>{escape_html(e)}</li>" for e in entries)
    return f'<div class="{css_class}"><h4>{heading}</h4><ul>{items}</ul></div>'


def _chapter_block(chapter: Chapter) -> str:
    published = parse_session_date(chapter.session_date)
    when = format_date(published, timezone.utc) if published else escape_html(chapter.session_date)
    return f"""
    <div class="chapter">
      <div class="chapter-header">
        <h3>Session {chapter.order}: {escape_html(chapter.title)}</h3>
        <span class="chapter-date">{when}</span>
      </div>
      <div class="chapter-summary">{render_markdown_document(chapter.summary)}</div>
      {_bullet_section("chapter-highlights", HIGHLIGHTS_HEADING, chapter.highlights)}
      {_bullet_section("chapter-loot", LOOT_HEADING, chapter.loot)}
    </div>"""


def generate_campaign_document(campaign: Campaign, generated_on: Optional[date] = None) -> str:
    """Self-contained HTML document of a campaign, ready to print to PDF."""
    generated_on = generated_on or date.today()
    cover = (
        f'<img src="{escape_html(campaign.image_url)}" alt="{escape_html(campaign.title)}" class="cover-image"/>'
        if campaign.image_url else ""
    )
    subtitle = SITE_TITLE if campaign.universe == Universe.VALTHERA else UNIVERSE_LABELS[Universe.HORS_SERIE]
    characters = "".join(_character_block(c) for c in campaign.characters)
    chapters = "".join(_chapter_block(c) for c in sort_chapters(campaign.chapters))
    footer_date = f"{generated_on.day} {MONTH_NAMES[generated_on.month - 1].lower()} {generated_on.year}"

    return f"""<!DOCTYPE html>
<html lang="fr">
<head>
  <meta charset="UTF-8">
  <title>{escape_html(campaign.title)} - {SITE_TITLE}</title>
  <style>{_DOCUMENT_STYLE}</style>
</head>
<body>
  {cover}
  <h1>{escape_html(campaign.title)}</h1>
  <p class="subtitle">{subtitle}</p>
  <div class="metadata">
    <div class="metadata-item"><div class="metadata-label">Statut</div><div class="metadata-value">{CAMPAIGN_STATUS_LABELS[campaign.status]}</div></div>
    <div class="metadata-item"><div class="metadata-label">Sessions</div><div class="metadata-value">{len(campaign.chapters)}</div></div>
    <div class="metadata-item"><div class="metadata-label">Personnages</div><div class="metadata-value">{len(campaign.characters)}</div></div>
  </div>
  <div class="pitch">{escape_html(campaign.pitch)}</div>
  <div class="section">
    <h2>\U0001f3ad Les Aventuriers</h2>
    <div class="characters-grid">{characters}</div>
  </div>
  <div class="section">
    <h2>\U0001f4d6 Journal de Campagne</h2>
    {chapters}
  </div>
  <div class="footer">
    <p>Généré depuis {SITE_TITLE}</p>
    <p>{footer_date}</p>
  </div>
</body>
</html>"""
