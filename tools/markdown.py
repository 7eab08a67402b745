"""
Markdown — the small Markdown subset used in chapter summaries and lore.

Two renderers, matching the two places Markdown is shown:
  - render_markdown(): editor preview. Headings, bold/italic, list items,
    every newline becomes <br/>.
  - render_markdown_document(): printable export. Headings shifted down one
    level, list items wrapped in a single <ul>, blockquotes, paragraphs.

This is deliberately not a full CommonMark implementation; GMs write
short summaries with a handful of constructs.
"""

import html
import re
from xml.sax.saxutils import escape as xml_escape

_HEADING_3 = re.compile(r"^### (.*)$", re.MULTILINE)
_HEADING_2 = re.compile(r"^## (.*)$", re.MULTILINE)
_HEADING_1 = re.compile(r"^# (.*)$", re.MULTILINE)
_BOLD_ITALIC = re.compile(r"\*\*\*(.*?)\*\*\*")
_BOLD = re.compile(r"\*\*(.*?)\*\*")
_ITALIC = re.compile(r"\*(.*?)\*")
_DASH_ITEM = re.compile(r"^- (.*)$", re.MULTILINE)
_STAR_ITEM = re.compile(r"^\* (.*)$", re.MULTILINE)
_LIST_BLOCK = re.compile(r"(<li>.*</li>)", re.DOTALL)
_QUOTE = re.compile(r"^> (.*)$", re.MULTILINE)
_MARKUP_CHARS = re.compile(r"[#*_]")
_XML_QUOTES = {'"': "&quot;", "'": "&apos;"}


def escape_html(text: str) -> str:
    return html.escape(text, quote=True)


def escape_xml(text: str) -> str:
    return xml_escape(text, _XML_QUOTES)


def strip_markdown(text: str) -> str:
    """Drop heading/emphasis markers, e.g. for feed descriptions."""
    return _MARKUP_CHARS.sub("", text or "")


def render_markdown(text: str) -> str:
    """Editor preview renderer."""
    if not text:
        return ""
    rendered = _HEADING_3.sub(r"<h3>\1</h3>", text)
    rendered = _HEADING_2.sub(r"<h2>\1</h2>", rendered)
    rendered = _HEADING_1.sub(r"<h1>\1</h1>", rendered)
    rendered = _BOLD_ITALIC.sub(r"<strong><em>\1</em></strong>", rendered)
    rendered = _BOLD.sub(r"<strong>\1</strong>", rendered)
    rendered = _ITALIC.sub(r"<em>\1</em>", rendered)
    rendered = _DASH_ITEM.sub(r"<li>\1</li>", rendered)
    rendered = _STAR_ITEM.sub(r"<li>\1</li>", rendered)
    return rendered.replace("\n", "<br/>")


def render_markdown_document(text: str) -> str:
    """Export renderer; the whole text ends up inside <p> blocks."""
    rendered = _HEADING_3.sub(r"<h4>\1</h4>", text or "")
    rendered = _HEADING_2.sub(r"<h3>\1</h3>", rendered)
    rendered = _HEADING_1.sub(r"<h3>\1</h3>", rendered)
    rendered = _BOLD.sub(r"<strong>\1</strong>", rendered)
    rendered = _ITALIC.sub(r"<em>\1</em>", rendered)
    rendered = _DASH_ITEM.sub(r"<li>\1</li>", rendered)
    # One <ul> around everything from the first to the last item
    rendered = _LIST_BLOCK.sub(r"<ul>\1</ul>", rendered, count=1)
    rendered = _QUOTE.sub(r"<blockquote>\1</blockquote>", rendered)
    rendered = rendered.replace("\n\n", "</p><p>").replace("\n", "<br>")
    return f"<p>{rendered}</p>"
