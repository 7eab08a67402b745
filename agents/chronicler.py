"""
Chronicler Agent — Turns raw GM notes into a chapter write-up.

Admin-only helper. The GM pastes their scribbled notes after a session and
the Chronicler returns a narrative summary, key moments and the loot found,
all in French, ready to be reviewed and saved as a Chapter.
"""

import logging
from typing import Optional
from google import genai
from pydantic import ValidationError

from models.chapter_draft import ChapterDraft
from tools.rate_limiter import gemini_limiter

logger = logging.getLogger('Chronicler')


CHRONICLER_PROMPT = """Transform these raw RPG session notes into a structured narrative summary suitable for a campaign log.

Raw Notes:
{notes}

Output JSON format with:
- summary: A compelling paragraph narrating the events (in French).
- highlights: An array of strings, 3-5 key memorable moments (in French).
- loot: An array of strings, items found (in French).
"""


class ChroniclerAgent:
    """Structures session notes into a ChapterDraft."""

    def __init__(self, client, model_id: str = "gemini-2.5-flash"):
        self.client = client
        self.model_id = model_id

    async def enhance_session_summary(self, raw_notes: str) -> ChapterDraft:
        """Ask Gemini for {summary, highlights, loot}.

        Raises RuntimeError when no Gemini client is configured. An empty
        answer keeps the raw notes as summary; an answer that is not valid
        JSON becomes the summary as-is.
        """
        if self.client is None:
            raise RuntimeError("Gemini API key missing")

        await gemini_limiter.acquire()
        response = await self.client.aio.models.generate_content(
            model=self.model_id,
            contents=CHRONICLER_PROMPT.format(notes=raw_notes),
            config=genai.types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=ChapterDraft,
                temperature=0.7,
            ),
        )

        raw_text = (response.text or "").strip()
        if not raw_text:
            logger.warning("Chronicler got an empty response, keeping the raw notes")
            return ChapterDraft(summary=raw_notes)

        # Strip markdown code fences if present
        if raw_text.startswith('```'):
            raw_text = raw_text.split('\n', 1)[1] if '\n' in raw_text else ''
            raw_text = raw_text.rsplit('```', 1)[0].strip()

        try:
            draft = ChapterDraft.model_validate_json(raw_text)
        except ValidationError as e:
            logger.error(f"Chronicler output failed validation, using it as plain text: {e}")
            return ChapterDraft(summary=raw_text)

        logger.info(f"Chronicler draft: {len(draft.highlights)} highlights, {len(draft.loot)} loot")
        return draft

    @staticmethod
    def draft_to_chapter_fields(draft: ChapterDraft, existing: Optional[dict] = None) -> dict:
        """Merge a draft into chapter form fields, keeping anything the draft leaves empty."""
        fields = dict(existing or {})
        if draft.summary:
            fields["summary"] = draft.summary
        if draft.highlights:
            fields["highlights"] = draft.highlights
        if draft.loot:
            fields["loot"] = draft.loot
        return fields
