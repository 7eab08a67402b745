"""
CampaignMuse — Plot twist and encounter ideas for the GM.

A brainstorming partner, never a source of stored content: whatever it
returns is shown to the admin and nothing is written.
"""

import logging
from typing import Optional

from tools.rate_limiter import gemini_limiter

logger = logging.getLogger('CampaignMuse')

NOT_CONFIGURED = "API Key not configured."
GENERATION_ERROR = "Error generating content. Please check your API key."
NO_RESPONSE = "No response generated."

IDEAS_PROMPT = """I am a Game Master for a tabletop RPG.
Campaign Pitch: "{pitch}"
Genre/Universe: "{genre}"

Generate 3 creative ideas for the next major plot twist or a unique encounter that fits this theme.
Keep it concise and inspiring. Format as a bulleted list in French."""


class CampaignMuse:
    """Generates three plot ideas from a campaign pitch."""

    def __init__(self, client, model_id: str = "gemini-2.5-flash"):
        self.client = client
        self.model_id = model_id

    async def generate_campaign_ideas(self, pitch: str, genre: str) -> str:
        """Always returns displayable text, including on failure."""
        if self.client is None:
            return NOT_CONFIGURED

        try:
            await gemini_limiter.acquire()
            response = await self.client.aio.models.generate_content(
                model=self.model_id,
                contents=IDEAS_PROMPT.format(pitch=pitch, genre=genre),
            )
        except Exception as e:
            logger.error(f"Gemini error while generating ideas: {e}")
            return GENERATION_ERROR

        text: Optional[str] = response.text
        return text or NO_RESPONSE
