"""
ChapterDraft — the validated shape of an AI-enhanced session summary.

The Chronicler asks Gemini to turn raw GM notes into a summary, a handful of
highlights and the loot found. Nothing reaches a Chapter without passing
through this model first.
"""

from typing import List

from pydantic import BaseModel, Field, field_validator


class ChapterDraft(BaseModel):
    summary: str = ""
    highlights: List[str] = Field(default_factory=list)
    loot: List[str] = Field(default_factory=list)

    model_config = {"extra": "ignore"}

    @field_validator("highlights", "loot", mode="before")
    @classmethod
    def coerce_list(cls, v):
        """Accept null, a single string, or a list with blanks."""
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        return [str(item).strip() for item in v if str(item).strip()]
