"""Narrative Generator: profile + candidates -> validated GeneratedBrief."""

from __future__ import annotations

import logging
from typing import Sequence

from dailybrief.briefs.brief_validation import parse_generation_output, validate_brief
from dailybrief.briefs.generation import TextGenerator
from dailybrief.briefs.prompt import ArticlePayload, build_prompt, build_system_prompt
from dailybrief.contracts.daily_brief import GeneratedBrief
from dailybrief.errors import BriefGenerationError
from dailybrief.profiles.profile_types import ProfilePayload

logger = logging.getLogger(__name__)


class NarrativeGenerator:
    def __init__(
        self,
        generator: TextGenerator,
        *,
        word_budget: int = 900,
        min_items: int = 6,
        max_items: int = 10,
        include_narration: bool = False,
    ):
        self.generator = generator
        self.word_budget = word_budget
        self.min_items = min_items
        self.max_items = max_items
        self.include_narration = include_narration

    def generate(self, profile: ProfilePayload, articles: Sequence[ArticlePayload], today: str) -> GeneratedBrief:
        if not articles:
            raise BriefGenerationError("no candidate articles to generate from")

        system = build_system_prompt(word_budget=self.word_budget, include_narration=self.include_narration)
        user = build_prompt(
            profile,
            articles,
            today,
            word_budget=self.word_budget,
            min_items=self.min_items,
            max_items=self.max_items,
            include_narration=self.include_narration,
        )
        logger.info(f"[generate] generating brief from {len(articles)} candidates")

        raw = parse_generation_output(self.generator.complete(system, user))
        brief = validate_brief(
            raw,
            articles,
            today,
            word_budget=self.word_budget,
            min_items=self.min_items,
            max_items=self.max_items,
            include_narration=self.include_narration,
        )
        if not brief.items:
            raise BriefGenerationError("generation produced no usable items")

        logger.info(f"[generate] brief ready: {len(brief.items)} items, {brief.total_word_count} words")
        return brief
