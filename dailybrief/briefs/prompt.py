"""Prompt construction for daily brief generation.

The model gets a *bounded* evidence pack: the user's profile plus every
candidate article with its exact URL. It must answer with a single JSON object.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Sequence

from dailybrief.profiles.profile_types import ProfilePayload


@dataclass(frozen=True)
class ArticlePayload:
    index: int
    title: str
    source_url: str
    source_name: str
    published_at: str
    content: str


SYSTEM_PROMPT = """You are the reader's sharp, well-read friend who goes through the day's news so they don't have to. You break it down clearly, connect each story to the bigger picture, and always explain why it matters to this specific person.

YOUR #1 JOB: Tell a coherent story.
This brief is not a list of random headlines. It is a narrative:
- Open with the biggest, most consequential story of the day.
- Each following item should feel like the natural next beat. Use light transitions in summaries ("Meanwhile...", "On the other side of that coin...").
- End with something forward-looking: a "watch this space" item.
- NEVER include two items that cover essentially the same story or angle. If several articles cover one event, pick the best and cite the others as extra source_links.
- Aim for topic diversity across the brief.

Your voice:
- Accessible, never dumb. Concise and punchy. Short sentences.
- Provocative when warranted: name the tension, ask the sharp question.
- No corporate buzzwords, no filler.

What you NEVER do:
- Invent, guess, or modify URLs. Only use URLs given in the ARTICLES section, copied exactly.
- Fabricate facts, statistics, or quotes not in the source material.

Constraints:
- Total brief: 6-10 items, at most {word_budget} words in total.
- Each item: a clear title (rewrite clickbait), a 2-3 sentence summary, a 1-2 sentence "why it matters" tied to the reader's stated goals, and 1-3 source links.
- Return ONLY valid JSON matching the schema below. No markdown, no preamble, no commentary outside the JSON.

Required JSON schema:
{{
  "brief_date": "YYYY-MM-DD",
  "total_word_count": <number>,
  "narrative_thread": "<1 sentence describing today's throughline>",{narration_fields}
  "items": [
    {{
      "position": <1-10>,
      "title": "<clear, punchy title>",
      "summary": "<2-3 sentences, factual with personality>",
      "why_it_matters": "<1-2 sentences connecting to the reader's goals>",
      "relevance_score": <0.0-1.0>,
      "topics": ["<topic1>", "<topic2>"],
      "source_links": [
        {{ "url": "<exact URL from input>", "label": "<source name>" }}
      ]
    }}
  ]
}}"""

NARRATION_FIELDS = """
  "opening": "<1-2 sentence opener that sets up the day>",
  "closing": "<1-2 sentence sign-off that looks ahead>","""


def build_system_prompt(*, word_budget: int = 900, include_narration: bool = False) -> str:
    return SYSTEM_PROMPT.format(
        word_budget=word_budget,
        narration_fields=NARRATION_FIELDS if include_narration else "",
    )


def _profile_section(profile: ProfilePayload) -> List[str]:
    lines = [
        "=== WHO YOU'RE WRITING FOR ===",
        f"ROLE: {profile.role_title} ({profile.seniority})",
        f"INDUSTRIES: {', '.join(profile.industries) or 'Not specified'}",
        f"GEOGRAPHY: {profile.geography}",
        f"INTERESTS: {', '.join(profile.interests) or 'Not specified'}",
        "",
        "STATED GOALS (in priority order):",
    ]
    if profile.goals:
        lines.extend(f"  {i}. {g}" for i, g in enumerate(profile.goals, 1))
    else:
        lines.append("  (none stated)")
    lines.extend(["", "PROFESSIONAL BACKGROUND:", profile.professional_background])
    return lines


def _article_card(a: ArticlePayload) -> str:
    return "\n".join(
        [
            f"[{a.index}] Title: {a.title}",
            f"    URL: {a.source_url}",
            f"    Source: {a.source_name}",
            f"    Published: {a.published_at}",
            f"    Content: {' '.join((a.content or '').split())}",
            "    ---",
        ]
    )


def build_prompt(
    profile: ProfilePayload,
    articles: Sequence[ArticlePayload],
    today: str,
    *,
    word_budget: int = 900,
    min_items: int = 6,
    max_items: int = 10,
    include_narration: bool = False,
) -> str:
    """Build the user prompt with the profile and the candidate articles."""
    narration = (
        ["Also write a short opening and closing. They count toward the word budget.", ""]
        if include_narration
        else []
    )
    sections = [
        "You are generating a daily brief for a specific reader. Here is their profile:",
        "",
        *_profile_section(profile),
        "",
        f"Today's date: {today}",
        "",
        f"Below are {len(articles)} candidate articles, ranked by estimated relevance. "
        f"Select the {min_items}-{max_items} most relevant and write the brief.",
        "",
        "NARRATIVE ARC:",
        "- Items 1-2: lead with the day's biggest story. Set the tone.",
        "- Items 3-4: expand the picture with related angles.",
        "- Items 5-6: shift to a different domain. Show range.",
        "- Last items: close with something forward-looking or provocative.",
        "",
        "For each item, write a why_it_matters that connects the article to this reader's SPECIFIC goals "
        "and role, not generic advice.",
        "",
        *narration,
        "CRITICAL RULES:",
        "1. Only use URLs from the ARTICLES section below. Do NOT generate, guess, or modify any URL.",
        "2. Every source_link url must exactly match a URL from the articles below.",
        f"3. Keep the total word count under {word_budget} words.",
        "4. Each item should be under 120 words.",
        "5. No two items should cover the same story or the same angle.",
        "6. Return ONLY the JSON object. Nothing else.",
        "",
        "ARTICLES:",
        "\n".join(_article_card(a) for a in articles),
    ]
    return "\n".join(sections)
