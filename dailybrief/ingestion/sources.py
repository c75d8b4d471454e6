"""Curated feed catalog and the interest → category lookup.

Tiers:
- 1 = wire services (highest trust)
- 2 = industry verticals
- 3 = business/finance
- 4 = niche/domain
- 5 = aggregator fallback
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence


GENERAL_CATEGORY = "General"


@dataclass(frozen=True)
class FeedSource:
    name: str
    url: str
    category: str
    tier: int
    kind: str = "article"  # article | podcast


RSS_SOURCES: List[FeedSource] = [
    # Tier 1: wire services
    FeedSource("BBC News - World", "https://feeds.bbci.co.uk/news/world/rss.xml", "General", 1),
    FeedSource("BBC News - Technology", "https://feeds.bbci.co.uk/news/technology/rss.xml", "Technology", 1),
    FeedSource("BBC News - Business", "https://feeds.bbci.co.uk/news/business/rss.xml", "Business", 1),
    FeedSource("NPR News", "https://feeds.npr.org/1001/rss.xml", "General", 1),
    FeedSource("The Hill", "https://thehill.com/homenews/feed/", "General", 1),
    # Tier 2: industry verticals
    FeedSource("TechCrunch", "https://techcrunch.com/feed/", "Technology", 2),
    FeedSource("Ars Technica", "https://feeds.arstechnica.com/arstechnica/index", "Technology", 2),
    FeedSource("The Verge", "https://www.theverge.com/rss/index.xml", "Technology", 2),
    FeedSource("Wired", "https://www.wired.com/feed/rss", "Technology", 2),
    FeedSource("MIT Technology Review", "https://www.technologyreview.com/feed/", "AI/ML", 2),
    FeedSource("VentureBeat", "https://venturebeat.com/feed/", "Technology", 2),
    FeedSource("Axios", "https://api.axios.com/feed/", "General", 2),
    # Tier 3: business & finance
    FeedSource("The Economist", "https://www.economist.com/latest/rss.xml", "Business", 3),
    FeedSource("Bloomberg Markets", "https://feeds.bloomberg.com/markets/news.rss", "Finance", 3),
    FeedSource("Forbes - Business", "https://www.forbes.com/business/feed/", "Business", 3),
    FeedSource("MarketWatch", "https://www.marketwatch.com/rss/topstories", "Finance", 3),
    FeedSource("WSJ - Markets", "https://feeds.a.dj.com/rss/RSSMarketsMain.xml", "Finance", 3),
    FeedSource("HBR", "https://feeds.harvardbusiness.org/harvardbusiness", "Leadership", 3),
    # Tier 4: niche / domain
    FeedSource("Hacker News (Best)", "https://hnrss.org/best", "Technology", 4),
    FeedSource("arXiv - CS.AI", "https://rss.arxiv.org/rss/cs.AI", "AI/ML", 4),
    FeedSource("Nature - Latest Research", "https://www.nature.com/nature.rss", "Science", 4),
    FeedSource("Healthcare IT News", "https://www.healthcareitnews.com/feed", "Healthcare", 4),
    FeedSource("CleanTechnica", "https://cleantechnica.com/feed/", "Climate", 4),
    FeedSource("Finextra", "https://www.finextra.com/rss/headlines.aspx", "Fintech", 4),
    FeedSource("DeepMind Blog", "https://deepmind.com/blog/feed/basic/", "AI/ML", 4),
    # Tier 5: aggregators (fallback)
    FeedSource("Google News - Top", "https://news.google.com/rss", "General", 5),
    FeedSource(
        "Google News - Technology",
        "https://news.google.com/rss/topics/CAAqJggKIiBDQkFTRWdvSUwyMHZNRGRqTVhZU0FtVnVHZ0pWVXlnQVAB",
        "Technology",
        5,
    ),
    FeedSource(
        "Google News - Business",
        "https://news.google.com/rss/topics/CAAqJggKIiBDQkFTRWdvSUwyMHZNRGx6TVdZU0FtVnVHZ0pWVXlnQVAB",
        "Business",
        5,
    ),
    # Podcasts
    FeedSource("HBR IdeaCast", "https://feeds.harvardbusiness.org/harvardbusiness/ideacast", "Leadership", 3, "podcast"),
    FeedSource("a16z Podcast", "https://a16z.simplecast.com/rss", "Technology", 2, "podcast"),
    FeedSource("The Vergecast", "https://feeds.megaphone.fm/vergecast", "Technology", 2, "podcast"),
    FeedSource("Lex Fridman Podcast", "https://lexfridman.com/feed/podcast/", "AI/ML", 3, "podcast"),
    FeedSource("Acquired", "https://acquired.libsyn.com/rss", "Business", 2, "podcast"),
    FeedSource(
        "All-In Podcast",
        "https://feeds.megaphone.fm/all-in-with-chamath-jason-sacks-friedberg",
        "Technology",
        2,
        "podcast",
    ),
    FeedSource("How I Built This", "https://feeds.npr.org/510313/podcast.xml", "Business", 2, "podcast"),
    FeedSource("Masters of Scale", "https://rss.art19.com/masters-of-scale", "Leadership", 3, "podcast"),
]


INTEREST_TO_CATEGORIES: Dict[str, List[str]] = {
    "AI/ML": ["AI/ML", "Technology"],
    "Technology": ["Technology"],
    "Leadership": ["Leadership", "Strategy"],
    "Fintech": ["Fintech", "Finance"],
    "Healthcare": ["Healthcare"],
    "Climate": ["Climate", "Science"],
    "Education": ["Education"],
    "Finance": ["Finance", "Fintech"],
    "Startups": ["Technology", "Finance"],
    "Product Management": ["Technology", "Strategy"],
    "Strategy": ["Strategy", "Leadership"],
    "Science": ["Science"],
    "Policy & Regulation": ["General"],
    "Marketing": ["Strategy", "Technology"],
    "Neuroscience": ["Science", "Healthcare"],
    "Remote Work": ["Leadership", "Technology"],
    "Cybersecurity": ["Technology"],
    "E-commerce": ["Technology", "Business"],
    "Media & Entertainment": ["General", "Technology"],
    "Real Estate": ["Finance", "Business"],
}


# Catalogs read by the onboarding flow.
SUGGESTED_INTERESTS = [
    "AI/ML", "Technology", "Leadership", "Fintech", "Healthcare",
    "Climate", "Education", "Finance", "Startups", "Product Management",
    "Strategy", "Science", "Policy & Regulation", "Marketing",
    "Neuroscience", "Remote Work", "Cybersecurity", "E-commerce",
    "Media & Entertainment", "Real Estate", "SaaS", "Supply Chain",
    "Mental Health", "Space", "Crypto/Web3", "Biotech",
]

INDUSTRIES = [
    "Technology", "Healthcare", "Financial Services", "Education",
    "Media & Entertainment", "Consumer Products", "Energy",
    "Manufacturing", "Real Estate", "Government", "Nonprofit",
    "Professional Services", "Retail", "Transportation",
    "Telecommunications", "Agriculture", "Legal", "Other",
]

SENIORITY_LEVELS = [
    ("IC", "Individual Contributor"),
    ("Manager", "Manager"),
    ("Director", "Director"),
    ("VP", "VP / SVP"),
    ("C-Suite", "C-Suite"),
    ("Founder", "Founder / Co-Founder"),
]


def categories_for_interests(interests: Iterable[str]) -> set:
    """Map interests to feed categories; "General" is always included."""
    categories = {GENERAL_CATEGORY}
    for interest in interests:
        categories.update(INTEREST_TO_CATEGORIES.get(interest, []))
    return categories


def select_sources(
    interests: Optional[Iterable[str]] = None,
    sources: Sequence[FeedSource] = RSS_SOURCES,
) -> List[FeedSource]:
    """Return the sources relevant to ``interests`` (all sources when none given)."""
    wanted = [i for i in (interests or []) if i]
    if not wanted:
        return list(sources)
    categories = categories_for_interests(wanted)
    return [s for s in sources if s.category in categories]
