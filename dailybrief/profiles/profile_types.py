"""User and profile records read from the preferences store."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class UserAccount:
    id: int
    email: str
    name: str = ""
    onboarding_completed: bool = False
    email_brief_enabled: bool = True


@dataclass(frozen=True)
class GoalEntry:
    text: str
    priority: int = 0


@dataclass(frozen=True)
class UserProfile:
    """Stored preferences; owned by the onboarding/settings flow."""

    user_id: int
    interests: List[str] = field(default_factory=list)
    goals: List[GoalEntry] = field(default_factory=list)
    role_title: Optional[str] = None
    seniority: Optional[str] = None
    industries: List[str] = field(default_factory=list)
    geography: Optional[str] = None
    linkedin_text: Optional[str] = None
    resume_text: Optional[str] = None

    @property
    def background(self) -> str:
        return (self.linkedin_text or self.resume_text or "").strip()

    @property
    def ordered_goals(self) -> List[str]:
        """Goal texts ordered by priority (stable for equal priorities)."""
        return [g.text for g in sorted(self.goals, key=lambda g: g.priority) if g.text]


def goals_from_json(raw: Any) -> List[GoalEntry]:
    """Parse the JSONB ``goals`` column ([{text, priority}] or plain strings)."""
    out: List[GoalEntry] = []
    if not isinstance(raw, list):
        return out
    for i, g in enumerate(raw):
        if isinstance(g, str) and g.strip():
            out.append(GoalEntry(text=g.strip(), priority=i))
        elif isinstance(g, dict) and str(g.get("text") or "").strip():
            try:
                priority = int(g.get("priority", i))
            except (TypeError, ValueError):
                priority = i
            out.append(GoalEntry(text=str(g["text"]).strip(), priority=priority))
    return out


@dataclass(frozen=True)
class ProfilePayload:
    """Profile as handed to the generation prompt."""

    interests: List[str]
    goals: List[str]
    role_title: str
    seniority: str
    industries: List[str]
    geography: str
    professional_background: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interests": list(self.interests),
            "goals": list(self.goals),
            "role_title": self.role_title,
            "seniority": self.seniority,
            "industries": list(self.industries),
            "geography": self.geography,
            "professional_background": self.professional_background,
        }
