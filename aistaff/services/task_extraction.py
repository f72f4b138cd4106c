"""
Task Extraction - turns a finished assistant reply into to-do titles

The system prompt (services/context_assembler.py, services/memory_profile.py)
tells the model to phrase action items as "I'll ..." sentences. This module is
the other half of that contract: it splits a reply into sentences and runs an
ordered list of action-phrase rules over each one, first match wins.

Usage:
    from aistaff.services.task_extraction import extract_tasks

    extract_tasks("I'll draft a plan. I will review it tomorrow. That's all.")
    # ["draft a plan", "review it tomorrow"]
"""

import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern, Tuple

from aistaff.db.models import utcnow

MIN_TITLE_LENGTH = 5     # exclusive
MAX_TITLE_LENGTH = 200   # exclusive
DEFAULT_DUE_IN = timedelta(days=7)

_APOSTROPHE = "['’]"

# (name, pattern); group 1 is the task title. Order matters.
TASK_RULES: List[Tuple[str, Pattern[str]]] = [
    ("will", re.compile(rf"\bI(?:{_APOSTROPHE}ll|\s+will)\s+(.+)", re.IGNORECASE)),
    ("let_me", re.compile(r"^Let me\s+(.+)", re.IGNORECASE)),
    ("can", re.compile(r"^I can\s+(.+)", re.IGNORECASE)),
    ("should", re.compile(r"^I should\s+(.+)", re.IGNORECASE)),
    ("task_label", re.compile(r"^Task:\s*(.+)", re.IGNORECASE)),
    ("action_label", re.compile(r"^Action:\s*(.+)", re.IGNORECASE)),
    ("todo_label", re.compile(r"^To-?do:\s*(.+)", re.IGNORECASE)),
    ("need_to", re.compile(r"^(?:We\s+)?(?:need to|should)\s+(.+)", re.IGNORECASE)),
    ("going_to", re.compile(rf"^(?:I{_APOSTROPHE}m|I am)\s+going to\s+(.+)", re.IGNORECASE)),
    ("sequenced", re.compile(rf"^(?:First|Then|Next|Finally|Also),?\s+I{_APOSTROPHE}ll\s+(.+)", re.IGNORECASE)),
]

_EMPHASIS = re.compile(r"\*\*|__|\*")
_LIST_MARKER = re.compile(r"^\s*(?:[-•]|\d+[.)])\s+", re.MULTILINE)
_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+|\n+")
_TRAILING_PUNCTUATION = re.compile(r"[\s.!?,;:]+$")


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class Task:
    """A client-side to-do item"""
    title: str
    description: Optional[str] = None
    completed: bool = False
    priority: TaskPriority = TaskPriority.MEDIUM
    due_date: Optional[datetime] = None
    ai_generated: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "completed": self.completed,
            "priority": self.priority.value,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "ai_generated": self.ai_generated,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        due = data.get("due_date")
        created = data.get("created_at")
        return cls(
            id=data.get("id") or str(uuid.uuid4()),
            title=data["title"],
            description=data.get("description"),
            completed=bool(data.get("completed", False)),
            priority=TaskPriority(data.get("priority") or TaskPriority.MEDIUM.value),
            due_date=datetime.fromisoformat(due) if due else None,
            ai_generated=bool(data.get("ai_generated", False)),
            created_at=datetime.fromisoformat(created) if created else utcnow(),
        )


def strip_emphasis(text: str) -> str:
    """Remove markdown bold/italic markers and list bullets."""
    return _LIST_MARKER.sub("", _EMPHASIS.sub("", text))


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_BREAK.split(text) if s and s.strip()]


def match_task(sentence: str) -> Optional[str]:
    """Title captured by the first matching rule, or None."""
    for _name, pattern in TASK_RULES:
        match = pattern.search(sentence)
        if match:
            return _TRAILING_PUNCTUATION.sub("", match.group(1)).strip()
    return None


def extract_tasks(reply: str) -> List[str]:
    """
    Extract task titles from an assistant reply, in reply order.

    A title is kept when MIN_TITLE_LENGTH < len < MAX_TITLE_LENGTH and it has
    not already been taken from this reply (exact, case-sensitive).
    """
    if not reply:
        return []

    titles: List[str] = []
    for sentence in split_sentences(strip_emphasis(reply)):
        title = match_task(sentence)
        if title is None:
            continue
        if not (MIN_TITLE_LENGTH < len(title) < MAX_TITLE_LENGTH):
            continue
        if title in titles:
            continue
        titles.append(title)
    return titles


def tasks_from_reply(reply: str, now: Optional[datetime] = None) -> List[Task]:
    """Build medium-priority, AI-generated tasks due a week from ``now``."""
    now = now or utcnow()
    return [
        Task(
            title=title,
            priority=TaskPriority.MEDIUM,
            due_date=now + DEFAULT_DUE_IN,
            ai_generated=True,
            created_at=now,
        )
        for title in extract_tasks(reply)
    ]
