"""Data classes for the revision tracker domain model."""
from dataclasses import dataclass, field
from datetime import date
from typing import Optional

DIFFICULTIES = ("easy", "medium", "hard")

STUDY = "study"
REVISION = "revision"


@dataclass
class MainTopic:
    id: int
    owner: str
    title: str
    description: str = ""
    creation_date: int = 0


@dataclass
class SubTopic:
    id: int
    owner: str
    main_topic_id: int
    title: str
    difficulty: str
    study_date: int
    description: str = ""
    current_interval_index: int = 0
    completed: bool = False
    creation_date: int = 0
    last_reviewed: Optional[int] = None
    main_topic_title: str = ""


@dataclass
class IntervalSettings:
    easy_intervals: list[int]
    medium_intervals: list[int]
    hard_intervals: list[int]
    preferred_review_days: set[int] = field(default_factory=set)

    def for_difficulty(self, difficulty: str) -> list[int]:
        return list(getattr(self, f"{difficulty}_intervals"))


@dataclass
class RevisionSchedule:
    owner: str
    subtopic_id: int
    review_statuses: list[bool] = field(default_factory=list)
    slot_shifts: list[int] = field(default_factory=list)
    review_count: int = 0
    next_review: Optional[int] = None  # None once every slot is complete

    @property
    def is_reviewed(self) -> bool:
        """True when no pending revision remains."""
        return all(self.review_statuses)


@dataclass
class PlannedItem:
    subtopic_id: int
    title: str
    difficulty: str
    kind: str  # STUDY or REVISION
    timestamp: int
    date_key: date
    revision_number: Optional[int] = None
    completed: bool = False
