"""Core Rolodex data models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True, slots=True)
class ContactRecord:
    """A single contact. Identity is carried by ``id`` alone."""

    id: str
    name: str
    phone: str


@dataclass(slots=True)
class MealRecord:
    id: str
    title: str
    description: str
    type: str
    price: float
    calories: float
    image_url: str
    size: str


@dataclass(slots=True)
class MenuRecord:
    """A restaurant menu with its meals in display order."""

    id: str
    title: str
    restaurant_name: str
    meals: List[MealRecord] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class MatchSpan:
    """Half-open character range of a field value that aligned to the query."""

    field: str
    start: int
    end: int
    text: str


@dataclass(slots=True)
class MatchResult:
    record: ContactRecord
    score: float
    spans: List[MatchSpan] = field(default_factory=list)


CONTACT_FIELDS = ("id", "name", "phone")
REQUIRED_CONTACT_FIELDS = ("name", "phone")
