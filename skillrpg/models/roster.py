"""
Roster and Skill Tree Models.

Fighters are the tracked personnel; skills live in categories that make up
the skill tree.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any


@dataclass
class Fighter:
    """A tracked individual whose skill XP is recorded in the ledger."""
    id: str
    name: str
    full_name: Optional[str] = None
    callsign: Optional[str] = None
    rank: Optional[str] = None
    unit: Optional[str] = None
    notes: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.callsign or self.name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "full_name": self.full_name,
            "callsign": self.callsign,
            "rank": self.rank,
            "unit": self.unit,
            "notes": self.notes,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Fighter":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            full_name=data.get("full_name", data.get("fullName")),
            callsign=data.get("callsign"),
            rank=data.get("rank"),
            unit=data.get("unit"),
            notes=data.get("notes"),
        )


@dataclass
class Skill:
    """A named competency inside a category."""
    id: str
    name: str
    description: str = ""
    tags: List[str] = field(default_factory=list)
    is_archived: bool = False
    updated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "tags": list(self.tags),
            "is_archived": self.is_archived,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Skill":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            description=data.get("description") or "",
            tags=list(data.get("tags") or []),
            is_archived=bool(data.get("is_archived", data.get("isArchived", False))),
            updated_at=data.get("updated_at"),
        )


@dataclass
class Category:
    """A group of skills."""
    id: str
    name: str
    skills: List[Skill] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "skills": [s.to_dict() for s in self.skills],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            skills=[Skill.from_dict(s) for s in data.get("skills", [])],
        )


@dataclass
class SkillTree:
    """The full skill catalog."""
    categories: List[Category] = field(default_factory=list)
    version: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "categories": [c.to_dict() for c in self.categories],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SkillTree":
        return cls(
            categories=[Category.from_dict(c) for c in data.get("categories", [])],
            version=int(data.get("version", 1)),
        )
