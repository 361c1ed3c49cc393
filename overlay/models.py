from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union


@dataclass(frozen=True)
class ParentCandidate:
    # Budkrig (istarget=False) eller enkelt mål (istarget=True)
    pk: Any
    name: str
    total: float
    game: Optional[str]
    category: Optional[str]
    description: Optional[str]
    end_time: Optional[int]  # epoch ms
    is_target: bool
    goal: float
    allow_user_options: bool

    def to_bid(self) -> Dict[str, Any]:
        bid: Dict[str, Any] = {
            "id": self.pk,
            "name": self.name,
            "total": self.total,
            "game": self.game,
            "category": self.category,
            "description": self.description,
            "end_time": self.end_time,
        }
        if self.is_target:
            bid["goal"] = self.goal
        else:
            bid["war"] = True
            bid["allow_user_options"] = self.allow_user_options
            bid["options"] = []
        return bid


@dataclass(frozen=True)
class ChildCandidate:
    # Et alternativ i et budkrig, koblet til forelder via parent-id
    pk: Any
    parent: Any
    name: str
    total: float

    def to_option(self) -> Dict[str, Any]:
        return {
            "id": self.pk,
            "parent": self.parent,
            "name": self.name,
            "total": self.total,
        }


Candidate = Union[ParentCandidate, ChildCandidate]
