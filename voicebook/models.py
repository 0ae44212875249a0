"""Shared value types passed between the voice core and its collaborators."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class User:
    """A signed-in user or a chat peer."""

    id: str
    name: str = ""
    username: str = ""

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "username": self.username}

    @classmethod
    def from_dict(cls, data: dict) -> "User":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name") or ""),
            username=str(data.get("username") or ""),
        )
