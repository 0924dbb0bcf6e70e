"""Typed views over the JSON payload columns (character attributes, node terrain)."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class CharacterAttributes(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    # Stored attributes are free-form; values are shown as stored, whatever their type.
    level: Any = 1
    hp: Any = 100
    max_hp: Any = Field(100, alias="maxHp")
    strength: Any = None
    dexterity: Any = None
    intelligence: Any = None
    experience: Any = None

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Terrain(BaseModel):
    model_config = ConfigDict(extra="allow")

    tiles: list[Any] = Field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump()


def read_attributes(payload: dict[str, Any] | None) -> CharacterAttributes:
    return CharacterAttributes.model_validate(payload or {})


def read_terrain(payload: dict[str, Any] | None) -> Terrain:
    return Terrain.model_validate(payload or {})
