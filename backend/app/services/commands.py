"""Special commands answered by local game logic rather than text generation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from backend.app.models import Character, CharacterInventory, Item, Node
from backend.app.payloads import read_attributes
from backend.app.services.nodes import exits_for_node


SPECIAL_COMMANDS = ("inventory", "map", "stats", "help")

EMPTY_INVENTORY = "Your inventory is empty."

HELP_TEXT = (
    "=== HELP ===\n\n"
    "Special Commands:\n"
    "• INVENTORY - View your items\n"
    "• MAP - View your current location\n"
    "• STATS - View your character statistics\n"
    "• HELP - Display this help message\n\n"
    "For all other commands, simply type what you want to do and the AI will respond!\n"
    'Examples: "look around", "go north", "talk to the guard", etc.'
)


class UnknownCommandError(ValueError):
    def __init__(self, command: str) -> None:
        super().__init__(f"Unknown special command: {command}")
        self.command = command


@dataclass(frozen=True)
class CommandResult:
    response: str
    data: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"response": self.response}
        if self.data is not None:
            out["data"] = self.data
        return out


def normalize_command(command: str) -> str:
    return command.strip().lower()


def is_special_command(command: str) -> bool:
    return normalize_command(command) in SPECIAL_COMMANDS


def inventory(session: Session, character: Character) -> CommandResult:
    stmt = (
        select(CharacterInventory, Item)
        .join(Item, CharacterInventory.item_id == Item.id)
        .where(CharacterInventory.character_id == character.id)
        .order_by(Item.name.asc())
    )
    rows = session.execute(stmt).all()
    if not rows:
        return CommandResult(EMPTY_INVENTORY, {"items": []})

    items = []
    lines = ["=== INVENTORY ===", ""]
    for held, item in rows:
        items.append(
            {
                "id": held.id,
                "itemName": item.name,
                "itemDescription": item.description,
                "itemType": item.type,
                "quantity": held.quantity,
                "isEquipped": held.is_equipped,
            }
        )
        quantity = f" (x{held.quantity})" if held.quantity > 1 else ""
        equipped = " [EQUIPPED]" if held.is_equipped else ""
        lines.append(f"• {item.name}{quantity}{equipped}")
        if item.description:
            lines.append(f"  {item.description}")
        lines.append(f"  Type: {item.type}")
        lines.append("")

    return CommandResult("\n".join(lines).strip(), {"items": items})


def show_map(session: Session, character: Character) -> CommandResult:
    node = session.get(Node, character.node_id)
    if node is None:
        return CommandResult("Error: Unable to determine your current location.")

    exits = exits_for_node(session, node)
    lines = [
        "=== MAP ===",
        "",
        f"Current Location: {node.name}",
        f"Position: ({character.x}, {character.y})",
        f"Area Size: {node.width}x{node.height}",
    ]
    if exits:
        lines.append("Exits: " + ", ".join(f"{e.direction} ({e.node_name})" for e in exits))

    return CommandResult(
        "\n".join(lines),
        {
            "node": {"name": node.name, "width": node.width, "height": node.height},
            "position": {"x": character.x, "y": character.y, "z": character.z},
            "exits": [{"direction": e.direction, "nodeId": e.node_id, "name": e.node_name} for e in exits],
        },
    )


def stats(character: Character) -> CommandResult:
    attrs = read_attributes(character.attributes)
    lines = [
        "=== CHARACTER STATS ===",
        "",
        f"Name: {character.name}",
        f"Level: {attrs.level}",
        f"HP: {attrs.hp}/{attrs.max_hp}",
    ]
    for label, value in (
        ("Strength", attrs.strength),
        ("Dexterity", attrs.dexterity),
        ("Intelligence", attrs.intelligence),
        ("Experience", attrs.experience),
    ):
        if value is not None:
            lines.append(f"{label}: {value}")

    return CommandResult(
        "\n".join(lines),
        {"character": {"name": character.name, "attributes": attrs.to_payload()}},
    )


def run_special_command(session: Session, character: Character, command: str) -> CommandResult:
    name = normalize_command(command)
    if name == "inventory":
        return inventory(session, character)
    if name == "map":
        return show_map(session, character)
    if name == "stats":
        return stats(character)
    if name == "help":
        return CommandResult(HELP_TEXT)
    raise UnknownCommandError(command)
