"""Tests for the special commands: inventory, map, stats, help."""

import pytest

from backend.app.models import CharacterInventory, Item
from backend.app.services.characters import get_or_create_player_character
from backend.app.services.commands import (
    EMPTY_INVENTORY,
    HELP_TEXT,
    UnknownCommandError,
    run_special_command,
)
from backend.app.services.nodes import connect_nodes


USER_ID = "00000000-0000-0000-0000-000000000001"


@pytest.fixture
def player(session, world):
    character, _ = get_or_create_player_character(session, world.id, USER_ID)
    return character


def _give(session, character, name, *, quantity=1, equipped=False, description=None, type="misc"):
    item = Item(name=name, description=description, type=type)
    session.add(item)
    session.add(CharacterInventory(character=character, item=item, quantity=quantity, is_equipped=equipped))
    session.commit()
    return item


class TestInventory:
    def test_empty_inventory(self, session, player):
        result = run_special_command(session, player, "inventory")
        assert result.response == EMPTY_INVENTORY == "Your inventory is empty."
        assert result.data == {"items": []}

    def test_sorted_by_name(self, session, player):
        _give(session, player, "Torch")
        _give(session, player, "Apple", type="consumable")
        _give(session, player, "Map Fragment")
        result = run_special_command(session, player, "inventory")
        assert [i["itemName"] for i in result.data["items"]] == ["Apple", "Map Fragment", "Torch"]
        assert result.response.index("Apple") < result.response.index("Map Fragment") < result.response.index("Torch")

    def test_quantity_and_equipped_annotations(self, session, player):
        _give(session, player, "Arrow", quantity=12)
        _give(session, player, "Sword", equipped=True, description="A notched blade.", type="weapon")
        _give(session, player, "Coin", quantity=1)
        text = run_special_command(session, player, "inventory").response
        assert text.startswith("=== INVENTORY ===")
        assert "• Arrow (x12)\n" in text
        assert "• Sword [EQUIPPED]\n  A notched blade.\n  Type: weapon" in text
        assert "• Coin\n" in text
        assert "Coin (x1)" not in text

    def test_is_idempotent(self, session, player):
        _give(session, player, "Rope")
        first = run_special_command(session, player, "inventory")
        second = run_special_command(session, player, "inventory")
        assert first == second

    def test_data_row_shape(self, session, player):
        _give(session, player, "Shield", equipped=True, type="armor")
        row = run_special_command(session, player, "inventory").data["items"][0]
        assert row["itemName"] == "Shield"
        assert row["itemType"] == "armor"
        assert row["quantity"] == 1
        assert row["isEquipped"] is True


class TestMap:
    def test_starting_area(self, session, player):
        result = run_special_command(session, player, "map")
        assert "Current Location: Starting Area" in result.response
        assert "Position: (5, 5)" in result.response
        assert "Area Size: 10x10" in result.response
        assert "Exits:" not in result.response
        assert result.data["node"] == {"name": "Starting Area", "width": 10, "height": 10}
        assert result.data["position"] == {"x": 5, "y": 5, "z": 0}
        assert result.data["exits"] == []

    def test_lists_exits_with_derived_directions(self, session, world, player, make_node):
        forest = make_node(world, name="Dark Forest")
        cellar = make_node(world, name="Cellar")
        connect_nodes(session, player.node, forest, 0, 1, 0)
        connect_nodes(session, player.node, cellar, 0, 0, -1)
        result = run_special_command(session, player, "map")
        assert "north (Dark Forest)" in result.response
        assert "down (Cellar)" in result.response
        assert {e["direction"] for e in result.data["exits"]} == {"north", "down"}


class TestStats:
    def test_default_stats(self, session, player):
        result = run_special_command(session, player, "stats")
        assert "Name: Player" in result.response
        assert "Level: 1" in result.response
        assert "HP: 100/100" in result.response
        assert "Strength" not in result.response
        assert result.data["character"]["attributes"] == {"level": 1, "hp": 100, "maxHp": 100}

    def test_optional_attributes(self, session, player):
        player.attributes = {"level": 4, "hp": 30, "maxHp": 60, "strength": 12, "experience": 0}
        session.commit()
        text = run_special_command(session, player, "stats").response
        assert "Level: 4" in text
        assert "HP: 30/60" in text
        assert "Strength: 12" in text
        assert "Experience: 0" in text
        assert "Dexterity" not in text
        assert "Intelligence" not in text

    def test_free_form_values_are_shown_as_stored(self, session, player):
        player.attributes = {"level": "veteran", "hp": 99.5, "maxHp": 100, "strength": 12.5, "experience": 10.5}
        session.commit()
        result = run_special_command(session, player, "stats")
        assert "Level: veteran" in result.response
        assert "HP: 99.5/100" in result.response
        assert "Strength: 12.5" in result.response
        assert "Experience: 10.5" in result.response
        assert result.data["character"]["attributes"]["strength"] == 12.5


class TestHelpAndUnknown:
    def test_help(self, session, player):
        result = run_special_command(session, player, " HELP ")
        assert result.response == HELP_TEXT
        assert result.data is None
        assert result.to_dict() == {"response": HELP_TEXT}

    def test_unknown_command(self, session, player):
        with pytest.raises(UnknownCommandError, match="Unknown special command: dance"):
            run_special_command(session, player, "dance")

    @pytest.mark.parametrize("raw", ["Inventory", "  MAP", "stats  "])
    def test_case_insensitive_dispatch(self, session, player, raw):
        assert run_special_command(session, player, raw).response
