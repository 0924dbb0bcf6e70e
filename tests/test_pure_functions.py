"""Tests for pure helpers: direction labels, payload models, command classification, SSE framing."""

import json

import pytest

from backend.app.directions import direction_label
from backend.app.payloads import CharacterAttributes, Terrain, read_attributes, read_terrain
from backend.app.services.commands import SPECIAL_COMMANDS, is_special_command, normalize_command
from backend.app.services.game import sse


class TestDirectionLabel:
    @pytest.mark.parametrize(
        "vector,label",
        [
            ((1, 0, 0), "east"),
            ((-3, 0, 0), "west"),
            ((0, 2, 0), "north"),
            ((0, -1, 0), "south"),
            ((1, 1, 0), "northeast"),
            ((-1, 1, 0), "northwest"),
            ((5, -5, 0), "southeast"),
            ((-1, -2, 0), "southwest"),
            ((0, 0, 1), "up"),
            ((0, 0, -4), "down"),
            ((0, 1, 1), "north and up"),
            ((-1, -1, -1), "southwest and down"),
        ],
    )
    def test_labels_by_sign(self, vector, label):
        assert direction_label(*vector) == label

    def test_magnitude_is_ignored(self):
        assert direction_label(10, 0, 0) == direction_label(1, 0, 0)

    def test_zero_vector_rejected(self):
        with pytest.raises(ValueError):
            direction_label(0, 0, 0)

    def test_dz_defaults_to_zero(self):
        assert direction_label(0, 1) == "north"


class TestCharacterAttributes:
    def test_default_payload(self):
        assert CharacterAttributes().to_payload() == {"level": 1, "hp": 100, "maxHp": 100}

    def test_reads_camel_case_max_hp(self):
        attrs = read_attributes({"level": 3, "hp": 40, "maxHp": 80})
        assert attrs.max_hp == 80

    def test_unknown_keys_survive_round_trip(self):
        payload = {"level": 2, "hp": 10, "maxHp": 20, "aiBehaviour": "patrol"}
        assert read_attributes(payload).to_payload() == payload

    def test_missing_payload_uses_defaults(self):
        attrs = read_attributes(None)
        assert (attrs.level, attrs.hp, attrs.max_hp) == (1, 100, 100)


class TestTerrain:
    def test_default_is_empty_tiles(self):
        assert Terrain().to_payload() == {"tiles": []}

    def test_extra_keys_kept(self):
        assert read_terrain({"tiles": [1], "exits": {"n": 1}}).to_payload() == {"tiles": [1], "exits": {"n": 1}}


class TestCommandClassification:
    @pytest.mark.parametrize("raw", ["inventory", "  Inventory ", "INVENTORY\n", "\tmap", "Stats", " HELP "])
    def test_special_commands_ignore_case_and_whitespace(self, raw):
        assert is_special_command(raw)

    @pytest.mark.parametrize("raw", ["look around", "inventory please", "go north", "", "maps"])
    def test_everything_else_is_narrative(self, raw):
        assert not is_special_command(raw)

    def test_normalize(self):
        assert normalize_command("  Inventory ") == "inventory"

    def test_fixed_set(self):
        assert set(SPECIAL_COMMANDS) == {"inventory", "map", "stats", "help"}


class TestSSE:
    def test_frames_json_event(self):
        frame = sse({"chunk": "hi"})
        assert frame.startswith("data: ")
        assert frame.endswith("\n\n")
        assert json.loads(frame[len("data: "):]) == {"chunk": "hi"}

    def test_done_event(self):
        assert sse({"done": True}) == 'data: {"done": true}\n\n'
