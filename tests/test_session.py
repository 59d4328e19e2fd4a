"""Tests for solo games, snapshots and the session store."""

import json
import logging

import pytest
from bananagrams.client import (
    GAME_STATE_VERSION,
    GameSession,
    SessionStore,
    SoloGame,
    deserialize_game_state,
    serialize_game_state,
)
from bananagrams.game import LetterBag, Tile, TOTAL_TILES
from bananagrams.verifiers import WordValidator


def game_total(game):
    return game.remaining_count + len(game.player_hand) + len(game.tiles)


class TestSoloGame:
    """Single-player play against a private bag."""

    def test_create_draws_starting_hand(self):
        """A new game holds 21 tiles numbered from hand-1."""
        game = SoloGame.create(seed=1)
        assert len(game.player_hand) == 21
        assert game.remaining_count == TOTAL_TILES - 21
        assert game.tile_counter == 22
        assert [t.id for t in game.player_hand[:2]] == ["hand-1", "hand-2"]

    def test_trade_in(self):
        """Trading one tile draws three and conserves the tile total."""
        game = SoloGame.create(seed=2)
        traded = game.player_hand[0]
        new_tiles = game.trade_in_tile(traded.id)
        assert len(new_tiles) == 3
        assert len(game.player_hand) == 23
        assert game_total(game) == TOTAL_TILES
        assert traded.id not in {t.id for t in game.player_hand}

    def test_trade_in_unknown(self):
        """Trading a tile not in hand raises."""
        with pytest.raises(KeyError):
            SoloGame.create(seed=2).trade_in_tile("nope")

    def test_place_last_tile_refills(self):
        """Emptying the hand onto the board draws three more."""
        game = SoloGame.create(seed=3)
        for i, tile in enumerate(list(game.player_hand)):
            game.place_tile(tile.id, i)
        assert len(game.tiles) == 21
        assert len(game.player_hand) == 3
        assert game_total(game) == TOTAL_TILES

    def test_place_rejects_bad_cells(self):
        """Occupied and out-of-grid cells are refused."""
        game = SoloGame.create(seed=3, grid_size=5)
        first, second = game.player_hand[:2]
        game.place_tile(first.id, 0)
        with pytest.raises(ValueError):
            game.place_tile(second.id, 0)
        with pytest.raises(ValueError):
            game.place_tile(second.id, 25)

    def test_move_and_remove(self):
        """A placed tile can move and go back to the hand."""
        game = SoloGame.create(seed=4)
        tile = game.player_hand[0]
        game.place_tile(tile.id, 10)
        game.move_tile(tile.id, 11)
        assert game.tile_at(11).id == tile.id
        game.remove_tile_from_board(tile.id)
        assert game.tiles == []
        assert len(game.player_hand) == 21

    def test_is_solved(self):
        """Solved once the hand and bag are empty and the board is valid."""
        game = SoloGame(
            letter_bag=LetterBag.empty(),
            player_hand=[Tile(id="a", letter="H"), Tile(id="b", letter="I")],
        )
        validator = WordValidator.from_words(["HI"])
        assert game.is_solved(validator) is False

        game.place_tile("a", 0)
        game.place_tile("b", 1)
        assert game.player_hand == []
        assert game.is_solved(validator) is True


class TestSnapshots:
    """Versioned JSON snapshots of a solo game."""

    def test_round_trip(self):
        """A saved game restores to the same board, hand and bag."""
        game = SoloGame.create(seed=5)
        game.place_tile(game.player_hand[0].id, 12)
        restored = deserialize_game_state(serialize_game_state(game))

        assert restored.tiles == game.tiles
        assert restored.player_hand == game.player_hand
        assert restored.letter_bag.counts == game.letter_bag.counts
        assert restored.tile_counter == game.tile_counter

    def test_snapshot_is_camel_case(self):
        """Snapshot keys use camelCase."""
        data = json.loads(serialize_game_state(SoloGame.create(seed=6)))
        assert data["version"] == GAME_STATE_VERSION
        assert {"tiles", "playerHand", "letterBag", "tileCounter", "timestamp"} <= set(data)
        assert sum(item["count"] for item in data["letterBag"]) == TOTAL_TILES - 21

    @pytest.mark.parametrize("data", [None, "", "   "])
    def test_empty_starts_fresh(self, data):
        """Missing data starts a new game."""
        game = deserialize_game_state(data)
        assert len(game.player_hand) == 21
        assert game.tiles == []

    def test_malformed_starts_fresh(self, caplog):
        """Data of the wrong shape is logged and replaced."""
        with caplog.at_level(logging.WARNING):
            game = deserialize_game_state('{"tiles": "nope"}')
        assert len(game.player_hand) == 21
        assert "malformed" in caplog.text

    def test_not_json_starts_fresh(self):
        """Text that is not JSON starts a new game."""
        assert len(deserialize_game_state("{{{").player_hand) == 21

    def test_version_mismatch_still_loads(self, caplog):
        """An older version is logged and read anyway."""
        data = json.loads(serialize_game_state(SoloGame.create(seed=7)))
        data["version"] = "0.9"
        with caplog.at_level(logging.WARNING):
            game = deserialize_game_state(json.dumps(data))
        assert "version mismatch" in caplog.text
        assert len(game.player_hand) == 21
        assert game.remaining_count == TOTAL_TILES - 21

    def test_accepts_content_key(self):
        """Board tiles may carry their letter under ``content``."""
        data = {
            "version": GAME_STATE_VERSION,
            "tiles": [{"id": "hand-1", "content": "a", "position": 3}],
            "playerHand": [],
            "letterBag": [{"letter": "B", "count": 2}],
            "tileCounter": 2,
        }
        game = deserialize_game_state(json.dumps(data))
        assert game.tiles[0].letter == "A"
        assert game.remaining_count == 2

    @pytest.mark.parametrize("changes", [
        {"letterBag": [{"letter": "?", "count": 2}]},
        {"letterBag": [{"letter": "AB", "count": 2}]},
        {"letterBag": [{"letter": "B", "count": 1}, {"letter": "b", "count": 1}]},
        {"tiles": [{"id": "hand-1", "letter": "A", "position": 225}]},
        {"tiles": [
            {"id": "hand-1", "letter": "A", "position": 3},
            {"id": "hand-2", "letter": "B", "position": 3},
        ]},
        {"playerHand": [{"id": "hand-1", "letter": "C"}]},
        {"tileCounter": 1},
    ])
    def test_inconsistent_snapshot_starts_fresh(self, changes, caplog):
        """Snapshots that parse but cannot describe a real game are discarded."""
        data = {
            "version": GAME_STATE_VERSION,
            "tiles": [{"id": "hand-1", "letter": "A", "position": 3}],
            "playerHand": [],
            "letterBag": [{"letter": "B", "count": 2}],
            "tileCounter": 2,
        }
        data.update(changes)
        with caplog.at_level(logging.WARNING):
            game = deserialize_game_state(json.dumps(data))
        assert "malformed" in caplog.text
        assert game.tiles == []
        assert len(game.player_hand) == 21
        assert game.remaining_count == TOTAL_TILES - 21

    def test_position_checked_against_grid_size(self):
        """The same cell may fit one grid and not a smaller one."""
        data = {
            "tiles": [{"id": "hand-1", "letter": "A", "position": 30}],
            "tileCounter": 2,
        }
        assert deserialize_game_state(json.dumps(data), grid_size=15).tiles[0].position == 30
        assert deserialize_game_state(json.dumps(data), grid_size=5).tiles == []

    def test_counter_ignores_other_ids(self):
        """Only ``hand-<n>`` ids constrain the tile counter."""
        data = {
            "playerHand": [{"id": "t-99", "letter": "A"}, {"id": "hand-4", "letter": "B"}],
            "tileCounter": 5,
        }
        game = deserialize_game_state(json.dumps(data))
        assert [t.id for t in game.player_hand] == ["t-99", "hand-4"]
        assert game.tile_counter == 5


class TestSessionStore:
    """Best-effort session persistence."""

    def test_save_and_load(self, tmp_path):
        """A saved session is found by id and by pin."""
        store = SessionStore(tmp_path / "sessions.json")
        game = SoloGame.create(seed=8)
        session = store.save(GameSession(), game)

        assert store.get(session.game_id).pin == session.pin
        assert store.get_by_pin(session.pin).game_id == session.game_id
        loaded = store.load_game(session.game_id)
        assert loaded.player_hand == game.player_hand

    def test_recent_newest_first(self, tmp_path):
        """Recent sessions are capped at five, newest first."""
        store = SessionStore(tmp_path / "sessions.json")
        ids = [store.save(GameSession()).game_id for _ in range(7)]
        recent = store.recent()
        assert len(recent) == 5
        assert recent[0].game_id == ids[-1]

    def test_delete_and_clear(self, tmp_path):
        """Deleting twice reports the second miss; clearing removes all."""
        store = SessionStore(tmp_path / "sessions.json")
        session = store.save(GameSession())
        assert store.delete(session.game_id) is True
        assert store.delete(session.game_id) is False
        store.save(GameSession())
        store.clear()
        assert store.recent() == []

    def test_corrupt_file_reads_empty(self, tmp_path):
        """An unreadable file reads as no sessions."""
        path = tmp_path / "sessions.json"
        path.write_text("not json", encoding="utf-8")
        store = SessionStore(path)
        assert store.recent() == []
        assert store.load_game("missing") is None
