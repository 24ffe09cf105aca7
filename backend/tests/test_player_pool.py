"""Player pool import, fuzzy search and goal updates."""

import pytest

from goldenboot.errors import NotFoundError
from goldenboot.services.player_pool import (
    get_player_or_raise,
    import_dynamo_players,
    load_players_csv,
    normalize_name,
    search_players,
    set_player_goals,
    update_goals,
)
from goldenboot.services.record_store import InMemoryRecordStore
from goldenboot.utils.dynamo import deserialize_item, deserialize_scan, deserialize_value

from conftest import make_players


class TestCsvImport:
    def test_aliased_columns(self):
        store = InMemoryRecordStore()
        csv = b"ID,Player,Club,goals_2025,Goals,isNew\n17,Test Striker,ATL,11,4,true\n"
        players = load_players_csv(store, csv)
        assert len(players) == 1
        p = store.get_player("17")
        assert (p.name, p.team, p.goals_prior, p.goals, p.is_new) == ("Test Striker", "ATL", 11, 4, True)

    def test_blank_cells_default(self):
        store = InMemoryRecordStore()
        players = load_players_csv(store, b"name,team,goals\nNo Id Guy,,\n")
        assert players[0].goals == 0 and players[0].team == ""
        assert len(players[0].id) == 8

    def test_rows_without_name_skipped(self):
        store = InMemoryRecordStore()
        players = load_players_csv(store, b"id,name\n1,Someone\n2,\n")
        assert [p.id for p in players] == ["1"]

    def test_missing_name_column(self):
        with pytest.raises(ValueError):
            load_players_csv(InMemoryRecordStore(), b"id,goals\n1,3\n")

    def test_reimport_upserts(self):
        store = InMemoryRecordStore()
        load_players_csv(store, b"id,name,goals\n1,Someone,1\n")
        load_players_csv(store, b"id,name,goals\n1,Someone,5\n")
        assert len(store.list_players()) == 1
        assert store.get_player("1").goals == 5


class TestDynamo:
    def test_value_types(self):
        assert deserialize_value({"S": "x"}) == "x"
        assert deserialize_value({"N": "12"}) == 12
        assert deserialize_value({"N": "1.5"}) == 1.5
        assert deserialize_value({"BOOL": False}) is False
        assert deserialize_value({"NULL": True}) is None
        assert deserialize_value({"L": [{"N": "1"}, {"S": "a"}]}) == [1, "a"]
        assert deserialize_value({"M": {"k": {"S": "v"}}}) == {"k": "v"}
        assert deserialize_value({"SS": ["a", "b"]}) == {"a", "b"}
        assert deserialize_value({"NS": ["1", "2"]}) == {1, 2}

    def test_rejects_unknown_or_malformed(self):
        with pytest.raises(ValueError):
            deserialize_value({"B": "AAAA"})
        with pytest.raises(ValueError):
            deserialize_value({"S": "a", "N": "1"})
        with pytest.raises(ValueError):
            deserialize_value({"N": "lots"})
        with pytest.raises(ValueError):
            deserialize_value({"N": "Infinity"})
        with pytest.raises(ValueError):
            deserialize_value({"L": "not-a-list"})

    def test_scan_must_be_a_list_of_items(self):
        with pytest.raises(ValueError):
            deserialize_scan([1, 2])
        with pytest.raises(ValueError):
            deserialize_scan({"Items": "nope"})
        with pytest.raises(ValueError):
            import_dynamo_players(InMemoryRecordStore(), [["id"]])

    def test_scan_shapes(self):
        item = {"id": {"S": "1"}}
        assert deserialize_scan({"Items": [item]}) == deserialize_scan([item]) == [{"id": "1"}]
        assert deserialize_item({}) == {}

    def test_import_players(self):
        store = InMemoryRecordStore()
        payload = {"Items": [{
            "id": {"S": "17"},
            "name": {"S": "Hosted Player"},
            "team": {"S": "SEA"},
            "goals_2025": {"N": "12"},
            "goals": {"N": "3"},
            "isNewToTeam": {"BOOL": True},
        }]}
        import_dynamo_players(store, payload)
        p = store.get_player("17")
        assert p.goals_prior == 12 and p.goals == 3 and p.is_new_to_team


class TestSearch:
    def test_normalize_name(self):
        assert normalize_name("  Luis  Suárez ") == "luis suarez"
        assert normalize_name("D'Avilla-Jr.") == "davillajr"

    def test_partial_name(self):
        assert search_players(make_players(), "messi")[0].id == "5"

    def test_accent_insensitive(self):
        assert search_players(make_players(), "hernandez")[0].id == "4"

    def test_empty_query_returns_all(self):
        players = make_players()
        assert search_players(players, "  ") == players

    def test_limit(self):
        assert len(search_players(make_players(), "a", limit=2)) <= 2


class TestGoalUpdates:
    def test_fuzzy_name_match(self, store):
        result = update_goals(store, {"Luis Suarez": 4, "Messi Lionel": 10, "Nobody Atall": 2})
        assert result["matched"] == 2
        assert result["unmatched"] == 1
        assert result["updated"] == 2
        assert store.get_player("1").goals == 4
        assert store.get_player("5").goals == 10

    def test_unchanged_goals_not_counted(self, store):
        assert update_goals(store, {"Lionel Messi": 9})["updated"] == 0

    def test_prior_season_field(self, store):
        update_goals(store, {"Evander": 9}, field="goals_prior")
        assert store.get_player("12").goals_prior == 9

    def test_unknown_field(self, store):
        with pytest.raises(ValueError):
            update_goals(store, {"Evander": 9}, field="assists")

    def test_set_single_player(self, store):
        assert set_player_goals(store, "10", 11).goals == 11
        assert get_player_or_raise(store, "10").goals == 11
        with pytest.raises(NotFoundError):
            set_player_goals(store, "404", 1)
