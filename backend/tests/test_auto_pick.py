"""Tests for the deterministic auto-pick policy."""

from goldenboot.models.player import Player
from goldenboot.services.auto_pick import (
    TRANSFER_METRIC,
    id_sort_key,
    rank_players,
    select_auto_pick,
)

from conftest import make_players


def test_highest_prior_goals_first():
    assert select_auto_pick(make_players(), taken=set()).id == "5"


def test_taken_players_excluded():
    assert select_auto_pick(make_players(), taken={"5", "9"}).id == "2"


def test_ties_broken_by_lowest_id():
    # 2 and 3 both scored 12
    assert select_auto_pick(make_players(), taken={"5", "9"}).id == "2"
    assert select_auto_pick(make_players(), taken={"5", "9", "2"}).id == "3"


def test_numeric_ids_compare_as_numbers():
    players = [Player(id="10", name="Ten", goals_prior=4), Player(id="9", name="Nine", goals_prior=4)]
    assert select_auto_pick(players, taken=set()).id == "9"
    assert sorted(["b", "10", "a", "9"], key=id_sort_key) == ["9", "10", "a", "b"]


def test_exhausted_pool_returns_none():
    players = make_players()
    assert select_auto_pick(players, taken={p.id for p in players}) is None


def test_same_inputs_same_choice():
    taken = {"5", "2"}
    first = select_auto_pick(make_players(), taken)
    for _ in range(5):
        assert select_auto_pick(list(reversed(make_players())), taken) == first


def test_transfer_metric_uses_current_goals():
    assert select_auto_pick(make_players(), taken=set(), metric=TRANSFER_METRIC).id == "5"
    assert select_auto_pick(make_players(), taken={"5"}, metric=TRANSFER_METRIC).id == "10"


def test_rank_players_order():
    ranked = [p.id for p in rank_players(make_players())]
    assert ranked == ["5", "9", "2", "3", "7", "11", "6", "12", "1", "4", "8", "10"]
