"""Golden Boot table: transfer-adjusted goal credit and ranking."""

import pytest

from goldenboot.errors import NotFoundError
from goldenboot.models.draft import RosterEntry
from goldenboot.models.league import FantasyTeam, League
from goldenboot.models.player import Player
from goldenboot.services.standings import (
    IN_AND_OUT,
    ORIGINAL,
    TRANSFERRED_IN,
    TRANSFERRED_OUT,
    compute_standings,
    credited_goals,
    standings_frame,
)

from conftest import T0, at


class TestCreditedGoals:
    player = Player(id="1", name="Striker", goals=10)

    def test_original_owner_gets_season_total(self):
        entry = RosterEntry(player_id="1", team_id="A", acquired_at=T0)
        assert credited_goals(entry, self.player) == (10, ORIGINAL)

    def test_dropped_keeps_goals_up_to_drop(self):
        entry = RosterEntry(player_id="1", team_id="A", acquired_at=T0, dropped=True, goals_at_drop=6)
        assert credited_goals(entry, self.player) == (6, TRANSFERRED_OUT)

    def test_picked_up_counts_from_pickup(self):
        entry = RosterEntry(player_id="1", team_id="A", acquired_at=T0, via_transfer=True, goals_before_pickup=6)
        assert credited_goals(entry, self.player) == (4, TRANSFERRED_IN)

    def test_in_and_out(self):
        entry = RosterEntry(
            player_id="1", team_id="A", acquired_at=T0,
            via_transfer=True, goals_before_pickup=3, dropped=True, goals_at_drop=7,
        )
        assert credited_goals(entry, self.player) == (4, IN_AND_OUT)

    def test_never_negative(self):
        # Goal corrections can lower a season total below the pickup snapshot
        entry = RosterEntry(player_id="1", team_id="A", acquired_at=T0, via_transfer=True, goals_before_pickup=12)
        assert credited_goals(entry, self.player) == (0, TRANSFERRED_IN)


class TestComputeStandings:
    def test_transfers_split_credit(self, store, league):
        lid = league.league_id
        for n, (player_id, team_id) in enumerate([("5", "A"), ("9", "B"), ("2", "A"), ("3", "B")], start=1):
            store.append_pick(lid, player_id, team_id, at(n), n)
        # A drops Bouanga after 4 of his 6 goals and picks up White at 3 of 8
        store.release_player(lid, "2", "A", at(100), goals_at_drop=4)
        store.claim_player(lid, "10", "A", at(101), via_transfer=True, goals_before_pickup=3)
        # Bouanga later joins B, whose haul starts from 4
        store.claim_player(lid, "2", "B", at(200), via_transfer=True, goals_before_pickup=4)

        rows = compute_standings(store, lid)
        assert [(r["team_id"], r["total_goals"], r["rank"]) for r in rows] == [("A", 18, 1), ("B", 8, 2)]

        a_players = {p["player_id"]: (p["goals"], p["status"]) for p in rows[0]["players"]}
        assert a_players == {"5": (9, ORIGINAL), "10": (5, TRANSFERRED_IN), "2": (4, TRANSFERRED_OUT)}
        assert rows[0]["players"][0]["player_id"] == "5"

        b_players = {p["player_id"]: p["goals"] for p in rows[1]["players"]}
        assert b_players == {"9": 5, "3": 1, "2": 2}

    def test_ties_share_rank(self, store):
        store.put_league(League(league_id="T", name="Tied", teams=[
            FantasyTeam(team_id="Z", team_name="Zulu"),
            FantasyTeam(team_id="Y", team_name="Yankee"),
            FantasyTeam(team_id="X", team_name="X-Ray"),
        ]))
        store.append_pick("T", "7", "Z", T0, 1)  # 7 goals
        store.append_pick("T", "10", "Y", T0, 2)  # 8 goals
        store.append_pick("T", "8", "X", T0, 3)  # 3 goals
        store.claim_player("T", "4", "X", T0)  # 4 goals

        rows = compute_standings(store, "T")
        assert [(r["team_name"], r["total_goals"], r["rank"]) for r in rows] == [
            ("Yankee", 8, 1), ("X-Ray", 7, 2), ("Zulu", 7, 2),
        ]

    def test_empty_league(self, store, league):
        rows = compute_standings(store, league.league_id)
        assert [r["rank"] for r in rows] == [1, 1]
        assert [r["team_name"] for r in rows] == ["Alpha FC", "Bravo United"]

    def test_unknown_league(self, store):
        with pytest.raises(NotFoundError):
            compute_standings(store, "nope")


def test_standings_frame(store, league):
    store.append_pick(league.league_id, "5", "A", T0, 1)
    df = standings_frame(compute_standings(store, league.league_id))
    assert list(df.columns) == ["Rank", "Team", "Owner", "Goals", "Top Scorer", "Players"]
    assert df.iloc[0].to_dict() == {
        "Rank": 1, "Team": "Alpha FC", "Owner": "Ana", "Goals": 9, "Top Scorer": "Lionel Messi", "Players": 1,
    }
    assert df.iloc[1]["Top Scorer"] == ""
