"""Draft mode: picks, timeouts, settings and reconciliation."""

import random
from datetime import timedelta

import pytest

from goldenboot.config import EngineConfig
from goldenboot.errors import (
    AlreadyTakenError,
    InvalidSettingsError,
    InvalidTurnError,
    NotFoundError,
    SessionClosedError,
    SessionNotStartedError,
)
from goldenboot.models.league import FantasyTeam
from goldenboot.models.session import SessionStatus
from goldenboot.services import draft_service
from goldenboot.services.league_manager import create_league
from goldenboot.services.poller import TimeoutSweeper
from goldenboot.services.record_store import InMemoryRecordStore

from conftest import T0, at, make_players


def start(store, league, **settings):
    if settings:
        draft_service.update_draft_settings(store, league.league_id, **settings)
    return draft_service.start_draft(store, league.league_id, now=T0)


class TestSettings:
    def test_new_league_has_unstarted_draft(self, store, league):
        state = draft_service.get_draft_session(store, league.league_id)
        assert state.status == SessionStatus.NOT_STARTED
        assert state.order == ["A", "B"]
        assert state.max_rounds == 5

    def test_update_before_start(self, store, league):
        state = draft_service.update_draft_settings(
            store, league.league_id, order=["B", "A"], max_rounds=3, is_snake=True
        )
        assert state.order == ["B", "A"]
        assert state.current_participant == "B"
        assert state.max_rounds == 3 and state.is_snake

    def test_order_must_match_teams(self, store, league):
        with pytest.raises(InvalidSettingsError):
            draft_service.update_draft_settings(store, league.league_id, order=["A", "Z"])

    def test_settings_locked_after_start(self, store, league):
        start(store, league)
        with pytest.raises(InvalidSettingsError):
            draft_service.update_draft_settings(store, league.league_id, max_rounds=2)

    def test_unknown_league(self, store):
        with pytest.raises(NotFoundError):
            draft_service.start_draft(store, "000000")

    def test_scheduled_start_can_be_cleared(self, store, league):
        draft_service.update_draft_settings(store, league.league_id, scheduled_start=at(600))
        state = draft_service.update_draft_settings(store, league.league_id, max_rounds=3)
        assert state.scheduled_start == at(600)

        state = draft_service.update_draft_settings(store, league.league_id, clear_scheduled_start=True)
        assert state.scheduled_start is None
        draft_service.start_draft(store, league.league_id, now=T0)
        draft_service.submit_pick(store, league.league_id, "A", "5", now=at(1))

    def test_set_and_clear_together_rejected(self, store, league):
        with pytest.raises(InvalidSettingsError):
            draft_service.update_draft_settings(
                store, league.league_id, scheduled_start=at(600), clear_scheduled_start=True
            )


class TestPicks:
    def test_pick_before_start_rejected(self, store, league):
        with pytest.raises(SessionNotStartedError):
            draft_service.submit_pick(store, league.league_id, "A", "5", now=T0)

    def test_pick_before_scheduled_start_rejected(self, store, league):
        start(store, league, scheduled_start=at(600))
        with pytest.raises(SessionNotStartedError):
            draft_service.submit_pick(store, league.league_id, "A", "5", now=at(10))
        draft_service.submit_pick(store, league.league_id, "A", "5", now=at(601))

    def test_pick_advances_turn(self, store, league):
        start(store, league)
        pick = draft_service.submit_pick(store, league.league_id, "A", "5", now=at(1))
        assert pick.pick_number == 1
        turn = draft_service.get_draft_turn(store, league.league_id, now=at(1))
        assert turn["current_participant"] == "B"
        assert turn["pick_number"] == 2
        assert turn["round"] == 1

    def test_wrong_team_rejected(self, store, league):
        start(store, league)
        with pytest.raises(InvalidTurnError):
            draft_service.submit_pick(store, league.league_id, "B", "5", now=at(1))
        assert store.list_picks(league.league_id) == []

    def test_drafted_player_rejected(self, store, league):
        start(store, league)
        draft_service.submit_pick(store, league.league_id, "A", "5", now=at(1))
        with pytest.raises(AlreadyTakenError):
            draft_service.submit_pick(store, league.league_id, "B", "5", now=at(2))
        assert draft_service.get_draft_turn(store, league.league_id)["current_participant"] == "B"

    def test_unknown_player_rejected(self, store, league):
        start(store, league)
        with pytest.raises(NotFoundError):
            draft_service.submit_pick(store, league.league_id, "A", "999", now=at(1))

    def test_snake_draft_order(self, store, league):
        start(store, league, max_rounds=2, is_snake=True, timed=False)
        teams = []
        for i, player_id in enumerate(["5", "9", "2", "3"]):
            turn = draft_service.get_draft_turn(store, league.league_id)
            teams.append(turn["current_participant"])
            draft_service.submit_pick(store, league.league_id, turn["current_participant"], player_id, now=at(i))
        assert teams == ["A", "B", "B", "A"]

        state = draft_service.get_draft_session(store, league.league_id)
        assert state.status == SessionStatus.COMPLETED
        with pytest.raises(SessionClosedError):
            draft_service.submit_pick(store, league.league_id, "A", "7", now=at(10))

    def test_available_and_drafted_lists(self, store, league):
        start(store, league)
        draft_service.submit_pick(store, league.league_id, "A", "5", now=at(1))

        available = draft_service.list_available_players(store, league.league_id)
        assert "5" not in [p.id for p in available]
        assert available[0].id == "9"

        drafted = draft_service.list_drafted_players(store, league.league_id)
        assert drafted[0]["player_name"] == "Lionel Messi"
        assert drafted[0]["team_name"] == "Alpha FC"

    def test_available_search(self, store, league):
        results = draft_service.list_available_players(store, league.league_id, query="messi")
        assert results[0].id == "5"

    def test_available_for_unknown_league(self, store):
        with pytest.raises(NotFoundError):
            draft_service.list_available_players(store, "000000")


class TestTimeouts:
    def _run_auto_draft(self):
        store = InMemoryRecordStore()
        store.put_players(make_players())
        league = create_league(
            store, "Auto", "c@example.com",
            [FantasyTeam(team_id="A", team_name="Alpha"), FantasyTeam(team_id="B", team_name="Bravo")],
            rng=random.Random(1),
        )
        draft_service.start_draft(store, league.league_id, now=T0)
        sweeper = TimeoutSweeper(store, EngineConfig())
        for i in range(10):
            fired = sweeper.sweep(now=at(3 * (i + 1)))
            assert len(fired) == 1
        return store, league

    def test_two_teams_five_rounds_all_auto(self):
        store, league = self._run_auto_draft()
        picks = store.list_picks(league.league_id)
        assert [p.player_id for p in picks] == ["5", "9", "2", "3", "7", "11", "6", "12", "1", "4"]
        assert [p.team_drafted_by for p in picks] == ["A", "B"] * 5
        assert all(p.auto for p in picks)
        assert draft_service.get_draft_session(store, league.league_id).is_completed

    def test_auto_draft_is_reproducible(self):
        first, l1 = self._run_auto_draft()
        second, l2 = self._run_auto_draft()
        assert [p.player_id for p in first.list_picks(l1.league_id)] == [
            p.player_id for p in second.list_picks(l2.league_id)
        ]

    def test_nothing_fires_before_deadline(self, store, league):
        start(store, league)
        assert draft_service.auto_pick_if_expired(store, league.league_id, now=at(2)) is None
        assert draft_service.auto_pick_if_expired(store, league.league_id, now=at(3)).player_id == "5"

    def test_attended_team_gets_full_turn(self, store, league):
        draft_service.join_draft(store, league.league_id, "A", now=T0)
        state = start(store, league)
        assert state.deadline == T0 + timedelta(seconds=30)
        assert draft_service.auto_pick_if_expired(store, league.league_id, now=at(10)) is None

    def test_untimed_draft_never_auto_picks(self, store, league):
        start(store, league, timed=False)
        assert draft_service.auto_pick_if_expired(store, league.league_id, now=at(100_000)) is None

    def test_pool_exhausted_closes_draft(self, store, league):
        start(store, league, max_rounds=10, timed=True)
        sweeper = TimeoutSweeper(store)
        for i in range(13):
            sweeper.sweep(now=at(3 * (i + 1)))
        state = draft_service.get_draft_session(store, league.league_id)
        assert state.is_completed
        assert state.completion_reason == "pool_exhausted"
        assert len(store.list_picks(league.league_id)) == 12


class TestReconcile:
    def test_lagging_cursor_follows_pick_log(self, store, league):
        start(store, league)
        # Another writer's pick landed but its session write did not
        store.append_pick(league.league_id, "5", "A", at(1), 1)
        with pytest.raises(InvalidTurnError):
            draft_service.submit_pick(store, league.league_id, "A", "9", now=at(2))

        draft_service.submit_pick(store, league.league_id, "B", "9", now=at(2))
        state = draft_service.get_draft_session(store, league.league_id)
        assert (state.round, state.current_participant) == (2, "A")

    def test_rejected_session_write_is_reconciled(self, store, league):
        start(store, league)
        stale = draft_service.get_draft_session(store, league.league_id)
        # Bump the version behind the caller's back
        store.write_session_state(stale.session_id, stale.version, stale)

        original_read = store.read_session_state
        calls = {"n": 0}

        def read_once_stale(session_id):
            calls["n"] += 1
            return stale if calls["n"] == 1 else original_read(session_id)

        store.read_session_state = read_once_stale
        draft_service.submit_pick(store, league.league_id, "A", "5", now=at(1))
        store.read_session_state = original_read

        state = draft_service.get_draft_session(store, league.league_id)
        assert state.current_participant == "B"
        assert len(store.list_picks(league.league_id)) == 1


class TestReset:
    def test_reset_returns_to_not_started(self, store, league):
        start(store, league, max_rounds=3, is_snake=True)
        draft_service.submit_pick(store, league.league_id, "A", "5", now=at(1))
        state = draft_service.reset_draft(store, league.league_id)
        assert state.status == SessionStatus.NOT_STARTED
        assert state.max_rounds == 3 and state.is_snake
        assert store.list_picks(league.league_id) == []
        assert store.list_roster(league.league_id) == []
