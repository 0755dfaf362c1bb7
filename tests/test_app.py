import pytest
from unittest.mock import patch

from medcards.app import (
    SessionExitRequested, cmd_filters, run_cram_session, run_study_session,
    session_int_prompt, session_prompt,
)
from medcards.models import CardState
from medcards.store import InMemoryCardStore, SQLiteCardStore
from medcards.seed import seed_all
from medcards.study import SessionManager


def test_session_exit_requested_is_exception():
    with pytest.raises(SessionExitRequested):
        raise SessionExitRequested()


def test_session_prompt_raises_on_q():
    with patch("medcards.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_raises_on_menu():
    with patch("medcards.app.Prompt.ask", return_value="menu"):
        with pytest.raises(SessionExitRequested):
            session_prompt("test prompt")


def test_session_prompt_returns_normal_input():
    with patch("medcards.app.Prompt.ask", return_value="hello"):
        result = session_prompt("test prompt")
        assert result == "hello"


def test_session_int_prompt_raises_on_q():
    with patch("medcards.app.Prompt.ask", return_value="q"):
        with pytest.raises(SessionExitRequested):
            session_int_prompt("rate", choices=["1", "2", "3", "4"])


def test_session_int_prompt_returns_normal_input():
    with patch("medcards.app.Prompt.ask", return_value="3"):
        result = session_int_prompt("rate", choices=["1", "2", "3", "4"])
        assert result == 3


def test_run_study_session_exits_on_q(tmp_db, clock):
    """User rates the first card, then types 'q' on the second card's reveal prompt."""
    store = SQLiteCardStore(tmp_db, clock=clock)
    seed_all(store, clock())
    manager = SessionManager(store, clock=clock)
    manager.start_session()
    first, second = manager.filtered_due_cards[:2]

    with patch("medcards.app.Prompt.ask", side_effect=["", "3", "q"]):
        run_study_session(manager)

    assert store.get(first.id).spaced_repetition.state is CardState.REVIEW
    assert store.get(second.id).spaced_repetition.state is CardState.NEW
    assert manager.session is None


def test_run_study_session_back_then_rate(make_card, clock):
    manager = SessionManager(InMemoryCardStore([make_card("a"), make_card("b")]), clock=clock)
    manager.start_session()
    manager.next_card()

    # 'b' steps back to card a, which is then revealed and failed; card b is rated easy.
    with patch("medcards.app.Prompt.ask", side_effect=["b", "", "1", "", "4"]):
        run_study_session(manager)

    assert manager.get_card("a").spaced_repetition.lapses == 1
    assert manager.get_card("b").spaced_repetition.interval == 4
    assert manager.current_card is None


def test_run_study_session_nothing_due(make_card, clock):
    manager = SessionManager(InMemoryCardStore([make_card("later", due_in_days=3)]), clock=clock)
    with patch("medcards.app.Prompt.ask") as ask:
        run_study_session(manager)
    ask.assert_not_called()
    assert manager.session is None


def test_run_cram_session(make_card, clock):
    store = InMemoryCardStore([
        make_card("missed", state=CardState.REVIEW, interval=2, reps=1, lapses=1, due_in_days=2),
        make_card("fine"),
    ])
    manager = SessionManager(store, clock=clock)
    with patch("medcards.app.Prompt.ask", side_effect=["", "3"]):
        run_cram_session(manager)
    assert store.get("missed").spaced_repetition.last_review == clock()
    assert store.writes == 1
    assert manager.cram is None


def test_cmd_filters_toggle_system(make_card, clock):
    manager = SessionManager(InMemoryCardStore([
        make_card("a", system="Renal"), make_card("b", system="Cardiology"),
    ]), clock=clock)
    with patch("medcards.app.Prompt.ask", side_effect=["systems", "Renal"]):
        cmd_filters(manager)
    assert [c.id for c in manager.filtered_due_cards] == ["a"]
    with patch("medcards.app.Prompt.ask", side_effect=["clear"]):
        cmd_filters(manager)
    assert manager.filters.is_empty()


def test_cmd_filters_lists_rotations(make_card, clock):
    manager = SessionManager(InMemoryCardStore([make_card("a", rotation="Surgery")]), clock=clock)
    with patch("medcards.app.console") as console, patch("medcards.app.Prompt.ask", return_value="done"):
        cmd_filters(manager)
    printed = [str(call.args[0]) for call in console.print.call_args_list if call.args]
    assert "[dim]Rotations: Surgery[/dim]" in printed
