import pytest
from unittest.mock import patch

from dango.app import (
    EXIT_WORDS, SessionExitRequested, cmd_algorithm, cmd_import, run_review_session,
)
from dango.flashcards import add_card, get_all_cards, get_card, get_reviews
from dango.models import Algorithm, Rating
from dango.scheduler import Scheduler
from dango.settings import load_algorithm


def test_run_review_session_records_ratings(db, steady_scheduler):
    add_card(db, 1, "hola", "hello")
    add_card(db, 1, "gato", "cat")
    cards = get_all_cards(db)

    # Card 1: Enter to reveal, rate 3 (good). Card 2: Enter, rate 1 (again).
    with patch("dango.app.Prompt.ask", side_effect=["", "3", "", "1"]):
        reviewed = run_review_session(db, steady_scheduler, cards)

    assert reviewed == 2
    assert [r.rating for r in get_reviews(db)] == [Rating.GOOD, Rating.AGAIN]
    assert get_card(db, cards[0].id).repetitions == 1
    assert get_card(db, cards[1].id).repetitions == 0


def test_run_review_session_exits_on_q(db, steady_scheduler):
    """User types 'q' on the second card's reveal prompt; first card saved, exit raised."""
    add_card(db, 1, "hola", "hello")
    add_card(db, 1, "gato", "cat")
    cards = get_all_cards(db)

    with patch("dango.app.Prompt.ask", side_effect=["", "4", "q"]):
        with pytest.raises(SessionExitRequested):
            run_review_session(db, steady_scheduler, cards)

    reviews = get_reviews(db)
    assert [r.card_id for r in reviews] == [cards[0].id]
    assert reviews[0].rating is Rating.EASY


def test_run_review_session_exits_on_menu_at_rating(db, steady_scheduler):
    add_card(db, 1, "hola", "hello")
    cards = get_all_cards(db)

    with patch("dango.app.Prompt.ask", side_effect=["", "menu"]):
        with pytest.raises(SessionExitRequested):
            run_review_session(db, steady_scheduler, cards)

    assert get_reviews(db) == []
    assert get_card(db, cards[0].id).is_new


def test_run_review_session_exit_words_ignore_case(db, steady_scheduler):
    add_card(db, 1, "hola", "hello")
    with patch("dango.app.Prompt.ask", side_effect=[" QUIT "]):
        with pytest.raises(SessionExitRequested):
            run_review_session(db, steady_scheduler, get_all_cards(db))
    assert get_reviews(db) == []


def test_run_review_session_offers_ratings_and_exit_words(db, steady_scheduler):
    add_card(db, 1, "hola", "hello")
    with patch("dango.app.Prompt.ask", side_effect=["", "2"]) as ask:
        run_review_session(db, steady_scheduler, get_all_cards(db))

    rating_call = ask.call_args_list[1]
    assert rating_call.kwargs["choices"] == ["1", "2", "3", "4", *EXIT_WORDS]
    assert get_reviews(db)[0].rating is Rating.HARD


def test_run_review_session_empty(db, steady_scheduler):
    assert run_review_session(db, steady_scheduler, []) == 0


def test_cmd_algorithm_switches_and_persists(db):
    scheduler = Scheduler()
    with patch("dango.app.Prompt.ask", return_value="sm2"):
        cmd_algorithm(db, scheduler)
    assert scheduler.get_algorithm() is Algorithm.SM2
    assert load_algorithm(db) is Algorithm.SM2


def test_cmd_import(tmp_path, db):
    f = tmp_path / "cards.md"
    f.write_text("one\n===\nuno\n\n---\n\ntwo\n===\ndos\n", encoding="utf-8")
    with patch("dango.app.Prompt.ask", return_value=str(f)), \
            patch("dango.app.IntPrompt.ask", return_value=3):
        cmd_import(db)
    cards = get_all_cards(db)
    assert [c.front for c in cards] == ["one", "two"]
    assert all(c.deck_id == 3 for c in cards)
