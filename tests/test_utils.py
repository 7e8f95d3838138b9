import pytest

from morelike import utils


def test_normalize_title_drops_articles_and_punctuation():
    assert utils.normalize_title("The Dark Knight!") == "dark knight"
    assert utils.normalize_title("  An   Officer and a Gentleman ") == "officer and gentleman"
    assert utils.normalize_title("") == ""


def test_main_title_splits_on_subtitle_separators():
    assert utils.main_title("Baahubali: The Beginning") == "baahubali"
    assert utils.main_title("Mission - Impossible") == "mission"
    assert utils.main_title("Spider-Man") == "spider-man"


def test_token_similarity():
    assert utils.token_similarity("dark knight", "The Dark Knight Rises") == pytest.approx(2 / 3)
    assert utils.token_similarity("Knight Dark", "The Dark Knight") == 1.0
    assert utils.token_similarity("", "anything") == 0.0


def test_clamp():
    assert utils.clamp(5, 0, 3) == 3
    assert utils.clamp(-1.5, -1.0, 1.0) == -1.0
    assert utils.clamp(0.4, 0.0, 1.0) == 0.4


def test_retry_with_backoff_retries_then_succeeds(monkeypatch):
    sleeps = []
    monkeypatch.setattr(utils.time, "sleep", lambda s: sleeps.append(s))
    calls = {"n": 0}

    @utils.retry_with_backoff(max_retries=3, initial_delay=1.0, backoff_factor=2.0, exceptions=(ValueError,))
    def flaky():
        calls["n"] += 1
        if calls["n"] < 3:
            raise ValueError("boom")
        return "ok"

    assert flaky() == "ok"
    assert calls["n"] == 3
    assert sleeps == [1.0, 2.0]


def test_retry_with_backoff_reraises_after_last_attempt(monkeypatch):
    monkeypatch.setattr(utils.time, "sleep", lambda s: None)

    @utils.retry_with_backoff(max_retries=2, exceptions=(KeyError,))
    def always_fails():
        raise KeyError("missing")

    with pytest.raises(KeyError):
        always_fails()
