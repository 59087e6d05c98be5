from __future__ import annotations

from prompt_aggregator.engine import Classifier, Difficulty


def test_categorize_matches_keyword_families() -> None:
    classifier = Classifier()
    categories = classifier.categorize(
        "Startup pitch", "Write a marketing story for my software business."
    )
    assert categories == {"business", "creative", "technical"}


def test_categorize_uses_word_starts() -> None:
    classifier = Classifier()
    assert "creative" not in classifier.categorize("Restart", "Please restart the heart monitor.")


def test_categorize_falls_back_to_source_defaults_then_general() -> None:
    classifier = Classifier()
    assert classifier.categorize("Hello", "Say hello politely.", ["greetings"]) == {"greetings"}
    assert classifier.categorize("Hello", "Say hello politely.") == {"general"}
    assert classifier.categorize("Hello", "Say hello politely.", ["", ""]) == {"general"}


def test_extract_tags_from_role_phrases() -> None:
    classifier = Classifier()
    tags = classifier.extract_tags(
        "Linux Terminal",
        "I want you to act as a linux terminal. You are  senior admin. Role: helper",
    )
    assert tags == ["a linux terminal", "senior admin", "helper"]


def test_extract_tags_drops_long_phrases_and_caps_count() -> None:
    classifier = Classifier()
    body = " ".join(f"act as t{i}." for i in range(9))
    body += " act as an extremely long and wordy role description."
    tags = classifier.extract_tags("", body)
    assert tags == ["t0", "t1", "t2", "t3", "t4"]


def test_assess_difficulty_thresholds() -> None:
    classifier = Classifier()
    assert classifier.assess_difficulty("Short prompt.") is Difficulty.BEGINNER
    assert classifier.assess_difficulty("x" * 150) is Difficulty.INTERMEDIATE
    assert classifier.assess_difficulty("x" * 400) is Difficulty.ADVANCED
    assert classifier.assess_difficulty("x" * 700) is Difficulty.EXPERT
    assert classifier.assess_difficulty("Use {a} {b} [c] $d | e") is Difficulty.ADVANCED


def test_detect_language_by_script() -> None:
    classifier = Classifier()
    assert classifier.detect_language("כתוב לי שיר") == "he"
    assert classifier.detect_language("Напиши стихотворение") == "ru"
    assert classifier.detect_language("Write a poem") is None
