import pytest

from similarity import levenshtein_distance, title_similarity


@pytest.mark.parametrize("s", ["", "a", "Clean Code", "The Great Gatsby: A Novel"])
def test_distance_to_self_is_zero(s):
    assert levenshtein_distance(s, s) == 0
    assert title_similarity(s, s) == 1.0


@pytest.mark.parametrize(
    "a, b, expected",
    [
        ("kitten", "sitting", 3),
        ("flaw", "lawn", 2),
        ("", "abc", 3),
        ("abc", "", 3),
        ("book", "back", 2),
    ],
)
def test_levenshtein_known_values(a, b, expected):
    assert levenshtein_distance(a, b) == expected
    assert levenshtein_distance(b, a) == expected


def test_similarity_ignores_case():
    assert title_similarity("CLEAN CODE", "clean code") == 1.0


def test_similarity_gatsby_subtitle_above_threshold():
    # 25 chars, distance 9 => 16/25
    assert title_similarity("The Great Gatsby", "The Great Gatsby: A Novel") == pytest.approx(0.64)


def test_similarity_long_title_below_threshold():
    assert title_similarity("Clean Code", "Clean Code: A Handbook of Agile Software Craftsmanship") < 0.6
