import pytest

from parc_import.similarity import best_similarity, levenshtein_ratio, similarity


def test_identical_strings_score_one_regardless_of_case_and_padding():
    assert similarity("Marque", "marque") == 1.0
    assert similarity("  Propriétaire ", "PROPRIÉTAIRE") == 1.0
    assert similarity("", "") == 1.0


@pytest.mark.parametrize(
    "a, b",
    [("marque", "marq"), ("date", "date d'achat"), ("serial", "série"), ("os", "processeur"), ("", "abc")],
)
def test_similarity_is_symmetric_and_bounded(a, b):
    assert similarity(a, b) == similarity(b, a)
    assert 0.0 <= similarity(a, b) <= 1.0


def test_containment_scores_by_length_ratio():
    assert similarity("date", "date d'achat") == pytest.approx(4 / 12)
    assert similarity("départ", "département") == pytest.approx(6 / 11)


def test_levenshtein_ratio_normalizes_by_longer_string():
    assert levenshtein_ratio("kitten", "sitting") == pytest.approx(4 / 7)
    assert levenshtein_ratio("abc", "xyz") == 0.0


def test_best_similarity_picks_closest_candidate():
    candidate, score = best_similarity("marq", ["brand", "make", "marque"])
    assert candidate == "marque"
    assert score == pytest.approx(4 / 6)


def test_best_similarity_with_no_candidates():
    assert best_similarity("marque", []) == (None, 0.0)
