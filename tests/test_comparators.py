import pytest

from record_linkage.config.models import TokenGranularity
from record_linkage.core.comparators import (
    EqualSimilarity,
    LevenshteinSimilarity,
    RecordComparatorEqual,
    RecordComparatorJaccard,
    RecordComparatorLevenshtein,
    TokenizingJaccardSimilarity,
    jaccard,
)
from record_linkage.core.errors import ConfigurationError, MissingAttributeError
from record_linkage.core.model import Attribute, Record
from record_linkage.core.preprocessor import NamePreprocessor


def _record(record_id: str, attribute: Attribute, value) -> Record:
    record = Record(record_id)
    record.set_value(attribute, value)
    return record


@pytest.mark.parametrize("first,second", [
    (set(), set()),
    ({"a"}, {"b"}),
    ({"a", "b", "c"}, {"b", "c", "d", "e"}),
    ({"x"}, {"x", "y"}),
])
def test_jaccard_is_symmetric(first, second) -> None:
    assert jaccard(first, second) == jaccard(second, first)


def test_jaccard_degenerate_sets() -> None:
    assert jaccard({"a", "b"}, {"a", "b"}) == 1.0
    assert jaccard(set(), set()) == 0.0


def test_equal_similarity_respects_case_setting() -> None:
    assert EqualSimilarity().compare("Campanile", "campanile") == 0.0
    assert EqualSimilarity(lower_case=True).compare("Campanile", "campanile") == 1.0


def test_levenshtein_similarity() -> None:
    measure = LevenshteinSimilarity()

    assert measure.compare("bravo", "bravx") == pytest.approx(0.8)
    assert measure.compare("", "") == 1.0
    assert measure.compare("abc", "") == 0.0


def test_missing_values_give_zero_similarity() -> None:
    for measure in (EqualSimilarity(), LevenshteinSimilarity(), TokenizingJaccardSimilarity()):
        assert measure.compare(None, "x") == 0.0
        assert measure.compare("x", None) == 0.0
        assert measure.compare(None, None) == 0.0


def test_word_jaccard_tokenizes_on_letters_and_digits() -> None:
    measure = TokenizingJaccardSimilarity(lower_case=True)

    assert measure.compare("Hotel Bel-Air", "hotel bel air") == 1.0
    assert measure.compare("12 Main St.", "12 Oak St") == pytest.approx(2 / 4)
    assert measure.compare("", "") == 0.0
    assert measure.compare("...", "!!!") == 0.0


def test_ngram_jaccard() -> None:
    measure = TokenizingJaccardSimilarity(granularity=TokenGranularity.NGRAM, ngram_size=2)

    assert measure.tokenize("abc") == {"ab", "bc"}
    assert measure.compare("abc", "abd") == pytest.approx(1 / 3)
    assert measure.tokenize("a") == {"a"}


def test_ngram_size_must_be_positive() -> None:
    with pytest.raises(ConfigurationError):
        TokenizingJaccardSimilarity(granularity=TokenGranularity.NGRAM, ngram_size=0)


def test_record_comparators_compare_two_attributes() -> None:
    title, name = Attribute("title"), Attribute("name")
    first = _record("a1", title, "Cafe Bizou")
    second = _record("b1", name, "cafe bizou")

    assert RecordComparatorEqual(title, name).compare(first, second) == 0.0
    assert RecordComparatorEqual(title, name, lower_case=True).compare(first, second) == 1.0
    assert RecordComparatorLevenshtein(title, name, lower_case=True).compare(first, second) == 1.0
    assert RecordComparatorEqual(title, name).name == "RecordComparatorEqual(title~name)"


def test_record_comparator_applies_preprocessor() -> None:
    name = Attribute("name")
    first = _record("a1", name, "Café  Bizou!")
    second = _record("b1", name, "cafe bizou")

    comparator = RecordComparatorEqual(name, preprocessor=NamePreprocessor())

    assert comparator.compare(first, second) == 1.0


def test_missing_attribute_is_zero_by_default_and_fails_in_strict_mode() -> None:
    name, city = Attribute("name"), Attribute("city")
    first = _record("a1", name, "alpha")
    second = _record("b1", city, "Los Angeles")

    assert RecordComparatorEqual(name).compare(first, second) == 0.0
    with pytest.raises(MissingAttributeError):
        RecordComparatorEqual(name, strict=True).compare(first, second)


def test_strict_mode_accepts_present_attribute_without_value() -> None:
    name = Attribute("name")
    first = _record("a1", name, None)
    second = _record("b1", name, "alpha")

    assert RecordComparatorLevenshtein(name, strict=True).compare(first, second) == 0.0


def test_jaccard_record_comparator_threshold_and_square() -> None:
    name = Attribute("name")
    first = _record("a1", name, "art s delicatessen")
    second = _record("b1", name, "art s deli")

    # tokens: {art, s, delicatessen} vs {art, s, deli} -> 2 / 4
    assert RecordComparatorJaccard(name).compare(first, second) == pytest.approx(0.5)
    assert RecordComparatorJaccard(name, squared=True).compare(first, second) == pytest.approx(0.25)
    assert RecordComparatorJaccard(name, threshold=0.5).compare(first, second) == 0.0


def test_jaccard_record_comparator_rejects_invalid_threshold() -> None:
    with pytest.raises(ConfigurationError):
        RecordComparatorJaccard(Attribute("name"), threshold=1.0)
