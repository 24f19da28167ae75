import pytest

from result_portal.services.classifier import Matched, Unmatched, classify_sheet, sheet_tags


@pytest.mark.parametrize("name, expected", [
    ("Batch-9B", ("9", "B")),
    ("5d", ("5", "D")),
    ("Class 10 C", ("10", "C")),
    ("batch-09a", ("09", "A")),
    ("12  b", ("12", "B")),
])
def test_sheet_names_with_class_and_batch(name, expected):
    result = classify_sheet(name)
    assert isinstance(result, Matched)
    assert result.tags == expected


@pytest.mark.parametrize("name", ["Finals", "", "Batch-9E", "Summary 2024", "B9"])
def test_sheet_names_without_tag_fall_back_to_unknown(name):
    result = classify_sheet(name)
    assert isinstance(result, Unmatched)
    assert sheet_tags(name) == ("Unknown", "Unknown")


def test_first_match_in_name_wins():
    assert sheet_tags("9B and 10C") == ("9", "B")


@pytest.mark.parametrize("name", ["٩B", "Batch-١٠C", "９A"])
def test_non_ascii_digits_are_not_class_numbers(name):
    assert isinstance(classify_sheet(name), Unmatched)
