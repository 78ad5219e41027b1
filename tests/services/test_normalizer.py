from __future__ import annotations

import pytest

from clinidex.app.services.search_pipeline.normalizer import (
    DefaultSearchNormalizer,
    canonicalize,
    prefix_expression,
)


def test_normalizes_punctuated_query() -> None:
    normalized = DefaultSearchNormalizer().normalize("  AHA/ACC  Guideline!!  ")

    assert normalized.canonical == "aha acc guideline"
    assert normalized.prefix_expression == "aha* AND acc* AND guideline*"
    assert normalized.original == "AHA/ACC  Guideline!!"
    assert normalized.tokens == ["aha", "acc", "guideline"]
    assert normalized.has_query


@pytest.mark.parametrize("raw", [None, "", "   ", "\t\n"])
def test_absent_input_yields_empty_outputs(raw: str | None) -> None:
    normalized = DefaultSearchNormalizer().normalize(raw)

    assert normalized.canonical == ""
    assert normalized.prefix_expression == ""
    assert normalized.original == ""
    assert not normalized.has_query


def test_punctuation_only_keeps_original_but_has_no_canonical_text() -> None:
    normalized = DefaultSearchNormalizer().normalize(" !!/?? ")

    assert normalized.canonical == ""
    assert normalized.prefix_expression == ""
    assert normalized.original == "!!/??"
    assert not normalized.has_query


def test_underscores_are_treated_as_separators() -> None:
    assert canonicalize("beta_blocker") == "beta blocker"


def test_non_ascii_letters_survive() -> None:
    assert canonicalize("Études Cliniques") == "études cliniques"


def test_prefix_expression_of_empty_text_is_empty() -> None:
    assert prefix_expression("") == ""
    assert prefix_expression("blood") == "blood*"
