from __future__ import annotations

import pytest

from clinidex.app.services.autocomplete import AutocompleteResolver
from clinidex.app.services.search_config import AutocompleteLimits


@pytest.fixture
def resolver(memory_store, search_config) -> AutocompleteResolver:
    return AutocompleteResolver(memory_store, search_config.autocomplete)


@pytest.mark.anyio
@pytest.mark.parametrize("query", [None, "", "bl", "  b  ", "!!!"])
async def test_short_or_empty_queries_skip_the_store(resolver, memory_store, query):
    assert await resolver.suggest(query) == []
    assert memory_store.autocomplete_calls == 0


@pytest.mark.anyio
async def test_three_characters_return_title_matches(resolver):
    suggestions = await resolver.suggest("blo")

    assert 0 < len(suggestions) <= 5
    assert all("blo" in suggestion.title.lower() for suggestion in suggestions)
    assert {suggestion.slug for suggestion in suggestions} >= {
        "blood-title",
        "bloodstream-consensus",
    }


@pytest.mark.anyio
async def test_keyword_only_matches_are_not_suggested(resolver):
    suggestions = await resolver.suggest("hypert")

    assert [suggestion.slug for suggestion in suggestions] == ["nice-hypertension"]


@pytest.mark.anyio
async def test_limit_is_enforced(memory_store):
    resolver = AutocompleteResolver(
        memory_store, AutocompleteLimits(min_query_length=3, limit=2)
    )

    assert len(await resolver.suggest("blood")) == 2


@pytest.mark.anyio
async def test_store_failure_yields_no_suggestions(resolver, memory_store, unavailable):
    memory_store.fail_with = unavailable

    assert await resolver.suggest("blood") == []
    assert memory_store.autocomplete_calls == 1


@pytest.mark.anyio
async def test_blank_titles_and_duplicates_are_dropped(resolver, memory_store):
    memory_store.rows_override = [
        {"title": "Blood", "slug": "blood-title"},
        {"title": "   ", "slug": "blank"},
        {"title": None, "slug": "missing"},
        {"title": "Blood", "slug": "blood-title"},
        {"title": "Bloodstream Infection Consensus", "slug": "bloodstream-consensus"},
    ]

    suggestions = await resolver.suggest("blood")

    assert [suggestion.as_dict() for suggestion in suggestions] == [
        {"title": "Blood", "slug": "blood-title"},
        {"title": "Bloodstream Infection Consensus", "slug": "bloodstream-consensus"},
    ]
