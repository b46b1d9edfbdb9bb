"""Regression tests for the offline keyword matcher."""

from travel_search.fallback import NO_MATCH_REASON, match, tokenize
from travel_search.inventory import DEFAULT_INVENTORY
from travel_search.models import InventoryItem


def test_tokenize_drops_short_tokens_and_repeats():
    assert tokenize("A Beach, by the BEACH!! surfing-trip") == ["beach", "the", "surfing", "trip"]


def test_beach_surfing_prefers_surf_retreat():
    """Both tokens hit the surf retreat's tags, so it ranks first."""

    results = match("beach surfing", DEFAULT_INVENTORY)

    assert [item.id for item in results] == [4]
    assert "beach" in results[0].reason and "surfing" in results[0].reason


def test_ranking_is_by_score_with_inventory_order_for_ties():
    results = match("history culture", DEFAULT_INVENTORY)

    # Galle matches both tokens; Sigiriya only "history".
    assert [item.id for item in results] == [2, 5]


def test_tie_keeps_inventory_order():
    results = match("history", DEFAULT_INVENTORY)

    assert [item.id for item in results] == [2, 5]


def test_no_match_returns_full_inventory():
    results = match("xyzzy", DEFAULT_INVENTORY)

    assert [item.id for item in results] == [1, 2, 3, 4, 5]
    assert all(item.reason == NO_MATCH_REASON for item in results)


def test_only_short_tokens_returns_full_inventory():
    assert len(match("to a by", DEFAULT_INVENTORY)) == len(DEFAULT_INVENTORY)


def test_matching_uses_title_and_location():
    assert [item.id for item in match("safari", DEFAULT_INVENTORY)] == [3]
    assert [item.id for item in match("arugam", DEFAULT_INVENTORY)] == [4]


def test_match_is_deterministic():
    first = match("ancient hiking views", DEFAULT_INVENTORY)
    second = match("ancient hiking views", DEFAULT_INVENTORY)

    assert [r.model_dump() for r in first] == [r.model_dump() for r in second]


def test_results_copy_inventory_fields():
    for result in match("tea", DEFAULT_INVENTORY):
        item = next(i for i in DEFAULT_INVENTORY if i.id == result.id)
        assert (result.title, result.location, result.price, tuple(result.tags)) == (
            item.title,
            item.location,
            item.price,
            item.tags,
        )


def test_reason_is_capped_for_long_queries():
    item = InventoryItem(id=9, title="x", location="y", price=1, tags=tuple(f"tag{i:03d}" for i in range(80)))
    query = " ".join(f"tag{i:03d}" for i in range(80))

    results = match(query, [item])

    assert len(results[0].reason) <= 200


def test_empty_inventory_yields_empty_list():
    assert match("beach", []) == []
