from __future__ import annotations

from casedesk.utils.paths import get_value_by_path, path_has_prefix, set_value_by_path, split_path


def _build_tree():
    return {
        "id": "c-1",
        "people": [{"name": {"first": "Ann", "last": "Buyer"}}, {"name": {"first": "Bob"}}],
        "sale": {"items": []},
    }


def test_split_path_ignores_empty_tokens():
    assert split_path("people.0.name") == ["people", "0", "name"]
    assert split_path("") == []
    assert split_path(None) == []


def test_get_reads_mappings_and_sequences():
    tree = _build_tree()
    assert get_value_by_path(tree, "people.0.name.first") == "Ann"
    assert get_value_by_path(tree, "people.1.name.last") is None
    assert get_value_by_path(tree, "people.5.name") is None
    assert get_value_by_path(tree, "") is None


def test_set_copies_only_the_traversed_path():
    tree = _build_tree()
    updated = set_value_by_path(tree, "people.0.name.first", "Jane")

    assert updated is not tree
    assert updated["people"][0]["name"]["first"] == "Jane"
    assert tree["people"][0]["name"]["first"] == "Ann"
    assert updated["people"][1] is tree["people"][1]
    assert updated["sale"] is tree["sale"]


def test_set_creates_missing_mapping_nodes():
    tree = _build_tree()
    updated = set_value_by_path(tree, "meta.updatedAt", "now")
    assert updated["meta"] == {"updatedAt": "now"}
    assert "meta" not in tree


def test_set_appends_at_sequence_length():
    tree = _build_tree()
    updated = set_value_by_path(tree, "sale.items.0", {"id": "i-1"})
    assert updated["sale"]["items"] == [{"id": "i-1"}]


def test_structural_misuse_returns_input_unchanged():
    tree = _build_tree()
    assert set_value_by_path(tree, "", "x") is tree
    assert set_value_by_path(tree, "people.9.name.first", "x") is tree
    assert set_value_by_path(tree, "sale.items.3", {}) is tree
    assert set_value_by_path(tree, "people.first", "x") is tree


def test_path_prefix_respects_token_boundaries():
    assert path_has_prefix("people.0.name", "people") is True
    assert path_has_prefix("people", "people") is True
    assert path_has_prefix("peopleCount", "people") is False
