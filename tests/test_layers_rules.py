from __future__ import annotations

from rules.layers import (
    DEFAULT_TRANSITIONS,
    LayerTag,
    build_transition_table,
    is_violation,
)


def test_default_table_matches_layer_order() -> None:
    table = build_transition_table()

    assert table.as_dict() == {
        "feature": ["entity", "infra", "ui", "util"],
        "entity": ["infra", "util"],
        "ui": ["util"],
        "util": ["infra"],
        "infra": [],
        "untagged": ["entity", "infra", "ui", "untagged", "util"],
    }


def test_default_table_has_a_row_for_every_tag() -> None:
    table = build_transition_table()

    assert {rule.from_tag for rule in table.rules} == set(LayerTag)
    assert set(DEFAULT_TRANSITIONS) == set(LayerTag)


def test_infra_may_not_depend_on_any_tag() -> None:
    table = build_transition_table()

    for to_tag in LayerTag:
        assert is_violation(LayerTag.INFRA, to_tag, table, "deny") is True


def test_nothing_but_untagged_rows_may_target_feature() -> None:
    table = build_transition_table()

    for from_tag in LayerTag:
        assert table.permits(from_tag, LayerTag.FEATURE) is False


def test_override_replaces_the_whole_row() -> None:
    table = build_transition_table({LayerTag.UI: [LayerTag.UTIL, LayerTag.INFRA]})

    assert table.allowed(LayerTag.UI) == frozenset({LayerTag.UTIL, LayerTag.INFRA})
    assert table.allowed(LayerTag.ENTITY) == DEFAULT_TRANSITIONS[LayerTag.ENTITY]


def test_override_with_empty_row_forbids_everything() -> None:
    table = build_transition_table({LayerTag.UTIL: []})

    assert is_violation(LayerTag.UTIL, LayerTag.INFRA, table, "deny") is True


def test_is_violation_unclassified_allow_no_violation_when_either_side_untagged() -> (
    None
):
    table = build_transition_table()

    assert is_violation(LayerTag.UNTAGGED, LayerTag.INFRA, table, "allow") is False
    assert is_violation(LayerTag.INFRA, LayerTag.UNTAGGED, table, "allow") is False


def test_is_violation_unclassified_allow_still_guards_feature_targets() -> None:
    table = build_transition_table()

    assert is_violation(LayerTag.UNTAGGED, LayerTag.FEATURE, table, "allow") is True


def test_is_violation_unclassified_deny_uses_the_untagged_row() -> None:
    table = build_transition_table()

    assert is_violation(LayerTag.UNTAGGED, LayerTag.UTIL, table, "deny") is False
    assert is_violation(LayerTag.UNTAGGED, LayerTag.FEATURE, table, "deny") is True
    assert is_violation(LayerTag.UI, LayerTag.UNTAGGED, table, "deny") is True


def test_is_violation_detects_disallowed_dependency() -> None:
    table = build_transition_table()

    assert is_violation(LayerTag.UI, LayerTag.INFRA, table, "deny") is True
    assert is_violation(LayerTag.FEATURE, LayerTag.UI, table, "deny") is False
