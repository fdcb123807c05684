"""Layer tags and the allowed-transition table."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Literal

UnclassifiedBehavior = Literal["allow", "deny"]


class LayerTag(str, Enum):
    """Architectural role of a workspace module."""

    FEATURE = "feature"
    ENTITY = "entity"
    UI = "ui"
    UTIL = "util"
    INFRA = "infra"
    UNTAGGED = "untagged"


# Feature and Entity packages have a public root and encapsulated internals.
ENCAPSULATED_TAGS = frozenset({LayerTag.FEATURE, LayerTag.ENTITY})

DEFAULT_TRANSITIONS: dict[LayerTag, frozenset[LayerTag]] = {
    LayerTag.INFRA: frozenset(),
    LayerTag.UTIL: frozenset({LayerTag.INFRA}),
    LayerTag.UI: frozenset({LayerTag.UTIL}),
    LayerTag.ENTITY: frozenset({LayerTag.UTIL, LayerTag.INFRA}),
    LayerTag.FEATURE: frozenset(
        {LayerTag.ENTITY, LayerTag.UI, LayerTag.UTIL, LayerTag.INFRA}
    ),
    LayerTag.UNTAGGED: frozenset(
        {
            LayerTag.ENTITY,
            LayerTag.UI,
            LayerTag.UTIL,
            LayerTag.INFRA,
            LayerTag.UNTAGGED,
        }
    ),
}


@dataclass(frozen=True)
class Rule:
    """Allowed dependency targets for one source tag."""

    from_tag: LayerTag
    allowed_to_tags: frozenset[LayerTag]


@dataclass(frozen=True)
class TransitionTable:
    """Immutable allowed-transition table passed explicitly to the policy engine."""

    rules: tuple[Rule, ...]

    def allowed(self, from_tag: LayerTag) -> frozenset[LayerTag]:
        for rule in self.rules:
            if rule.from_tag == from_tag:
                return rule.allowed_to_tags
        return frozenset()

    def permits(self, from_tag: LayerTag, to_tag: LayerTag) -> bool:
        return to_tag in self.allowed(from_tag)

    def as_dict(self) -> dict[str, list[str]]:
        return {
            rule.from_tag.value: sorted(tag.value for tag in rule.allowed_to_tags)
            for rule in self.rules
        }


def build_transition_table(
    overrides: Mapping[LayerTag, Iterable[LayerTag]] | None = None,
) -> TransitionTable:
    """Build the transition table from the defaults plus per-row overrides.

    An override replaces the whole row for its source tag.
    """
    allowed = dict(DEFAULT_TRANSITIONS)
    for from_tag, to_tags in (overrides or {}).items():
        allowed[LayerTag(from_tag)] = frozenset(LayerTag(tag) for tag in to_tags)
    return TransitionTable(
        rules=tuple(
            Rule(from_tag=tag, allowed_to_tags=allowed[tag]) for tag in LayerTag
        )
    )


def is_violation(
    from_tag: LayerTag,
    to_tag: LayerTag,
    table: TransitionTable,
    unclassified: UnclassifiedBehavior,
) -> bool:
    """Check if a dependency from one tag to another breaches the table.

    With ``unclassified="allow"`` an untagged end skips the lookup, except that
    feature targets are always looked up.
    """
    if (
        unclassified == "allow"
        and LayerTag.UNTAGGED in (from_tag, to_tag)
        and to_tag != LayerTag.FEATURE
    ):
        return False
    return not table.permits(from_tag, to_tag)


__all__ = [
    "DEFAULT_TRANSITIONS",
    "ENCAPSULATED_TAGS",
    "LayerTag",
    "Rule",
    "TransitionTable",
    "UnclassifiedBehavior",
    "build_transition_table",
    "is_violation",
]
