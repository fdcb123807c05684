"""Rule definitions for layerguard."""

from rules.config import (
    LayerguardConfig,
    PackageDef,
    load_config,
)
from rules.layers import (
    LayerTag,
    TransitionTable,
    build_transition_table,
    is_violation,
)

__all__ = [
    "LayerTag",
    "LayerguardConfig",
    "PackageDef",
    "TransitionTable",
    "build_transition_table",
    "is_violation",
    "load_config",
]
