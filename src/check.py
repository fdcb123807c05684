"""The `check` operation: discovery, graph build, policy and cycle analysis."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from errors import AnalysisAborted
from graph.builder import build_graph
from graph.cache import CACHE_FILENAME, DeclarationCache
from parse.treesitter_imports import TreeSitterImportParser
from report.reporter import build_report, exit_status
from resolve import build_resolver
from rules.config import load_config, resolve_cache_dir
from rules.cycles import detect_cycles
from rules.policy import PolicyEngine, PolicySettings
from scan.discovery import discover_modules

if TYPE_CHECKING:
    from pathlib import Path

    from graph.models import Graph
    from parse.base import ImportParser
    from report.models import Report
    from resolve.base import Resolver
    from rules.config import LayerguardConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CheckResult:
    report: Report
    graph: Graph
    exit_code: int


def run_check(
    root: Path,
    *,
    config: LayerguardConfig | None = None,
    parser: ImportParser | None = None,
    resolver: Resolver | None = None,
) -> CheckResult:
    """Analyse a workspace and report every boundary violation.

    Args:
        root: Workspace root to analyse
        config: Optional configuration (default: layerguard.toml under root)
        parser: Import front-end (default: tree-sitter TypeScript/TSX)
        resolver: Specifier resolver (default: strategies from the config)

    Returns:
        CheckResult with the ordered report, the graph it was computed from
        and the exit status the report implies.

    Raises:
        ConfigurationError: If the configuration is malformed or contradictory.
        InternalError: If a graph invariant was broken during the build.
        AnalysisAborted: If the run was interrupted.
    """
    if config is None:
        config = load_config(root)

    try:
        discovery = discover_modules(root, config)

        if parser is None:
            parser = TreeSitterImportParser(config.extensions)
        if resolver is None:
            resolver = build_resolver(root, config, discovery.modules.keys())

        cache: DeclarationCache | None = None
        if config.cache:
            cache_dir = resolve_cache_dir(root, config.cache_dir)
            cache = DeclarationCache(cache_dir / CACHE_FILENAME, parser.version)

        build = build_graph(
            discovery.modules,
            discovery.files,
            parser,
            resolver,
            cache=cache,
            jobs=config.jobs,
            reexport_max_depth=config.reexport_max_depth,
            dynamic_imports=config.dynamic_imports,
        )

        engine = PolicyEngine(PolicySettings.from_config(config))
        policy_diagnostics = engine.evaluate(build.graph)
        cycle_diagnostics = detect_cycles(build.graph)
    except KeyboardInterrupt as exc:
        msg = "analysis interrupted"
        raise AnalysisAborted(msg) from exc

    report = build_report(
        [
            discovery.diagnostics,
            build.diagnostics,
            policy_diagnostics,
            cycle_diagnostics,
        ],
        degraded=build.degraded,
        low_confidence=build.low_confidence,
        module_count=len(build.graph.modules),
        edge_count=build.graph.edge_count,
    )
    logger.info(
        "check finished: %d errors, %d warnings",
        report.summary.error_count,
        report.summary.warning_count,
    )
    return CheckResult(
        report=report,
        graph=build.graph,
        exit_code=exit_status(report, fail_on_warning=config.fail_on_warning),
    )


__all__ = ["CheckResult", "run_check"]
