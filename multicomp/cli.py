"""multicomp-stats - report observer state from the persisted stores.

Loads every observer from the workspace (read only, nothing is flushed) and
prints a short summary. Use `--json` for machine-readable output.
"""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from multicomp.config import load_multicomp_config
from multicomp.logging_config import setup_logging
from multicomp.observers import CompetenceObserver, GradientObserver, MemoryObserver, PatternObserver, ScarObserver
from multicomp.pipeline import PipelineContext, ensure_initialized


def _count_lines(path: Path | None) -> int:
    if path is None or not path.exists():
        return 0
    with path.open("r", encoding="utf-8") as f:
        return sum(1 for line in f if line.strip())


async def collect_stats(context: PipelineContext) -> dict[str, Any]:
    registry = await ensure_initialized(context)
    stats: dict[str, Any] = {
        "workspace": str(registry.workspace_path),
        "observer_count": registry.count,
        "observer_ids": registry.ids,
    }

    pattern = registry.get("pattern")
    if isinstance(pattern, PatternObserver):
        stats["patterns"] = {"entries": len(pattern.patterns), **pattern.metrics().model_dump()}

    scar = registry.get("scar")
    if isinstance(scar, ScarObserver):
        stats["scars"] = {"entries": len(scar.scars), "occurrences": sum(s.occurrences for s in scar.scars)}

    competence = registry.get("competence")
    if isinstance(competence, CompetenceObserver):
        stats["competence"] = {
            name: {"total": d.total, "acceptance_rate": competence.acceptance_rate(name)}
            for name, d in sorted(competence.domains.items())
        }

    gradient = registry.get("gradient")
    if isinstance(gradient, GradientObserver):
        stats["gradient_points"] = await asyncio.to_thread(_count_lines, gradient.data_path)

    memory = registry.get("memory")
    if isinstance(memory, MemoryObserver):
        stats["turns_observed"] = memory.stats.total_turns
        stats["utilization_rate"] = memory.utilization_rate()
        stats["skill_usage"] = dict(memory.stats.skill_usage)

    return stats


def format_stats(stats: dict[str, Any]) -> str:
    lines = [
        f"[multicomp] Workspace: {stats['workspace']}",
        f"[multicomp] Observers: {stats['observer_count']}",
        f"[multicomp] Observer IDs: {', '.join(stats['observer_ids'])}",
    ]
    if "turns_observed" in stats:
        lines.append(f"[multicomp] Turns observed: {stats['turns_observed']}")
        lines.append(f"[multicomp] Memory utilization: {stats['utilization_rate']:.2f}")
    if "patterns" in stats:
        p = stats["patterns"]
        lines.append(
            f"[multicomp] Patterns: {p['entries']} ({p['active']} active, {p['high_confidence']} high, "
            f"avg {p['avg_confidence']:.2f})"
        )
    if "scars" in stats:
        lines.append(f"[multicomp] Scars: {stats['scars']['entries']} ({stats['scars']['occurrences']} occurrences)")
    for domain, d in stats.get("competence", {}).items():
        lines.append(f"[multicomp] Competence {domain}: {d['total']} signals, {d['acceptance_rate']:.2f} accepted")
    if "gradient_points" in stats:
        lines.append(f"[multicomp] Gradient data points: {stats['gradient_points']}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Show multicomputation observation statistics.")
    parser.add_argument("--workspace", default=None, help="Workspace root holding observer state.")
    parser.add_argument("--config", default=None, help="Path to multicomp.yml.")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of text.")
    args = parser.parse_args(argv)

    load_dotenv()
    setup_logging()

    config = load_multicomp_config(Path(args.config) if args.config else None)
    context = PipelineContext(config=config, host_workspace=args.workspace)
    stats = asyncio.run(collect_stats(context))

    print(json.dumps(stats, indent=2) if args.json else format_stats(stats))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
