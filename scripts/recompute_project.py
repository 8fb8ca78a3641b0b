#!/usr/bin/env python3
"""
Recompute one project's progress summary from a JSON snapshot.

The snapshot holds ``{"project": {...}, "reports": [...],
"attendances": [...]}`` in the field application's document shapes,
with reports and attendance sheets oldest first.

Usage:
    python3 scripts/recompute_project.py snapshot.json
    python3 scripts/recompute_project.py snapshot.json --config my_settings.yaml
    python3 scripts/recompute_project.py snapshot.json --variance --log-level DEBUG

Exit status is 0 on success, 2 when any record was rejected, and 1 when
the recompute could not run.
"""

import argparse
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from progress_config import get_active_settings
from progress_ingestion.adapters import load_snapshot
from progress_kernel.exceptions import ProgressKernelError
from progress_kernel.logging_config import configure_logging
from progress_services import ProjectRecomputeService
from progress_services.export import result_to_dict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Recompute a project's progress summary from a JSON snapshot.",
    )
    parser.add_argument("snapshot", type=Path, help="Path to the JSON snapshot file")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Settings YAML (default: bundled progress_config/sets/default.yaml)",
    )
    parser.add_argument(
        "--variance",
        action="store_true",
        help="Include per-task variance series in the output",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        type=str.upper,
        choices=LOG_LEVELS,
        help="Override the settings log level",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = _parse_args(argv)
    try:
        settings = get_active_settings(args.config)
    except (OSError, ValueError) as exc:
        print(f"Error: settings: {exc}", file=sys.stderr)
        return 1
    configure_logging(level=args.log_level or settings.log_level)

    try:
        snapshot = load_snapshot(args.snapshot)
        result = ProjectRecomputeService(settings).recompute(
            snapshot.project, snapshot.reports, snapshot.attendances,
        )
    except (OSError, ValueError, ProgressKernelError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    json.dump(result_to_dict(result, include_variance=args.variance), sys.stdout, indent=2)
    sys.stdout.write("\n")
    return 2 if result.has_rejections else 0


if __name__ == "__main__":
    sys.exit(main())
