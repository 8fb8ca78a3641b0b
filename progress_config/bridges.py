"""
Config -> Engine Bridges.

Functions that convert parsed settings into engine inputs.  They live in
progress_config (the producer) because engines must NEVER import
progress_config.

Usage:
    from progress_config.bridges import build_summary_policy

    settings = get_active_settings()
    summarizer = ProjectSummarizer(build_summary_policy(settings))
"""

from __future__ import annotations

from progress_config.schema import EngineSettings
from progress_engines.summary import SummaryPolicy


def build_summary_policy(settings: EngineSettings) -> SummaryPolicy:
    """Build the summarizer's health policy from settings."""
    return SummaryPolicy(
        schedule_tolerance=settings.health.schedule_tolerance,
        behind_majority=settings.health.behind_majority,
        weight_by_volume=settings.health.weight_by_volume,
    )
