"""
Triage Domain Layer
===================

Server context, step outcomes, the analysis prompt and the probe battery.
Framework-agnostic.
"""

from inquiry_board.triage.domain.entities import (
    ServerContext,
    StepOutcome,
    AnalysisPromptBuilder,
)
from inquiry_board.triage.domain.value_objects import (
    DiagnosticsBundle,
    BASE_PROBES,
    PROBE_LABELS,
    ADMIN_ALIASES,
    build_probe_battery,
    probe_label,
    pick_display_alias,
)

__all__ = [
    "ServerContext",
    "StepOutcome",
    "AnalysisPromptBuilder",
    "DiagnosticsBundle",
    "BASE_PROBES",
    "PROBE_LABELS",
    "ADMIN_ALIASES",
    "build_probe_battery",
    "probe_label",
    "pick_display_alias",
]
