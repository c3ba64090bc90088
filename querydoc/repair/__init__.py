"""Document repair pipeline restoring the spacer invariant."""

from querydoc.repair.phases import (
    REPAIR_PHASES,
    AdjacentTextRepair,
    EmptyTokenCleanup,
    HistoryEmptyTokenFocus,
    MissingSpacerRepair,
    OrphanedSpacerCleanup,
    RepairContext,
    RepairPhase,
    find_adjacent_text_seams,
    find_first_empty_token,
    find_missing_spacers,
    find_orphaned_spacers,
)
from querydoc.repair.pipeline import REPAIR_META, RepairStage, map_through, run_repair_pipeline

__all__ = [
    "REPAIR_META",
    "REPAIR_PHASES",
    "AdjacentTextRepair",
    "EmptyTokenCleanup",
    "HistoryEmptyTokenFocus",
    "MissingSpacerRepair",
    "OrphanedSpacerCleanup",
    "RepairContext",
    "RepairPhase",
    "RepairStage",
    "find_adjacent_text_seams",
    "find_first_empty_token",
    "find_missing_spacers",
    "find_orphaned_spacers",
    "map_through",
    "run_repair_pipeline",
]
