# statlab/cleaning/__init__.py
"""
Declarative cleaning and transformation of raw tables.

    from statlab.cleaning import CleaningPipeline

    result = (
        CleaningPipeline(id_column="seqn")
        .select(["seqn", "weight", "height", "age"])
        .derive("bmi", "bmi", weight="weight", height="height")
        .drop_missing(["bmi"])
        .run(raw)
    )
"""

from statlab.cleaning.pipeline import (
    AuditEntry,
    CleaningPipeline,
    CleaningResult,
    check_unique_identifier,
    pipeline_from_config,
)
from statlab.cleaning.steps import (
    CleaningStep,
    CollapseRareLevels,
    Derive,
    DropMissing,
    DropUnusedLevels,
    Filter,
    ImputePMM,
    Rename,
    Retype,
    Sample,
    Select,
)

__all__ = [
    "AuditEntry",
    "CleaningPipeline",
    "CleaningResult",
    "check_unique_identifier",
    "pipeline_from_config",
    "CleaningStep",
    "CollapseRareLevels",
    "Derive",
    "DropMissing",
    "DropUnusedLevels",
    "Filter",
    "ImputePMM",
    "Rename",
    "Retype",
    "Sample",
    "Select",
]
