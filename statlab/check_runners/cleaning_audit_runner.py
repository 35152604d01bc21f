# statlab/check_runners/cleaning_audit_runner.py
"""
Cleaning audit check runner.

Summarises the cleaning pipeline's audit trail: rows and columns after
each step, and the raw vs cleaned table sizes.
"""

from __future__ import annotations

from typing import Any, Dict

from statlab.check_runners.base_runner import BaseCheckRunner


class CleaningAuditCheckRunner(BaseCheckRunner):

    @property
    def name(self) -> str:
        return "CleaningAuditCheck"

    def execute(self) -> Dict[str, Any]:
        audit = self.context.audit
        raw = self.context.raw_df
        table = self.context.table

        result: Dict[str, Any] = {
            "raw_shape": tuple(raw.shape) if raw is not None else None,
            "cleaned_shape": tuple(table.shape),
            "rows_removed": int(len(raw) - len(table)) if raw is not None else None,
            "steps": audit,
        }
        if self.context.id_column and self.context.id_column in table.columns:
            result["id_unique"] = bool(table[self.context.id_column].is_unique)

        if audit is not None and len(audit):
            path = self.get_output_dir() / "cleaning_audit.csv"
            audit.to_csv(path, index=False)
            result["audit_csv"] = str(path)
        return result
