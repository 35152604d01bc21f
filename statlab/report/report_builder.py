# statlab/report/report_builder.py
from __future__ import annotations

import logging
import numbers
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import numpy as np
import pandas as pd
from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Inches, Pt

from statlab.config.settings import settings
from statlab.core.exceptions import ReportGenerationError
from statlab.report.formatters import fmt_ci, fmt_int, fmt_list_or_message, fmt_number, fmt_p_value, fmt_pct

logger = logging.getLogger(__name__)

TXT = {
    "not_applicable": "Not applicable",
    "none_detected": "None detected",
    "no_issues": "None (no issues detected)",
    "dash": "—",
}

_COEF_BASE = ("term", "estimate", "std_err", "statistic", "p_value", "ci_low", "ci_high", "ratio_ci_low", "ratio_ci_high")


def build_table(doc, headers, rows):
    tbl = doc.add_table(rows=1, cols=len(headers))
    tbl.style = "Table Grid"
    for i, h in enumerate(headers):
        tbl.rows[0].cells[i].text = str(h)
    for r in rows:
        vals = [r.get(h, "") for h in headers] if isinstance(r, dict) else list(r)
        vals += [""] * (len(headers) - len(vals))
        row = tbl.add_row().cells
        for i, v in enumerate(vals):
            row[i].text = str(v)
    return tbl


def _fmt_cell(value: Any, decimals: int = 3) -> str:
    if isinstance(value, (bool, np.bool_, str)):
        return str(value)
    if isinstance(value, numbers.Integral):
        return str(int(value))
    if isinstance(value, numbers.Real):
        return fmt_number(value, decimals)
    return TXT["dash"] if value is None else str(value)


def frame_rows(df: pd.DataFrame, decimals: int = 3, index: bool = False) -> tuple:
    """Headers and formatted rows of a DataFrame, for ``build_table``."""
    if index:
        df = df.reset_index()
    headers = [str(c) for c in df.columns]
    rows = [[_fmt_cell(v, decimals) for v in rec] for rec in df.itertuples(index=False, name=None)]
    return headers, rows


def add_note(doc, text: str, italic: bool = True):
    p = doc.add_paragraph()
    run = p.add_run(text)
    run.italic = italic
    run.font.size = Pt(9)
    return p


class ReportBuilder:
    """
    Writes the analysis results dict produced by ``AnalysisEngine.run`` to
    a Word document.

    Sections appear in pipeline order and are skipped when the results
    carry nothing for them: cleaning audit, exploratory summaries,
    Kaplan-Meier estimates, fitted models, validation, selection, figures.
    """

    def __init__(self, results: Dict[str, Any], output_path, image_width_in: Optional[float] = None):
        self.results = results
        self.output_path = Path(output_path)
        self.image_width_in = image_width_in or settings.report_image_width_inches
        self.doc = Document()

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------
    def _title(self):
        name = self.results.get("analysis_name") or "Analysis"
        self.doc.add_heading(f"{name}: statistical analysis report", level=0)
        meta = [f"Seed: {self.results.get('seed', TXT['dash'])}"]
        if self.results.get("generated_at"):
            meta.append(f"Generated: {self.results['generated_at']}")
        if self.results.get("cleaned_path"):
            meta.append(f"Cleaned table: {self.results['cleaned_path']}")
        p = self.doc.add_paragraph(" | ".join(meta))
        p.alignment = WD_ALIGN_PARAGRAPH.LEFT

    def _cleaning(self):
        cleaning = self.results.get("cleaning") or {}
        self.doc.add_heading("Data cleaning", level=1)
        self.doc.add_paragraph(
            f"Raw rows: {fmt_int(cleaning.get('n_raw_rows'))}. "
            f"Rows in the analysis table: {fmt_int(cleaning.get('n_rows'))}."
        )
        audit = cleaning.get("audit")
        if audit is None or len(audit) == 0:
            add_note(self.doc, "No cleaning steps were configured.")
            return
        headers, rows = frame_rows(audit)
        build_table(self.doc, headers, rows)

    def _missingness(self, result: Dict[str, Any]):
        self.doc.add_heading("Missing data", level=2)
        self.doc.add_paragraph(
            f"Complete cases: {fmt_int(result.get('complete_cases'))} of {fmt_int(result.get('n_rows'))}; "
            f"columns with missing values: {fmt_int(result.get('columns_with_missing'))}."
        )
        table = result.get("table")
        if table is not None and len(table):
            shown = table[table["n_missing"] > 0]
            if len(shown):
                build_table(
                    self.doc,
                    ["variable", "n_missing", "pct_missing"],
                    [[r.variable, fmt_int(r.n_missing), fmt_pct(r.pct_missing)] for r in shown.itertuples()],
                )
            else:
                add_note(self.doc, TXT["no_issues"])

    def _distribution(self, result: Dict[str, Any]):
        self.doc.add_heading("Variable distributions", level=2)
        numeric = result.get("numeric")
        if numeric is not None and len(numeric):
            headers, rows = frame_rows(numeric, decimals=2, index=True)
            build_table(self.doc, headers, rows)
        categorical = result.get("categorical") or {}
        for col, info in categorical.items():
            counts = ", ".join(f"{k}: {v}" for k, v in info.get("counts", {}).items())
            suffix = " …" if info.get("truncated") else ""
            self.doc.add_paragraph(f"{col} ({info.get('n_levels')} levels): {counts}{suffix}", style="List Bullet")

    def _correlation(self, result: Dict[str, Any]):
        self.doc.add_heading("Correlation", level=2)
        self.doc.add_paragraph(
            f"Method: {result.get('method')}; pairs with |r| ≥ {fmt_number(result.get('threshold'))} are listed."
        )
        pairs = result.get("top_pairs") or []
        if not pairs:
            add_note(self.doc, TXT["none_detected"])
            return
        build_table(
            self.doc,
            ["feature_1", "feature_2", "correlation"],
            [[p["feature_1"], p["feature_2"], fmt_number(p["correlation"], 3)] for p in pairs],
        )

    def _vif(self, result: Dict[str, Any]):
        self.doc.add_heading("Variance inflation factors", level=2)
        values = result.get("vif_values") or {}
        if not values:
            add_note(self.doc, result.get("error") or TXT["not_applicable"])
            return
        build_table(self.doc, ["term", "VIF"], [[k, fmt_number(v, 2)] for k, v in values.items()])
        self.doc.add_paragraph(
            f"Above {fmt_number(result.get('threshold'), 1)}: "
            + fmt_list_or_message(result.get("high_vif_features"), empty_msg=TXT["no_issues"])
        )

    def _summaries(self):
        summaries = self.results.get("summaries") or {}
        if not summaries:
            return
        self.doc.add_heading("Exploratory summaries", level=1)
        renderers = {
            "MissingnessCheck": self._missingness,
            "DistributionCheck": self._distribution,
            "CorrelationCheck": self._correlation,
            "VIFCheck": self._vif,
        }
        for name, result in summaries.items():
            if isinstance(result, dict) and result.get("error") and name != "VIFCheck":
                self.doc.add_heading(name, level=2)
                add_note(self.doc, f"Failed: {result['error']}")
                continue
            render = renderers.get(name)
            if render is not None:
                render(result)

    def _kaplan_meier(self):
        fits = self.results.get("kaplan_meier") or {}
        if not fits:
            return
        self.doc.add_heading("Kaplan-Meier estimates", level=1)
        for name, km in fits.items():
            self.doc.add_heading(name, level=2)
            self.doc.add_paragraph(
                f"Time: {km.time}; event: {km.event}; strata: {km.strata or TXT['not_applicable']}; "
                f"{fmt_int(km.n_events)} events in {fmt_int(km.n_obs)} subjects."
            )
            build_table(
                self.doc,
                ["stratum", "n", "events", "median", f"{int(round(km.conf_level * 100))}% CI"],
                [
                    [r.stratum, fmt_int(r.n), fmt_int(r.events), fmt_number(r.median, 2),
                     fmt_ci(r.median_ci_low, r.median_ci_high)]
                    for r in km.summary.itertuples()
                ],
            )
            if km.logrank:
                self.doc.add_paragraph(
                    f"Log-rank test: χ² = {fmt_number(km.logrank['statistic'], 2)} on "
                    f"{fmt_int(km.logrank['df'])} df, p = {fmt_p_value(km.logrank['p_value'])}."
                )

    def _coefficients(self, fitted):
        coef = fitted.coefficients
        ratio_cols = [c for c in coef.columns if c not in _COEF_BASE]
        ci_label = f"{int(round(fitted.conf_level * 100))}% CI"
        headers = ["term", "estimate", "std. error", "statistic", "p", ci_label]
        if ratio_cols:
            headers += [ratio_cols[0].replace("_", " "), f"{ci_label} (ratio)"]
        rows = []
        for rec in coef.to_dict(orient="records"):
            row = [
                rec["term"],
                fmt_number(rec["estimate"], 3),
                fmt_number(rec["std_err"], 3),
                fmt_number(rec["statistic"], 2),
                fmt_p_value(rec["p_value"]),
                fmt_ci(rec["ci_low"], rec["ci_high"], 3),
            ]
            if ratio_cols:
                row += [fmt_number(rec[ratio_cols[0]], 3), fmt_ci(rec["ratio_ci_low"], rec["ratio_ci_high"], 3)]
            rows.append(row)
        build_table(self.doc, headers, rows)

    def _models(self):
        models = self.results.get("models") or {}
        if not models:
            return
        self.doc.add_heading("Fitted models", level=1)
        for name, fitted in models.items():
            self.doc.add_heading(name, level=2)
            self.doc.add_paragraph(f"Family: {fitted.family.value}. Formula: {fitted.spec.formula}")
            self.doc.add_paragraph(
                f"n = {fmt_int(fitted.n_obs)}; effective n = {fmt_int(fitted.n_effective)}; "
                f"d.f. used {fmt_int(fitted.df_used)} of a budget of {fmt_int(fitted.df_budget)}."
            )
            self._coefficients(fitted)
            stats = fitted.statistics
            if stats:
                self.doc.add_paragraph("Fit statistics", style="Heading 3")
                build_table(self.doc, ["statistic", "value"], [[k, fmt_number(v, 3)] for k, v in stats.items()])

    def _validation(self):
        validations = self.results.get("validation") or {}
        if not validations:
            return
        self.doc.add_heading("Validation", level=1)
        for name, val in validations.items():
            self.doc.add_heading(name, level=2)
            desc = {
                "bootstrap": f"Optimism-corrected bootstrap, {val.replicates} replicates",
                "holdout": "Single holdout split",
                "cv": f"Cross-validation, {val.replicates} fits",
            }.get(val.method, val.method)
            note = f"{desc}; seed {val.seed}."
            if val.n_failed:
                note += f" {val.n_failed} replicate(s) failed to refit and were excluded."
            self.doc.add_paragraph(note)
            headers, rows = frame_rows(val.table.rename_axis("statistic"), decimals=3, index=True)
            build_table(self.doc, headers, rows)

    def _selection(self):
        comparison = self.results.get("selection")
        if comparison is None:
            return
        self.doc.add_heading("Model selection", level=1)
        direction = "higher" if comparison.higher_is_better else "lower"
        self.doc.add_paragraph(
            f"Metric: validated {comparison.metric} ({direction} is better); "
            f"a more complex model must improve it by more than {fmt_number(comparison.margin, 3)}."
        )
        headers, rows = frame_rows(comparison.table, decimals=3)
        build_table(self.doc, headers, rows)
        for line in comparison.decisions:
            self.doc.add_paragraph(line, style="List Bullet")
        if comparison.tests:
            self.doc.add_paragraph("Pairwise tests", style="Heading 3")
            build_table(
                self.doc,
                ["test", "model_a", "model_b", "statistic", "p", "note"],
                [
                    [t["test"], t["model_a"], t["model_b"], fmt_number(t["statistic"], 3),
                     fmt_p_value(t["p_value"]),
                     f"df={fmt_int(t['df'])}" if "df" in t else f"preferred: {t.get('preferred') or 'neither'}"]
                    for t in comparison.tests
                ],
            )
        p = self.doc.add_paragraph()
        p.add_run("Selected model: ").bold = True
        p.add_run(str(comparison.selected))

    def _figures(self):
        figures = self.results.get("figures") or {}
        paths = {k: v for k, v in figures.items() if v and Path(v).exists()}
        if not paths:
            return
        self.doc.add_heading("Figures", level=1)
        for caption, path in paths.items():
            self.doc.add_picture(str(path), width=Inches(self.image_width_in))
            cap = self.doc.add_paragraph(caption)
            cap.alignment = WD_ALIGN_PARAGRAPH.CENTER

    def sections(self) -> Iterable:
        return (
            self._title,
            self._cleaning,
            self._summaries,
            self._kaplan_meier,
            self._models,
            self._validation,
            self._selection,
            self._figures,
        )

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------
    def build(self) -> Path:
        try:
            for section in self.sections():
                section()
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            self.doc.save(str(self.output_path))
        except (OSError, KeyError, AttributeError, ValueError) as e:
            raise ReportGenerationError(
                f"Could not write report to {self.output_path}: {e}",
                details={"output_path": str(self.output_path)},
            ) from e
        logger.info("Report written to %s", self.output_path)
        return self.output_path

