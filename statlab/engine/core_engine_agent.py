# statlab/engine/core_engine_agent.py
"""
The analysis engine: one linear pass from raw table to results.

    load -> clean -> persist -> summaries -> fit -> validate -> select

The engine holds no state between runs; each ``run()`` starts from the
configuration and the raw table.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import pandas as pd

from statlab.cleaning.pipeline import pipeline_from_config
from statlab.config.settings import settings
from statlab.core.context import AnalysisContext
from statlab.core.exceptions import ConfigurationError
from statlab.engine.check_agent_registry import CHECK_RUNNER_CLASSES
from statlab.models.fitting import fit_model
from statlab.models.spec import Family, ModelSpec, iter_specs
from statlab.selection import compare_models
from statlab.utils.data_loader import is_url, load_dataframe, save_table
from statlab.utils.plotting import plot_kaplan_meier, plot_residual_diagnostics
from statlab.validation import METHODS

logger = logging.getLogger(__name__)


class AnalysisEngine:
    """
    Args:
        config: analysis configuration (the parsed YAML file)
        raw_df: raw table; when omitted it is loaded from ``data.path``
        base_dir: directory relative data paths are resolved against
            (the YAML file's directory when run through ``run_from_yaml``)
    """

    def __init__(self, config: Dict[str, Any], raw_df: Optional[pd.DataFrame] = None,
                 base_dir: Optional[Path] = None):
        if not isinstance(config, dict):
            raise ConfigurationError("Analysis configuration must be a mapping")
        self.config = config
        self.raw_df = raw_df
        self.base_dir = Path(base_dir) if base_dir else Path.cwd()
        self.seed = int(config.get("seed", settings.default_seed))
        self.name = config.get("name", "Analysis")
        self.artifacts_dir = Path(
            config.get("output", {}).get("artifacts_dir") or settings.artifacts_dir
        )
        self.results: Dict[str, Any] = {}

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    def _resolve_data_path(self, path: str) -> str:
        if is_url(path) or Path(path).is_absolute():
            return path
        candidates = [self.base_dir / path]
        data_dir = os.getenv("STATLAB_DATA_DIR") or settings.data_dir
        if data_dir:
            candidates.append(Path(data_dir) / path)
        for c in candidates:
            if c.exists():
                return str(c)
        return str(candidates[-1])

    def load(self) -> pd.DataFrame:
        if self.raw_df is not None:
            return self.raw_df
        data_cfg = self.config.get("data") or {}
        if "path" not in data_cfg:
            raise ConfigurationError("No raw table given and no 'data.path' in the configuration")
        source = self._resolve_data_path(str(data_cfg["path"]))
        return load_dataframe(
            source,
            sheet_name=data_cfg.get("sheet_name"),
            sep=data_cfg.get("sep"),
            encoding=data_cfg.get("encoding"),
        )

    def clean(self, raw: pd.DataFrame):
        pipeline = pipeline_from_config(self.config.get("cleaning") or {})
        return pipeline.run(raw)

    def persist(self, table: pd.DataFrame) -> Optional[str]:
        target = (self.config.get("output") or {}).get("cleaned_path")
        if not target:
            return None
        path = save_table(table, self.artifacts_dir / target if not Path(target).is_absolute() else target)
        logger.info("Cleaned table written to %s", path)
        return str(path)

    def run_summaries(self, context: AnalysisContext,
                      progress_callback: Optional[Callable[[str], None]] = None) -> Dict[str, Any]:
        skip = set(self.config.get("skip_checks", []))
        out: Dict[str, Any] = {}
        for check_name, runner_cls in CHECK_RUNNER_CLASSES.items():
            if check_name in skip:
                continue
            result = runner_cls(context).run(progress_callback=progress_callback)
            if result is not None:
                out[check_name] = result
        return out

    def _figures_enabled(self) -> bool:
        return bool((self.config.get("output") or {}).get("figures", True))

    def fit_and_select(self, table: pd.DataFrame, specs: List[ModelSpec]) -> Dict[str, Any]:
        val_cfg = dict(self.config.get("validation") or {})
        method = val_cfg.pop("method", "bootstrap")
        if method is not None and method not in METHODS:
            raise ConfigurationError(f"Unknown validation method '{method}'", details={"available": list(METHODS)})
        sel_cfg = self.config.get("selection") or {}

        out: Dict[str, Any] = {"models": {}, "validation": {}, "selection": None}
        if len(specs) > 1:
            comparison = compare_models(
                table,
                specs,
                validation=method,
                seed=self.seed,
                metric=sel_cfg.get("metric"),
                margin=sel_cfg.get("margin"),
                **val_cfg,
            )
            out["models"] = comparison.fits
            out["validation"] = comparison.validations
            out["selection"] = comparison
        else:
            for spec in specs:
                fitted = fit_model(table, spec)
                out["models"][fitted.name] = fitted
                if method == "bootstrap":
                    out["validation"][fitted.name] = METHODS[method](fitted, table, seed=self.seed, **val_cfg)
                elif method is not None:
                    out["validation"][fitted.name] = METHODS[method](spec, table, seed=self.seed, **val_cfg)
        return out

    def make_figures(self) -> Dict[str, str]:
        figures: Dict[str, str] = {}
        fig_dir = self.artifacts_dir / "figures"
        for name, fitted in self.results.get("models", {}).items():
            if fitted.family is Family.OLS:
                figures[f"{name} diagnostics"] = plot_residual_diagnostics(fitted, fig_dir, f"{name}_diagnostics")
        for name, km in self.results.get("kaplan_meier", {}).items():
            figures[f"{name} survival"] = plot_kaplan_meier(km, fig_dir, f"{name}_km")
        return figures

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------
    def run(self, progress_callback: Optional[Callable[[str], None]] = None) -> Dict[str, Any]:
        self.results = {"analysis_name": self.name, "seed": self.seed}

        raw = self.load()
        cleaned = self.clean(raw)
        table = cleaned.table
        self.results["cleaning"] = {
            "audit": cleaned.audit_frame(),
            "n_rows": cleaned.n_rows,
            "n_raw_rows": int(len(raw)),
        }
        self.results["cleaned_path"] = self.persist(table)

        specs = iter_specs(self.config.get("models") or [])
        km_specs = [s for s in specs if s.family is Family.KAPLAN_MEIER]
        reg_specs = [s for s in specs if s.family is not Family.KAPLAN_MEIER]

        first = reg_specs[0] if reg_specs else (km_specs[0] if km_specs else None)
        predictors = list(dict.fromkeys(p for s in reg_specs for p in s.predictors))
        context = AnalysisContext(
            table=table,
            config=self.config,
            raw_df=raw,
            audit=self.results["cleaning"]["audit"],
            outcome=first.outcome if first else None,
            predictors=predictors,
            id_column=(self.config.get("cleaning") or {}).get("id_column"),
            artifacts_dir=self.artifacts_dir,
        )
        self.results["summaries"] = self.run_summaries(context, progress_callback)

        self.results["kaplan_meier"] = {}
        for i, spec in enumerate(km_specs):
            name = spec.name or f"kaplan_meier_{i + 1}"
            if progress_callback:
                progress_callback(f"Fitting {name}...")
            self.results["kaplan_meier"][name] = fit_model(table, spec.named(name))

        if reg_specs:
            if progress_callback:
                progress_callback(f"Fitting {len(reg_specs)} candidate model(s)...")
            self.results.update(self.fit_and_select(table, reg_specs))
        else:
            self.results.update({"models": {}, "validation": {}, "selection": None})

        self.results["figures"] = self.make_figures() if self._figures_enabled() else {}
        self.results["summary"] = self._summary()
        return self.results

    def _summary(self) -> Dict[str, Any]:
        selection = self.results.get("selection")
        failed = [k for k, v in self.results.get("summaries", {}).items() if isinstance(v, dict) and v.get("error")]
        return {
            "n_rows": self.results["cleaning"]["n_rows"],
            "n_models": len(self.results.get("models", {})),
            "selected_model": selection.selected if selection is not None else None,
            "failed_checks": failed,
        }
