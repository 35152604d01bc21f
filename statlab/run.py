from __future__ import annotations
from datetime import datetime
from pathlib import Path
from typing import Optional, Dict, Any

import tzlocal

from statlab.core.exceptions import ConfigurationError
from statlab.engine.core_engine_agent import AnalysisEngine
from statlab.report.report_builder import ReportBuilder
from statlab.utils.yaml_loader import load_yaml_config


def _report_path(config: Dict[str, Any], explicit: Optional[str | Path]) -> Optional[Path]:
    target = explicit or (config.get("output") or {}).get("report_path")
    if not target:
        return None
    output_path = Path(target).expanduser().resolve()
    if output_path.exists() and output_path.is_dir():
        raise ConfigurationError(
            f"'{output_path}' is a directory. Please provide a full .docx filename."
        )
    return output_path


def run_analysis(
    config: Dict[str, Any],
    raw_df=None,
    base_dir: Optional[Path] = None,
    report_path: Optional[str | Path] = None,
    progress_callback=None,
) -> Dict[str, Any]:
    """Run one analysis and, when a report path is configured, write the report."""
    engine = AnalysisEngine(config, raw_df=raw_df, base_dir=base_dir)
    results = engine.run(progress_callback=progress_callback)

    now = datetime.now(tzlocal.get_localzone())
    results["generated_at"] = now.strftime("%Y-%m-%d %H:%M:%S %Z (UTC%z)")

    output_path = _report_path(config, report_path)
    if output_path is not None:
        ReportBuilder(results, output_path=output_path).build()
        results["report_path"] = str(output_path)
    return results


# ---------------------------------------------------------------------------
# YAML-driven path (CLI `statlab run <analysis>.yaml`)
# ---------------------------------------------------------------------------

def run_from_yaml(path: str | Path, report_path: Optional[str | Path] = None,
                  progress_callback=None) -> Dict[str, Any]:
    path = Path(path)
    config = load_yaml_config(path)
    return run_analysis(
        config,
        base_dir=path.parent,
        report_path=report_path,
        progress_callback=progress_callback,
    )
