from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import pandas as pd

from statlab.core.exceptions import DataLoadError

logger = logging.getLogger(__name__)

_COMPRESSION_SUFFIXES = {".zip", ".gz", ".bz2", ".xz"}
_BINARY_FORMATS = {".parquet", ".feather", ".ft", ".pkl", ".pickle"}


def is_url(source: str | Path) -> bool:
    return str(source).lower().startswith(("http://", "https://"))


def _extension(source: str | Path) -> str:
    """File extension of a path or URL, ignoring a trailing compression suffix."""
    path = urlparse(str(source)).path if is_url(source) else str(source)
    suffixes = [s.lower() for s in Path(path).suffixes]
    if len(suffixes) > 1 and suffixes[-1] in _COMPRESSION_SUFFIXES:
        return suffixes[-2]
    return suffixes[-1] if suffixes else ""


def load_dataframe(source: str | Path,
                   sheet_name: Optional[str | int] = None,
                   sep: Optional[str] = None,
                   encoding: Optional[str] = None,
                   **_: Any) -> pd.DataFrame:
    """
    Universal table loader for local paths and http(s) URLs.

    Supports:
      .csv, .txt, .tsv     (optionally .zip/.gz compressed)
      .xlsx, .xls          (needs openpyxl)
      .parquet, .feather   (pyarrow)
      .json
      .pkl/.pickle
      .sas7bdat/.xpt       (NHANES ships SAS transport files)
      .dta                 (Stata)

    Remote files are fetched by pandas itself. Any reader failure is
    re-raised as DataLoadError.
    """
    ext = _extension(source)
    target = str(source) if is_url(source) else Path(source)

    if ext not in {".csv", ".txt", ".tsv", ".xlsx", ".xls", ".parquet", ".feather",
                   ".ft", ".json", ".pkl", ".pickle", ".sas7bdat", ".xpt", ".dta"}:
        raise ValueError(f"Unsupported file format: {ext!r} (source={source})")

    logger.info("Loading %s table from %s", ext.lstrip("."), source)
    try:
        df = _read(target, ext, sheet_name=sheet_name, sep=sep, encoding=encoding)
    except (ValueError, ModuleNotFoundError):
        raise
    except Exception as e:
        raise DataLoadError(str(source), ext.lstrip("."), e) from e

    logger.info("Loaded %d rows x %d columns", df.shape[0], df.shape[1])
    return df


def _read(target, ext: str, sheet_name=None, sep=None, encoding=None) -> pd.DataFrame:
    # --- Delimited text ---
    if ext in {".csv", ".txt"}:
        # CSV: assume comma (keeps fast C engine); TXT: let the python engine sniff
        eff_sep = sep if sep is not None else ("," if ext == ".csv" else None)
        engine = "c" if eff_sep is not None else "python"
        # mixed-type columns (EPA vehicles) otherwise warn and get split dtypes
        extra = {"low_memory": False} if engine == "c" else {}
        try:
            return pd.read_csv(target, sep=eff_sep, encoding=encoding, engine=engine, **extra)
        except UnicodeDecodeError:
            return pd.read_csv(target, sep=eff_sep, encoding=encoding or "latin-1", engine=engine, **extra)

    if ext == ".tsv":
        try:
            return pd.read_csv(target, sep="\t", encoding=encoding, engine="c")
        except UnicodeDecodeError:
            return pd.read_csv(target, sep="\t", encoding=encoding or "latin-1", engine="c")

    # --- Excel ---
    if ext in {".xlsx", ".xls"}:
        try:
            return pd.read_excel(target, sheet_name=0 if sheet_name is None else sheet_name)
        except ImportError as e:
            raise ModuleNotFoundError(
                "openpyxl>=3.1 is required for Excel files. Install with: pip install openpyxl"
            ) from e

    # --- Columnar ---
    if ext == ".parquet":
        return pd.read_parquet(target, engine="pyarrow")

    if ext in {".feather", ".ft"}:
        return pd.read_feather(target)

    # --- Other common formats ---
    if ext in {".pkl", ".pickle"}:
        return pd.read_pickle(target)

    if ext == ".json":
        return pd.read_json(target, convert_dates=True)

    # --- SAS / Stata ---
    if ext == ".xpt":
        return pd.read_sas(target, format="xport")

    if ext == ".sas7bdat":
        return pd.read_sas(target, format="sas7bdat")

    return pd.read_stata(target)


def save_table(df: pd.DataFrame, path: str | Path) -> Path:
    """
    Persist a cleaned table in a binary format that keeps dtypes.

    Categorical columns (including their declared level order) survive
    the round trip for .parquet, .feather and .pkl.
    """
    p = Path(path)
    ext = p.suffix.lower()
    if ext not in _BINARY_FORMATS:
        raise ValueError(f"Unsupported table format for saving: {ext!r} (use .parquet, .feather or .pkl)")

    p.parent.mkdir(parents=True, exist_ok=True)
    try:
        if ext == ".parquet":
            df.to_parquet(p, engine="pyarrow", index=False)
        elif ext in {".feather", ".ft"}:
            df.reset_index(drop=True).to_feather(p)
        else:
            df.to_pickle(p)
    except Exception as e:
        raise DataLoadError(str(p), ext.lstrip("."), e) from e

    logger.info("Saved %d rows x %d columns to %s", df.shape[0], df.shape[1], p)
    return p
