import numpy as np
import pandas as pd
from typing import List, Dict, Any


class MetricAggregator:
    """
    Aggregates a list of statistic dictionaries, one per resample or fold.
    Computes Mean, Std, Median, IQR, Min, Max for each numeric statistic.
    """

    def __init__(self, metrics_list: List[Dict[str, Any]]):
        self.metrics_list = metrics_list
        self.df = pd.DataFrame(metrics_list)

    def get_summary(self) -> Dict[str, Dict[str, float]]:
        """
        Returns a dictionary where keys are statistic names and values are
        stats dictionaries (mean, std, median, etc.)
        """
        summary = {}
        if self.df.empty:
            return summary
        numeric_cols = self.df.select_dtypes(include=[np.number]).columns

        for col in numeric_cols:
            vals = self.df[col].dropna()
            if vals.empty:
                continue

            summary[col] = {
                "mean": float(vals.mean()),
                "std": float(vals.std(ddof=1)) if len(vals) > 1 else 0.0,
                "median": float(vals.median()),
                "min": float(vals.min()),
                "max": float(vals.max()),
                "q1": float(vals.quantile(0.25)),
                "q3": float(vals.quantile(0.75)),
                "iqr": float(vals.quantile(0.75) - vals.quantile(0.25)),
                "count": int(len(vals)),
            }
        return summary

    def get_frame(self) -> pd.DataFrame:
        """Summary as a DataFrame, one row per statistic."""
        return pd.DataFrame.from_dict(self.get_summary(), orient="index").rename_axis("statistic")
