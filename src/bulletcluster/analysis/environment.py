"""Environmental dependence of spectral features.

Compares feature distributions across cluster environments (e.g. ``core``,
``outskirts``, ``field``) with the Kruskal-Wallis H test, which makes no
normality assumption and works with unequal group sizes.
"""

import logging
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd
from scipy import stats

from bulletcluster.contracts import assert_analysis_output
from bulletcluster.contracts.analysis import TEST_COLUMNS
from bulletcluster.setup_directories import get_processed_path, get_results_path

__all__ = ['EnvironmentAnalyzer']

logger = logging.getLogger(__name__)

SUMMARY_STATS = ["count", "mean", "median", "std"]


class EnvironmentAnalyzer:
    """Summarizes and tests feature differences between environments.

    Example usage::

        analyzer = EnvironmentAnalyzer(config)
        result = analyzer.run()
        print(result["tests"])
    """

    def __init__(self, config: "InternalConfig", output_dirs=None):
        self.config = config
        self.output_dirs = output_dirs or config.output_dirs

    def _features(self, df: pd.DataFrame) -> List[str]:
        """Configured features present in ``df``."""
        features = [f for f in self.config.analysis.features if f in df.columns]
        missing = [f for f in self.config.analysis.features if f not in df.columns]
        if missing:
            logger.warning("Features not in data, skipped: %s", ", ".join(missing))
        return features

    def summarize(self, df: pd.DataFrame, features: Optional[List[str]] = None) -> pd.DataFrame:
        """Per-environment count, mean, median and std of each feature.

        ``features`` defaults to the configured features present in ``df``.

        Returns
        -------
        pd.DataFrame
            Indexed by environment, columns ``<feature>_<stat>``. Records
            without an environment are excluded.
        """
        if features is None:
            features = self._features(df)
        data = df.dropna(subset=["environment"])
        if data.empty or not features:
            return pd.DataFrame(index=pd.Index([], name="environment"))

        numeric = data[features].apply(pd.to_numeric, errors="coerce")
        numeric["environment"] = data["environment"].astype(str)
        summary = numeric.groupby("environment").agg(SUMMARY_STATS)
        summary.columns = [f"{feature}_{stat}" for feature, stat in summary.columns]
        summary.index.name = "environment"
        return summary

    def _test_feature(self, df: pd.DataFrame, feature: str) -> dict:
        cfg = self.config.analysis
        row = {
            "feature": feature,
            "n_groups": 0,
            "n_obs": 0,
            "statistic": np.nan,
            "p_value": np.nan,
            "eta_squared": np.nan,
            "significant": False,
            "note": "",
        }

        data = df[["environment", feature]].dropna()
        groups = [
            pd.to_numeric(values, errors="coerce").dropna().to_numpy(dtype=float)
            for _, values in data.groupby("environment")[feature]
        ]
        groups = [g for g in groups if len(g) >= cfg.min_group_size]

        row["n_groups"] = len(groups)
        row["n_obs"] = int(sum(len(g) for g in groups))

        if len(groups) < 2:
            row["note"] = "insufficient_groups"
            return row

        pooled = np.concatenate(groups)
        if np.ptp(pooled) == 0:
            row["note"] = "identical_values"
            return row

        try:
            h_stat, p_value = stats.kruskal(*groups)
        except ValueError:
            row["note"] = "identical_values"
            return row

        k, n = len(groups), len(pooled)
        row["statistic"] = float(h_stat)
        row["p_value"] = float(p_value)
        if n > k:
            row["eta_squared"] = max(0.0, float((h_stat - k + 1) / (n - k)))
        row["significant"] = bool(p_value < cfg.significance)
        return row

    def test_environment_dependence(self, df: pd.DataFrame,
                                    features: Optional[List[str]] = None) -> pd.DataFrame:
        """Kruskal-Wallis H test per feature across environments.

        Only environments with at least ``min_group_size`` values take part.
        ``eta_squared`` is the rank-based effect size (H - k + 1) / (n - k).

        Returns
        -------
        pd.DataFrame
            One row per feature with TEST_COLUMNS. ``note`` is
            ``insufficient_groups`` or ``identical_values`` when no test
            could be run, otherwise empty.
        """
        if features is None:
            features = self._features(df)
        rows = [self._test_feature(df, feature) for feature in features]
        return pd.DataFrame(rows, columns=TEST_COLUMNS)

    def feature_correlations(self, df: pd.DataFrame,
                             features: Optional[List[str]] = None) -> pd.DataFrame:
        """Pairwise correlation matrix of the features."""
        if features is None:
            features = self._features(df)
        numeric = df[features].apply(pd.to_numeric, errors="coerce")
        return numeric.corr(method=self.config.analysis.correlation_method)

    def _load_features(self) -> pd.DataFrame:
        path = Path(get_processed_path(self.output_dirs, self.config.output.features_filename))
        if not path.exists():
            raise FileNotFoundError(
                f"Processed features not found: {path}. Run 'bulletcluster process' first"
            )
        return pd.read_parquet(path, engine="pyarrow")

    def run(self, df: Optional[pd.DataFrame] = None) -> dict:
        """Run the full analysis and write the result tables.

        Parameters
        ----------
        df : pd.DataFrame, optional
            Feature frame. If None, the processed Parquet file is loaded.

        Returns
        -------
        dict
            `summary`, `tests`, `correlations` (DataFrames), `paths`
            (dict of written CSV files) and `plots` (list of plot paths).

        Raises
        ------
        FileNotFoundError
            If ``df`` is None and no processed features exist.
        """
        if df is None:
            df = self._load_features()

        logger.info("Analyzing %d records across %d environment(s)",
                    len(df), df["environment"].dropna().nunique())

        features = self._features(df)
        summary = self.summarize(df, features)
        tests = self.test_environment_dependence(df, features)
        correlations = self.feature_correlations(df, features)

        assert_analysis_output(summary, tests)

        paths = {
            "summary": get_results_path(self.output_dirs, "environment_summary"),
            "tests": get_results_path(self.output_dirs, "environment_tests"),
            "correlations": get_results_path(self.output_dirs, "feature_correlations"),
        }
        summary.to_csv(paths["summary"])
        tests.to_csv(paths["tests"], index=False)
        correlations.to_csv(paths["correlations"])

        for _, row in tests.iterrows():
            if row["note"]:
                logger.info("  %s: not tested (%s)", row["feature"], row["note"])
            else:
                logger.info("  %s: H=%.2f, p=%.3g%s", row["feature"], row["statistic"],
                            row["p_value"], " *" if row["significant"] else "")

        plots = []
        if self.config.visualization.enabled:
            from bulletcluster.visualization import AnalysisPlotter

            plotter = AnalysisPlotter(self.config, self.output_dirs)
            plots = plotter.plot_all(df, features, tests, correlations,
                                     method=self.config.analysis.correlation_method)

        logger.info("Results saved to: %s", Path(self.output_dirs["results"]))

        return {
            "summary": summary,
            "tests": tests,
            "correlations": correlations,
            "paths": paths,
            "plots": plots,
        }
