"""Environment analysis plots.

Renders per-feature boxplots grouped by environment and a feature
correlation heatmap into ``plots/``.
"""

import logging
from pathlib import Path
from typing import List, Optional

import numpy as np
import pandas as pd
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from bulletcluster.setup_directories import get_plot_path

__all__ = ['AnalysisPlotter']

logger = logging.getLogger(__name__)


class AnalysisPlotter:
    """Plots environment dependence of spectral features.

    Appearance (DPI, figure size, output format) comes from
    ``config.visualization``.
    """

    def __init__(self, config: "InternalConfig", output_dirs=None):
        viz = config.visualization
        self.dpi = viz.dpi
        self.figsize = tuple(viz.figsize)
        self.output_format = viz.output_format
        self.output_dirs = output_dirs or config.output_dirs

    def _save_figure(self, fig: plt.Figure, output_path: Path) -> Path:
        """Save figure in configured format."""
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=self.dpi, bbox_inches='tight', format=self.output_format)
        plt.close(fig)
        logger.info("✓ Plot saved: %s", output_path)
        return output_path

    def plot_feature_by_environment(self, df: pd.DataFrame, feature: str,
                                    test_row: Optional[pd.Series] = None) -> Optional[Path]:
        """Boxplot of one feature per environment.

        Returns None when no environment has a value for the feature.
        """
        data = df[["environment", feature]].dropna()
        if data.empty:
            logger.debug("No data to plot for %s", feature)
            return None

        labels = sorted(data["environment"].unique())
        groups = [data.loc[data["environment"] == env, feature].to_numpy() for env in labels]

        fig, ax = plt.subplots(figsize=self.figsize, dpi=self.dpi)
        ax.boxplot(groups, showfliers=True)
        ax.set_xticks(range(1, len(labels) + 1))
        ax.set_xticklabels([f"{env}\n(n={len(g)})" for env, g in zip(labels, groups)])
        ax.set_xlabel("Environment")
        ax.set_ylabel(feature)

        title = f"{feature} by environment"
        if test_row is not None and pd.notna(test_row.get("p_value")):
            title += f"  (Kruskal-Wallis H={test_row['statistic']:.2f}, p={test_row['p_value']:.3g})"
        ax.set_title(title)
        ax.grid(axis='y', alpha=0.3)

        path = get_plot_path(self.output_dirs, "boxplot", feature=feature,
                             output_format=self.output_format)
        return self._save_figure(fig, Path(path))

    def plot_correlation_heatmap(self, corr: pd.DataFrame, method: str = "spearman") -> Optional[Path]:
        """Heatmap of a feature correlation matrix."""
        if corr.empty:
            return None

        fig, ax = plt.subplots(figsize=self.figsize, dpi=self.dpi)
        values = corr.to_numpy(dtype=float)
        im = ax.imshow(values, cmap="RdBu_r", vmin=-1, vmax=1)
        fig.colorbar(im, ax=ax, label=f"{method} correlation")

        ax.set_xticks(range(len(corr.columns)))
        ax.set_xticklabels(corr.columns, rotation=45, ha="right")
        ax.set_yticks(range(len(corr.index)))
        ax.set_yticklabels(corr.index)

        for i in range(values.shape[0]):
            for j in range(values.shape[1]):
                if np.isfinite(values[i, j]):
                    ax.text(j, i, f"{values[i, j]:.2f}", ha="center", va="center", fontsize=8)

        ax.set_title("Feature correlations")

        path = get_plot_path(self.output_dirs, "correlation_heatmap",
                             output_format=self.output_format)
        return self._save_figure(fig, Path(path))

    def plot_all(self, df: pd.DataFrame, features: List[str], tests: pd.DataFrame,
                 corr: pd.DataFrame, method: str = "spearman") -> List[Path]:
        """Render every boxplot and the heatmap; returns the written paths."""
        test_rows = tests.set_index("feature") if not tests.empty else None
        written = []
        for feature in features:
            row = test_rows.loc[feature] if test_rows is not None and feature in test_rows.index else None
            path = self.plot_feature_by_environment(df, feature, row)
            if path is not None:
                written.append(path)

        path = self.plot_correlation_heatmap(corr, method)
        if path is not None:
            written.append(path)
        return written
