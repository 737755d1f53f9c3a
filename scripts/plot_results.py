#!/usr/bin/env python3
"""Re-render analysis plots from finalized pipeline data.

Reads ``data/processed/spectral_features.parquet`` and
``data/results/environment_tests.csv`` and draws the boxplots and the
correlation heatmap again, e.g. with a different format or DPI. Nothing
is recomputed in the database.

Usage
-----
    python scripts/plot_results.py --base-dir . --format pdf --dpi 300
    python scripts/plot_results.py --feature velocity_offset_kms
"""

import sys
import argparse
import logging
from pathlib import Path

project_root = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(project_root / "src"))

import pandas as pd

from bulletcluster.analysis import EnvironmentAnalyzer
from bulletcluster.schemas import ParamConfig, InternalConfig, resolve_config
from bulletcluster.setup_directories import get_processed_path, get_results_path, setup_output_directories
from bulletcluster.visualization import AnalysisPlotter

logger = logging.getLogger(__name__)


def main():
    parser = argparse.ArgumentParser(description="Re-render environment analysis plots")
    parser.add_argument("--base-dir", default=".", help="Project root (default: .)")
    parser.add_argument("--format", choices=["png", "pdf", "jpeg", "svg"], help="Output format")
    parser.add_argument("--dpi", type=int, help="Resolution")
    parser.add_argument("--feature", action="append", help="Feature to plot (repeatable; default: all)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    dirs = setup_output_directories(args.base_dir)
    overrides = {"visualization": {}}
    if args.format:
        overrides["visualization"]["output_format"] = args.format
    if args.dpi:
        overrides["visualization"]["dpi"] = args.dpi

    config = resolve_config(ParamConfig.model_validate(overrides), None, {"base_dir": args.base_dir})
    config_dict = config.model_dump()
    config_dict["output_dirs"] = {k: str(v) for k, v in dirs.items()}
    config = InternalConfig.model_validate(config_dict)

    features_path = get_processed_path(dirs, config.output.features_filename)
    if not features_path.exists():
        print(f"❌ {features_path} not found. Run 'bulletcluster process' first")
        return 1
    df = pd.read_parquet(features_path, engine="pyarrow")

    tests_path = get_results_path(dirs, "environment_tests")
    analyzer = EnvironmentAnalyzer(config)
    tests = pd.read_csv(tests_path) if tests_path.exists() else analyzer.test_environment_dependence(df)
    features = args.feature or [f for f in config.analysis.features if f in df.columns]

    plotter = AnalysisPlotter(config)
    written = plotter.plot_all(df, features, tests, analyzer.feature_correlations(df),
                               method=config.analysis.correlation_method)
    print(f"✓ {len(written)} plot(s) written to {dirs['plots']}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
