"""
Directory setup for the spectral pipeline.

Creates the project data tree used by every stage:
- data/raw: catalog exports waiting for ingestion
- data/processed: derived spectral features (Parquet)
- data/results: environment analysis tables (CSV)
- database: generated schema.sql
- plots, logs
"""

import shutil
from pathlib import Path
from datetime import datetime, timezone


def setup_output_directories(base_dir=None):
    """
    Set up organized project directory structure.

    Parameters
    ----------
    base_dir : str or Path, optional
        Project root. If None, uses the current working directory.

    Returns
    -------
    dict
        Dictionary with paths: 'base', 'raw', 'processed', 'results',
        'database', 'plots', 'logs'
    """
    if base_dir is None:
        base_dir = Path.cwd()

    base_dir = Path(base_dir).expanduser().resolve()

    directories = {
        "base": base_dir,
        "raw": base_dir / "data" / "raw",
        "processed": base_dir / "data" / "processed",
        "results": base_dir / "data" / "results",
        "database": base_dir / "database",
        "plots": base_dir / "plots",
        "logs": base_dir / "logs",
    }

    for path in directories.values():
        path.mkdir(parents=True, exist_ok=True)

    return directories


def get_processed_path(output_dirs, filename):
    """
    Get path of a processed data product.

    Example
    -------
    >>> get_processed_path(dirs, 'spectral_features.parquet')
    Path('data/processed/spectral_features.parquet')
    """
    processed_dir = Path(output_dirs["processed"])
    processed_dir.mkdir(parents=True, exist_ok=True)
    return processed_dir / filename


def get_results_path(output_dirs, name, ext="csv"):
    """
    Get path of an analysis result table.

    Parameters
    ----------
    output_dirs : dict
        Output directories from setup_output_directories()
    name : str
        Table name, e.g. 'environment_summary'
    ext : str
        File extension without or with leading dot.

    Returns
    -------
    Path
        Full path: data/results/{name}.{ext}
    """
    results_dir = Path(output_dirs["results"])
    results_dir.mkdir(parents=True, exist_ok=True)
    ext = ext[1:] if ext.startswith('.') else ext
    return results_dir / f"{name}.{ext}"


def get_plot_path(output_dirs, plot_type, feature=None, output_format="png"):
    """
    Get plot file path.

    Example
    -------
    >>> get_plot_path(dirs, 'boxplot', feature='snr')
    Path('plots/boxplot_snr.png')
    """
    plots_dir = Path(output_dirs["plots"])
    plots_dir.mkdir(parents=True, exist_ok=True)

    if feature:
        filename = f"{plot_type}_{feature}.{output_format}"
    else:
        filename = f"{plot_type}.{output_format}"

    return plots_dir / filename


def get_log_path(output_dirs, run_id=None):
    """
    Get log file path.

    Parameters
    ----------
    output_dirs : dict
        Output directories from setup_output_directories()
    run_id : str, optional
        Pipeline run identifier

    Returns
    -------
    Path
        Full path to log file
    """
    log_dir = Path(output_dirs["logs"])
    log_dir.mkdir(parents=True, exist_ok=True)

    if run_id:
        filename = f"pipeline_{run_id}.log"
    else:
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
        filename = f"pipeline_{timestamp}.log"

    return log_dir / filename


def clean_processed(output_dirs):
    """
    Remove all processed data products, keeping the directory itself.

    Returns
    -------
    int
        Number of removed files and directories.
    """
    processed_dir = Path(output_dirs["processed"])
    if not processed_dir.exists():
        return 0

    removed = 0
    for entry in processed_dir.iterdir():
        if entry.is_dir():
            shutil.rmtree(entry)
        else:
            entry.unlink()
        removed += 1
    return removed
