"""Plots of environment analysis results."""

from bulletcluster.visualization.plotter import AnalysisPlotter

__all__ = ['AnalysisPlotter']
