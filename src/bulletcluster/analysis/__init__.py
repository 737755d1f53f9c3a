"""Environment dependence analysis of spectral features."""

from bulletcluster.analysis.environment import EnvironmentAnalyzer

__all__ = ['EnvironmentAnalyzer']
