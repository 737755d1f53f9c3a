"""Spectral feature derivation."""

from bulletcluster.processing.features import (
    FEATURE_COLUMNS,
    SPEED_OF_LIGHT_KMS,
    angular_separation_arcmin,
    compute_line_features,
)
from bulletcluster.processing.processor import SpectralProcessor

__all__ = [
    'FEATURE_COLUMNS',
    'SPEED_OF_LIGHT_KMS',
    'angular_separation_arcmin',
    'compute_line_features',
    'SpectralProcessor',
]
