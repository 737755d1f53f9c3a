"""Catalog ingestion: raw survey exports to ``spectra`` records."""

from bulletcluster.ingestion.catalog import (
    CatalogFormatError,
    read_catalog,
    normalize_catalog,
    apply_quality_filters,
)
from bulletcluster.ingestion.ingestor import CatalogIngestor

__all__ = [
    'CatalogFormatError',
    'read_catalog',
    'normalize_catalog',
    'apply_quality_filters',
    'CatalogIngestor',
]
