"""`Bullet Cluster Modeling` - spectral survey ingestion and environment analysis.

Subpackages:
- schemas: Configuration loading and validation
- database: Schema initialization and the spectra repository
- ingestion: Catalog export ingestion
- processing: Spectral line feature derivation
- analysis: Environmental correlation statistics
- pipeline: Orchestrator, stage tracking
- visualization: Plotting
"""

__version__ = "0.1.0"
