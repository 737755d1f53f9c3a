"""Pipeline orchestration and stage tracking."""

from bulletcluster.pipeline.tracker import PipelineTracker, STAGES
from bulletcluster.pipeline.orchestrator import PipelineOrchestrator, STAGE_ORDER

__all__ = ['PipelineTracker', 'PipelineOrchestrator', 'STAGES', 'STAGE_ORDER']
