"""Analysis pipeline and utilities."""

from . import features
from . import metrics
from . import results
from . import pipeline

from .features import extract_memory_features
from .pipeline import MemoryPipeline, PipelineResult, create_standard_pipeline

__all__ = [
    "features",
    "metrics",
    "results",
    "pipeline",
    "extract_memory_features",
    "MemoryPipeline",
    "PipelineResult",
    "create_standard_pipeline",
]
