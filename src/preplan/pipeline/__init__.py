"""Address resolution pipeline."""

from preplan.pipeline.resolver import AddressResolutionPipeline, create_pipeline

__all__ = ["AddressResolutionPipeline", "create_pipeline"]
