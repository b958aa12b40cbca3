"""HypeSeeker: ML/AI post aggregation, LLM scoring and digest dispatch."""

__version__ = "0.1.0"
