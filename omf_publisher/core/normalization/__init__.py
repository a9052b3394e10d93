"""Normalization layer - Registros → SchemaSnapshot."""

from .record_normalizer import NormalizerConfig, RecordNormalizer, to_utc_datetime

__all__ = ["NormalizerConfig", "RecordNormalizer", "to_utc_datetime"]
