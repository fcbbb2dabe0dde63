"""Snapshot normalization into the typed Payload"""

from migration.transformers.normalizer import PayloadNormalizer

__all__ = ["PayloadNormalizer"]
