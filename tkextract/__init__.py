"""Extraction of tracker geometry, material and topology records from an in-memory detector model."""

from tkextract.detector_config import ExtractorConfig, get_extractor_config
from tkextract.geometry_parsing.extractor import analyse
from tkextract.logging_config import setup_logging

__all__ = ["ExtractorConfig", "analyse", "get_extractor_config", "setup_logging"]
