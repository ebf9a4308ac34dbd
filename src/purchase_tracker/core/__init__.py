"""Purchase tracker core: parsing, keys, pipeline and batch scans."""

from .pipeline import IngestionPipeline
from .parser import EventParser
from .keys import KeyDeriver, derive_key

__all__ = ["IngestionPipeline", "EventParser", "KeyDeriver", "derive_key"]
