"""Extraction: parse extractor output and fold events into the vault."""

from .impact import apply_impact, apply_legacy_impact, apply_structured_impact
from .parser import parse_extraction_result
from .reducer import EventReducer, ReductionReport, reduce_events
from .scheduler import (
    ExtractionScheduler,
    get_extracted_message_ids,
    get_unextracted_messages,
)
