"""
Extraction Package

Entity extraction from spoken loading commands.
"""

from services.voice_load.extraction.entity_extractor import (
    EntityExtractor,
    ExtractedEntities,
    ExtractionResult,
    get_entity_extractor,
    extract,
)

__all__ = [
    'EntityExtractor',
    'ExtractedEntities',
    'ExtractionResult',
    'get_entity_extractor',
    'extract',
]
