"""Document ingestion: extraction, chunking, batch planning and orchestration."""

from docvector.services.ingestion.batch_planner import BatchPlanner
from docvector.services.ingestion.chunker import RecursiveChunker
from docvector.services.ingestion.ingestion_service import IngestionService, compose_content
from docvector.services.ingestion.text_extractor import TextExtractor

__all__ = [
    "BatchPlanner",
    "IngestionService",
    "RecursiveChunker",
    "TextExtractor",
    "compose_content",
]
