from webwhisper.ingestion.chunker import TextChunker, TextSpan
from webwhisper.ingestion.ingestor import CrawledPage, IngestionResult, Ingestor

__all__ = ["CrawledPage", "IngestionResult", "Ingestor", "TextChunker", "TextSpan"]
