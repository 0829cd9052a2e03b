"""
Extraction package for the additive scraping engine

This package turns raw HTML into structured fields: page content,
contact details, social profiles and document metadata.
"""

from extraction.contact_extractor import ContactExtractor
from extraction.content_extractor import ContentExtractor
from extraction.extractor_pipeline import ExtractorPipeline, PipelineOptions
from extraction.metadata_extractor import MetadataExtractor
from extraction.models import ExtractedData, ExtractionSummary
from extraction.social_extractor import SocialExtractor

__all__ = [
    'ContactExtractor',
    'ContentExtractor',
    'ExtractedData',
    'ExtractionSummary',
    'ExtractorPipeline',
    'MetadataExtractor',
    'PipelineOptions',
    'SocialExtractor',
]
