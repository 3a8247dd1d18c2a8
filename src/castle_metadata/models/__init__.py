"""Data models for metadata resolution."""

from castle_metadata.models.metadata import RawMetadataBlock, ResolvedMetadata
from castle_metadata.models.request import FetchedResource, ResolutionRequest

__all__ = [
    "FetchedResource",
    "RawMetadataBlock",
    "ResolutionRequest",
    "ResolvedMetadata",
]
