"""Metadata records and normalisation for netstorage."""

from netstorage.metadata.models import (
    DiskUsage,
    FileType,
    ListingPage,
    MetadataRecord,
    MkdirResult,
    MkdirStatus,
)
from netstorage.metadata.normalizer import MetadataNormalizer, guess_mimetype

__all__ = [
    "DiskUsage",
    "FileType",
    "guess_mimetype",
    "ListingPage",
    "MetadataNormalizer",
    "MetadataRecord",
    "MkdirResult",
    "MkdirStatus",
]
