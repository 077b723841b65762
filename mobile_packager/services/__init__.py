"""Gateways used by the packaging pipeline."""
from .api_client import HTTPAPIClient
from .archiver import ArchiverService
from .build_service import BuildService
from .exporter import DirectoryExporter, ExporterService
from .upload import HTTPUploadService, UnavailableUploadService
from .validator import ProjectValidator

__all__ = [
    "ArchiverService",
    "BuildService",
    "DirectoryExporter",
    "ExporterService",
    "HTTPAPIClient",
    "HTTPUploadService",
    "ProjectValidator",
    "UnavailableUploadService",
]
