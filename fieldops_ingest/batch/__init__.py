"""
Pipeline stages: upload staging, parse preview, commit and undo.
"""

from .commit import CommitWriter
from .extraction import ExtractedRow, ParsedFile, SheetExtractor
from .pipeline import IngestPipeline
from .preview import ParsePreviewer, validate_upload_file
from .stager import UploadStager
from .undo import UndoExecutor

__all__ = [
    "CommitWriter",
    "ExtractedRow",
    "ParsedFile",
    "SheetExtractor",
    "IngestPipeline",
    "ParsePreviewer",
    "validate_upload_file",
    "UploadStager",
    "UndoExecutor",
]
