"""
fieldops-ingest: staging, preview, commit and undo of field-operations exports.
"""

__version__ = "0.1.0"
