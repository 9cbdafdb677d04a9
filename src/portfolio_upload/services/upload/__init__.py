"""
Batch Upload Service

Stores a batch of files all-or-nothing: every file lands in object storage
with its provenance metadata, or the files already stored are deleted again.
Committed batches are reported to the reporting service.
"""

from portfolio_upload.services.upload.orchestrator import BatchUploadOrchestrator

__all__ = ["BatchUploadOrchestrator"]
