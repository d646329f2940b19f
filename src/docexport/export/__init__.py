"""Streaming export and size-adaptive upload engine."""

from .buffer import StreamingBuffer
from .metadata import EXPORT_FORMAT, build_metadata, filter_text
from .multipart import MultipartUploadCoordinator, SessionState, UploadSession
from .orchestrator import PROGRESS_EVERY, ExportOutcome, ExportRequest, export_collection
from .planner import (
    MAX_PART_SIZE,
    MIN_PART_SIZE,
    SINGLE_UPLOAD_THRESHOLD,
    PartSpec,
    UploadPlan,
    partition,
    plan_upload,
)
from .serializer import DocumentSerializer, serialize_records

__all__ = [
    "StreamingBuffer",
    "EXPORT_FORMAT",
    "build_metadata",
    "filter_text",
    "MultipartUploadCoordinator",
    "SessionState",
    "UploadSession",
    "PROGRESS_EVERY",
    "ExportOutcome",
    "ExportRequest",
    "export_collection",
    "MAX_PART_SIZE",
    "MIN_PART_SIZE",
    "SINGLE_UPLOAD_THRESHOLD",
    "PartSpec",
    "UploadPlan",
    "partition",
    "plan_upload",
    "DocumentSerializer",
    "serialize_records",
]
