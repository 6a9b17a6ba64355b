"""Remote coverage upload."""

from covrun.upload.codecov import (
    CodecovUploader,
    UploadContext,
    UploadReceipt,
    build_payload,
    collect_report_files,
)

__all__ = [
    "CodecovUploader",
    "UploadContext",
    "UploadReceipt",
    "build_payload",
    "collect_report_files",
]
