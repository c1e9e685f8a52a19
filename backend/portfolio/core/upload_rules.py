"""Upload Rules — shape-level checks run before any byte leaves the service.

Invariants:
    - Size limit is inclusive: exactly MAX_UPLOAD_BYTES is accepted
    - Allowed MIME types are exactly ALLOWED_IMAGE_TYPES
    - check_upload returns None when the upload may proceed
"""

from enum import Enum

MAX_UPLOAD_BYTES = 50 * 1024 * 1024  # 50 MiB
ALLOWED_IMAGE_TYPES = frozenset({
    "image/jpeg", "image/png", "image/gif", "image/webp",
})


class UploadRejection(str, Enum):
    """Why an upload was refused. Value is the metric Reason dimension."""
    NO_FILE = "NoFile"
    FILE_TOO_LARGE = "FileTooLarge"
    INVALID_FILE_TYPE = "InvalidFileType"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    UploadRejection.NO_FILE: "No file provided",
    UploadRejection.FILE_TOO_LARGE: "File too large",
    UploadRejection.INVALID_FILE_TYPE: "Invalid file type",
}


def check_upload(size: int, content_type: str | None) -> UploadRejection | None:
    """Size is checked before type; the first failing rule wins."""
    if size > MAX_UPLOAD_BYTES:
        return UploadRejection.FILE_TOO_LARGE
    if content_type not in ALLOWED_IMAGE_TYPES:
        return UploadRejection.INVALID_FILE_TYPE
    return None
