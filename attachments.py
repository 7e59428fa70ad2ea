"""Default attachment validation for the chat input."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Sequence

from errors import ValidationFailed
from models import FileDescriptor

MIB = 1024 * 1024

ALLOWED_MEDIA_TYPES = frozenset(
    {
        "application/pdf",
        "image/jpeg",
        "image/png",
        "image/webp",
    }
)


def describe_path(path: Path) -> FileDescriptor:
    media_type, _ = mimetypes.guess_type(path.name)
    return FileDescriptor(
        name=path.name,
        media_type=media_type or "application/octet-stream",
        size=path.stat().st_size,
        path=path,
    )


class AttachmentValidator:
    """Checks count, per-file size, total size and media type.

    Content inspection (e.g. PDF page counting) is left to the backend.
    """

    def __init__(
        self,
        max_files: int = 5,
        max_file_size: int = 50 * MIB,
        max_total_size: int = 100 * MIB,
        allowed_types: frozenset[str] = ALLOWED_MEDIA_TYPES,
    ) -> None:
        self.max_files = max_files
        self.max_file_size = max_file_size
        self.max_total_size = max_total_size
        self.allowed_types = allowed_types

    def process(self, files: Sequence[FileDescriptor]) -> list[FileDescriptor]:
        if len(files) > self.max_files:
            raise ValidationFailed(f"Too many files ({len(files)}). Maximum: {self.max_files}.")
        for f in files:
            if f.media_type not in self.allowed_types:
                raise ValidationFailed(f"Unsupported file type for {f.name}: {f.media_type}.")
            if f.size > self.max_file_size:
                raise ValidationFailed(
                    f"{f.name} is too large ({f.size // MIB}MB). "
                    f"Maximum: {self.max_file_size // MIB}MB."
                )
        total = sum(f.size for f in files)
        if total > self.max_total_size:
            raise ValidationFailed(
                f"Total attachment size too large ({total // MIB}MB). "
                f"Maximum: {self.max_total_size // MIB}MB."
            )
        return list(files)
