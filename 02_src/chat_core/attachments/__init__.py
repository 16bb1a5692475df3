"""Attachments module."""

from .manager import (
    AttachmentConstraints,
    AttachmentManager,
    IAttachmentManager,
    StagingResult,
)

__all__ = [
    "AttachmentConstraints",
    "AttachmentManager",
    "IAttachmentManager",
    "StagingResult",
]
