"""AttachmentManager implementation."""

import fnmatch
import uuid
from dataclasses import dataclass, field, replace
from typing import Iterable, Protocol

from ..config import DEFAULT_ALLOWED_TYPES, DEFAULT_MAX_ATTACHMENT_BYTES
from ..errors import AttachmentRejected, RejectionReason
from ..logging_config import get_logger
from ..models import Attachment, AttachmentType
from ..transport import FileUpload, IAttachmentStorage

logger = get_logger(__name__)

BLOB_SCHEME = "blob:"


@dataclass(frozen=True)
class AttachmentConstraints:
    """Limits applied when staging files."""

    max_size: int = DEFAULT_MAX_ATTACHMENT_BYTES
    allowed_types: tuple[str, ...] = DEFAULT_ALLOWED_TYPES

    def accepts_type(self, content_type: str) -> bool:
        content_type = (content_type or "").lower()
        return any(
            fnmatch.fnmatchcase(content_type, pattern.lower())
            for pattern in self.allowed_types
        )


@dataclass
class StagingResult:
    """Outcome of staging a batch: valid files are staged, the rest rejected."""

    staged: list[Attachment] = field(default_factory=list)
    rejected: list[AttachmentRejected] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.rejected


class IAttachmentManager(Protocol):
    """Validating, staging and releasing draft attachments."""

    def stage(
        self, files: Iterable[FileUpload], constraints: AttachmentConstraints | None = None
    ) -> StagingResult:
        """Validate each file independently and stage the valid ones."""
        ...

    def release(self, attachment: Attachment) -> bool:
        """Free the preview resource of a staged attachment."""
        ...

    def consume(self, attachments: Iterable[Attachment]) -> None:
        """Release previews of attachments that went out with a message."""
        ...


class AttachmentManager:
    """Stages draft attachments behind local ``blob:`` preview handles.

    Every staged attachment holds a preview resource in ``_blobs`` until
    ``release`` (discarded draft) or ``consume`` (sent message) frees it.
    """

    def __init__(self, constraints: AttachmentConstraints | None = None):
        self._constraints = constraints or AttachmentConstraints()
        self._blobs: dict[str, FileUpload] = {}
        self._staged: dict[str, Attachment] = {}  # attachment id -> draft

    @property
    def constraints(self) -> AttachmentConstraints:
        return self._constraints

    @property
    def active_previews(self) -> int:
        """Number of preview handles not yet released."""
        return len(self._blobs)

    def validate(
        self, file: FileUpload, constraints: AttachmentConstraints | None = None
    ) -> None:
        """Raise AttachmentRejected if ``file`` violates the constraints."""
        limits = constraints or self._constraints
        if not limits.accepts_type(file.content_type):
            raise AttachmentRejected(
                file.name,
                RejectionReason.INVALID_TYPE,
                f"{file.content_type or 'unknown'} is not allowed",
            )
        if file.size > limits.max_size:
            raise AttachmentRejected(
                file.name,
                RejectionReason.TOO_LARGE,
                f"{file.size} bytes exceeds {limits.max_size}",
            )

    def stage(
        self, files: Iterable[FileUpload], constraints: AttachmentConstraints | None = None
    ) -> StagingResult:
        """Validate each file independently and stage the valid ones."""
        result = StagingResult()

        for file in files:
            try:
                self.validate(file, constraints)
            except AttachmentRejected as rejection:
                logger.info("Attachment rejected: %s", rejection)
                result.rejected.append(rejection)
                continue

            handle = f"{BLOB_SCHEME}{uuid.uuid4()}"
            attachment = Attachment(
                id=str(uuid.uuid4()),
                type=AttachmentType.for_content_type(file.content_type),
                url=handle,
                name=file.name,
                size=file.size,
                content_type=file.content_type,
            )
            self._blobs[handle] = file
            self._staged[attachment.id] = attachment
            result.staged.append(attachment)

        return result

    def get_staged(self, attachment_id: str) -> Attachment:
        """Look up a draft attachment that has not been released yet."""
        try:
            return self._staged[attachment_id]
        except KeyError:
            raise KeyError(f"Attachment {attachment_id} is not staged") from None

    def has_preview(self, attachment: Attachment) -> bool:
        return attachment.url in self._blobs

    def preview(self, attachment: Attachment) -> bytes | None:
        """Resolve a staged preview handle to its bytes."""
        blob = self._blobs.get(attachment.url)
        return blob.data if blob else None

    def release(self, attachment: Attachment) -> bool:
        """Free the preview resource of a staged attachment.

        Returns False when there was nothing to free (already released or
        never staged here).
        """
        if self._blobs.pop(attachment.url, None) is None:
            logger.warning(
                "Release of unknown or already released preview %s", attachment.url
            )
            return False
        self._staged.pop(attachment.id, None)
        return True

    def consume(self, attachments: Iterable[Attachment]) -> None:
        """Release previews of attachments that went out with a message."""
        for attachment in attachments:
            if self.has_preview(attachment):
                self.release(attachment)

    async def upload(
        self, attachment: Attachment, storage: IAttachmentStorage
    ) -> Attachment:
        """Persist a staged attachment and return it with its remote reference."""
        blob = self._blobs.get(attachment.url)
        if blob is None:
            raise KeyError(f"Attachment {attachment.id} is not staged")

        stored = await storage.upload(blob)
        return replace(attachment, id=stored.id, url=stored.url)

    def release_all(self) -> int:
        """Drop every remaining preview. Returns how many were freed."""
        count = len(self._blobs)
        self._blobs.clear()
        self._staged.clear()
        return count
