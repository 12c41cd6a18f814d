"""Error taxonomy shared by the upload client and server."""

from typing import Iterable, Optional


class UploadError(Exception):
    """
    Base exception class for all chunked-upload errors.
    """
    code = "UPLOAD_ERROR"
    retryable = False

    def __init__(
        self,
        message: str,
        fingerprint: Optional[str] = None,
        index: Optional[int] = None,
        retryable: Optional[bool] = None,
    ):
        super().__init__(message)
        self.message = message
        self.fingerprint = fingerprint
        self.index = index
        if retryable is not None:
            self.retryable = retryable


class ReadError(UploadError):
    """
    Raised when the source file (or a sampled window of it) cannot be read.
    """
    code = "READ_ERROR"


class ResumeLookupError(UploadError, LookupError):
    """
    Raised when the stored chunk indices of a fingerprint cannot be determined.
    """
    code = "LOOKUP_FAILED"
    retryable = True


class InvalidChunkRequest(UploadError):
    """
    Raised when a chunk write is missing its fingerprint, index or payload,
    or names an unsafe fingerprint.
    """
    code = "INVALID_CHUNK_REQUEST"


class InvalidMergeRequest(UploadError):
    """
    Raised when a merge request carries an unusable fingerprint, file name or total.
    """
    code = "INVALID_MERGE_REQUEST"


class IncompleteUpload(UploadError):
    """
    Raised when the stored chunks do not match the declared total at merge time.
    """
    code = "INCOMPLETE_UPLOAD"

    def __init__(
        self,
        message: str,
        fingerprint: Optional[str] = None,
        expected: Optional[int] = None,
        found: Optional[int] = None,
        missing: Iterable[int] = (),
    ):
        super().__init__(message, fingerprint=fingerprint)
        self.expected = expected
        self.found = found
        self.missing = sorted(missing)


class CorruptNamespace(UploadError):
    """
    Raised when two chunk records of one namespace resolve to the same index,
    or a record name cannot be parsed.
    """
    code = "CORRUPT_NAMESPACE"


class MergeFailed(UploadError):
    """
    Raised when concatenating chunk records into the artifact fails.
    The chunk namespace is always left in place, so retrying is safe.
    """
    code = "MERGE_FAILED"
    retryable = True


class NamespaceBusy(UploadError):
    """
    Raised when the namespace lock of a fingerprint cannot be acquired in time.
    """
    code = "NAMESPACE_BUSY"
    retryable = True


class UploadFailed(UploadError):
    """
    Raised when a single chunk transfer fails at the transport level
    or is rejected by the server.
    """
    code = "UPLOAD_FAILED"


class StorageError(UploadError):
    """
    Raised when a chunk record cannot be persisted (disk full, permissions).
    """
    code = "STORAGE_ERROR"
    retryable = True


class ArtifactNotFound(UploadError):
    """
    Raised when a requested merged artifact does not exist.
    """
    code = "ARTIFACT_NOT_FOUND"


ERRORS_BY_CODE = {
    cls.code: cls
    for cls in (
        ReadError,
        ResumeLookupError,
        InvalidChunkRequest,
        InvalidMergeRequest,
        IncompleteUpload,
        CorruptNamespace,
        MergeFailed,
        NamespaceBusy,
        UploadFailed,
        StorageError,
        ArtifactNotFound,
    )
}
