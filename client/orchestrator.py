"""Client-side driver of the fingerprint, resume, upload and merge protocol."""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union

from client.chunker import Chunker
from client.fingerprint import Fingerprinter
from client.retry import RetryPolicy
from client.upload_client import UploadClient
from common.constants import CHUNK_SIZE_BYTES
from common.exceptions import IncompleteUpload, ResumeLookupError, UploadError
from common.logging_config import get_logger
from common.types import Chunk

logger = get_logger(__name__)


class UploadState(str, Enum):
    FINGERPRINTING = "fingerprinting"
    CHUNKING = "chunking"
    RESUME_CHECK = "resume_check"
    UPLOADING = "uploading"
    MERGING = "merging"
    DONE = "done"
    FAILED = "failed"


@dataclass
class UploadReport:
    """
    Outcome of one orchestrated upload.

    ``failed_index`` is set when a chunk upload aborted the sequence;
    ``failed_state`` is the state a failed run was in when it stopped.
    """
    path: Path
    success: bool = False
    state: UploadState = UploadState.FINGERPRINTING
    fingerprint: Optional[str] = None
    total: int = 0
    url: Optional[str] = None
    uploaded: List[int] = field(default_factory=list)
    skipped: List[int] = field(default_factory=list)
    failed_index: Optional[int] = None
    failed_state: Optional[UploadState] = None
    error: Optional[UploadError] = None
    history: List[UploadState] = field(default_factory=list)


ProgressCallback = Callable[[Chunk, int, int], None]


class UploadOrchestrator:
    """
    Drives one file through
    FINGERPRINTING -> CHUNKING -> RESUME_CHECK -> UPLOADING -> MERGING -> DONE.

    Any UploadError moves the run to FAILED and is recorded in the report.
    Missing chunks are uploaded one at a time in ascending index order and
    the first failing chunk aborts the run. No state is kept between runs;
    a rerun relies on the resume query to skip chunks already stored.
    """

    def __init__(
        self,
        client: UploadClient,
        chunk_size: int = CHUNK_SIZE_BYTES,
        fingerprinter: Optional[Fingerprinter] = None,
        retry_policy: Optional[RetryPolicy] = None,
        degrade_on_lookup_error: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ):
        self.client = client
        self.chunk_size = chunk_size
        self.fingerprinter = fingerprinter or Fingerprinter()
        self.retry_policy = retry_policy or RetryPolicy.disabled()
        self.degrade_on_lookup_error = degrade_on_lookup_error
        self.on_progress = on_progress

    def run(self, path: Union[str, Path], file_name: Optional[str] = None) -> UploadReport:
        """
        Upload one file and merge it on the server.

        Args:
            path: Local file to upload
            file_name: Name for the merged artifact (defaults to the file's name)

        Returns:
            UploadReport; ``success`` is False when any step failed
        """
        path = Path(path)
        file_name = file_name or path.name
        report = UploadReport(path=path)

        try:
            self._enter(report, UploadState.FINGERPRINTING)
            report.fingerprint = self.fingerprinter.fingerprint(path)

            self._enter(report, UploadState.CHUNKING)
            chunker = Chunker(path, self.chunk_size)
            report.total = len(chunker)

            if report.total > 0:
                self._enter(report, UploadState.RESUME_CHECK)
                stored = self._stored_indices(report.fingerprint)
                report.skipped = [i for i in range(report.total) if i in stored]

                self._enter(report, UploadState.UPLOADING)
                for chunk in chunker:
                    if chunk.index in stored:
                        continue
                    report.failed_index = chunk.index
                    self.retry_policy.call(
                        self.client.upload_chunk, report.fingerprint, chunk,
                        description=f"upload of chunk {chunk.index}"
                    )
                    report.failed_index = None
                    report.uploaded.append(chunk.index)
                    if self.on_progress:
                        self.on_progress(chunk, len(report.uploaded) + len(report.skipped), report.total)

            self._enter(report, UploadState.MERGING)
            report.url = self._merge(report.fingerprint, file_name, report.total)
        except UploadError as e:
            logger.error(f"Upload of {path} failed in state {report.state.value}: {e.code} {e.message}")
            self._fail(report, e)
            return report

        self._enter(report, UploadState.DONE)
        report.success = True
        logger.info(
            f"Upload of {path} complete: fingerprint={report.fingerprint} "
            f"uploaded={len(report.uploaded)} skipped={len(report.skipped)} url={report.url}"
        )
        return report

    def status(self, path: Union[str, Path]) -> UploadReport:
        """
        Fingerprint and chunk a file, then ask which chunks the server holds.

        Nothing is uploaded; ``skipped`` lists the stored indices.
        """
        path = Path(path)
        report = UploadReport(path=path)
        try:
            self._enter(report, UploadState.FINGERPRINTING)
            report.fingerprint = self.fingerprinter.fingerprint(path)
            self._enter(report, UploadState.CHUNKING)
            report.total = len(Chunker(path, self.chunk_size))
            self._enter(report, UploadState.RESUME_CHECK)
            stored = self.retry_policy.call(
                self.client.stored_chunks, report.fingerprint, description="resume query"
            )
        except UploadError as e:
            self._fail(report, e)
            return report
        report.skipped = sorted(stored)
        report.success = True
        return report

    def _merge(self, fingerprint: str, file_name: str, total: int) -> str:
        """
        Merge under the retry policy.

        A merge can succeed on the server while its response is lost; the
        retry then finds no chunks and fails with IncompleteUpload. Only in
        that case the artifact itself is looked up before giving up.
        """
        attempts = 0

        def attempt() -> str:
            nonlocal attempts
            attempts += 1
            return self.client.merge(fingerprint, file_name, total)

        try:
            return self.retry_policy.call(attempt, description="merge")
        except IncompleteUpload as e:
            if attempts < 2:
                raise
            try:
                url = self.client.find_artifact(fingerprint, file_name)
            except UploadError as lookup_error:
                logger.warning(f"Artifact lookup after retried merge of {fingerprint} failed: {lookup_error.message}")
                raise e from lookup_error
            if url is None:
                raise
            logger.warning(f"Merge response for {fingerprint} was lost; artifact already at {url}")
            return url

    def _stored_indices(self, fingerprint: str) -> set:
        try:
            return set(self.retry_policy.call(
                self.client.stored_chunks, fingerprint, description="resume query"
            ))
        except ResumeLookupError as e:
            if not self.degrade_on_lookup_error:
                raise
            logger.warning(f"Resume query failed ({e.message}); uploading every chunk of {fingerprint}")
            return set()

    @staticmethod
    def _fail(report: UploadReport, error: UploadError) -> None:
        report.error = error
        report.failed_state = report.state
        report.state = UploadState.FAILED
        report.history.append(UploadState.FAILED)

    @staticmethod
    def _enter(report: UploadReport, state: UploadState) -> None:
        logger.debug(f"{report.path}: {report.state.value} -> {state.value}")
        report.state = state
        report.history.append(state)
