"""Tests for the UploadOrchestrator state machine."""

from unittest.mock import Mock

import pytest

from client.fingerprint import Fingerprinter
from client.orchestrator import UploadOrchestrator, UploadState
from client.retry import RetryPolicy
from client.upload_client import UploadClient
from common.exceptions import (
    IncompleteUpload,
    InvalidChunkRequest,
    MergeFailed,
    ReadError,
    ResumeLookupError,
    UploadFailed,
)


@pytest.fixture
def mock_client():
    client = Mock(spec=UploadClient)
    client.uploaded = []
    client.stored_chunks.return_value = []
    client.upload_chunk.side_effect = lambda fingerprint, chunk: client.uploaded.append(chunk.index)
    client.merge.return_value = '/assets/merged'
    return client


@pytest.fixture
def ten_byte_file(tmp_path):
    path = tmp_path / 'data.bin'
    path.write_bytes(b'abcdefghij')
    return path


def make_orchestrator(client, **kwargs):
    kwargs.setdefault('chunk_size', 4)
    kwargs.setdefault('fingerprinter', Fingerprinter(sample_window=4))
    return UploadOrchestrator(client, **kwargs)


def test_fresh_upload(mock_client, ten_byte_file):
    report = make_orchestrator(mock_client).run(ten_byte_file)

    fingerprint = Fingerprinter(sample_window=4).fingerprint(ten_byte_file)
    assert report.success
    assert report.state == UploadState.DONE
    assert report.fingerprint == fingerprint
    assert report.total == 3
    assert report.uploaded == [0, 1, 2]
    assert report.skipped == []
    assert report.url == '/assets/merged'
    assert report.history == [
        UploadState.FINGERPRINTING,
        UploadState.CHUNKING,
        UploadState.RESUME_CHECK,
        UploadState.UPLOADING,
        UploadState.MERGING,
        UploadState.DONE,
    ]
    assert mock_client.uploaded == [0, 1, 2]
    mock_client.stored_chunks.assert_called_once_with(fingerprint)
    mock_client.merge.assert_called_once_with(fingerprint, 'data.bin', 3)


def test_resume_skips_stored_chunks(mock_client, ten_byte_file):
    mock_client.stored_chunks.return_value = [0, 2]

    report = make_orchestrator(mock_client).run(ten_byte_file)

    assert report.success
    assert report.skipped == [0, 2]
    assert report.uploaded == [1]
    assert mock_client.uploaded == [1]


def test_chunk_bytes_passed_to_client(mock_client, ten_byte_file):
    chunks = []
    mock_client.upload_chunk.side_effect = lambda fingerprint, chunk: chunks.append(chunk)

    make_orchestrator(mock_client).run(ten_byte_file)

    assert [c.data for c in chunks] == [b'abcd', b'efgh', b'ij']


def test_first_failure_aborts_sequence(mock_client, ten_byte_file):
    """The first failing chunk stops the run; later chunks and the merge never happen."""
    def upload(fingerprint, chunk):
        if chunk.index == 1:
            raise InvalidChunkRequest('rejected', index=1)
        mock_client.uploaded.append(chunk.index)

    mock_client.upload_chunk.side_effect = upload

    report = make_orchestrator(mock_client).run(ten_byte_file)

    assert not report.success
    assert report.state == UploadState.FAILED
    assert report.failed_state == UploadState.UPLOADING
    assert report.failed_index == 1
    assert report.uploaded == [0]
    assert isinstance(report.error, InvalidChunkRequest)
    assert mock_client.upload_chunk.call_count == 2
    mock_client.merge.assert_not_called()


def test_transient_failure_is_retried(mock_client, ten_byte_file):
    attempts = []

    def flaky(fingerprint, chunk):
        attempts.append(chunk.index)
        if attempts.count(chunk.index) == 1 and chunk.index == 1:
            raise UploadFailed('timed out', index=1, retryable=True)

    mock_client.upload_chunk.side_effect = flaky
    policy = RetryPolicy(max_retries=2, sleep=lambda delay: None)

    report = make_orchestrator(mock_client, retry_policy=policy).run(ten_byte_file)

    assert report.success
    assert attempts == [0, 1, 1, 2]
    assert report.uploaded == [0, 1, 2]


def test_empty_file_goes_straight_to_merge(mock_client, tmp_path):
    path = tmp_path / 'empty.txt'
    path.write_bytes(b'')

    report = make_orchestrator(mock_client).run(path)

    assert report.success
    assert report.total == 0
    assert report.history == [
        UploadState.FINGERPRINTING,
        UploadState.CHUNKING,
        UploadState.MERGING,
        UploadState.DONE,
    ]
    mock_client.stored_chunks.assert_not_called()
    mock_client.upload_chunk.assert_not_called()
    mock_client.merge.assert_called_once_with(report.fingerprint, 'empty.txt', 0)


def test_lookup_failure_aborts_by_default(mock_client, ten_byte_file):
    mock_client.stored_chunks.side_effect = ResumeLookupError('storage down', retryable=False)

    report = make_orchestrator(mock_client).run(ten_byte_file)

    assert not report.success
    assert report.failed_state == UploadState.RESUME_CHECK
    assert isinstance(report.error, ResumeLookupError)
    mock_client.upload_chunk.assert_not_called()


def test_lookup_failure_can_degrade(mock_client, ten_byte_file):
    """With degradation enabled a failed resume query means 'nothing uploaded'."""
    mock_client.stored_chunks.side_effect = ResumeLookupError('storage down', retryable=False)

    report = make_orchestrator(mock_client, degrade_on_lookup_error=True).run(ten_byte_file)

    assert report.success
    assert report.uploaded == [0, 1, 2]


def test_merge_failure(mock_client, ten_byte_file):
    mock_client.merge.side_effect = IncompleteUpload('mismatch', missing=[2])

    report = make_orchestrator(mock_client).run(ten_byte_file)

    assert not report.success
    assert report.failed_state == UploadState.MERGING
    assert report.history[-1] == UploadState.FAILED
    assert report.uploaded == [0, 1, 2]
    assert report.failed_index is None


def test_unreadable_file(mock_client, tmp_path):
    report = make_orchestrator(mock_client).run(tmp_path / 'missing.bin')

    assert not report.success
    assert report.failed_state == UploadState.FINGERPRINTING
    assert isinstance(report.error, ReadError)
    mock_client.stored_chunks.assert_not_called()


def test_custom_artifact_name(mock_client, ten_byte_file):
    report = make_orchestrator(mock_client).run(ten_byte_file, file_name='renamed.bin')

    mock_client.merge.assert_called_once_with(report.fingerprint, 'renamed.bin', 3)


def test_progress_callback(mock_client, ten_byte_file):
    mock_client.stored_chunks.return_value = [0]
    progress = Mock()

    make_orchestrator(mock_client, on_progress=progress).run(ten_byte_file)

    assert [(c.args[0].index, c.args[1], c.args[2]) for c in progress.call_args_list] == [
        (1, 2, 3),
        (2, 3, 3),
    ]


def test_status_reports_stored_chunks(mock_client, ten_byte_file):
    mock_client.stored_chunks.return_value = [2, 0]

    report = make_orchestrator(mock_client).status(ten_byte_file)

    assert report.success
    assert report.total == 3
    assert report.skipped == [0, 2]
    mock_client.upload_chunk.assert_not_called()
    mock_client.merge.assert_not_called()


def test_lost_merge_response_finds_existing_artifact(mock_client, ten_byte_file):
    """A merge that succeeded server-side but timed out is reported as done once the artifact is found."""
    mock_client.merge.side_effect = [
        MergeFailed('Request timed out', retryable=True),
        IncompleteUpload('Chunk count mismatch', missing=[0, 1, 2]),
    ]
    mock_client.find_artifact.return_value = '/assets/merged'
    policy = RetryPolicy(max_retries=2, sleep=lambda delay: None)

    report = make_orchestrator(mock_client, retry_policy=policy).run(ten_byte_file)

    assert report.success
    assert report.url == '/assets/merged'
    mock_client.find_artifact.assert_called_once_with(report.fingerprint, 'data.bin')


def test_lost_merge_response_without_artifact_fails(mock_client, ten_byte_file):
    mock_client.merge.side_effect = [
        MergeFailed('Request timed out', retryable=True),
        IncompleteUpload('Chunk count mismatch', missing=[0, 1, 2]),
    ]
    mock_client.find_artifact.return_value = None
    policy = RetryPolicy(max_retries=2, sleep=lambda delay: None)

    report = make_orchestrator(mock_client, retry_policy=policy).run(ten_byte_file)

    assert not report.success
    assert isinstance(report.error, IncompleteUpload)


def test_first_attempt_incomplete_skips_artifact_lookup(mock_client, ten_byte_file):
    mock_client.merge.side_effect = IncompleteUpload('mismatch', missing=[2])
    policy = RetryPolicy(max_retries=2, sleep=lambda delay: None)

    report = make_orchestrator(mock_client, retry_policy=policy).run(ten_byte_file)

    assert not report.success
    mock_client.find_artifact.assert_not_called()
