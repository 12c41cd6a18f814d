"""HTTP client for communicating with the upload server."""

import uuid
from typing import Dict, List, Optional, Type

import httpx

from client.config import Config
from common.constants import CHUNK_FORM_FIELD
from common.exceptions import (
    ERRORS_BY_CODE,
    ArtifactNotFound,
    IncompleteUpload,
    MergeFailed,
    ResumeLookupError,
    UploadError,
    UploadFailed,
)
from common.logging_config import get_logger
from common.types import Chunk
from common.validation import artifact_name, asset_url

logger = get_logger(__name__)

STATUS_MESSAGES = {
    400: 'Bad request',
    404: 'Not found',
    409: 'Conflicting chunk records',
    413: 'Chunk too large',
    423: 'Upload is being merged, try again later',
    500: 'Server error',
    502: 'Bad gateway',
    503: 'Service unavailable',
    504: 'Gateway timeout',
}


class UploadClient:
    """
    HTTP client for the chunk upload, resume query and merge endpoints.

    Every method performs a single attempt and raises an UploadError
    subclass on failure; retries are left to a RetryPolicy so the
    ``retryable`` flag of the raised error decides what is tried again.
    """

    def __init__(self, config: Config, session: Optional[httpx.Client] = None):
        """
        Initialize upload client.

        Args:
            config: Configuration instance
            session: Preconfigured httpx client (defaults to one built from config)
        """
        self.config = config
        self.session = session or httpx.Client(
            base_url=config.get_base_url(),
            timeout=config.get_timeout()
        )
        self.request_id = None
        logger.info(f"Initialized UploadClient [base_url={self.session.base_url}]")

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> "UploadClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _calculate_upload_timeout(self, chunk_size: int) -> float:
        """
        Calculate timeout for a chunk upload based on its size.

        Args:
            chunk_size: Chunk size in bytes

        Returns:
            Timeout in seconds (configured base + 0.1s per MB)
        """
        base_timeout = float(self.config.get_timeout())
        size_mb = chunk_size / (1024 * 1024)
        return base_timeout + size_mb * 0.1

    def _request(
        self,
        method: str,
        endpoint: str,
        error_cls: Type[UploadError],
        fingerprint: Optional[str] = None,
        index: Optional[int] = None,
        **kwargs
    ) -> dict:
        """
        Make one HTTP request and decode its JSON body.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            error_cls: Error raised for transport failures and unknown error codes
            fingerprint: Fingerprint attached to raised errors
            index: Chunk index attached to raised errors
            **kwargs: Additional arguments to pass to httpx request

        Returns:
            Decoded JSON body of a successful response

        Raises:
            UploadError: Transport failure (retryable) or a server rejection
        """
        self.request_id = str(uuid.uuid4())
        headers = kwargs.pop('headers', {})
        headers['X-Request-ID'] = self.request_id

        logger.debug(f"Making request: {method} {endpoint} [request_id={self.request_id}]")

        try:
            response = self.session.request(method, endpoint, headers=headers, **kwargs)
        except httpx.ConnectError as e:
            logger.warning(f"Cannot connect: {method} {endpoint} error={e} [request_id={self.request_id}]")
            raise error_cls(
                "Cannot connect to upload server. Is it running?",
                fingerprint=fingerprint, index=index, retryable=True
            ) from e
        except httpx.TimeoutException as e:
            logger.warning(f"Request timed out: {method} {endpoint} [request_id={self.request_id}]")
            raise error_cls(
                "Request timed out. Server may be overloaded.",
                fingerprint=fingerprint, index=index, retryable=True
            ) from e
        except httpx.TransportError as e:
            logger.warning(f"Transport error: {method} {endpoint} error={e} [request_id={self.request_id}]")
            raise error_cls(
                f"Transport error: {e}",
                fingerprint=fingerprint, index=index, retryable=True
            ) from e

        logger.debug(
            f"Response received: {method} {endpoint} status={response.status_code} [request_id={self.request_id}]"
        )

        body = self._decode(response)
        if response.is_success and body.get('success', True):
            return body

        logger.warning(
            f"Request rejected: {method} {endpoint} status={response.status_code} "
            f"code={body.get('code')} [request_id={self.request_id}]"
        )
        raise self._error_from_response(response, body, error_cls, fingerprint, index)

    @staticmethod
    def _decode(response: httpx.Response) -> dict:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    def _error_from_response(
        self,
        response: httpx.Response,
        body: dict,
        error_cls: Type[UploadError],
        fingerprint: Optional[str],
        index: Optional[int],
    ) -> UploadError:
        """
        Map a non-success response back into the shared error taxonomy.

        Args:
            response: HTTP response object
            body: Decoded JSON body (may be empty)
            error_cls: Fallback class when the body carries no known code

        Returns:
            Exception instance ready to raise
        """
        status_code = response.status_code
        message = body.get('message') or STATUS_MESSAGES.get(status_code) or response.text or 'Unknown error'
        fingerprint = body.get('fingerprint', fingerprint)
        index = body.get('index', index)
        cls = ERRORS_BY_CODE.get(body.get('code'), error_cls)

        if cls is IncompleteUpload:
            return IncompleteUpload(message, fingerprint=fingerprint, missing=body.get('missing') or ())

        retryable = status_code >= 500 or status_code == 423
        return cls(message, fingerprint=fingerprint, index=index, retryable=retryable)

    def upload_chunk(self, fingerprint: str, chunk: Chunk) -> dict:
        """
        Upload one chunk.

        Args:
            fingerprint: File fingerprint
            chunk: Chunk to upload

        Returns:
            Server acknowledgement body

        Raises:
            UploadError: UploadFailed on transport failures, or the server's error class
        """
        files = {CHUNK_FORM_FIELD: (f"{fingerprint}-{chunk.index}", chunk.data, 'application/octet-stream')}
        return self._request(
            'POST',
            '/upload',
            UploadFailed,
            fingerprint=fingerprint,
            index=chunk.index,
            params={'fingerprint': fingerprint, 'index': str(chunk.index)},
            files=files,
            timeout=self._calculate_upload_timeout(chunk.size),
        )

    def stored_chunks(self, fingerprint: str) -> List[int]:
        """
        Resume query: chunk indices the server already holds for a fingerprint.

        Raises:
            UploadError: ResumeLookupError on transport failures, or the server's error class
        """
        body = self._request(
            'GET',
            '/upload/chunks',
            ResumeLookupError,
            fingerprint=fingerprint,
            params={'fingerprint': fingerprint},
        )
        data = body.get('data')
        if not isinstance(data, list) or not all(isinstance(i, int) for i in data):
            raise ResumeLookupError(f"Malformed resume response: {body}", fingerprint=fingerprint)
        return sorted(data)

    def merge(self, fingerprint: str, file_name: str, total: int) -> str:
        """
        Ask the server to merge all chunks of a fingerprint.

        Args:
            fingerprint: File fingerprint
            file_name: Original file name
            total: Number of chunks

        Returns:
            URL of the merged artifact

        Raises:
            UploadError: MergeFailed on transport failures, or the server's error class
        """
        body = self._request(
            'POST',
            '/upload/merge',
            MergeFailed,
            fingerprint=fingerprint,
            json={'fingerprint': fingerprint, 'fileName': file_name, 'total': total},
        )
        url = body.get('url')
        if not url:
            raise MergeFailed(f"Merge response carries no url: {body}", fingerprint=fingerprint, retryable=False)
        return url

    def list_assets(self) -> List[Dict]:
        """
        List merged artifacts on the server.

        Returns:
            One metadata dict per artifact
        """
        body = self._request('GET', '/assets', UploadError)
        return body.get('files', [])

    def find_artifact(self, fingerprint: str, file_name: str) -> Optional[str]:
        """
        Check whether the merged artifact of a fingerprint exists on the server.

        Args:
            fingerprint: File fingerprint
            file_name: Original file name

        Returns:
            URL of the artifact, or None if the server does not have it

        Raises:
            UploadError: ArtifactNotFound (retryable) on transport or server failures
        """
        url = asset_url(artifact_name(fingerprint, file_name))
        try:
            self._request('HEAD', url, ArtifactNotFound, fingerprint=fingerprint)
        except ArtifactNotFound as e:
            if e.retryable:
                raise
            return None
        return url
