"""
Network download with progress reporting and cooperative cancellation.

This module provides the streaming download used to fetch release archives:
- HTTP/HTTPS downloads with TLS verification (via requests)
- Progress reporting as a fraction of the expected size
- Cancellation through a shared CancellationToken
- Removal of the partial file when streaming fails
"""

import logging
import socket
import threading
from pathlib import Path
from typing import Callable, List, Optional, Union

import requests
from requests.exceptions import RequestException

from .exceptions import DownloadCancelledError, DownloadError

logger = logging.getLogger(__name__)

# Called with bytes_read / expected_size, or None when the size is unknown.
ProgressCallback = Callable[[Optional[float]], None]


class CancellationToken:
    """
    Cooperative cancellation signal shared between the host and a download.

    The host UI calls cancel() (e.g. from a progress dialog's cancel button).
    The download loop checks `cancelled` between chunks, and registers a
    callback that aborts the transfer so a stalled read returns at once.

    Example:
        >>> token = CancellationToken()
        >>> token.cancelled
        False
        >>> token.cancel()
        >>> token.cancelled
        True
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: List[Callable[[], None]] = []

    def cancel(self) -> None:
        """Signal cancellation and run registered callbacks. Idempotent."""
        with self._lock:
            if self._event.is_set():
                return
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            _run_callback(callback)

    @property
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._event.is_set()

    def add_callback(self, callback: Callable[[], None]) -> None:
        """
        Run `callback` on cancel(), or right away if already cancelled.

        Callbacks run on the thread that calls cancel().
        """
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        _run_callback(callback)

    def remove_callback(self, callback: Callable[[], None]) -> None:
        """Unregister `callback`; unknown callbacks are ignored."""
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def raise_if_cancelled(self, url: str, destination: Optional[Path] = None):
        """
        Raise DownloadCancelledError if cancellation was requested.

        Raises:
            DownloadCancelledError: If cancel() has been called
        """
        if self.cancelled:
            raise DownloadCancelledError(
                url, str(destination) if destination is not None else None
            )


def _run_callback(callback: Callable[[], None]) -> None:
    try:
        callback()
    except Exception as e:
        logger.warning(f"Cancellation callback {callback!r} failed: {e}")


def parse_content_length(value: Optional[str]) -> Optional[int]:
    """
    Parse a content-length header value.

    Returns:
        Positive size in bytes, or None if absent or invalid
    """
    if not value:
        return None
    try:
        size = int(value)
    except ValueError:
        return None
    return size if size > 0 else None


def download_file(
    url: str,
    destination: Union[str, Path],
    cancel: Optional[CancellationToken] = None,
    progress_callback: Optional[ProgressCallback] = None,
    chunk_size: int = 8192,
    timeout: Optional[float] = None,
) -> Path:
    """
    Download `url` to `destination`, whose parent directory must exist.

    Args:
        url: URL to download from
        destination: Local path to save file
        cancel: Token checked before the request and after every chunk;
            cancelling it also aborts a read that is waiting on the server
        progress_callback: Called after every chunk with the fraction read so
            far, or None if the server didn't report a usable content-length
        chunk_size: Bytes to read per chunk
        timeout: Per-operation socket timeout in seconds (None waits forever)

    Returns:
        Path to downloaded file

    Raises:
        DownloadError: If the request fails or the response is unusable
        DownloadCancelledError: If `cancel` was signalled

    Example:
        >>> token = CancellationToken()
        >>> download_file(
        ...     "https://example.com/clangd-linux-17.0.3.zip",
        ...     Path("download/clangd-linux-17.0.3.zip"),
        ...     cancel=token,
        ...     progress_callback=lambda f: print(f),
        ... )
    """
    if not url:
        raise ValueError("URL cannot be empty")

    destination = Path(destination)
    cancel = cancel or CancellationToken()
    cancel.raise_if_cancelled(url)

    logger.info(f"Downloading {url} to {destination}")

    try:
        response = requests.get(url, stream=True, timeout=timeout, allow_redirects=True)
    except RequestException as e:
        raise DownloadError(f"Can't fetch {url}: {e}") from e

    with response:
        if not response.ok or response.raw is None:
            logger.error(f"{url} {response.status_code} {response.reason}")
            raise DownloadError(f"Can't fetch {url}: {response.reason}")

        size = parse_content_length(response.headers.get("content-length"))
        if size is None:
            logger.debug(f"No usable content-length for {url}, progress is indeterminate")

        def abort() -> None:
            _abort_response(response)

        read = 0
        cancel.add_callback(abort)
        try:
            with open(destination, "wb") as f:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    cancel.raise_if_cancelled(url, destination)
                    if not chunk:
                        continue
                    f.write(chunk)
                    read += len(chunk)
                    if progress_callback:
                        progress_callback(read / size if size else None)
                cancel.raise_if_cancelled(url, destination)
        except DownloadCancelledError:
            logger.info(f"Download cancelled: {url}")
            _remove_partial(destination)
            raise
        except (RequestException, OSError) as e:
            _remove_partial(destination)
            if cancel.cancelled:
                # The aborted connection surfaces as a read error.
                logger.info(f"Download cancelled: {url}")
                raise DownloadCancelledError(url, str(destination)) from e
            logger.error(f"Error during download: {e}")
            raise DownloadError(f"Failed to download {url}: {e}") from e
        except Exception as e:
            _remove_partial(destination)
            if cancel.cancelled:
                raise DownloadCancelledError(url, str(destination)) from e
            raise
        finally:
            cancel.remove_callback(abort)

    logger.info(f"Download complete: {destination} ({read} bytes)")
    return destination


def _response_socket(response: requests.Response) -> Optional[socket.socket]:
    """Find the socket a streamed response is reading from, if any."""
    raw = response.raw
    connection = getattr(raw, "connection", None) or getattr(raw, "_connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        # http.client hands the socket over to the response on "Connection: close".
        fp = getattr(getattr(raw, "_fp", None), "fp", None)
        sock = getattr(getattr(fp, "raw", None), "_sock", None)
    return sock if isinstance(sock, socket.socket) else None


def _abort_response(response: requests.Response) -> None:
    """
    Abort a streamed response from another thread.

    Closing alone doesn't wake a thread blocked in recv(), so the socket is
    shut down first.
    """
    sock = _response_socket(response)
    if sock is not None:
        try:
            sock.shutdown(socket.SHUT_RDWR)
        except OSError as e:
            logger.debug(f"Socket shutdown failed: {e}")
    response.close()


def _remove_partial(destination: Path) -> None:
    """Delete a partial download, ignoring any error."""
    try:
        destination.unlink()
    except OSError:
        pass


__all__ = [
    "CancellationToken",
    "ProgressCallback",
    "download_file",
    "parse_content_length",
]
