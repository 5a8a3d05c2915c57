"""Download whisper.cpp model files with progress reporting."""

import os
import posixpath
import sys
import time
from pathlib import Path
from typing import Callable, Optional, TextIO
from urllib.parse import urlparse, urlunparse

import requests

from ytrans.cancellation import CancellationToken, NeverCancelled
from ytrans.config import DEFAULT_MODEL_BASE_URL, MODEL_EXT, Config
from ytrans.exceptions import (
    CancellationError,
    ConfigurationError,
    DownloadStatusError,
    DownloadTimeoutError,
    TransferError,
)


def url_for_model(model: str, base_url: str = DEFAULT_MODEL_BASE_URL, ext: str = MODEL_EXT) -> str:
    """Return the download URL for a model name, e.g. "ggml-tiny.en"."""
    if os.path.splitext(model)[1] != ext:
        model += ext
    parsed = urlparse(base_url)
    if not parsed.scheme or not parsed.netloc:
        raise ConfigurationError(f"Malformed model base URL: {base_url!r}")
    return urlunparse(parsed._replace(path=posixpath.join(parsed.path or "/", model)))


def download_report(out: TextIO, pct: int, count: int, total: Optional[int]) -> int:
    """Print a progress line when the whole percentage moved; return the new percentage."""
    if not total or total <= 0:
        return pct
    new_pct = count * 100 // total
    if new_pct > pct:
        print(f"  ...{count // 1_000_000} MB written ({new_pct}%)", file=out)
        return new_pct
    return pct


def download_model(
    url: str,
    out_dir: Path,
    cancel: Optional[CancellationToken] = None,
    progress: TextIO = sys.stdout,
    session=None,
    chunk_size: int = 1024 * 64,
    report_interval: float = 5.0,
    timeout: Optional[float] = None,
    clock: Callable[[], float] = time.monotonic,
) -> Path:
    """
    Download ``url`` into ``out_dir`` and return the local path.

    A local file with the same size as the remote one is reused without
    reading the response body. On cancellation, timeout or a failed read the
    raised error carries the partial file path so the caller can remove it.
    """
    cancel = cancel or NeverCancelled()
    session = session or requests

    try:
        response = session.get(url, stream=True, timeout=timeout)
    except requests.Timeout as e:
        raise DownloadTimeoutError(f"Timeout requesting {url}") from e
    except requests.RequestException as e:
        raise TransferError(f"Failed to request {url}: {e}") from e

    with response:
        if response.status_code != 200:
            raise DownloadStatusError(url, response.status_code, getattr(response, "reason", "") or "")

        path = Path(out_dir) / posixpath.basename(urlparse(url).path)
        content_length = int(response.headers.get("Content-Length", -1))
        if path.exists() and path.stat().st_size == content_length:
            print(f"✓ Skipping {path} as it already exists")
            return path

        print(f"Downloading {url} to {out_dir}")

        count, pct = 0, 0
        last_report = clock()
        try:
            Path(out_dir).mkdir(parents=True, exist_ok=True)
            with open(path, "wb") as f:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    if cancel.is_cancelled():
                        raise CancellationError(path=path)
                    now = clock()
                    if now - last_report >= report_interval:
                        pct = download_report(progress, pct, count, content_length)
                        last_report = now
                    if chunk:
                        f.write(chunk)
                        count += len(chunk)
        except requests.Timeout as e:
            raise DownloadTimeoutError(f"Timeout downloading {url}", path=path) from e
        except (requests.RequestException, OSError) as e:
            raise TransferError(f"Failed to download {url}: {e}", path=path) from e

        download_report(progress, pct, count, content_length)
        return path


def _remove_partial(path: Optional[Path]) -> None:
    if path is not None:
        Path(path).unlink(missing_ok=True)


def fetch_models(
    config: Config,
    cancel: Optional[CancellationToken] = None,
    progress: TextIO = sys.stdout,
    session=None,
) -> Optional[Path]:
    """
    Download every configured model and return the active model path.

    The loop does not stop on success, so the last model that downloads is
    the one returned. Resolution errors and timeouts move on to the next
    model; cancellation and other transfer errors stop the loop.
    """
    active = None
    for name in config.model_names:
        try:
            url = url_for_model(name, config.model_base_url, config.model_ext)
        except ConfigurationError as e:
            print(f"✗ Error: {e}", file=sys.stderr)
            continue

        try:
            path = download_model(
                url,
                config.model_dir,
                cancel=cancel,
                progress=progress,
                session=session,
                chunk_size=config.chunk_size,
                report_interval=config.report_interval,
                timeout=config.request_timeout,
            )
        except CancellationError as e:
            _remove_partial(e.path)
            print("\nInterrupted", file=progress)
            break
        except DownloadTimeoutError as e:
            _remove_partial(e.path)
            print("Timeout downloading model", file=progress)
            continue
        except TransferError as e:
            _remove_partial(e.path)
            print(f"✗ Error: {e}", file=sys.stderr)
            break

        # TODO: decide whether the first usable model should end the loop
        active = path
    return active
