import io
import itertools

import pytest
import requests

from ytrans.cancellation import CancellationEvent
from ytrans.exceptions import (
    CancellationError,
    ConfigurationError,
    DownloadStatusError,
    DownloadTimeoutError,
    TransferError,
)
from ytrans.model_fetcher import download_model, download_report, fetch_models, url_for_model

BASE = "https://huggingface.co/ggerganov/whisper.cpp/resolve/main"


class FakeResponse:
    def __init__(self, status_code=200, body=(), content_length=None, reason="OK"):
        self.status_code = status_code
        self.reason = reason
        self._body = body
        total = content_length if content_length is not None else sum(len(c) for c in body if isinstance(c, bytes))
        self.headers = {"Content-Length": str(total)}
        self.body_read = False
        self.closed = False

    def iter_content(self, chunk_size=1):
        self.body_read = True
        for chunk in self._body:
            if isinstance(chunk, Exception):
                raise chunk
            yield chunk

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True
        return False


class FakeSession:
    def __init__(self, responses):
        self.responses = responses
        self.requested = []

    def get(self, url, stream=False, timeout=None):
        self.requested.append(url)
        response = self.responses[url]
        if isinstance(response, Exception):
            raise response
        return response


def ticking_clock(step=5.0):
    counter = itertools.count()
    return lambda: next(counter) * step


def test_url_for_model_appends_extension():
    assert url_for_model("ggml-tiny.en", BASE) == f"{BASE}/ggml-tiny.en.bin"
    assert url_for_model("ggml-base.bin", BASE) == f"{BASE}/ggml-base.bin"


def test_url_for_model_rejects_malformed_base():
    with pytest.raises(ConfigurationError):
        url_for_model("ggml-tiny.en", "not a url")


def test_download_report_suppresses_repeated_percentages():
    out = io.StringIO()

    assert download_report(out, 50, 50, 100) == 50
    assert download_report(out, 50, 2_500_000, 4_000_000) == 62
    assert download_report(out, 50, 10, 0) == 50

    assert out.getvalue() == "  ...2 MB written (62%)\n"


def test_existing_file_of_same_size_is_reused(tmp_path):
    url = f"{BASE}/ggml-tiny.en.bin"
    existing = tmp_path / "ggml-tiny.en.bin"
    existing.write_bytes(b"0123456789")
    response = FakeResponse(body=[AssertionError("body must not be read")], content_length=10)

    path = download_model(url, tmp_path, session=FakeSession({url: response}))

    assert path == existing
    assert existing.read_bytes() == b"0123456789"
    assert not response.body_read


def test_download_streams_body_and_reports_progress(tmp_path):
    url = f"{BASE}/ggml-tiny.en.bin"
    body = [b"a" * 25, b"b" * 25, b"c" * 25, b"d" * 25]
    progress = io.StringIO()

    path = download_model(
        url,
        tmp_path,
        session=FakeSession({url: FakeResponse(body=body)}),
        progress=progress,
        clock=ticking_clock(),
    )

    assert path == tmp_path / "ggml-tiny.en.bin"
    assert path.read_bytes() == b"".join(body)
    assert progress.getvalue().splitlines() == [
        "  ...0 MB written (25%)",
        "  ...0 MB written (50%)",
        "  ...0 MB written (75%)",
        "  ...0 MB written (100%)",
    ]


def test_progress_is_throttled_by_interval(tmp_path):
    url = f"{BASE}/ggml-tiny.en.bin"
    body = [b"a" * 25] * 4
    progress = io.StringIO()

    download_model(
        url,
        tmp_path,
        session=FakeSession({url: FakeResponse(body=body)}),
        progress=progress,
        clock=lambda: 0.0,
    )

    assert progress.getvalue().splitlines() == ["  ...0 MB written (100%)"]


def test_non_success_status_is_a_status_error(tmp_path):
    url = f"{BASE}/ggml-missing.bin"
    response = FakeResponse(status_code=404, reason="Not Found")

    with pytest.raises(DownloadStatusError) as excinfo:
        download_model(url, tmp_path, session=FakeSession({url: response}))

    assert excinfo.value.status_code == 404
    assert excinfo.value.path is None
    assert not (tmp_path / "ggml-missing.bin").exists()


def test_cancellation_returns_partial_path(tmp_path):
    url = f"{BASE}/ggml-tiny.en.bin"
    token = CancellationEvent()

    def body():
        yield b"first"
        token.cancel()
        yield b"second"

    response = FakeResponse(body=body(), content_length=11)

    with pytest.raises(CancellationError) as excinfo:
        download_model(url, tmp_path, cancel=token, session=FakeSession({url: response}))

    assert excinfo.value.path == tmp_path / "ggml-tiny.en.bin"
    assert excinfo.value.path.read_bytes() == b"first"


def test_body_read_error_is_a_transfer_error(tmp_path):
    url = f"{BASE}/ggml-tiny.en.bin"
    response = FakeResponse(body=[b"abc", requests.ConnectionError("reset")], content_length=10)

    with pytest.raises(TransferError) as excinfo:
        download_model(url, tmp_path, session=FakeSession({url: response}))

    assert excinfo.value.path == tmp_path / "ggml-tiny.en.bin"


def test_request_timeout(tmp_path):
    url = f"{BASE}/ggml-tiny.en.bin"

    with pytest.raises(DownloadTimeoutError):
        download_model(url, tmp_path, session=FakeSession({url: requests.Timeout("slow")}))


def test_fetch_models_keeps_last_success_before_a_transfer_error(config):
    config.model_names = ["ggml-tiny.en", "ggml-base.en"]
    session = FakeSession({
        f"{BASE}/ggml-tiny.en.bin": FakeResponse(body=[b"tiny"]),
        f"{BASE}/ggml-base.en.bin": FakeResponse(status_code=500, reason="Server Error"),
    })

    active = fetch_models(config, progress=io.StringIO(), session=session)

    assert active == config.model_dir / "ggml-tiny.en.bin"
    assert len(session.requested) == 2


def test_fetch_models_does_not_stop_at_first_success(config):
    config.model_names = ["ggml-tiny.en", "ggml-base.en"]
    session = FakeSession({
        f"{BASE}/ggml-tiny.en.bin": FakeResponse(body=[b"tiny"]),
        f"{BASE}/ggml-base.en.bin": FakeResponse(body=[b"base"]),
    })

    active = fetch_models(config, progress=io.StringIO(), session=session)

    assert active == config.model_dir / "ggml-base.en.bin"
    assert (config.model_dir / "ggml-tiny.en.bin").exists()


def test_fetch_models_stops_and_cleans_up_on_transfer_error(config):
    config.model_names = ["ggml-tiny.en", "ggml-base.en", "ggml-small.en"]
    session = FakeSession({
        f"{BASE}/ggml-tiny.en.bin": FakeResponse(body=[b"tiny"]),
        f"{BASE}/ggml-base.en.bin": FakeResponse(body=[b"ba", requests.ConnectionError("reset")], content_length=4),
        f"{BASE}/ggml-small.en.bin": FakeResponse(body=[b"small"]),
    })

    active = fetch_models(config, progress=io.StringIO(), session=session)

    assert active == config.model_dir / "ggml-tiny.en.bin"
    assert not (config.model_dir / "ggml-base.en.bin").exists()
    assert f"{BASE}/ggml-small.en.bin" not in session.requested


def test_fetch_models_continues_after_timeout(config):
    config.model_names = ["ggml-tiny.en", "ggml-base.en"]
    progress = io.StringIO()
    session = FakeSession({
        f"{BASE}/ggml-tiny.en.bin": requests.Timeout("slow"),
        f"{BASE}/ggml-base.en.bin": FakeResponse(body=[b"base"]),
    })

    active = fetch_models(config, progress=progress, session=session)

    assert active == config.model_dir / "ggml-base.en.bin"
    assert "Timeout downloading model" in progress.getvalue()


def test_fetch_models_stops_on_cancellation(config):
    config.model_names = ["ggml-tiny.en", "ggml-base.en"]
    token = CancellationEvent()
    token.cancel()
    progress = io.StringIO()
    session = FakeSession({
        f"{BASE}/ggml-tiny.en.bin": FakeResponse(body=[b"tiny"]),
        f"{BASE}/ggml-base.en.bin": FakeResponse(body=[b"base"]),
    })

    active = fetch_models(config, cancel=token, progress=progress, session=session)

    assert active is None
    assert not (config.model_dir / "ggml-tiny.en.bin").exists()
    assert session.requested == [f"{BASE}/ggml-tiny.en.bin"]
    assert "Interrupted" in progress.getvalue()


def test_fetch_models_skips_unresolvable_models(config):
    config.model_base_url = "nonsense"

    assert fetch_models(config, progress=io.StringIO(), session=FakeSession({})) is None


def test_download_creates_missing_model_dir(tmp_path):
    url = f"{BASE}/ggml-tiny.en.bin"
    out_dir = tmp_path / "missing" / "models"

    path = download_model(url, out_dir, session=FakeSession({url: FakeResponse(body=[b"tiny"])}))

    assert path == out_dir / "ggml-tiny.en.bin"
    assert path.read_bytes() == b"tiny"
