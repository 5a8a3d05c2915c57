"""Configuration management and environment variable loading."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

from ytrans.exceptions import ConfigurationError

# Load environment variables from .env file (don't override existing env vars)
load_dotenv(override=False)

DEFAULT_MODEL_BASE_URL = "https://huggingface.co/ggerganov/whisper.cpp/resolve/main"
DEFAULT_MODEL_NAMES = ["ggml-tiny.en"]
MODEL_EXT = ".bin"


def _split_names(value: str) -> List[str]:
    return [name.strip() for name in value.split(",") if name.strip()]


def _optional_float(value: str) -> Optional[float]:
    value = value.strip()
    return float(value) if value else None


@dataclass
class Config:
    """Application configuration, passed explicitly to the pipeline."""

    # Models tried in order; the last one that downloads becomes the active model
    model_names: List[str] = field(default_factory=lambda: list(DEFAULT_MODEL_NAMES))
    model_base_url: str = DEFAULT_MODEL_BASE_URL
    model_ext: str = MODEL_EXT
    model_dir: Path = field(default_factory=Path.cwd)

    # Audio cache
    data_dir: Path = Path("/data")

    database_url: str = field(
        default_factory=lambda: f"sqlite:///{Path.home() / '.ytrans' / 'transcriptions.db'}"
    )

    chunk_size: int = 1024 * 64
    report_interval: float = 5.0
    request_timeout: Optional[float] = None
    ffmpeg_bin: str = "ffmpeg"

    @classmethod
    def from_env(cls) -> "Config":
        """Build a configuration from environment variables."""
        config = cls()
        names = os.getenv("MODEL_NAMES")
        if names is not None:
            config.model_names = _split_names(names)
        config.model_base_url = os.getenv("MODEL_BASE_URL", config.model_base_url)
        if os.getenv("MODEL_DIR"):
            config.model_dir = Path(os.environ["MODEL_DIR"]).resolve()
        if os.getenv("DATA_DIR"):
            config.data_dir = Path(os.environ["DATA_DIR"]).resolve()
        config.database_url = os.getenv("DATABASE_URL", config.database_url)
        config.request_timeout = _optional_float(os.getenv("REQUEST_TIMEOUT", ""))
        config.ffmpeg_bin = os.getenv("FFMPEG_BIN", config.ffmpeg_bin)
        return config

    def validate(self) -> None:
        """Validate that required configuration is present."""
        if not self.model_names:
            raise ConfigurationError("MODEL_NAMES must name at least one model.")
        parsed = urlparse(self.model_base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ConfigurationError(f"Malformed model base URL: {self.model_base_url!r}")
