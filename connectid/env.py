import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_STORE = "data/store.json"
DEFAULT_TIMEOUT = 15.0
DEFAULT_MAX_RETRIES = 0


def load_env() -> None:
    """Load .env from the working directory if present."""
    env_path = Path.cwd() / ".env"
    if not env_path.exists():
        return
    load_dotenv(dotenv_path=env_path)


class Settings:
    """Runtime settings read from CONNECTID_* environment variables."""

    def __init__(
        self,
        store_path: Path = Path(DEFAULT_STORE),
        timeout: float = DEFAULT_TIMEOUT,
        max_retries: int = DEFAULT_MAX_RETRIES,
        log_level: str = "INFO",
        log_dir: Optional[Path] = None,
    ):
        self.store_path = store_path
        self.timeout = timeout
        self.max_retries = max_retries
        self.log_level = log_level
        self.log_dir = log_dir

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from the environment.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        log_dir = os.getenv("CONNECTID_LOG_DIR")
        try:
            timeout = float(os.getenv("CONNECTID_TIMEOUT", str(DEFAULT_TIMEOUT)))
            max_retries = int(os.getenv("CONNECTID_MAX_RETRIES", str(DEFAULT_MAX_RETRIES)))
        except ValueError as e:
            raise ValueError(f"Invalid CONNECTID_* setting: {e}")
        if timeout <= 0 or max_retries < 0:
            raise ValueError("CONNECTID_TIMEOUT must be positive and CONNECTID_MAX_RETRIES non-negative")
        return cls(
            store_path=Path(os.getenv("CONNECTID_STORE", DEFAULT_STORE)),
            timeout=timeout,
            max_retries=max_retries,
            log_level=os.getenv("CONNECTID_LOG_LEVEL", "INFO"),
            log_dir=Path(log_dir) if log_dir else None,
        )
