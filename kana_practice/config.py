from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"
AUDIO_DIR = ARTIFACTS_DIR / "audio"
DB_PATH = Path(os.getenv("KANA_PRACTICE_DB_PATH", str(PROJECT_ROOT / "kana_practice.db")))
LOG_LEVEL = os.getenv("KANA_PRACTICE_LOG_LEVEL", "INFO")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class VerificationPolicy:
    min_points: int = 10
    pass_threshold: float = 0.92
    leniency: float = 0.6
    shape_weight: float = 0.4
    aspect_weight: float = 0.3
    grid_weight: float = 0.3
    grid_cells: int = 5
    reference_grid_size: int = 100


def ensure_dirs() -> None:
    for path in [
        ARTIFACTS_DIR,
        AUDIO_DIR,
    ]:
        path.mkdir(parents=True, exist_ok=True)


def configure_logging(level: str = LOG_LEVEL) -> None:
    """Install one formatted stream handler on the root logger.

    Safe to call more than once; existing root handlers are replaced.
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)-8s [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logger.info("logging configured: level=%s", logging.getLevelName(log_level))
