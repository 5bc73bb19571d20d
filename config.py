from pathlib import Path
import logging
import os
import sys


def app_root_dir() -> Path:
    if getattr(sys, "frozen", False):
        exe_dir = Path(sys.executable).resolve().parent
        return exe_dir.parent
    return Path(__file__).resolve().parent


def resolve_db_path(root_dir: Path) -> Path:
    custom_path = os.getenv("APP_DB_PATH")
    if not custom_path:
        data_dir = root_dir / "data"
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir / "equip.db"

    db_path = Path(custom_path).expanduser()
    if not db_path.is_absolute():
        db_path = (root_dir / db_path).resolve()

    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path


def resolve_lock_timeout(default: float = 5.0) -> float:
    raw = os.getenv("APP_LOCK_TIMEOUT")
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError(f"APP_LOCK_TIMEOUT must be a number of seconds, got {raw!r}") from None
    if value <= 0:
        raise RuntimeError(f"APP_LOCK_TIMEOUT must be positive, got {raw!r}")
    return value


def resolve_log_level(default: str = "INFO") -> int:
    name = (os.getenv("APP_LOG_LEVEL") or default).strip().upper()
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        raise RuntimeError(f"APP_LOG_LEVEL is not a logging level: {name!r}")
    return level


ROOT_DIR = app_root_dir()
DB_PATH = resolve_db_path(ROOT_DIR)
DATABASE_URL = f"sqlite:///{DB_PATH.as_posix()}"
TEMPLATES_DIR = ROOT_DIR / "templates"

# Bounds each of the two waits in an atomic unit: the per-asset lock and the
# sqlite busy timeout. A unit that waits out both gives up after at most twice
# this before LendingTimeoutError.
LOCK_TIMEOUT_SECONDS = resolve_lock_timeout()
LOG_LEVEL = resolve_log_level()
