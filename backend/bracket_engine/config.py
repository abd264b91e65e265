"""Runtime switches read from the environment (.env is loaded by bracket_engine.database)."""
import os


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


def auto_calculate_results() -> bool:
    """Calculate medals as soon as the last bout of a bracket completes."""
    return _flag("AUTO_CALCULATE_RESULTS")


def broadcast_queue_size() -> int:
    return int(os.getenv("BROADCAST_QUEUE_SIZE", "100"))


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()
