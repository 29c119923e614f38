from dataclasses import dataclass
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from taskledger.domain.tasks.rules import DependencyValidation


@dataclass(frozen=True)
class Settings:
    db_path: Path
    timezone: str
    log_level: str
    dependency_validation: DependencyValidation
    op_timeout_seconds: Optional[float]


def load_settings(env_file: Optional[str] = None) -> Settings:
    load_dotenv(env_file)

    db_raw = os.getenv("TASKLEDGER_DB_PATH", "data/taskledger.db").strip()
    tz = os.getenv("TZ", "UTC").strip() or "UTC"
    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    validation_raw = os.getenv("TASKLEDGER_DEPENDENCY_VALIDATION", "off").strip().lower() or "off"
    timeout_raw = os.getenv("TASKLEDGER_OP_TIMEOUT", "").strip()

    if not db_raw:
        raise RuntimeError("TASKLEDGER_DB_PATH is empty")

    try:
        validation = DependencyValidation(validation_raw)
    except ValueError:
        allowed = ", ".join(v.value for v in DependencyValidation)
        raise RuntimeError(
            f"TASKLEDGER_DEPENDENCY_VALIDATION invalid: {validation_raw!r} (expected one of {allowed})"
        ) from None

    op_timeout: Optional[float] = None
    if timeout_raw:
        try:
            op_timeout = float(timeout_raw)
        except ValueError:
            raise RuntimeError(f"TASKLEDGER_OP_TIMEOUT invalid: {timeout_raw!r}") from None
        if op_timeout <= 0:
            raise RuntimeError("TASKLEDGER_OP_TIMEOUT must be positive")

    # db_path may be relative; the composition root resolves it
    return Settings(
        db_path=Path(db_raw),
        timezone=tz,
        log_level=log_level,
        dependency_validation=validation,
        op_timeout_seconds=op_timeout,
    )
