"""Write-once persistence of deployment records."""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path

from ..errors import PersistenceError
from .models import DeploymentRecord

logger = logging.getLogger(__name__)


def record_filename(record: DeploymentRecord, stamp: str, counter: int = 0) -> str:
    suffix = f"-{counter}" if counter else ""
    return f"{record.action}-{record.network}-{stamp}{suffix}.json"


def persist_record(record: DeploymentRecord, directory: Path) -> Path:
    """Write ``record`` as pretty JSON under ``directory`` and return the path.

    Files are opened in exclusive-create mode; if the timestamped name is
    taken (two runs in the same microsecond) a counter is appended, so an
    existing record is never overwritten.
    """
    directory = Path(directory)
    payload = json.dumps(record.to_dict(), indent=2, ensure_ascii=False)
    stamp = datetime.now().strftime("%Y%m%dT%H%M%S%f")
    try:
        directory.mkdir(parents=True, exist_ok=True)
        counter = 0
        while True:
            path = directory / record_filename(record, stamp, counter)
            try:
                with open(path, "x", encoding="utf-8") as handle:
                    handle.write(payload)
                    handle.write("\n")
            except FileExistsError:
                counter += 1
                continue
            break
    except OSError as exc:
        raise PersistenceError(f"Failed to write deployment record to {directory}: {exc}") from exc

    logger.info("📄 Deployment record saved to: %s", path)
    return path
