"""
JSON lines output sink

One record per line, appended to `log-<YYYY-MM-DD>.txt` in the output
directory. The date is the local date the process started, so a run that
spans midnight keeps writing to the same file.
"""
import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


def log_file_name(started_on: date) -> str:
    return f"log-{started_on.isoformat()}.txt"


class JsonLinesSink:

    def __init__(self, output_dir: str = ".", started_on: Optional[date] = None):
        self.started_on = started_on or date.today()
        self.path = Path(output_dir) / log_file_name(self.started_on)
        self._stream = None
        self.records_written = 0

    def _ensure_open(self):
        if self._stream is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._stream = open(self.path, 'a', encoding='utf-8')
            logger.info(f"📝 Writing records to {self.path}")

    def write(self, record: Dict[str, Any]):
        self._ensure_open()
        self._stream.write(json.dumps(record, ensure_ascii=False) + '\n')
        self._stream.flush()
        self.records_written += 1

    def close(self):
        if self._stream is not None:
            self._stream.close()
            self._stream = None
