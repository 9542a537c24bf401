"""
Append-only JSON Lines dataset for run output records.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterator

from runner.logging_setup import get_logger

module_logger = get_logger("sobha_dataset")


class DatasetWriter:
    """Writes one output record per line to <dataset_dir>/<dataset_name>.jsonl."""

    def __init__(self, dataset_dir: str = "data/datasets", dataset_name: str = "sobha_properties", logger=None):
        self.path = Path(dataset_dir) / f"{dataset_name}.jsonl"
        self.logger = logger or module_logger

    def push(self, record: Dict[str, Any]) -> Path:
        """
        Append a record to the dataset, creating directories as needed.

        Args:
            record: JSON-serializable output record

        Returns:
            Path of the dataset file
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(record, default=str, ensure_ascii=False))
            f.write("\n")
        self.logger.debug(f"Record for session {record.get('sessionId')} written to {self.path}")
        return self.path

    def read_all(self) -> Iterator[Dict[str, Any]]:
        """Yield every record written so far."""
        if not self.path.exists():
            return
        with open(self.path, encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if line:
                    yield json.loads(line)
