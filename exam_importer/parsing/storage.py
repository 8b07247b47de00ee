from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class StoragePaths:
    root: Path

    def import_dir(self, import_id: str) -> Path:
        return self.root / "imports" / str(import_id)

    def source_text_path(self, import_id: str) -> Path:
        return self.import_dir(import_id) / "source.txt"

    def parse_output_path(self, import_id: str) -> Path:
        return self.import_dir(import_id) / "parse_output.json"


class LocalExamStorage:
    """
    Manages filesystem layout for uploaded exam sources and parser outputs.
    """

    def __init__(self, storage_paths: StoragePaths):
        self.paths = storage_paths

    def ensure_base_dirs(self, import_id: str) -> None:
        self.paths.import_dir(import_id).mkdir(parents=True, exist_ok=True)

    def save_source_text(self, import_id: str, text: str) -> Path:
        self.ensure_base_dirs(import_id)
        target = self.paths.source_text_path(import_id)
        target.write_text(text, encoding="utf-8")
        return target

    def read_source_text(self, import_id: str, fallback_path: Optional[str] = None) -> str:
        stored = self.paths.source_text_path(import_id)
        candidate = stored if stored.exists() else Path(fallback_path) if fallback_path else stored
        if not candidate.exists():
            raise FileNotFoundError(f"Source text not found at {candidate}")
        return candidate.read_text(encoding="utf-8")

    def write_parse_output(self, import_id: str, parse_result_json: dict) -> Path:
        self.ensure_base_dirs(import_id)
        target = self.paths.parse_output_path(import_id)
        with target.open("w", encoding="utf-8") as f:
            json.dump(parse_result_json, f, ensure_ascii=False, indent=2)
        logger.debug("Wrote parse output for import %s to %s", import_id, target)
        return target
