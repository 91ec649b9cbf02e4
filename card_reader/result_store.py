from __future__ import annotations

import json
import logging
import re
import shutil
import uuid
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from .models import CharacterCard
from .utils import build_output_filenames

logger = logging.getLogger(__name__)
RESULT_ID_PATTERN = re.compile(r"[0-9a-f]{32}")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _ts() -> str:
    return _utc_now().isoformat().replace("+00:00", "Z")


@dataclass
class ResultRecord:
    id: str
    name: str
    creator: str
    version: str
    created_at: str
    json_filename: str
    text_filename: str
    text_length: int

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


class ResultStore:
    """每次讀卡的輸出（JSON 與易讀文字）各存一個目錄，超過 keep_max 時刪除最舊的。"""

    def __init__(self, root: Path, keep_max: int = 10):
        self.root = root
        self.keep_max = max(keep_max, 1)
        self.root.mkdir(parents=True, exist_ok=True)

    # ---------- File helpers ----------
    def _result_dir(self, result_id: str) -> Path:
        if not RESULT_ID_PATTERN.fullmatch(result_id):
            raise FileNotFoundError(result_id)
        return self.root / result_id

    def _meta_path(self, result_id: str) -> Path:
        return self._result_dir(result_id) / "meta.json"

    def _read_meta(self, result_id: str) -> ResultRecord:
        meta_path = self._meta_path(result_id)
        data = json.loads(meta_path.read_text(encoding="utf-8"))
        return ResultRecord(**data)

    def _write_meta(self, record: ResultRecord) -> None:
        meta_path = self._meta_path(record.id)
        meta_path.write_text(
            json.dumps(record.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8"
        )

    def _existing(self, result_id: str, filename: str) -> Optional[Path]:
        path = self._result_dir(result_id) / filename
        if not path.exists():
            return None
        return path

    # ---------- Public helpers ----------
    def save(
        self,
        card: CharacterCard,
        canonical_json: str,
        readable_text: str,
        version: str,
        now: Optional[datetime] = None,
    ) -> ResultRecord:
        result_id = uuid.uuid4().hex
        result_dir = self._result_dir(result_id)
        result_dir.mkdir(parents=True, exist_ok=True)
        json_filename, text_filename = build_output_filenames(card.name, now)
        (result_dir / json_filename).write_text(canonical_json, encoding="utf-8")
        (result_dir / text_filename).write_text(readable_text, encoding="utf-8")
        record = ResultRecord(
            id=result_id,
            name=card.name,
            creator=card.creator,
            version=version,
            created_at=_ts(),
            json_filename=json_filename,
            text_filename=text_filename,
            text_length=len(readable_text),
        )
        self._write_meta(record)
        logger.info("已儲存讀卡結果 id=%s json=%s txt=%s", result_id, json_filename, text_filename)
        self._housekeep()
        return record

    def get_meta(self, result_id: str) -> ResultRecord:
        return self._read_meta(result_id)

    def json_path(self, result_id: str) -> Optional[Path]:
        record = self._read_meta(result_id)
        return self._existing(result_id, record.json_filename)

    def text_path(self, result_id: str) -> Optional[Path]:
        record = self._read_meta(result_id)
        return self._existing(result_id, record.text_filename)

    def remove(self, result_id: str) -> None:
        result_dir = self._result_dir(result_id)
        if not self._meta_path(result_id).exists():
            raise FileNotFoundError(result_id)
        shutil.rmtree(result_dir)
        logger.info("已刪除讀卡結果 id=%s", result_id)

    def list_results(self) -> List[Dict[str, object]]:
        records: List[ResultRecord] = []
        for item in self.root.iterdir() if self.root.exists() else []:
            meta_path = item / "meta.json"
            if not meta_path.exists():
                continue
            try:
                records.append(ResultRecord(**json.loads(meta_path.read_text(encoding="utf-8"))))
            except (OSError, ValueError, TypeError) as exc:
                logger.warning("略過無法讀取的結果 path=%s error=%s", item, exc)
                continue
        records.sort(key=lambda r: r.created_at, reverse=True)
        return [r.to_dict() for r in records]

    def _housekeep(self) -> None:
        result_dirs = []
        for path in self.root.iterdir():
            meta_path = path / "meta.json"
            if not meta_path.exists():
                continue
            try:
                data = json.loads(meta_path.read_text(encoding="utf-8"))
            except (OSError, ValueError):
                continue
            result_dirs.append((data.get("created_at", ""), path))

        if len(result_dirs) <= self.keep_max:
            return

        result_dirs.sort(key=lambda item: item[0])  # oldest first
        for _, target in result_dirs[: len(result_dirs) - self.keep_max]:
            shutil.rmtree(target, ignore_errors=True)
