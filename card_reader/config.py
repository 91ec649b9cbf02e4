import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import List

BASE_DIR = Path(__file__).resolve().parent.parent
FALSE_VALUES = {"0", "false", "no", "off"}


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() not in FALSE_VALUES


def _env_list(name: str, default: str) -> List[str]:
    raw = os.getenv(name, default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    enabled: bool = field(default_factory=lambda: _env_bool("CARD_READER_ENABLED", "true"))
    commands: List[str] = field(
        default_factory=lambda: _env_list("CARD_READER_COMMANDS", "读卡,解析卡,看卡,card")
    )
    prefixes: List[str] = field(default_factory=lambda: _env_list("CARD_READER_PREFIXES", ""))
    text_preview: bool = field(default_factory=lambda: _env_bool("CARD_READER_TEXT_PREVIEW", "true"))
    output_dir: Path = field(
        default_factory=lambda: Path(
            os.getenv("CARD_READER_OUTPUT_DIR", str(BASE_DIR / "tmp" / "results"))
        )
    )
    keep_max: int = field(default_factory=lambda: int(os.getenv("CARD_READER_KEEP_MAX", "10")))
    request_timeout: float = field(
        default_factory=lambda: float(os.getenv("CARD_READER_TIMEOUT", "30"))
    )
    max_image_bytes: int = field(
        default_factory=lambda: int(os.getenv("CARD_READER_MAX_IMAGE_BYTES", str(20 * 1024 * 1024)))
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
