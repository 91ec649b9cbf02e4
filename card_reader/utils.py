import re
from datetime import datetime
from typing import Iterable, Optional, Sequence, Tuple

UNSAFE_FILENAME_PATTERN = re.compile(r'[/\\:*?"<>|]')
DEFAULT_FILENAME = "character"


def sanitize_filename(name: str, fallback: str = DEFAULT_FILENAME) -> str:
    safe = UNSAFE_FILENAME_PATTERN.sub("_", name)
    if not safe.strip():
        return fallback
    return safe


def build_output_filenames(name: str, now: Optional[datetime] = None) -> Tuple[str, str]:
    """輸出檔名加上時間戳避免重複：(JSON 檔名, 易讀文字檔名)。"""
    safe = sanitize_filename(name)
    stamp = (now or datetime.now()).strftime("%H%M%S")
    return f"{safe}_{stamp}.json", f"{safe}_{stamp}_read.txt"


def match_command(text: str, prefixes: Sequence[str], commands: Iterable[str]) -> bool:
    """
    判斷訊息是否觸發讀卡指令。

    有設定前綴時必須以其中之一開頭（較長的前綴優先比對），
    去掉前綴後的文字需與某個指令完全相同。
    """
    clean = text.strip()
    if prefixes:
        for prefix in sorted(prefixes, key=len, reverse=True):
            if clean.startswith(prefix):
                clean = clean[len(prefix) :].strip()
                break
        else:
            return False
    return clean in set(commands)


def pick_image_url(
    image_urls: Sequence[str], reply_image_urls: Sequence[str] = ()
) -> Optional[str]:
    for url in list(image_urls) + list(reply_image_urls):
        if url:
            return url
    return None
