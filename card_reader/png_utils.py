from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from .errors import InvalidFormatError, TruncatedChunkError

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
TEXT_CHUNK_TYPE = b"tEXt"
V3_KEYWORD = "ccv3"
V2_KEYWORD = "chara"


class PayloadKind(str, Enum):
    NEITHER = "neither"
    V2_ONLY = "v2_only"
    V3_ONLY = "v3_only"
    BOTH = "both"


@dataclass(frozen=True)
class ChunkPayloads:
    """掃描結果：ccv3 與 chara 兩個 tEXt chunk 的原始 base64 文字。"""

    v3: Optional[str] = None
    v2: Optional[str] = None

    @property
    def kind(self) -> PayloadKind:
        if self.v3 is not None and self.v2 is not None:
            return PayloadKind.BOTH
        if self.v3 is not None:
            return PayloadKind.V3_ONLY
        if self.v2 is not None:
            return PayloadKind.V2_ONLY
        return PayloadKind.NEITHER


def is_png_data(data: bytes) -> bool:
    return len(data) >= len(PNG_SIGNATURE) and data.startswith(PNG_SIGNATURE)


def scan_png(data: bytes) -> ChunkPayloads:
    """
    逐一走訪 PNG chunk，取出 ccv3 / chara 的 tEXt 內容。

    只解讀 tEXt，其餘 chunk 直接跳過；同一 keyword 出現多次時以最後一個為準。
    無法解碼或缺少分隔字元的 tEXt 會被略過，但 chunk 長度超出剩餘資料時視為毀損。
    """
    if not is_png_data(data):
        raise InvalidFormatError("提供的檔案不是有效的 PNG 圖片")

    v3_payload: Optional[str] = None
    v2_payload: Optional[str] = None
    pos = len(PNG_SIGNATURE)
    total = len(data)

    while pos + 4 <= total:
        length = int.from_bytes(data[pos : pos + 4], "big")
        if pos + 8 > total:
            raise TruncatedChunkError(f"PNG chunk 標頭不完整（位移 {pos}）")
        chunk_type = data[pos + 4 : pos + 8]
        pos += 8

        remaining = total - pos
        if length > remaining:
            label = chunk_type.decode("latin1")
            raise TruncatedChunkError(
                f"PNG chunk {label} 宣告長度 {length} bytes，但只剩 {remaining} bytes，檔案可能已損毀"
            )
        chunk_data = data[pos : pos + length]
        pos += length + 4  # skip CRC

        if chunk_type != TEXT_CHUNK_TYPE:
            continue

        parsed = _split_text_chunk(chunk_data)
        if parsed is None:
            continue
        keyword, text = parsed
        if keyword == V3_KEYWORD:
            v3_payload = text
        elif keyword == V2_KEYWORD:
            v2_payload = text

    return ChunkPayloads(v3=v3_payload, v2=v2_payload)


def _split_text_chunk(chunk_data: bytes) -> Optional[Tuple[str, str]]:
    separator = chunk_data.find(b"\x00")
    if separator < 0:
        return None
    try:
        keyword = chunk_data[:separator].decode("utf-8")
        text = chunk_data[separator + 1 :].decode("utf-8")
    except UnicodeDecodeError:
        return None
    return keyword.lower(), text
