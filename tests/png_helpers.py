import base64
import json
import zlib

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
IHDR_DATA = (1).to_bytes(4, "big") + (1).to_bytes(4, "big") + bytes([8, 6, 0, 0, 0])


def chunk(chunk_type: bytes, data: bytes, with_crc: bool = True) -> bytes:
    body = len(data).to_bytes(4, "big") + chunk_type + data
    if not with_crc:
        return body
    crc = zlib.crc32(chunk_type + data) & 0xFFFFFFFF
    return body + crc.to_bytes(4, "big")


def text_chunk(keyword: str, text: str) -> bytes:
    return chunk(b"tEXt", keyword.encode("utf-8") + b"\x00" + text.encode("utf-8"))


def encode_payload(payload: object) -> str:
    raw = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    return base64.b64encode(raw).decode("ascii")


def build_png(*chunks: bytes, with_iend: bool = True) -> bytes:
    parts = [PNG_SIGNATURE, chunk(b"IHDR", IHDR_DATA), *chunks]
    if with_iend:
        parts.append(chunk(b"IEND", b""))
    return b"".join(parts)


def v3_card(**data: object) -> dict:
    return {"spec": "chara_card_v3", "spec_version": "3.0", "data": data}
