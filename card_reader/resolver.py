from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Optional, Type, TypeVar, Union

from pydantic import ValidationError

from .errors import Base64Error, EncodingError, JsonError, NoCardFoundError
from .models import CardV3Wrapper, CharacterCard, load_json
from .png_utils import ChunkPayloads, PayloadKind, scan_png
from .renderer import render_readable_text

ModelT = TypeVar("ModelT", CardV3Wrapper, CharacterCard)


class CardVersion(str, Enum):
    V2 = "v2"
    V3 = "v3"


@dataclass(frozen=True)
class ResolvedCard:
    card: CharacterCard
    canonical_json: str
    version: CardVersion

    def __iter__(self) -> Iterator[Union[CharacterCard, str]]:
        yield self.card
        yield self.canonical_json


@dataclass(frozen=True)
class CardReadResult:
    card: CharacterCard
    canonical_json: str
    readable_text: str
    version: CardVersion


def resolve_payloads(payloads: ChunkPayloads) -> ResolvedCard:
    """ccv3 與 chara 同時存在時只採用 ccv3，兩者不合併。"""
    kind = payloads.kind
    if kind in (PayloadKind.V3_ONLY, PayloadKind.BOTH):
        wrapper = _decode_payload(payloads.v3, CardV3Wrapper, "V3")
        return ResolvedCard(wrapper.data, _canonical_json(wrapper, "V3"), CardVersion.V3)
    if kind is PayloadKind.V2_ONLY:
        card = _decode_payload(payloads.v2, CharacterCard, "V2")
        return ResolvedCard(card, _canonical_json(card, "V2"), CardVersion.V2)
    raise NoCardFoundError("未在圖片中找到角色卡資訊 (chara/ccv3)")


def resolve_card(v3_payload: Optional[str], v2_payload: Optional[str]) -> ResolvedCard:
    return resolve_payloads(ChunkPayloads(v3=v3_payload, v2=v2_payload))


def parse_png(data: bytes) -> ResolvedCard:
    return resolve_payloads(scan_png(data))


def read_card(data: bytes) -> CardReadResult:
    resolved = parse_png(data)
    return CardReadResult(
        card=resolved.card,
        canonical_json=resolved.canonical_json,
        readable_text=render_readable_text(resolved.card),
        version=resolved.version,
    )


def _decode_payload(payload: Optional[str], model: Type[ModelT], label: str) -> ModelT:
    text = _decode_base64_text(payload or "", label)
    try:
        parsed: Any = load_json(text)
    except RecursionError as exc:
        raise JsonError(f"{label} JSON 巢狀層數過深") from exc
    except ValueError as exc:
        raise JsonError(f"{label} JSON 解析失敗: {exc}") from exc
    try:
        return model.model_validate(parsed)
    except RecursionError as exc:
        raise JsonError(f"{label} JSON 巢狀層數過深") from exc
    except ValidationError as exc:
        raise JsonError(f"{label} JSON 欄位格式不正確: {exc}") from exc


def _canonical_json(model: Union[CardV3Wrapper, CharacterCard], label: str) -> str:
    try:
        return model.to_json()
    except RecursionError as exc:
        raise JsonError(f"{label} JSON 巢狀層數過深") from exc


def _decode_base64_text(payload: str, label: str) -> str:
    try:
        raw = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise Base64Error(f"{label} 資料不是有效的 base64: {exc}") from exc
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise EncodingError(f"{label} 資料不是有效的 UTF-8 文字: {exc}") from exc
