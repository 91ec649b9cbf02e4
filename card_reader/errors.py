from __future__ import annotations


class CardReadError(ValueError):
    """解析角色卡失敗，訊息可直接顯示給使用者。"""

    kind = "card_read_error"


class InvalidFormatError(CardReadError):
    kind = "invalid_format"


class TruncatedChunkError(CardReadError):
    kind = "truncated_chunk"


class NoCardFoundError(CardReadError):
    kind = "no_card_found"


class Base64Error(CardReadError):
    kind = "base64_error"


class EncodingError(CardReadError):
    kind = "encoding_error"


class JsonError(CardReadError):
    kind = "json_error"
