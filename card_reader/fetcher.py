from __future__ import annotations

import logging
from typing import Optional

import httpx

from .config import Settings

logger = logging.getLogger(__name__)


class ImageFetchError(ValueError):
    pass


class ImageFetcher:
    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.settings = settings
        self._transport = transport

    async def fetch(self, url: str) -> bytes:
        limit = self.settings.max_image_bytes
        chunks = bytearray()
        logger.info("下載圖片開始 url=%s", url)
        async with httpx.AsyncClient(
            timeout=self.settings.request_timeout,
            follow_redirects=True,
            transport=self._transport,
        ) as client:
            try:
                async with client.stream("GET", url) as response:
                    if response.status_code >= 400:
                        raise ImageFetchError(f"圖片下載失敗: HTTP {response.status_code}")
                    async for chunk in response.aiter_bytes():
                        chunks.extend(chunk)
                        if len(chunks) > limit:
                            raise ImageFetchError(f"圖片超過大小上限 {limit} bytes")
            except httpx.HTTPError as exc:
                logger.warning("下載圖片失敗 url=%s error=%s", url, exc)
                raise ImageFetchError(f"網路請求失敗: {exc}") from exc
        logger.info("下載圖片結束 url=%s size=%s", url, len(chunks))
        return bytes(chunks)
