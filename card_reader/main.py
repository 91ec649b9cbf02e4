import json
import logging
from typing import Dict, List, Optional, Tuple

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from pydantic import BaseModel, Field

from .config import get_settings
from .errors import CardReadError
from .fetcher import ImageFetcher, ImageFetchError
from .renderer import build_preview
from .resolver import CardReadResult, read_card
from .result_store import ResultRecord, ResultStore
from .utils import match_command, pick_image_url

settings = get_settings()
result_store = ResultStore(settings.output_dir, keep_max=settings.keep_max)
image_fetcher = ImageFetcher(settings)
logger = logging.getLogger(__name__)

app = FastAPI(title="SillyTavern 角色卡讀取器", version="0.3.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


class MessagePayload(BaseModel):
    text: str = ""
    image_urls: List[str] = Field(default_factory=list)
    reply_image_urls: List[str] = Field(default_factory=list)


def _read_and_store(image_bytes: bytes) -> Tuple[CardReadResult, ResultRecord]:
    result = read_card(image_bytes)
    record = result_store.save(
        result.card, result.canonical_json, result.readable_text, result.version.value
    )
    return result, record


def _result_payload(result: CardReadResult, record: ResultRecord) -> Dict[str, object]:
    payload: Dict[str, object] = {
        "result_id": record.id,
        "version": result.version.value,
        "name": result.card.name,
        "card": json.loads(result.canonical_json),
        "readable_text": result.readable_text,
        "files": {
            "json": f"/api/results/{record.id}/card.json",
            "text": f"/api/results/{record.id}/readable.txt",
        },
    }
    if settings.text_preview:
        payload["preview"] = build_preview(result.card, result.readable_text)
    return payload


def _get_record(result_id: str) -> ResultRecord:
    try:
        return result_store.get_meta(result_id)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail="找不到指定的讀卡結果") from exc


@app.get("/health")
async def health_check():
    return {"status": "ok"}


@app.post("/api/cards/read")
async def read_card_upload(
    file: Optional[UploadFile] = File(None),
    image_url: str = Form(""),
):
    if not settings.enabled:
        raise HTTPException(status_code=403, detail="讀卡功能未啟用")

    url = image_url.strip()
    try:
        if file is not None:
            image_bytes = await file.read()
        elif url:
            image_bytes = await image_fetcher.fetch(url)
        else:
            raise HTTPException(status_code=400, detail="請上傳角色卡圖片或提供圖片網址")
        result, record = _read_and_store(image_bytes)
    except ValueError as exc:
        logger.warning("讀卡失敗：%s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return _result_payload(result, record)


@app.post("/api/messages")
async def handle_message(message: MessagePayload):
    if not settings.enabled or not match_command(message.text, settings.prefixes, settings.commands):
        return {"triggered": False, "replies": []}

    image_url = pick_image_url(message.image_urls, message.reply_image_urls)
    if image_url is None:
        return {"triggered": True, "replies": ["⚠️ 請附帶角色卡圖片或引用圖片訊息"]}

    replies = ["🔍 正在讀取角色卡，請稍候..."]
    try:
        image_bytes = await image_fetcher.fetch(image_url)
    except ImageFetchError as exc:
        replies.append(f"❌ {exc}")
        return {"triggered": True, "replies": replies}

    try:
        result, record = _read_and_store(image_bytes)
    except CardReadError as exc:
        logger.warning("讀卡失敗 kind=%s url=%s error=%s", exc.kind, image_url, exc)
        replies.append(f"❌ 解析失敗: {exc}")
        return {"triggered": True, "replies": replies}

    payload = _result_payload(result, record)
    if "preview" in payload:
        replies.append(payload["preview"])
    return {"triggered": True, "replies": replies, "result": payload}


@app.get("/api/results")
async def list_results():
    return result_store.list_results()


@app.get("/api/results/{result_id}")
async def result_detail(result_id: str):
    return _get_record(result_id).to_dict()


@app.get("/api/results/{result_id}/card.json")
async def download_json(result_id: str):
    record = _get_record(result_id)
    path = result_store.json_path(result_id)
    if path is None:
        raise HTTPException(status_code=404, detail="JSON 檔案不存在")
    return FileResponse(path, media_type="application/json", filename=record.json_filename)


@app.get("/api/results/{result_id}/readable.txt")
async def download_text(result_id: str):
    record = _get_record(result_id)
    path = result_store.text_path(result_id)
    if path is None:
        raise HTTPException(status_code=404, detail="文字檔案不存在")
    return FileResponse(path, media_type="text/plain; charset=utf-8", filename=record.text_filename)


@app.delete("/api/results/{result_id}")
async def delete_result(result_id: str):
    try:
        result_store.remove(result_id)
    except FileNotFoundError as exc:
        raise HTTPException(status_code=404, detail="找不到指定的讀卡結果") from exc
    return {"status": "deleted", "result_id": result_id}
