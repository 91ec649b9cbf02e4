from __future__ import annotations

from typing import List

from .models import CharacterCard, DepthPrompt, Lorebook, RegexScript

SEPARATOR = "-" * 40


def _section(title: str, body: str) -> str:
    return f"\n{SEPARATOR}\n【{title}】\n{body}\n"


def render_readable_text(card: CharacterCard) -> str:
    """
    將角色卡轉成易讀的純文字報告。

    段落順序固定；除了名稱、描述與開場白之外，空白欄位不輸出對應段落。
    """
    parts: List[str] = [f"【角色名稱】: {card.name}\n"]
    if card.creator:
        parts.append(f"【創 作 者】: {card.creator}\n")
    if card.character_version:
        parts.append(f"【版    本】: {card.character_version}\n")
    if card.tags:
        parts.append(f"【標    籤】: {', '.join(card.tags)}\n")

    parts.append(_section("角色描述 (Description)", card.description))
    parts.append(_section("開場白 (First Message)", card.first_message))

    if card.alternate_greetings:
        greetings = "\n\n".join(
            f"[開場白 {index}]\n{greeting}"
            for index, greeting in enumerate(card.alternate_greetings, start=1)
        )
        parts.append(_section("備選開場白 (Alternate Greetings)", greetings))

    for title, value in (
        ("性格 (Personality)", card.personality),
        ("場景 (Scenario)", card.scenario),
        ("對話範例 (Example Messages)", card.message_example),
        ("系統提示詞 (System Prompt)", card.system_prompt),
        ("歷史後指令 (Post-History Instructions)", card.post_history_instructions),
    ):
        if value:
            parts.append(_section(title, value))

    extensions = card.extensions
    if extensions is not None:
        depth_prompt = extensions.depth_prompt
        if depth_prompt is not None and depth_prompt.prompt:
            parts.append(_section("深度提示詞 (Depth Prompt)", _format_depth_prompt(depth_prompt)))
        if extensions.regex_scripts:
            parts.append(_section("正則腳本 (Regex Scripts)", _format_regex_scripts(extensions.regex_scripts)))

    book = card.character_book
    if book is not None and book.entries:
        parts.append(_section("世界書 (Character Book)", _format_lorebook(book)))

    if card.creator_notes:
        parts.append(_section("作者註釋 (Creator Notes)", card.creator_notes))

    return "".join(parts)


def _format_depth_prompt(depth_prompt: DepthPrompt) -> str:
    return f"深度: {depth_prompt.depth} | 角色: {depth_prompt.role}\n{depth_prompt.prompt}"


def _format_regex_scripts(scripts: List[RegexScript]) -> str:
    blocks = []
    for index, script in enumerate(scripts, start=1):
        status = "[停用]" if script.disabled else "[啟用]"
        blocks.append(
            f"#{index} {script.script_name} {status}\n"
            f"尋找: {script.find_regex}\n"
            f"替換: {script.replace_string}"
        )
    return "\n\n".join(blocks)


def _format_lorebook(book: Lorebook) -> str:
    # sorted() 為穩定排序，insertion_order 相同時維持原始順序
    entries = sorted(book.entries, key=lambda entry: entry.insertion_order)
    blocks = [f"共 {len(entries)} 個條目"]
    for index, entry in enumerate(entries, start=1):
        heading = f"#{index} (順序 {entry.insertion_order})"
        if not entry.enabled:
            heading += " [未啟用]"
        lines = [heading, f"關鍵字: {', '.join(entry.keys)}"]
        if entry.comment:
            lines.append(f"註釋: {entry.comment}")
        lines.append(entry.content)
        blocks.append("\n".join(lines))
    return "\n\n".join(blocks)


def build_preview(card: CharacterCard, readable_text: str) -> str:
    creator = card.creator or "未知"
    return (
        f"✅ 解析成功: {card.name}\n"
        f"作者: {creator}\n"
        f"字數: {len(readable_text)}\n"
        "(詳細內容請查看輸出的檔案)"
    )
