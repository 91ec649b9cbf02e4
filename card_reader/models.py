from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    model_validator,
)


def _reject_constant(token: str) -> Any:
    raise ValueError(f"不支援的 JSON 數值 {token}")


def load_json(text: str) -> Any:
    """json.loads，但拒絕 NaN / Infinity 這類非標準數值。"""
    return json.loads(text, parse_constant=_reject_constant)


def dump_json(payload: Any) -> str:
    return json.dumps(payload, ensure_ascii=False, indent=2)


def _dump_value(value: Any) -> Any:
    if isinstance(value, CardModel):
        return value.to_payload()
    if isinstance(value, list):
        return [_dump_value(item) for item in value]
    if isinstance(value, dict):
        return {key: _dump_value(item) for key, item in value.items()}
    return value


class CardModel(BaseModel):
    """
    角色卡各層結構的共同基底。

    未定義的欄位保留在 extra 裡，輸出 JSON 時原樣寫回；
    JSON 中的 null 會換成欄位預設值，讓文字欄位一律是字串。
    欄位型別採嚴格比對，不自動轉換（例如 "5" 不會變成 5）。
    """

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="before")
    @classmethod
    def _fill_nulls(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        filled = dict(data)
        for name, info in cls.model_fields.items():
            if info.is_required():
                continue
            default = info.get_default(call_default_factory=True)
            if default is None:
                continue
            key = info.alias or name
            if key in filled and filled[key] is None:
                filled[key] = default
        return filled

    def to_payload(self) -> Dict[str, Any]:
        """輸入中出現過的已知欄位（以 JSON 鍵名輸出），再接上 extra 欄位。"""
        payload: Dict[str, Any] = {}
        for name, info in type(self).model_fields.items():
            if name in self.model_fields_set:
                payload[info.alias or name] = _dump_value(getattr(self, name))
        for key, value in (self.model_extra or {}).items():
            payload.setdefault(key, value)
        return payload

    def to_json(self) -> str:
        return dump_json(self.to_payload())


class LorebookEntry(CardModel):
    id: Optional[Union[StrictInt, StrictStr]] = None
    keys: List[StrictStr] = Field(default_factory=list)
    secondary_keys: List[StrictStr] = Field(default_factory=list)
    comment: StrictStr = ""
    content: StrictStr = ""
    constant: StrictBool = False
    selective: StrictBool = False
    enabled: StrictBool = True
    use_regex: StrictBool = False
    insertion_order: StrictInt = 0
    # 匯出工具有的寫文字（before_char），有的寫數字，原值保留
    position: Union[StrictStr, StrictInt] = ""
    name: StrictStr = ""
    priority: Optional[StrictInt] = None
    case_sensitive: Optional[StrictBool] = None
    extensions: Dict[str, Any] = Field(default_factory=dict)


class Lorebook(CardModel):
    name: StrictStr = ""
    description: Optional[StrictStr] = None
    scan_depth: Optional[StrictInt] = None
    token_budget: Optional[StrictInt] = None
    recursive_scanning: Optional[StrictBool] = None
    extensions: Dict[str, Any] = Field(default_factory=dict)
    entries: List[LorebookEntry] = Field(default_factory=list)


class DepthPrompt(CardModel):
    depth: StrictInt = 4
    prompt: StrictStr = ""
    role: StrictStr = "system"


class RegexScript(CardModel):
    id: Union[StrictStr, StrictInt] = ""
    script_name: StrictStr = Field("", alias="scriptName")
    find_regex: StrictStr = Field("", alias="findRegex")
    replace_string: StrictStr = Field("", alias="replaceString")
    run_on_edit: StrictBool = Field(False, alias="runOnEdit")
    disabled: StrictBool = False
    markdown_only: StrictBool = Field(False, alias="markdownOnly")
    prompt_only: StrictBool = Field(False, alias="promptOnly")
    min_depth: Optional[StrictInt] = Field(None, alias="minDepth")
    max_depth: Optional[StrictInt] = Field(None, alias="maxDepth")


class CardExtensions(CardModel):
    favorite: StrictBool = Field(False, alias="fav")
    world: StrictStr = ""
    talkativeness: Optional[Union[StrictInt, StrictFloat, StrictStr]] = None
    depth_prompt: Optional[DepthPrompt] = None
    regex_scripts: List[RegexScript] = Field(default_factory=list)


class CharacterCard(CardModel):
    name: StrictStr = ""
    description: StrictStr = ""
    personality: StrictStr = ""
    scenario: StrictStr = ""
    first_message: StrictStr = Field("", alias="first_mes")
    message_example: StrictStr = Field("", alias="mes_example")
    creator: StrictStr = ""
    character_version: StrictStr = ""
    creator_notes: StrictStr = ""
    system_prompt: StrictStr = ""
    post_history_instructions: StrictStr = ""
    alternate_greetings: List[StrictStr] = Field(default_factory=list)
    tags: List[StrictStr] = Field(default_factory=list)
    character_book: Optional[Lorebook] = None
    extensions: Optional[CardExtensions] = None

    @classmethod
    def from_json(cls, text: str) -> "CharacterCard":
        return cls.model_validate(load_json(text))


class CardV3Wrapper(CardModel):
    spec: StrictStr
    spec_version: StrictStr
    data: CharacterCard
