"""Pydantic models for Claude Code ``stream-json`` trace events."""

from __future__ import annotations

import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, extra='ignore')


# ---------------------------------------------------------------------------
# Content items
# ---------------------------------------------------------------------------


class TextItem(_Frozen):
    text: str = ''


class ImageItem(_Frozen):
    pass


class DocumentItem(_Frozen):
    name: str | None = None


class OtherItem(_Frozen):
    type_tag: str
    raw: Any = None


ResultItem = TextItem | ImageItem | DocumentItem | OtherItem


class ToolUse(_Frozen):
    name: str = '?'
    input: dict[str, Any] = Field(default_factory=dict)

    @field_validator('name', mode='before')
    @classmethod
    def stringify(cls, v: object) -> str:
        return '?' if v is None else str(v)

    @field_validator('input', mode='before')
    @classmethod
    def input_mapping(cls, v: object) -> object:
        return v if isinstance(v, dict) else {}


class ToolResult(_Frozen):
    tool_use_id: str | None = None
    is_error: bool = False
    error: str | None = None
    error_details: str | None = None
    content: list[ResultItem] = Field(default_factory=list)

    @field_validator('is_error', mode='before')
    @classmethod
    def truthy_error(cls, v: object) -> bool:
        return bool(v)

    @field_validator('tool_use_id', 'error', 'error_details', mode='before')
    @classmethod
    def stringify(cls, v: object) -> str | None:
        return None if v is None else str(v)

    @field_validator('content', mode='before')
    @classmethod
    def result_items(cls, v: object) -> list[ResultItem]:
        if v is None:
            return []
        if isinstance(v, str):
            return [TextItem(text=v)]
        if not isinstance(v, list):
            v = [v]
        return [parse_result_item(item) for item in v]


ContentItem = TextItem | ToolUse | ToolResult | OtherItem


def _type_tag(raw: object) -> str:
    if isinstance(raw, dict) and raw.get('type') is not None:
        return str(raw['type'])
    return 'unknown'


def parse_result_item(raw: object) -> ResultItem:
    """Decode one element of a tool_result's ``content`` list."""
    tag = _type_tag(raw)
    if tag == 'text' and isinstance(raw.get('text'), str):
        return TextItem(text=raw['text'])
    if tag == 'image':
        return ImageItem()
    if tag == 'document':
        name = raw.get('name')
        return DocumentItem(name=name if isinstance(name, str) and name else None)
    return OtherItem(type_tag=tag, raw=raw)


def parse_content_item(raw: object) -> ContentItem:
    """Decode one element of ``message.content``."""
    tag = _type_tag(raw)
    if tag == 'text' and isinstance(raw.get('text'), str):
        return TextItem(text=raw['text'])
    if tag == 'tool_use':
        return ToolUse.model_validate(raw)
    if tag == 'tool_result':
        return ToolResult.model_validate(raw)
    return OtherItem(type_tag=tag, raw=raw)


def _message_content(v: object) -> list[ContentItem]:
    if v is None:
        return []
    if isinstance(v, str):
        return [TextItem(text=v)]
    if not isinstance(v, list):
        raise ValueError('message.content must be a list or a string')
    return [parse_content_item(item) for item in v]


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class SystemInit(_Frozen):
    session_id: str = ''
    model: str = ''

    @field_validator('session_id', 'model', mode='before')
    @classmethod
    def stringify(cls, v: object) -> str:
        return '' if v is None else str(v)


class AssistantTurn(_Frozen):
    content: list[ContentItem] = Field(default_factory=list)

    @field_validator('content', mode='before')
    @classmethod
    def content_items(cls, v: object) -> list[ContentItem]:
        return _message_content(v)


class UserToolResult(_Frozen):
    content: list[ContentItem] = Field(default_factory=list)

    @field_validator('content', mode='before')
    @classmethod
    def content_items(cls, v: object) -> list[ContentItem]:
        return _message_content(v)


class FinalResult(_Frozen):
    is_error: bool = False
    result: str | None = None
    error_code: str | None = None
    duration_ms: float | None = None
    total_cost_usd: float | None = None
    tokens_used: int | float | None = None
    usage: dict[str, Any] = Field(default_factory=dict)

    @field_validator('is_error', mode='before')
    @classmethod
    def truthy_error(cls, v: object) -> bool:
        return bool(v)

    @field_validator('result', 'error_code', mode='before')
    @classmethod
    def stringify(cls, v: object) -> str | None:
        return None if v is None else str(v)

    @field_validator('duration_ms', 'total_cost_usd', 'tokens_used', mode='before')
    @classmethod
    def real_number(cls, v: object) -> int | float | None:
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            return None
        if isinstance(v, float) and not math.isfinite(v):
            return None
        return v

    @field_validator('usage', mode='before')
    @classmethod
    def usage_mapping(cls, v: object) -> object:
        return v if isinstance(v, dict) else {}

    @property
    def total_tokens(self) -> int | float | None:
        """``tokens_used`` when reported, else input + output usage."""
        if self.tokens_used is not None:
            return self.tokens_used
        counts = [self.usage.get(k) for k in ('input_tokens', 'output_tokens')]
        counts = [c for c in counts if isinstance(c, int) and not isinstance(c, bool)]
        return sum(counts) if counts else None


class Unrecognized(_Frozen):
    type_tag: str
    raw: Any = None


Event = SystemInit | AssistantTurn | UserToolResult | FinalResult | ToolResult | Unrecognized

KNOWN_TYPES = frozenset({'system', 'assistant', 'user', 'result', 'tool_result'})


def parse_event(data: object) -> Event | None:
    """Decode one JSON document into an event model.

    Returns None for known event types that carry nothing to display
    (e.g. non-init ``system`` events). Raises ValidationError when a known
    event type has an unusable shape.
    """
    if not isinstance(data, dict):
        return Unrecognized(type_tag='unknown', raw=data)

    etype = data.get('type')
    if not isinstance(etype, str) or etype not in KNOWN_TYPES:
        return Unrecognized(type_tag='unknown' if etype is None else str(etype), raw=data)

    if etype == 'system':
        if data.get('subtype') != 'init':
            return None
        return SystemInit.model_validate(data)
    if etype == 'assistant':
        message = data.get('message')
        if not isinstance(message, dict):
            return None
        return AssistantTurn.model_validate(message)
    if etype == 'user':
        message = data.get('message')
        if not isinstance(message, dict):
            return None
        return UserToolResult.model_validate(message)
    if etype == 'tool_result':
        return ToolResult.model_validate(data)
    return FinalResult.model_validate(data)
