# workline/services/llm_chain/llm_utils.py
from __future__ import annotations

import json
import re
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel


T = TypeVar("T", bound=BaseModel)

_FENCE_RE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


# ---------------- Pydantic ↔ JSON Schema & Parsing ----------------
def json_schema_from_pydantic(model: Type[T], *, strict: bool = True) -> dict:
    """response_format JSON Schema built from a Pydantic model (fallback path)."""
    schema = model.model_json_schema()
    return {
        "type": "json_schema",
        "json_schema": {
            "name": getattr(model, "__name__", "Schema"),
            "schema": schema,
            "strict": bool(strict),
        },
    }


def strip_code_fence(text: str) -> str:
    """Some OpenAI-compatible backends wrap JSON replies in ```json fences."""
    m = _FENCE_RE.match((text or "").strip())
    return m.group(1) if m else (text or "").strip()


def pydantic_parse(model: Type[T], payload: object) -> T:
    """Parse a str/dict/serialisable payload into a Pydantic instance."""
    if isinstance(payload, str):
        return model.model_validate_json(strip_code_fence(payload))
    if isinstance(payload, dict):
        return model.model_validate(payload)
    return model.model_validate_json(json.dumps(payload, ensure_ascii=False))


# ---------------- Message shapes ----------------
def shape_system(content: str) -> Dict[str, Any]:
    return {"role": "system", "content": content}


def shape_user(content: str) -> Dict[str, Any]:
    return {"role": "user", "content": content}


# ---------------- Extractors (raw SDK) ----------------
def extract_assistant_text_chat(resp: Any) -> str:
    choice0 = (getattr(resp, "choices", None) or [None])[0]
    if not choice0:
        return ""
    return (getattr(getattr(choice0, "message", None), "content", None) or "").strip()


def extract_parsed_chat(resp: Any) -> Any:
    """``message.parsed`` of a ``chat.completions.parse`` response, or None."""
    choice0 = (getattr(resp, "choices", None) or [None])[0]
    if not choice0:
        return None
    return getattr(getattr(choice0, "message", None), "parsed", None)
