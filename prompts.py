import os
from typing import Dict, Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_MODEL = os.getenv("DEFAULT_MODEL", "openai/gpt-4o-mini")
DEFAULT_MAX_OUTPUT_TOKENS = 800
DEFAULT_TEMPERATURE = 0.7

def _is_number(v) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)

def _is_token_count(v) -> bool:
    return _is_number(v) and float(v).is_integer()

def is_message_list(val: Any) -> bool:
    """Chat messages: every item is an object with a string role and some content."""
    if not isinstance(val, list):
        return False
    return all(isinstance(m, dict) and isinstance(m.get("role"), str) and "content" in m for m in val)

# Field name (wire) -> type check; a value failing its check falls back to the default
_CHECKS = {
    "model": lambda v: isinstance(v, str),
    "prompt": lambda v: isinstance(v, str),
    "messages": is_message_list,
    "maxOutputTokens": _is_token_count,
    "temperature": _is_number,
}

class GenerateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    model: str = DEFAULT_MODEL
    prompt: Optional[str] = None
    messages: Optional[List[Dict[str, Any]]] = None
    max_output_tokens: int = Field(DEFAULT_MAX_OUTPUT_TOKENS, alias="maxOutputTokens")
    temperature: float = DEFAULT_TEMPERATURE

    @model_validator(mode="before")
    @classmethod
    def _drop_invalid(cls, raw: Any) -> Dict[str, Any]:
        if not isinstance(raw, dict):
            return {}
        return {k: v for k, v in raw.items() if k in _CHECKS and _CHECKS[k](v)}

def build_messages(req: GenerateRequest) -> List[dict]:
    """Chat messages for the gateway: explicit messages first, then the prompt as a user turn."""
    messages = list(req.messages or [])
    if req.prompt:
        messages.append({"role": "user", "content": req.prompt})
    if not messages:
        raise ValueError("Either `prompt` (string) or `messages` (array) is required")
    return messages
