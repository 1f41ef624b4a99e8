import os, json, uuid
import logging
from typing import Dict, Any, List, Iterator, Optional, Tuple
from openai import OpenAI

# ---- LLM client (OpenAI-compatible AI gateway) ----
AI_GATEWAY_BASE_URL = os.getenv("AI_GATEWAY_BASE_URL", "https://ai-gateway.vercel.sh/v1")
AI_GATEWAY_API_KEY = os.getenv("AI_GATEWAY_API_KEY", "")

logger = logging.getLogger(__name__)

if not AI_GATEWAY_API_KEY:
    # local dev can set this via .env; generation calls fail until then, other routes keep working
    logger.warning("AI_GATEWAY_API_KEY not set. Generation routes will error on first call.")

client: Optional[OpenAI] = None  # created on first use

def get_client() -> OpenAI:
    global client
    if client is None:
        client = OpenAI(base_url=AI_GATEWAY_BASE_URL, api_key=AI_GATEWAY_API_KEY)
    return client

def _request_kwargs(messages: List[dict], model: str, max_tokens: Optional[int], temperature: Optional[float]) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = dict(model=model, messages=messages)
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens
    if temperature is not None:
        kwargs["temperature"] = temperature
    return kwargs

def _adapt(kwargs: Dict[str, Any], err: Exception) -> bool:
    """
    Adjust kwargs after a provider rejection; True when a retry makes sense.
    - temperature not accepted: drop it (use provider default)
    - max_tokens not accepted: send it as max_completion_tokens
    """
    msg = str(err)
    low = msg.lower()
    if "temperature" in low and ("unsupported" in low or "does not support" in low) and "temperature" in kwargs:
        logger.warning("Provider rejected temperature; retrying without it. Error: %s", msg)
        kwargs.pop("temperature", None)
        return True
    if "max_tokens" in low and ("unsupported" in low or "not supported" in low) and "max_tokens" in kwargs:
        logger.warning("Provider rejected max_tokens; retrying with max_completion_tokens. Error: %s", msg)
        kwargs["max_completion_tokens"] = kwargs.pop("max_tokens")
        return True
    return False

def _create(kwargs: Dict[str, Any]):
    attempts = 3  # adaptive attempts
    for attempt in range(attempts):
        try:
            return get_client().chat.completions.create(**kwargs)
        except Exception as e:
            # Otherwise, bubble up the error
            if attempt == attempts - 1 or not _adapt(kwargs, e):
                raise

def complete(messages: List[dict], model: str, max_tokens: Optional[int] = None,
             temperature: Optional[float] = None) -> Tuple[str, Optional[str]]:
    """One-shot completion; returns (text, finish_reason)."""
    resp = _create(_request_kwargs(messages, model, max_tokens, temperature))
    choice = resp.choices[0]
    return choice.message.content or "", choice.finish_reason

# ---- Streaming (UI message stream parts) ----
def sse(part: Dict[str, Any]) -> str:
    return f"data: {json.dumps(part, ensure_ascii=False)}\n\n"

SSE_DONE = "data: [DONE]\n\n"

def stream_events(messages: List[dict], model: str, max_tokens: Optional[int] = None,
                  temperature: Optional[float] = None) -> Iterator[Dict[str, Any]]:
    """
    Yield start, text-start, text-delta*, text-end and finish parts.
    Failures after the start part are reported as an error part.
    """
    text_id = uuid.uuid4().hex
    yield {"type": "start"}
    try:
        kwargs = _request_kwargs(messages, model, max_tokens, temperature)
        kwargs["stream"] = True
        stream = _create(kwargs)
        yield {"type": "text-start", "id": text_id}
        finish_reason = None
        for chunk in stream:
            if not chunk.choices:
                continue
            choice = chunk.choices[0]
            delta = getattr(choice.delta, "content", None) if choice.delta else None
            if delta:
                yield {"type": "text-delta", "id": text_id, "delta": delta}
            if choice.finish_reason:
                finish_reason = choice.finish_reason
        yield {"type": "text-end", "id": text_id}
        yield {"type": "finish", "finishReason": finish_reason}
    except Exception as e:
        logger.exception("Gateway stream failed for model %s", model)
        yield {"type": "error", "errorText": str(e)}
