import logging, math
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Literal
import httpx
from pydantic import BaseModel

logger = logging.getLogger(__name__)

OPENROUTER_MODELS_URL = "https://openrouter.ai/api/v1/models"
REGISTRY_MAX_AGE = 1800  # seconds a cached registry listing stays acceptable
SAFETY_MARGIN_TOKENS = 1024  # buffer for system/instructions/tool calls


@dataclass(frozen=True)
class BaselineModelEntry:
    label: str
    primary_id: str
    alternate_id: Optional[str] = None


# Gateway model id + label, with the OpenRouter id used for enrichment
BASELINE_MODELS = (
    BaselineModelEntry("GPT-5", "openai/gpt-5", "openai/gpt-5"),
    BaselineModelEntry("GPT-5 mini", "openai/gpt-5-mini", "openai/gpt-5-mini"),
    BaselineModelEntry("Gemini 2.5 Flash", "google/gemini-2.5-flash", "google/gemini-2.5-flash"),
    BaselineModelEntry("Grok-4", "xai/grok-4", "x-ai/grok-4"),
    BaselineModelEntry("Qwen 3 235B", "alibaba/qwen-3-235b", "qwen/qwen3-235b-a22b-2507"),
    BaselineModelEntry("Claude 4.1 Opus", "anthropic/claude-4.1-opus", "anthropic/claude-opus-4.1"),
    BaselineModelEntry("Kimi K2", "moonshotai/kimi-k2", "moonshotai/kimi-k2"),
    BaselineModelEntry("GLM 4.5", "zai/glm-4.5", "z-ai/glm-4.5"),
    BaselineModelEntry("DeepSeek R1", "deepseek/deepseek-r1", "deepseek/deepseek-r1"),
)


class ContextWindow(BaseModel):
    total: Optional[int] = None
    input: Optional[int] = None
    output: Optional[int] = None
    reserve: int = SAFETY_MARGIN_TOKENS


class Pricing(BaseModel):
    input: Optional[float] = None   # price per prompt token
    output: Optional[float] = None  # price per completion token


class ModelDescriptor(BaseModel):
    id: str
    label: str
    provider: str
    description: Optional[str] = None
    context: ContextWindow = ContextWindow()
    pricing: Pricing = Pricing()


@dataclass(frozen=True)
class RegistryPayload:
    """Registry listing resolved to one of the shapes we accept."""
    kind: Literal["data", "models", "unrecognized"]
    entries: List[Dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True)
class FetchResult:
    ok: bool
    entries: List[Dict[str, Any]] = field(default_factory=list)
    reason: Optional[str] = None

    @classmethod
    def degraded(cls, reason: str) -> "FetchResult":
        return cls(ok=False, reason=reason)


def to_number(v) -> Optional[float]:
    if v is None or isinstance(v, bool):
        return None
    if not isinstance(v, (int, float, str)):
        return None
    try:
        n = float(v.strip() if isinstance(v, str) else v)
    except (ValueError, OverflowError):
        return None
    return n if math.isfinite(n) else None

def _provider_of(model_id: str) -> str:
    return model_id.split("/")[0] if "/" in model_id else "unknown"

def _base_descriptor(model_id: str, label: str) -> ModelDescriptor:
    return ModelDescriptor(
        id=model_id,
        label=label or model_id.split("/")[-1] or model_id,
        provider=_provider_of(model_id),
    )

# ---------- Baseline ----------
def build_baseline() -> List[ModelDescriptor]:
    return [_base_descriptor(m.primary_id, m.label) for m in BASELINE_MODELS]

def alias_map() -> Dict[str, str]:
    return {m.primary_id: m.alternate_id for m in BASELINE_MODELS if m.alternate_id}

# ---------- Registry (OpenRouter) ----------
def parse_registry_payload(payload: Any) -> RegistryPayload:
    """Accept either {"data": [...]} or {"models": [...]}; anything else is unrecognized."""
    if isinstance(payload, dict):
        for kind in ("data", "models"):
            items = payload.get(kind)
            if isinstance(items, list):
                return RegistryPayload(kind=kind, entries=[it for it in items if isinstance(it, dict)])
    return RegistryPayload(kind="unrecognized")

async def fetch_registry(credential: Optional[str], client: Optional[httpx.AsyncClient] = None) -> FetchResult:
    """
    Single GET against the registry. Never raises for network or payload problems;
    a degraded FetchResult carries the reason instead.
    """
    if not credential:
        return FetchResult.degraded("no-credential")

    headers = {
        "Authorization": f"Bearer {credential}",
        "Content-Type": "application/json",
        "Cache-Control": f"max-age={REGISTRY_MAX_AGE}",
    }
    try:
        if client is None:
            async with httpx.AsyncClient() as own:
                r = await own.get(OPENROUTER_MODELS_URL, headers=headers, timeout=20)
        else:
            r = await client.get(OPENROUTER_MODELS_URL, headers=headers, timeout=20)
    except Exception as e:
        # includes header encoding errors from the credential
        return FetchResult.degraded(f"transport: {e}")

    if not r.is_success:
        return FetchResult.degraded(f"http-{r.status_code}")
    try:
        data = r.json()
    except ValueError:
        return FetchResult.degraded("malformed-body")

    parsed = parse_registry_payload(data)
    if parsed.kind == "unrecognized":
        return FetchResult.degraded("unrecognized-shape")
    if not parsed.entries:
        return FetchResult.degraded("empty")
    return FetchResult(ok=True, entries=parsed.entries)

# ---------- Merge ----------
def _numeric(v) -> Optional[int]:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    try:
        return int(v) if math.isfinite(v) else None
    except OverflowError:
        return None

def _derive_context(meta: Dict[str, Any]) -> ContextWindow:
    top = meta.get("top_provider")
    if not isinstance(top, dict):
        top = {}
    total = _numeric(meta.get("context_length"))
    if total is None:
        total = _numeric(top.get("context_length"))
    output = _numeric(top.get("max_completion_tokens"))

    # Safe max input only when both ends are known
    inp = None
    if total is not None and output is not None:
        computed = total - output - SAFETY_MARGIN_TOKENS
        inp = computed if computed > 0 else max(total - output, 0)
    return ContextWindow(total=total, input=inp, output=output, reserve=SAFETY_MARGIN_TOKENS)

def _derive_pricing(meta: Dict[str, Any]) -> Pricing:
    p = meta.get("pricing")
    if not isinstance(p, dict):
        p = {}
    inp = to_number(p.get("prompt"))
    if inp is None:
        inp = to_number(p.get("input"))
    out = to_number(p.get("completion"))
    if out is None:
        out = to_number(p.get("output"))
    return Pricing(input=inp, output=out)

def merge(models: List[ModelDescriptor], entries: List[Dict[str, Any]], id_aliases: Dict[str, str]) -> List[ModelDescriptor]:
    by_id = {e["id"]: e for e in entries if isinstance(e.get("id"), str)}

    merged = []
    for model in models:
        registry_id = id_aliases.get(model.id) or model.id
        meta = by_id.get(registry_id) or by_id.get(model.id)
        if not meta:
            merged.append(model)
            continue
        name = meta.get("name")
        description = meta.get("description")
        merged.append(model.model_copy(update={
            "label": name if isinstance(name, str) else model.label,
            "description": description if isinstance(description, str) else model.description,
            "context": _derive_context(meta),
            "pricing": _derive_pricing(meta),
        }))
    return merged

# ---------- Public function ----------
async def enrich(models: List[ModelDescriptor], id_aliases: Dict[str, str], credential: Optional[str] = None,
                 client: Optional[httpx.AsyncClient] = None) -> List[ModelDescriptor]:
    if not credential:
        return models

    result = await fetch_registry(credential, client=client)
    if not result.ok:
        logger.warning("Model registry enrichment skipped: %s", result.reason)
        return models
    try:
        return merge(models, result.entries, id_aliases)
    except Exception as e:
        logger.warning("Model registry enrichment skipped: merge: %s", e)
        return models
