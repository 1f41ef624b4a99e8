import os
import logging
from typing import Optional, Any, List
from fastapi import FastAPI, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from catalog import ModelDescriptor, alias_map, build_baseline, enrich
from gateway import SSE_DONE, complete, sse, stream_events
from prompts import GenerateRequest, build_messages
from transcripts import MISSING_TRANSCRIPT_ERRORS, extract_video_id, fetch_transcript

APP_NAME = "AI Gateway API"

TRANSCRIPT_LANGS = [l.strip() for l in os.getenv("TRANSCRIPT_LANGS", "en").split(",") if l.strip()]

def _log_level(name: Optional[str]) -> int:
    level = logging.getLevelName((name or "INFO").strip().upper())
    return level if isinstance(level, int) else logging.INFO

logging.basicConfig(level=_log_level(os.getenv("LOG_LEVEL")))
logger = logging.getLogger("app")

ALLOWED_HEADERS = "Content-Type, Authorization"

# ---- FastAPI app ----
app = FastAPI(title=APP_NAME)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, restrict to your domain.
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

def _preflight(methods: str) -> Response:
    return Response(status_code=200, headers={
        "Access-Control-Allow-Origin": "*",
        "Access-Control-Allow-Methods": methods,
        "Access-Control-Allow-Headers": ALLOWED_HEADERS,
    })

async def _json_body(request: Request) -> Any:
    # Unparseable bodies are treated as empty, like a request with no fields
    try:
        return await request.json()
    except ValueError:
        return {}

def _error(status_code: int, error: str, details: Optional[str] = None) -> JSONResponse:
    body = {"error": error}
    if details is not None:
        body["details"] = details
    return JSONResponse(body, status_code=status_code)

class TranscriptRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    video_id: Optional[str] = Field(None, alias="videoId")
    url: Optional[str] = None
    language: Optional[str] = None
    format: Optional[str] = None
    include_timestamps: Optional[bool] = Field(None, alias="includeTimestamps")

@app.get("/api/models", response_model=List[ModelDescriptor])
async def list_models():
    models = build_baseline()
    try:
        models = await enrich(models, alias_map(), os.getenv("OPENROUTER_API_KEY"))
    except Exception:
        # Enrichment is optional; the static list is always a valid answer
        logger.exception("Model enrichment failed; returning baseline catalog")
    return models

@app.options("/api/models")
def models_preflight():
    return _preflight("GET, OPTIONS")

@app.post("/api/summarise")
def summarise(raw: Any = Depends(_json_body)):
    req = GenerateRequest.model_validate(raw)
    try:
        messages = build_messages(req)
    except ValueError as e:
        return _error(400, str(e))

    try:
        text, finish_reason = complete(messages, model=req.model, max_tokens=req.max_output_tokens,
                                       temperature=req.temperature)
    except Exception as e:
        logger.exception("AI Gateway route error (model=%s)", req.model)
        return _error(500, "Failed to process AI request", str(e))

    return {"text": text, "finishReason": finish_reason, "model": req.model}

@app.options("/api/summarise")
def summarise_preflight():
    return _preflight("POST, OPTIONS")

@app.post("/api/summarise-stream")
def summarise_stream(raw: Any = Depends(_json_body)):
    req = GenerateRequest.model_validate(raw)
    try:
        messages = build_messages(req)
    except ValueError as e:
        return _error(400, str(e))

    def events():
        for part in stream_events(messages, model=req.model, max_tokens=req.max_output_tokens,
                                  temperature=req.temperature):
            yield sse(part)
        yield SSE_DONE

    return StreamingResponse(events(), media_type="text/event-stream", headers={
        "Cache-Control": "no-cache",
        "x-vercel-ai-ui-message-stream": "v1",
    })

@app.options("/api/summarise-stream")
def summarise_stream_preflight():
    return _preflight("POST, OPTIONS")

@app.post("/api/transcript")
def transcript(req: TranscriptRequest):
    video_id = extract_video_id(req.video_id, req.url)
    if not video_id:
        return _error(400, "Missing videoId or url in request body")

    languages = [req.language] if req.language else TRANSCRIPT_LANGS
    try:
        segments = fetch_transcript(video_id, languages)
    except MISSING_TRANSCRIPT_ERRORS as e:
        logger.info("No transcript for %s: %s", video_id, type(e).__name__)
        return _error(404, "Transcript not available", str(e))
    except Exception as e:
        logger.exception("Error fetching transcript for %s", video_id)
        return _error(500, "Failed to fetch transcript", str(e))

    return {
        "success": True,
        "videoId": video_id,
        "transcript": segments,
        "options": {
            "requestedLanguage": req.language,
            "requestedFormat": req.format,
            "includeTimestamps": req.include_timestamps is not False,
        },
    }

@app.options("/api/transcript")
def transcript_preflight():
    return _preflight("POST, OPTIONS")

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", "8000")))
