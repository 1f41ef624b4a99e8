import re
import logging
from typing import Dict, Any, Iterable, List, Optional
from youtube_transcript_api import YouTubeTranscriptApi, TranscriptsDisabled, NoTranscriptFound, VideoUnavailable

logger = logging.getLogger(__name__)

# Library errors that mean "this video has no usable transcript" rather than a failure on our side
MISSING_TRANSCRIPT_ERRORS = (TranscriptsDisabled, NoTranscriptFound, VideoUnavailable)

_VIDEO_URL_RE = re.compile(r"(?:youtube\.com/watch\?v=|youtu\.be/)([^&\n?#]+)")

def extract_video_id(video_id: Optional[str], url: Optional[str]) -> Optional[str]:
    if video_id:
        return video_id
    if not url:
        return None
    m = _VIDEO_URL_RE.search(url)
    return m.group(1) if m else url

def format_timestamp(seconds) -> str:
    total = int(max(seconds or 0, 0))
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    if h:
        return f"{h}:{m:02d}:{s:02d}"
    return f"{m}:{s:02d}"

def to_segments(raw: Iterable[Dict[str, Any]]) -> List[Dict[str, str]]:
    """Flatten library segments to [{text, startTime}], dropping blank text."""
    out = []
    for seg in raw:
        text = (seg.get("text") or "").replace("\n", " ").strip()
        if not text:
            continue
        out.append({"text": text, "startTime": format_timestamp(seg.get("start"))})
    return out

def fetch_transcript(video_id: str, languages: List[str]) -> List[Dict[str, str]]:
    logger.info("Fetching transcript for %s (languages=%s)", video_id, languages)
    fetched = YouTubeTranscriptApi().fetch(video_id, languages=languages)
    return to_segments(fetched.to_raw_data())
