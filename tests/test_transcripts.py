"""Tests for transcript helpers (no network)."""

from types import SimpleNamespace

import pytest

import transcripts
from transcripts import extract_video_id, format_timestamp, to_segments


@pytest.mark.parametrize(
    "video_id, url, expected",
    [
        ("abc123", "https://youtu.be/zzz", "abc123"),
        (None, "https://www.youtube.com/watch?v=dQw4w9WgXcQ&t=42", "dQw4w9WgXcQ"),
        (None, "https://youtu.be/dQw4w9WgXcQ?si=share", "dQw4w9WgXcQ"),
        (None, "dQw4w9WgXcQ", "dQw4w9WgXcQ"),
        (None, None, None),
        ("", "", None),
    ],
)
def test_extract_video_id(video_id, url, expected) -> None:
    assert extract_video_id(video_id, url) == expected


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "0:00"), (None, "0:00"), (5.9, "0:05"), (65, "1:05"), (600, "10:00"), (3725.2, "1:02:05")],
)
def test_format_timestamp(seconds, expected) -> None:
    assert format_timestamp(seconds) == expected


def test_to_segments_drops_blank_text() -> None:
    raw = [
        {"text": "Hello there", "start": 0.0, "duration": 1.5},
        {"text": "   ", "start": 1.5, "duration": 1.0},
        {"text": "", "start": 2.5, "duration": 1.0},
        {"text": "line one\nline two", "start": 62.4, "duration": 2.0},
        {"start": 70.0},
    ]
    assert to_segments(raw) == [
        {"text": "Hello there", "startTime": "0:00"},
        {"text": "line one line two", "startTime": "1:02"},
    ]


def test_fetch_transcript_delegates_to_library(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    class FakeApi:
        def fetch(self, video_id, languages):
            calls.append((video_id, languages))
            return SimpleNamespace(to_raw_data=lambda: [{"text": "hi", "start": 3.0, "duration": 1.0}])

    monkeypatch.setattr(transcripts, "YouTubeTranscriptApi", FakeApi)

    assert transcripts.fetch_transcript("vid", ["en", "de"]) == [{"text": "hi", "startTime": "0:03"}]
    assert calls == [("vid", ["en", "de"])]
