"""Tests for the end-to-end pipeline runner."""
import asyncio
import json

import pytest

from momento.config import settings
from momento.pipeline import runner
from momento.pipeline.errors import ConfigurationError, InputError, PipelineError, UpstreamError
from momento.pipeline.runner import run_pipeline
from momento.services.storage import MediaAsset
from momento.services.transcription_service import TranscriptionService
from momento.utils.ffmpeg import FFmpegError


TWO_LAUGHS = {
    "text": "...",
    "words": [
        {"type": "word", "text": "setup", "start": 40.0, "end": 41.0},
        {"type": "audio_event", "text": "(laughter)", "start": 50.0, "end": 52.0},
        {"type": "word", "text": "early", "start": 8.0, "end": 9.0},
        {"type": "audio_event", "text": "(laughs)", "start": 10.0, "end": 11.0},
    ],
}


class _FakeTranscriber:
    def __init__(self, payload=None, error=None, configured=True):
        self.payload = payload if payload is not None else TWO_LAUGHS
        self.error = error
        self.configured = configured
        self.calls = []

    def ensure_configured(self):
        if not self.configured:
            raise ConfigurationError("Transcription credential is not configured", stage="transcribe")

    async def transcribe(self, audio_path, request_id=""):
        self.calls.append((audio_path, audio_path.exists(), request_id))
        if self.error:
            raise self.error
        return self.payload


class _FakeFFmpeg:
    def __init__(self, audio_error=None, trim_delays=None):
        self.audio_error = audio_error
        self.trim_delays = trim_delays or {}
        self.audio_calls = []
        self.trim_calls = []

    async def extract_audio(self, ffmpeg_path, source_path, output_path):
        self.audio_calls.append((ffmpeg_path, source_path, output_path))
        if self.audio_error:
            raise self.audio_error
        output_path.write_bytes(b"mp3")
        return output_path

    async def trim_clip(self, ffmpeg_path, source_path, output_path, start_time, duration):
        await asyncio.sleep(self.trim_delays.get(start_time, 0))
        self.trim_calls.append((output_path.name, start_time, duration))
        output_path.write_bytes(b"mp4")
        return output_path


@pytest.fixture
def fake_ffmpeg(monkeypatch):
    fake = _FakeFFmpeg()
    monkeypatch.setattr(runner.ffmpeg, "extract_audio", fake.extract_audio)
    monkeypatch.setattr(runner.ffmpeg, "trim_clip", fake.trim_clip)
    return fake


@pytest.fixture
def asset(tmp_path):
    path = tmp_path / "req_show.mp4"
    path.write_bytes(b"x" * 10)
    return MediaAsset(original_name="show.mp4", storage_name=path.name, size=10, path=path)


@pytest.fixture(autouse=True)
def transcript_artifacts(monkeypatch):
    monkeypatch.setattr(settings, "write_transcript_json", True)


@pytest.mark.asyncio
async def test_two_moments_end_to_end(fake_ffmpeg, asset, tmp_path):
    # The first clip finishes after the second
    fake_ffmpeg.trim_delays = {5.0: 0.05}
    transcriber = _FakeTranscriber()

    result = await run_pipeline(
        asset, "/usr/bin/ffmpeg", output_dir=tmp_path, transcriber=transcriber, request_id="r1"
    )

    assert [(c.index, c.window.start, c.window.duration) for c in result.clips] == [
        (0, 5.0, 49.0),
        (1, 0.0, 13.0),
    ]
    assert result.clip_urls == ["/api/media/momento_r1_clip_0.mp4", "/api/media/momento_r1_clip_1.mp4"]
    assert result.failures == []
    assert result.transcript is TWO_LAUGHS
    assert [m.start for m in result.moments] == [50.0, 10.0]

    # trims completed out of order
    assert [call[0] for call in fake_ffmpeg.trim_calls] == ["momento_r1_clip_1.mp4", "momento_r1_clip_0.mp4"]

    # audio existed while transcribing and is gone afterwards
    audio_path, existed, request_id = transcriber.calls[0]
    assert existed
    assert request_id == "r1"
    assert audio_path.name == "r1_audio.mp3"
    assert not audio_path.exists()

    artifact = tmp_path / "r1_transcript.json"
    assert json.loads(artifact.read_text()) == TWO_LAUGHS


@pytest.mark.asyncio
async def test_no_moments_is_not_an_error(fake_ffmpeg, asset, tmp_path):
    transcriber = _FakeTranscriber(payload={"words": [{"type": "word", "text": "hi", "start": 0, "end": 1}]})

    result = await run_pipeline(asset, "ffmpeg", output_dir=tmp_path, transcriber=transcriber)

    assert result.clips == []
    assert result.failures == []
    assert fake_ffmpeg.trim_calls == []
    assert result.to_dict()["clips"] == []


@pytest.mark.asyncio
async def test_missing_asset_rejected(fake_ffmpeg, tmp_path):
    with pytest.raises(InputError) as exc:
        await run_pipeline(None, "ffmpeg", output_dir=tmp_path, transcriber=_FakeTranscriber())

    assert exc.value.stage == "receive"
    assert exc.value.status_code == 400
    assert fake_ffmpeg.audio_calls == []


@pytest.mark.asyncio
async def test_missing_credential_fails_before_audio_extraction(fake_ffmpeg, asset, tmp_path):
    transcriber = TranscriptionService(api_key="")

    with pytest.raises(ConfigurationError):
        await run_pipeline(asset, "ffmpeg", output_dir=tmp_path, transcriber=transcriber)

    assert fake_ffmpeg.audio_calls == []


@pytest.mark.asyncio
async def test_audio_extraction_failure(fake_ffmpeg, asset, tmp_path):
    fake_ffmpeg.audio_error = FFmpegError("ffmpeg exited with code 1: no audio stream")
    transcriber = _FakeTranscriber()

    with pytest.raises(UpstreamError, match="Audio extraction failed") as exc:
        await run_pipeline(asset, "ffmpeg", output_dir=tmp_path, transcriber=transcriber)

    assert exc.value.stage == "extract_audio"
    assert transcriber.calls == []


@pytest.mark.asyncio
async def test_transcription_failure_cleans_up_audio(fake_ffmpeg, asset, tmp_path):
    transcriber = _FakeTranscriber(
        error=UpstreamError("Transcription failed with status 401: unauthorized", stage="transcribe", upstream_status=401)
    )

    with pytest.raises(UpstreamError) as exc:
        await run_pipeline(asset, "ffmpeg", output_dir=tmp_path, transcriber=transcriber, request_id="r2")

    assert exc.value.upstream_status == 401
    assert exc.value.stage == "transcribe"
    assert not (tmp_path / "r2_audio.mp3").exists()
    assert fake_ffmpeg.trim_calls == []


@pytest.mark.asyncio
async def test_progress_reported(fake_ffmpeg, asset, tmp_path):
    updates = []

    async def progress_callback(pct, msg):
        updates.append((pct, msg))

    await run_pipeline(
        asset, "ffmpeg", output_dir=tmp_path, transcriber=_FakeTranscriber(),
        progress_callback=progress_callback,
    )

    percents = [pct for pct, _ in updates]
    assert percents == sorted(percents)
    assert percents[-1] == 100
    assert "Generated 2 of 2 clips" in updates[-1][1]


@pytest.mark.asyncio
async def test_request_ids_keep_runs_apart(fake_ffmpeg, asset, tmp_path):
    first = await run_pipeline(asset, "ffmpeg", output_dir=tmp_path, transcriber=_FakeTranscriber())
    second = await run_pipeline(asset, "ffmpeg", output_dir=tmp_path, transcriber=_FakeTranscriber())

    assert first.request_id != second.request_id
    assert set(first.clip_urls).isdisjoint(second.clip_urls)


@pytest.mark.asyncio
async def test_unexpected_error_is_typed_and_logged(fake_ffmpeg, asset, tmp_path, caplog):
    class _BrokenTranscriber(_FakeTranscriber):
        async def transcribe(self, audio_path, request_id=""):
            raise OSError("Permission denied")

    with caplog.at_level("ERROR", logger="momento.pipeline.runner"):
        with pytest.raises(PipelineError) as exc:
            await run_pipeline(
                asset, "ffmpeg", output_dir=tmp_path, transcriber=_BrokenTranscriber(), request_id="r3"
            )

    assert exc.value.stage == "transcribe"
    assert exc.value.status_code == 500
    assert isinstance(exc.value.__cause__, OSError)
    assert "[r3] Pipeline failed at stage transcribe" in caplog.text
    assert not (tmp_path / "r3_audio.mp3").exists()


@pytest.mark.asyncio
async def test_oversized_timestamp_does_not_break_pipeline(fake_ffmpeg, asset, tmp_path):
    payload = {
        "audio_events": [
            {"type": "laughter", "start": 10**400, "end": 1},
            {"type": "laughter", "start": 50, "end": 52},
        ]
    }

    result = await run_pipeline(
        asset, "ffmpeg", output_dir=tmp_path, transcriber=_FakeTranscriber(payload=payload), request_id="r4"
    )

    assert [(c.window.start, c.window.duration) for c in result.clips] == [(5.0, 49.0)]
