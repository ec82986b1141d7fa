"""
Laughter highlight pipeline.

Pipeline stages:
1. Receive: accept the uploaded video
2. Extract audio: ffmpeg writes an MP3 of the audio track
3. Transcribe: speech-to-text with audio event tagging
4. Normalize: pull laughter moments out of the transcript
5. Window + extract: cut "setup + laugh + buffer" clips with ffmpeg

Entry point is ``momento.pipeline.runner.run_pipeline``.
"""
