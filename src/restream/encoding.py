"""FFmpeg command construction for the multi-destination tee pipeline."""
from __future__ import annotations

import shlex
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence

from .utils import coerce_int


@dataclass(slots=True)
class VideoEncodingOptions:
    """Settings for how the inbound video stream is re-encoded."""

    codec: str = "libx264"
    preset: Optional[str] = "veryfast"
    tune: Optional[str] = "zerolatency"
    bitrate: Optional[str] = "1000k"
    maxrate: Optional[str] = "1000k"
    bufsize: Optional[str] = "2000k"
    gop_size: Optional[int] = 30
    frame_rate: Optional[int] = 30


@dataclass(slots=True)
class AudioEncodingOptions:
    """Settings for how the inbound audio stream is re-encoded."""

    codec: str = "aac"
    bitrate: Optional[str] = "128k"
    sample_rate: Optional[int] = 44100


@dataclass(slots=True)
class EncoderSettings:
    """High level configuration for the FFmpeg relay encoder."""

    ffmpeg_binary: str = "ffmpeg"
    realtime_input: bool = True
    input_target: str = "pipe:0"
    output_format: str = "flv"
    video: VideoEncodingOptions = field(default_factory=VideoEncodingOptions)
    audio: AudioEncodingOptions = field(default_factory=AudioEncodingOptions)
    extra_output_args: Sequence[str] = field(default_factory=tuple)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "EncoderSettings":
        """Build settings from a flat ``FFMPEG_*`` configuration mapping."""

        video = VideoEncodingOptions(
            codec=config.get("FFMPEG_VIDEO_CODEC") or "libx264",
            preset=config.get("FFMPEG_PRESET"),
            tune=config.get("FFMPEG_TUNE"),
            bitrate=config.get("FFMPEG_VIDEO_BITRATE"),
            maxrate=config.get("FFMPEG_MAXRATE"),
            bufsize=config.get("FFMPEG_BUFSIZE"),
            gop_size=coerce_int(config.get("FFMPEG_GOP"), 30),
            frame_rate=coerce_int(config.get("FFMPEG_FRAME_RATE"), 30),
        )
        audio = AudioEncodingOptions(
            codec=config.get("FFMPEG_AUDIO_CODEC") or "aac",
            bitrate=config.get("FFMPEG_AUDIO_BITRATE"),
            sample_rate=coerce_int(config.get("FFMPEG_AUDIO_SAMPLE_RATE"), 44100),
        )
        return cls(
            ffmpeg_binary=config.get("FFMPEG_BINARY") or "ffmpeg",
            output_format=config.get("FFMPEG_OUTPUT_FORMAT") or "flv",
            video=video,
            audio=audio,
        )


class FFmpegTeeEncoder:
    """Build the FFmpeg invocation that duplicates one encode to N destinations."""

    def __init__(self, settings: Optional[EncoderSettings] = None) -> None:
        self.settings = settings or EncoderSettings()

    def build_command(self, destinations: Sequence[str]) -> List[str]:
        if not destinations:
            raise ValueError("At least one destination is required")

        settings = self.settings
        cmd: List[str] = [settings.ffmpeg_binary]
        if settings.realtime_input:
            cmd.append("-re")
        cmd.extend(["-i", settings.input_target])
        cmd.extend(self._build_video_args())
        cmd.extend(self._build_audio_args())
        cmd.extend(settings.extra_output_args)
        cmd.extend(["-f", "tee", "-map", "0:v", "-map", "0:a"])
        cmd.append(self.tee_target(destinations))
        return cmd

    def tee_target(self, destinations: Sequence[str]) -> str:
        """Render the tee muxer slave list; each slave ignores its own failure."""

        slave_options = f"[f={self.settings.output_format}:onfail=ignore]"
        return "|".join(f"{slave_options}{destination}" for destination in destinations)

    def dry_run(self, destinations: Sequence[str]) -> str:
        return shlex.join(self.build_command(destinations))

    def _build_video_args(self) -> List[str]:
        video = self.settings.video
        args = ["-c:v", video.codec]
        if video.preset:
            args.extend(["-preset", video.preset])
        if video.tune:
            args.extend(["-tune", video.tune])
        if video.bitrate:
            args.extend(["-b:v", video.bitrate])
        if video.maxrate:
            args.extend(["-maxrate", video.maxrate])
        if video.bufsize:
            args.extend(["-bufsize", video.bufsize])
        if video.gop_size is not None:
            args.extend(["-g", str(video.gop_size)])
        if video.frame_rate is not None:
            args.extend(["-r", str(video.frame_rate)])
        return args

    def _build_audio_args(self) -> List[str]:
        audio = self.settings.audio
        args = ["-c:a", audio.codec]
        if audio.bitrate:
            args.extend(["-b:a", audio.bitrate])
        if audio.sample_rate is not None:
            args.extend(["-ar", str(audio.sample_rate)])
        return args


__all__ = [
    "AudioEncodingOptions",
    "EncoderSettings",
    "FFmpegTeeEncoder",
    "VideoEncodingOptions",
]
