"""Preview clip rendering with FFmpeg.

One command builder covers every source kind: a direct URL is read by
FFmpeg itself, a live byte stream is piped into FFmpeg's stdin.
"""

import asyncio
import logging
import os
import time
import uuid
from pathlib import Path
from typing import Optional

from models.clip import ClipOptions
from models.video import DirectURL, SourceDescriptor, StreamHandle
from utils.errors import OutputMoveFailed, RenderFailed, RenderTimeout

logger = logging.getLogger(__name__)

DEFAULT_RENDER_TIMEOUT = 120  # seconds
URL_USER_AGENT = "Mozilla/5.0 (compatible; bot)"

PROBE_OPTIONS = ["-analyzeduration", "10M", "-probesize", "25M", "-fflags", "+fastseek"]


def get_clip_start_ms(total_duration_ms: int, clip_duration_ms: int) -> int:
    """Start of a clip centred on the source's midpoint, never before zero."""
    return max(0, (int(total_duration_ms) - int(clip_duration_ms)) // 2)


def get_start_offset(total_duration: float, clip_duration: float = 7) -> float:
    """Same as ``get_clip_start_ms`` but in seconds.

    The offset is computed on whole milliseconds rather than on floored whole
    seconds, so sub-second midpoints survive: a 200 s source with a 7 s clip
    starts at 96.5 s and a 100 s source at 46.5 s, not 47 s. Cached
    ``clip_start_ms`` values depend on this.
    """
    start_ms = get_clip_start_ms(round(total_duration * 1000), round(clip_duration * 1000))
    return start_ms / 1000


class Deadline:
    """Wall-clock deadline passed into a render call."""

    def __init__(self, expires_at: float, clock=time.monotonic):
        self.expires_at = expires_at
        self._clock = clock

    @classmethod
    def after(cls, seconds: float, clock=time.monotonic) -> "Deadline":
        return cls(clock() + seconds, clock=clock)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0


def _format_headers(headers: dict) -> str:
    return "".join(f"{key}: {value}\r\n" for key, value in headers.items())


def input_options_for(source: SourceDescriptor) -> tuple[list[str], str]:
    """Input options and input target for a source descriptor.

    Returns:
        Tuple of (input_options, input_target)
    """
    if isinstance(source, DirectURL):
        options = [*PROBE_OPTIONS, "-user_agent", URL_USER_AGENT]
        if source.requires_auth_headers:
            options += ["-headers", _format_headers(source.headers)]
        return options, source.url
    return list(PROBE_OPTIONS), "pipe:0"


def build_ffmpeg_command(
    input_options: list[str],
    input_target: str,
    start_seconds: float,
    options: ClipOptions,
    output_path: str | Path,
    ffmpeg_path: str = "ffmpeg",
) -> list[str]:
    """Build the FFmpeg command for one clip.

    Args:
        input_options: Options placed before the input (probing, headers)
        input_target: URL or ``pipe:0``
        start_seconds: Seek offset into the source
        options: Validated clip options
        output_path: Where FFmpeg writes the mp4
        ffmpeg_path: FFmpeg executable

    Returns:
        Argument list for the subprocess
    """
    preset = options.preset

    cmd = [
        ffmpeg_path,
        "-y",  # Overwrite output
        "-hide_banner",
        "-loglevel",
        "error",
        *input_options,
        # -ss before -i for fast seeking
        "-ss",
        f"{start_seconds:.3f}",
        "-i",
        input_target,
        "-t",
        str(options.duration_seconds),
        "-vf",
        f"scale={options.width}:{options.height}:flags=lanczos",
        "-c:v",
        "libx264",
        "-preset",
        preset.speed_preset,
        "-crf",
        preset.crf,
        "-profile:v",
        preset.profile,
        "-level:v",
        preset.level,
        "-maxrate",
        preset.max_bitrate,
        "-bufsize",
        preset.bufsize,
        "-pix_fmt",
        "yuv420p",
        "-g",
        "25",
    ]

    if options.include_audio:
        cmd += ["-c:a", "aac", "-b:a", preset.audio_bitrate, "-ac", "2", "-ar", "48000"]
    else:
        cmd += ["-an"]

    cmd += [
        "-movflags",
        "faststart",  # Web-optimized
        "-avoid_negative_ts",
        "make_zero",
        "-f",
        "mp4",
        str(output_path),
    ]
    return cmd


async def _feed_stream(stdin: asyncio.StreamWriter, handle: StreamHandle) -> None:
    """Copy a blocking chunk iterator into FFmpeg's stdin."""
    chunks = iter(handle.chunks)
    try:
        while True:
            chunk = await asyncio.to_thread(next, chunks, None)
            if chunk is None:
                break
            if not chunk:
                continue
            stdin.write(chunk)
            await stdin.drain()
    except (BrokenPipeError, ConnectionResetError):
        # FFmpeg stops reading once it has the requested duration
        logger.debug("FFmpeg closed its input pipe")
    finally:
        try:
            stdin.close()
        except (BrokenPipeError, ConnectionResetError):
            pass


class ClipRenderer:
    """Renders short mp4 preview clips from remote sources."""

    def __init__(
        self,
        temp_dir: str | Path,
        ffmpeg_path: str = "ffmpeg",
        timeout: float = DEFAULT_RENDER_TIMEOUT,
    ):
        """Initialize the renderer.

        Args:
            temp_dir: Directory for private temporary outputs
            ffmpeg_path: FFmpeg executable
            timeout: Default wall-clock limit per render
        """
        self.temp_dir = Path(temp_dir)
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        self.ffmpeg_path = ffmpeg_path
        self.timeout = timeout

    async def render(
        self,
        source: SourceDescriptor,
        start_seconds: float,
        options: ClipOptions,
        output_path: str | Path,
        deadline: Optional[Deadline] = None,
    ) -> Path:
        """Render a clip and move it to ``output_path``.

        The renderer only owns its temporary file; ``output_path`` belongs to
        the caller once this returns. A stream source is closed on every
        exit path.

        Raises:
            RenderTimeout: If the deadline expires before FFmpeg finishes
            RenderFailed: If FFmpeg exits with an error or writes nothing
            OutputMoveFailed: If the finished clip cannot be moved into place
        """
        deadline = deadline or Deadline.after(self.timeout)
        output_path = Path(output_path)
        temp_path = self.temp_dir / f"temp_{uuid.uuid4().hex}.mp4"

        input_options, input_target = input_options_for(source)
        cmd = build_ffmpeg_command(
            input_options, input_target, start_seconds, options, temp_path, self.ffmpeg_path
        )
        is_stream = isinstance(source, StreamHandle)

        logger.info(
            f"Rendering {options.duration_seconds}s clip at {start_seconds:.1f}s "
            f"({options.quality}, {options.width}x{options.height}, "
            f"{'stream' if is_stream else 'direct url'})"
        )

        process: Optional[asyncio.subprocess.Process] = None
        feeder: Optional[asyncio.Task] = None
        stderr_task: Optional[asyncio.Task] = None
        succeeded = False
        try:
            if deadline.expired:
                raise RenderTimeout("Render deadline expired before FFmpeg started")

            try:
                process = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdin=asyncio.subprocess.PIPE if is_stream else asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                raise RenderFailed(f"Could not start FFmpeg: {e}") from e

            if is_stream:
                feeder = asyncio.create_task(_feed_stream(process.stdin, source))
            stderr_task = asyncio.create_task(process.stderr.read())

            try:
                await asyncio.wait_for(process.wait(), timeout=deadline.remaining())
            except asyncio.TimeoutError:
                logger.error("FFmpeg render timed out")
                raise RenderTimeout("FFmpeg render timed out")

            stderr = (await stderr_task).decode(errors="replace").strip()

            # A source that fails mid-stream still closes stdin, so FFmpeg exits
            # cleanly on a truncated input
            if feeder is not None and feeder.done():
                feed_error = feeder.exception()
                feeder = None
                if feed_error is not None:
                    logger.error(f"Source stream failed: {feed_error}")
                    raise RenderFailed(f"Source stream failed: {feed_error}") from feed_error

            if process.returncode != 0:
                reason = stderr.splitlines()[-1] if stderr else f"exit code {process.returncode}"
                logger.error(f"FFmpeg failed: {stderr}")
                raise RenderFailed(f"FFmpeg failed: {reason}")

            if not temp_path.exists() or temp_path.stat().st_size == 0:
                raise RenderFailed("Clip file was not created")

            try:
                output_path.parent.mkdir(parents=True, exist_ok=True)
                os.replace(temp_path, output_path)
            except OSError as e:
                raise OutputMoveFailed(f"Could not move clip to {output_path}: {e}") from e

            succeeded = True
            logger.info(f"Rendered clip: {output_path.name}")
            return output_path

        finally:
            if process is not None and process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
            if stderr_task is not None and not stderr_task.done():
                stderr_task.cancel()
                try:
                    await stderr_task
                except asyncio.CancelledError:
                    pass
            if feeder is not None:
                feeder.cancel()
                try:
                    await feeder
                except asyncio.CancelledError:
                    pass
                except Exception as e:
                    logger.warning(f"Stream feeder failed: {e}")
            if is_stream:
                source.close()
            if not succeeded:
                temp_path.unlink(missing_ok=True)
