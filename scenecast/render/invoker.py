"""
FFmpeg invocation for assembled projects.

Builds the command line from a FilterGraphPlan, runs FFmpeg, turns its
`-progress` output into percentages and reports failures with FFmpeg's own
diagnostic output attached.
"""

import logging
import os
import subprocess
import threading
import uuid
from collections import deque
from collections.abc import Callable
from pathlib import Path
from typing import Optional

from scenecast.config import Settings, get_settings
from scenecast.exceptions import TranscodeFailedError, TranscodeTimeoutError
from scenecast.render.synthesizer import FilterGraphPlan

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]


class TranscodeInvoker:
    """Runs FFmpeg for a FilterGraphPlan."""

    # Number of FFmpeg output lines kept for error reports
    DIAGNOSTIC_TAIL_LINES = 40

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.ffmpeg_path = self.settings.ffmpeg_path
        self.output_dir = Path(self.settings.output_dir)

    def new_output_path(self, prefix: str = "scenecast") -> Path:
        """Unique output file path inside the output directory."""
        return self.output_dir / f"{prefix}-{uuid.uuid4().hex}.mp4"

    def build_command(self, plan: FilterGraphPlan, output_path: str | Path) -> list[str]:
        """Build the FFmpeg command for a plan without executing it.

        Args:
            plan: Synthesized filter graph plan
            output_path: Output MP4 path

        Returns:
            FFmpeg command as list[str]
        """
        settings = self.settings
        cmd = [
            self.ffmpeg_path,
            "-y",
            "-hide_banner",
            "-nostats",
            "-progress", "pipe:1",
            "-threads", str(settings.render_ffmpeg_threads),
        ]

        # Inputs keep the plan's order, filter graph indexes depend on it.
        # No demuxer-specific flags: jpg, png and gif inputs all loop in the graph
        for spec in plan.inputs:
            cmd.extend(["-i", spec.path])

        cmd.extend(["-filter_complex", plan.filter_complex])
        cmd.extend(["-map", f"[{plan.video_label}]"])
        if plan.audio_label:
            cmd.extend(["-map", f"[{plan.audio_label}]"])

        cmd.extend([
            "-c:v", settings.render_video_codec,
            "-preset", settings.render_preset,
            "-b:v", settings.render_video_bitrate,
            "-pix_fmt", "yuv420p",
            "-r", str(plan.fps),
        ])
        if plan.audio_label:
            cmd.extend([
                "-c:a", settings.render_audio_codec,
                "-b:a", settings.render_audio_bitrate,
                "-ar", str(settings.render_audio_sample_rate),
            ])
        else:
            cmd.append("-an")

        cmd.extend([
            "-t", _seconds(plan.duration),
            "-movflags", "+faststart",
            str(output_path),
        ])
        return cmd

    def run(
        self,
        plan: FilterGraphPlan,
        output_path: str | Path | None = None,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> Path:
        """
        Execute FFmpeg for the plan.

        Args:
            plan: Synthesized filter graph plan
            output_path: Output path, a unique file in output_dir when omitted
            progress_callback: Called with (percent, stage) while encoding

        Returns:
            Path to the non-empty output file

        Raises:
            TranscodeFailedError: FFmpeg exited non-zero or wrote nothing
            TranscodeTimeoutError: FFmpeg exceeded transcode_timeout_s
        """
        output = Path(output_path) if output_path else self.new_output_path()
        output.parent.mkdir(parents=True, exist_ok=True)

        cmd = self.build_command(plan, output)
        logger.info("[TRANSCODE] Starting FFmpeg with %d inputs -> %s", len(plan.inputs), output)
        logger.debug("[TRANSCODE] filter_complex: %s", plan.filter_complex)

        diagnostics: deque[str] = deque(maxlen=self.DIAGNOSTIC_TAIL_LINES)
        timed_out = threading.Event()

        try:
            process = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
            )
        except OSError as e:
            raise TranscodeFailedError(f"Could not start FFmpeg ({self.ffmpeg_path}): {e}") from e

        timer: Optional[threading.Timer] = None
        timeout_s = self.settings.transcode_timeout_s
        if timeout_s > 0:
            def _kill() -> None:
                timed_out.set()
                process.kill()

            timer = threading.Timer(timeout_s, _kill)
            timer.daemon = True
            timer.start()

        last_percent = -1
        try:
            assert process.stdout is not None
            for raw_line in process.stdout:
                line = raw_line.strip()
                if not line:
                    continue
                percent = parse_progress_line(line, plan.duration)
                if percent is None:
                    # -progress emits bare key=value pairs, anything else is diagnostics
                    if "=" not in line or " " in line:
                        diagnostics.append(line)
                        logger.debug("[FFMPEG] %s", line)
                    continue
                if percent != last_percent:
                    last_percent = percent
                    logger.info("[TRANSCODE] Progress: %d%%", percent)
                    if progress_callback:
                        progress_callback(percent, "Encoding video")
            returncode = process.wait()
        finally:
            if timer is not None:
                timer.cancel()
            if process.poll() is None:
                process.kill()
                process.wait()

        diagnostic_text = "\n".join(diagnostics)

        if timed_out.is_set():
            _remove_partial(output)
            logger.error("[TRANSCODE] FFmpeg timed out after %ss", timeout_s)
            raise TranscodeTimeoutError(timeout_s, diagnostics=diagnostic_text)

        if returncode != 0:
            _remove_partial(output)
            logger.error("[TRANSCODE] FFmpeg failed with exit code %d:\n%s", returncode, diagnostic_text)
            raise TranscodeFailedError(
                "FFmpeg encoding failed", returncode=returncode, diagnostics=diagnostic_text
            )

        if not output.exists() or output.stat().st_size == 0:
            _remove_partial(output)
            raise TranscodeFailedError(
                "FFmpeg exited successfully but produced no output",
                diagnostics=diagnostic_text,
            )

        if progress_callback:
            progress_callback(100, "Complete")
        logger.info("[TRANSCODE] Finished: %s (%d bytes)", output, output.stat().st_size)
        return output


def parse_progress_line(line: str, total_duration_s: float) -> Optional[int]:
    """Turn an FFmpeg `-progress` line into a percentage.

    Returns None for lines that are not progress information.
    """
    key, sep, value = line.partition("=")
    if not sep:
        return None
    key = key.strip()
    value = value.strip()

    if key == "progress":
        return 100 if value == "end" else None
    # out_time_us and out_time_ms are both microseconds in FFmpeg's output
    if key not in ("out_time_us", "out_time_ms"):
        return None
    try:
        elapsed_s = int(value) / 1_000_000
    except ValueError:
        return None
    if total_duration_s <= 0:
        return None
    return max(0, min(99, int(elapsed_s * 100 / total_duration_s)))


def _seconds(value: float) -> str:
    text = f"{value:.3f}".rstrip("0").rstrip(".")
    return text or "0"


def _remove_partial(path: Path) -> None:
    try:
        if path.exists():
            os.remove(path)
    except OSError as e:
        logger.warning("[TRANSCODE] Could not remove partial output %s: %s", path, e)
