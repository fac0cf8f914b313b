"""
Render Shell - Imperative Shell

Drives the pure timeline: asks the composer for composed frames, fetches
media through an AssetSource, rasterizes, and writes PNG frames, a mixed audio
track (soundfile) or an H.264 video (ffmpeg rawvideo pipe).

Asset failures never abort a render: each one is recorded on the frame's
FrameRenderResult and a black placeholder (or silence) is used instead.
"""

import subprocess
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Union

import numpy as np  # type: ignore
import soundfile as sf  # type: ignore

from asset_shell import AssetRetrievalError, AssetSource
from edit_types import ComposedFrame
from raster_core import cv2_to_pil, rasterize
from timeline_core import TimelineComposer


@dataclass
class FrameRenderResult:
    """Rendered frame plus any recoverable asset errors"""
    frame: int
    image: np.ndarray
    composed: ComposedFrame
    errors: List[str] = field(default_factory=list)


# ============================================================================
# Frames
# ============================================================================

def render_frame_image(
    composer: TimelineComposer,
    frame: int,
    assets: AssetSource
) -> FrameRenderResult:
    """Compose and rasterize one global frame

    Video assets that fail to load are replaced by black frames; the failure
    is recorded on the result.
    """
    width, height = composer.frame_size
    composed = composer.render(frame)
    errors: List[str] = []

    def video_frame(asset_id: str, timestamp: float) -> np.ndarray:
        try:
            return assets.get_video_frame(asset_id, timestamp)
        except AssetRetrievalError as e:
            errors.append(str(e))
            return np.zeros((height, width, 3), dtype=np.uint8)

    image = rasterize(composed.visual, width, height, video_frame)
    return FrameRenderResult(composed.frame, image, composed, errors)


def render_frames(
    composer: TimelineComposer,
    frames: Iterable[int],
    assets: AssetSource,
    verbose: bool = True
) -> Iterator[FrameRenderResult]:
    """Render frames in the order given (any order gives the same pixels)"""
    frames = list(frames)
    total = len(frames)
    last_reported = -1
    for done, frame in enumerate(frames, start=1):
        result = render_frame_image(composer, frame, assets)
        if verbose:
            for error in result.errors:
                print(f"⚠️  Frame {result.frame}: {error}")
            progress = int(done * 100 / total) if total else 100
            if progress // 10 > last_reported:
                last_reported = progress // 10
                print(f"Progress: {progress:.1f}% ({done}/{total} frames)")
        yield result


def save_frames_png(
    results: Iterable[FrameRenderResult],
    png_dir: Union[str, Path],
    verbose: bool = True
) -> List[Path]:
    """Write each frame as frame_NNNNN.png (Pillow)"""
    out_dir = Path(png_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for result in results:
        path = out_dir / f"frame_{result.frame:05d}.png"
        cv2_to_pil(result.image).save(path)
        written.append(path)
    if verbose:
        print(f"✓ Wrote {len(written)} PNG frames to {out_dir}")
    return written


# ============================================================================
# Audio
# ============================================================================

def mix_frame_audio(
    composed: ComposedFrame,
    assets: AssetSource,
    fps: int,
    errors: Optional[List[str]] = None
) -> np.ndarray:
    """Sum the frame's audio cues, each scaled by its gain

    Returns:
        float32 (samples_per_frame, channels) block
    """
    block: Optional[np.ndarray] = None
    for cue in composed.audio:
        if cue.gain <= 0:
            continue
        start = cue.asset_time * fps
        try:
            samples = assets.get_audio_samples(cue.asset_id, start, start + 1, fps)
        except AssetRetrievalError as e:
            if errors is not None:
                errors.append(f"Frame {composed.frame}: {e}")
            continue
        if block is None:
            block = np.zeros_like(samples, dtype=np.float32)
        n = min(len(block), len(samples))
        block[:n] += samples[:n] * cue.gain

    samples_per_frame = int(round(assets.sample_rate / fps))
    if block is None:
        return np.zeros((samples_per_frame, assets.channels), dtype=np.float32)
    if len(block) < samples_per_frame:
        block = np.concatenate(
            [block, np.zeros((samples_per_frame - len(block), block.shape[1]), dtype=np.float32)]
        )
    return block[:samples_per_frame]


def mix_audio_track(
    composer: TimelineComposer,
    assets: AssetSource,
    output_path: Union[str, Path],
    frames: Optional[Iterable[int]] = None,
    verbose: bool = True
) -> List[str]:
    """Mix the audio of consecutive frames into a WAV file

    Returns:
        Recoverable asset errors (missing cues are mixed as silence)
    """
    frames = list(frames) if frames is not None else list(composer.frames())
    errors: List[str] = []
    blocks = [
        mix_frame_audio(composer.render(frame), assets, composer.fps, errors)
        for frame in frames
    ]
    if blocks:
        track = np.concatenate(blocks)
    else:
        track = np.zeros((0, assets.channels), dtype=np.float32)
    sf.write(str(output_path), np.clip(track, -1.0, 1.0), assets.sample_rate)

    if verbose:
        print(f"✓ Mixed {len(frames)} frames of audio to {output_path}")
        unique = sorted(set(e.split(": ", 1)[-1] for e in errors))
        for error in unique:
            print(f"⚠️  Audio: {error}")
    return errors


# ============================================================================
# Video Encoding
# ============================================================================

def build_ffmpeg_command(
    output_path: Union[str, Path],
    width: int,
    height: int,
    fps: int,
    audio_path: Optional[Union[str, Path]] = None
) -> List[str]:
    """ffmpeg command reading bgr24 frames from stdin, writing web-ready H.264"""
    cmd = [
        'ffmpeg',
        '-y',
        '-f', 'rawvideo',
        '-vcodec', 'rawvideo',
        '-s', f'{width}x{height}',
        '-pix_fmt', 'bgr24',
        '-r', str(fps),
        '-i', '-',
    ]
    if audio_path:
        cmd.extend(['-i', str(audio_path), '-map', '0:v:0', '-map', '1:a:0', '-shortest'])
    else:
        cmd.append('-an')
    cmd.extend([
        '-vcodec', 'libx264',
        '-preset', 'medium',
        '-crf', '23',
        '-pix_fmt', 'yuv420p',
    ])
    if audio_path:
        cmd.extend(['-c:a', 'aac', '-b:a', '192k'])
    cmd.extend(['-movflags', '+faststart', str(output_path)])
    return cmd


def encode_video(
    images: Iterable[np.ndarray],
    output_path: Union[str, Path],
    width: int,
    height: int,
    fps: int,
    audio_path: Optional[Union[str, Path]] = None,
    verbose: bool = True
) -> bool:
    """Pipe BGR frames into ffmpeg

    Returns:
        True when ffmpeg exits cleanly

    Raises:
        RuntimeError: If ffmpeg cannot be started
    """
    cmd = build_ffmpeg_command(output_path, width, height, fps, audio_path)
    if verbose:
        print(f"\n{'='*60}")
        print(f"Starting FFmpeg encoder for H.264 output...")
        print(f"Output file: {output_path}")
        print(f"Video: {width}x{height} @ {fps}fps")
        print(f"{'='*60}\n")

    try:
        process = subprocess.Popen(cmd, stdin=subprocess.PIPE,
                                   stdout=subprocess.DEVNULL,
                                   stderr=subprocess.PIPE)
    except OSError as e:
        raise RuntimeError(f"Failed to start FFmpeg: {e}")

    written = 0
    broken = False
    for image in images:
        try:
            process.stdin.write(image.tobytes())
            written += 1
        except (BrokenPipeError, OSError) as e:
            if verbose:
                print(f"\n⚠️  FFmpeg pipe broken at frame {written}: {e}")
            broken = True
            break

    try:
        process.stdin.close()
    except (BrokenPipeError, OSError):
        broken = True

    try:
        process.wait(timeout=60)
    except subprocess.TimeoutExpired:
        if verbose:
            print(f"⚠️  FFmpeg finalization timed out after 60 seconds, terminating")
        process.kill()
        process.wait()

    stderr_output = process.stderr.read().decode('utf-8', errors='replace') if process.stderr else ''
    if process.stderr:
        process.stderr.close()

    if process.returncode == 0 and not broken:
        if verbose:
            print(f"\n{'='*60}")
            print(f"✅ Video saved to: {output_path} ({written} frames)")
            print(f"{'='*60}\n")
        return True

    if verbose:
        print(f"\n{'='*60}")
        print(f"⚠️  FFmpeg encoding failed with return code {process.returncode}")
        if stderr_output:
            print(f"   Error details (last 500 chars):")
            print(f"   {stderr_output[-500:]}")
        print(f"{'='*60}\n")
    return False


def render_video(
    composer: TimelineComposer,
    assets: AssetSource,
    output_path: Union[str, Path],
    frames: Optional[Iterable[int]] = None,
    include_audio: bool = True,
    png_dir: Optional[Union[str, Path]] = None,
    verbose: bool = True
) -> List[str]:
    """Render frames to an MP4 (with mixed audio unless disabled)

    Returns:
        All recoverable asset errors of the render
    """
    frames = list(frames) if frames is not None else list(composer.frames())
    width, height = composer.frame_size
    errors: List[str] = []

    with tempfile.TemporaryDirectory() as tmp:
        audio_path = None
        if include_audio:
            audio_path = Path(tmp) / "mix.wav"
            errors.extend(mix_audio_track(composer, assets, audio_path, frames, verbose))

        png_out = Path(png_dir) if png_dir is not None else None
        if png_out is not None:
            png_out.mkdir(parents=True, exist_ok=True)

        def images() -> Iterator[np.ndarray]:
            for result in render_frames(composer, frames, assets, verbose):
                errors.extend(f"Frame {result.frame}: {e}" for e in result.errors)
                if png_out is not None:
                    cv2_to_pil(result.image).save(png_out / f"frame_{result.frame:05d}.png")
                yield result.image

        ok = encode_video(images(), output_path, width, height, composer.fps, audio_path, verbose)
    if not ok:
        raise RuntimeError(f"FFmpeg failed to encode {output_path}")
    return errors
