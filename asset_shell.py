"""
Asset Shell - Imperative Shell

Decodes the media the edit refers to by asset id: video frames through OpenCV,
audio samples through soundfile, and soundtracks of containers libsndfile
cannot read (the source MP4) through an ffmpeg subprocess. This is the only
module that reads media from disk; the cores only ever see asset ids and
timestamps.

Failures raise AssetRetrievalError so the render shell can record them per
frame and substitute a placeholder instead of aborting the render.
"""

import subprocess
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Tuple, Union

import numpy as np  # type: ignore
import cv2  # type: ignore
import soundfile as sf  # type: ignore

from edit_types import RGB


DEFAULT_SAMPLE_RATE = 48000
DEFAULT_CHANNELS = 2


class AssetRetrievalError(IOError):
    """An asset could not be found or decoded"""

    def __init__(self, asset_id: str, message: str):
        super().__init__(f"Asset '{asset_id}': {message}")
        self.asset_id = asset_id


class AssetSource(Protocol):
    """Collaborator that turns asset ids into decoded media"""

    sample_rate: int
    channels: int

    def get_video_frame(self, asset_id: str, timestamp_seconds: float) -> np.ndarray:
        """BGR uint8 frame at `timestamp_seconds` into the asset"""
        ...

    def get_audio_samples(self, asset_id: str, start_frame: float, end_frame: float,
                          fps: float) -> np.ndarray:
        """float32 samples (n, channels) between two asset-relative frame positions"""
        ...


def samples_per_span(start_frame: float, end_frame: float, fps: float, sample_rate: int) -> Tuple[int, int]:
    """Sample index range covering [start_frame, end_frame) at `fps`

    Examples:
        >>> samples_per_span(0, 1, 30, 48000)
        (0, 1600)
    """
    start = int(round(start_frame * sample_rate / fps))
    end = int(round(end_frame * sample_rate / fps))
    return start, max(start, end)


def match_channels(samples: np.ndarray, channels: int) -> np.ndarray:
    """Duplicate mono or drop extra channels so samples has `channels` columns"""
    if samples.ndim == 1:
        samples = samples[:, None]
    if samples.shape[1] == channels:
        return samples
    if samples.shape[1] == 1:
        return np.repeat(samples, channels, axis=1)
    if samples.shape[1] > channels:
        return samples[:, :channels]
    pad = np.repeat(samples[:, -1:], channels - samples.shape[1], axis=1)
    return np.concatenate([samples, pad], axis=1)


def resample(samples: np.ndarray, source_rate: int, target_rate: int) -> np.ndarray:
    """Linear-interpolation resample of (n, channels) samples"""
    if source_rate == target_rate or len(samples) == 0:
        return samples
    n_out = int(round(len(samples) * target_rate / source_rate))
    positions = np.linspace(0, len(samples) - 1, n_out)
    index = np.arange(len(samples))
    return np.stack(
        [np.interp(positions, index, samples[:, c]) for c in range(samples.shape[1])], axis=1
    ).astype(np.float32)


def slice_samples(samples: np.ndarray, start: int, end: int) -> np.ndarray:
    """samples[start:end], zero-padded where the range falls outside the asset"""
    out = np.zeros((end - start, samples.shape[1]), dtype=np.float32)
    src_start, src_end = max(0, start), min(len(samples), end)
    if src_end > src_start:
        out[src_start - start:src_end - start] = samples[src_start:src_end]
    return out


def build_audio_extract_command(path: Union[str, Path], sample_rate: int, channels: int) -> List[str]:
    """ffmpeg command writing the first audio stream as raw s16le PCM to stdout"""
    return [
        'ffmpeg',
        '-v', 'error',
        '-i', str(path),
        '-vn',
        '-map', '0:a:0',
        '-f', 's16le',
        '-acodec', 'pcm_s16le',
        '-ar', str(sample_rate),
        '-ac', str(channels),
        '-',
    ]


def extract_audio_ffmpeg(path: Union[str, Path], sample_rate: int, channels: int) -> np.ndarray:
    """Decode the soundtrack of any container ffmpeg reads

    Returns:
        float32 (n, channels) samples at `sample_rate`

    Raises:
        RuntimeError: If ffmpeg is missing, fails, or finds no audio stream
    """
    cmd = build_audio_extract_command(path, sample_rate, channels)
    try:
        result = subprocess.run(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
    except OSError as e:
        raise RuntimeError(f"Failed to start FFmpeg: {e}")
    if result.returncode != 0:
        stderr_output = result.stderr.decode('utf-8', errors='replace').strip()
        raise RuntimeError(f"FFmpeg exited with code {result.returncode}: {stderr_output[-500:]}")

    pcm = np.frombuffer(result.stdout, dtype='<i2')
    usable = len(pcm) - len(pcm) % channels
    return (pcm[:usable].astype(np.float32) / 32768.0).reshape(-1, channels)


# ============================================================================
# OpenCV / soundfile Source
# ============================================================================

class OpenCVAssetSource:
    """Decodes assets from files under `assets_dir`

    Video captures and decoded audio are cached per asset id; one instance
    belongs to one render process.

    Args:
        assets_dir: Directory the asset map paths are relative to
        asset_map: Asset id -> relative path
        sample_rate: Output sample rate for audio
        channels: Output channel count for audio
    """

    def __init__(
        self,
        assets_dir: Union[str, Path],
        asset_map: Mapping[str, str],
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        channels: int = DEFAULT_CHANNELS
    ):
        self.assets_dir = Path(assets_dir)
        self.asset_map = dict(asset_map)
        self.sample_rate = sample_rate
        self.channels = channels
        self._captures: Dict[str, cv2.VideoCapture] = {}
        self._audio: Dict[str, np.ndarray] = {}
        # Failed decodes are not retried for every frame
        self._audio_errors: Dict[str, AssetRetrievalError] = {}

    def resolve_path(self, asset_id: str) -> Path:
        if asset_id not in self.asset_map:
            raise AssetRetrievalError(asset_id, "not listed in the asset map")
        path = self.assets_dir / self.asset_map[asset_id]
        if not path.exists():
            raise AssetRetrievalError(asset_id, f"file not found: {path}")
        return path

    def _capture(self, asset_id: str) -> cv2.VideoCapture:
        capture = self._captures.get(asset_id)
        if capture is None:
            path = self.resolve_path(asset_id)
            capture = cv2.VideoCapture(str(path))
            if not capture.isOpened():
                raise AssetRetrievalError(asset_id, f"OpenCV cannot open {path}")
            self._captures[asset_id] = capture
        return capture

    def get_video_frame(self, asset_id: str, timestamp_seconds: float) -> np.ndarray:
        capture = self._capture(asset_id)
        fps = capture.get(cv2.CAP_PROP_FPS) or 0.0
        frame_count = capture.get(cv2.CAP_PROP_FRAME_COUNT) or 0.0
        target = max(0.0, timestamp_seconds)
        if fps > 0 and frame_count > 0:
            # Past the end: hold the last frame
            target = min(target, (frame_count - 1) / fps)
        capture.set(cv2.CAP_PROP_POS_MSEC, target * 1000.0)
        ok, frame = capture.read()
        if not ok or frame is None:
            raise AssetRetrievalError(asset_id, f"no video frame at {timestamp_seconds:.3f}s")
        return frame

    def _load_audio(self, asset_id: str) -> np.ndarray:
        if asset_id in self._audio_errors:
            raise self._audio_errors[asset_id]
        samples = self._audio.get(asset_id)
        if samples is None:
            try:
                samples = self._decode_audio(asset_id)
            except AssetRetrievalError as e:
                self._audio_errors[asset_id] = e
                raise
            self._audio[asset_id] = samples
        return samples

    def _decode_audio(self, asset_id: str) -> np.ndarray:
        """Whole asset as float32 (n, channels) at the output sample rate

        Plain audio files go through soundfile; containers libsndfile cannot
        open (MP4/MOV soundtracks, MP3 on older builds) go through ffmpeg.
        """
        path = self.resolve_path(asset_id)
        try:
            data, rate = sf.read(str(path), dtype='float32', always_2d=True)
        except RuntimeError as e:
            sf_error = e
        else:
            return resample(match_channels(data, self.channels), rate, self.sample_rate)

        try:
            return extract_audio_ffmpeg(path, self.sample_rate, self.channels)
        except RuntimeError as e:
            raise AssetRetrievalError(
                asset_id, f"cannot decode audio from {path}: {sf_error}; ffmpeg: {e}"
            )

    def get_audio_samples(self, asset_id: str, start_frame: float, end_frame: float,
                          fps: float) -> np.ndarray:
        samples = self._load_audio(asset_id)
        start, end = samples_per_span(start_frame, end_frame, fps, self.sample_rate)
        return slice_samples(samples, start, end)

    def close(self) -> None:
        for capture in self._captures.values():
            capture.release()
        self._captures.clear()
        self._audio.clear()
        self._audio_errors.clear()


# ============================================================================
# Placeholder Source
# ============================================================================

class PlaceholderAssetSource:
    """Solid frames and silence, for previews without media and for tests

    Args:
        width, height: Frame size returned for every video asset
        color: Frame color (RGB)
        missing: Asset ids that raise AssetRetrievalError (simulated failures)
    """

    def __init__(
        self,
        width: int = 1920,
        height: int = 1080,
        color: RGB = (40, 40, 48),
        sample_rate: int = DEFAULT_SAMPLE_RATE,
        channels: int = DEFAULT_CHANNELS,
        missing: Optional[Tuple[str, ...]] = None
    ):
        self.width = width
        self.height = height
        self.color = color
        self.sample_rate = sample_rate
        self.channels = channels
        self.missing = tuple(missing or ())

    def _check(self, asset_id: str) -> None:
        if asset_id in self.missing:
            raise AssetRetrievalError(asset_id, "marked missing")

    def get_video_frame(self, asset_id: str, timestamp_seconds: float) -> np.ndarray:
        self._check(asset_id)
        frame = np.zeros((self.height, self.width, 3), dtype=np.uint8)
        frame[:] = (self.color[2], self.color[1], self.color[0])
        return frame

    def get_audio_samples(self, asset_id: str, start_frame: float, end_frame: float,
                          fps: float) -> np.ndarray:
        self._check(asset_id)
        start, end = samples_per_span(start_frame, end_frame, fps, self.sample_rate)
        return np.zeros((end - start, self.channels), dtype=np.float32)

    def close(self) -> None:
        pass
