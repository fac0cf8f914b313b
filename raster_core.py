"""
Raster Core - Functional Core

Turns a VisualDescriptor into pixels: image conversions, canvas operations and
one drawing routine per layer kind, artifact effect and text style.

No file I/O and no printing. Video frames arrive through a callable supplied by
the shell (render_shell.py), fonts through load_font(); everything else is
computed from the descriptor. Drawing functions modify the canvas in place
(functional core with mutable optimization).

Canvas convention: float32 BGR array, 0-255, shape (height, width, 3).
"""

from functools import lru_cache
from typing import Callable, List, Optional, Tuple, Union

import numpy as np  # type: ignore
from PIL import Image, ImageDraw, ImageFilter, ImageFont  # type: ignore
import cv2  # type: ignore

from edit_types import Artifact, ClipRect, Layer, TextReveal, Transform, VisualDescriptor, RGB


VideoFrameFn = Callable[[str, float], np.ndarray]
Entry = Union[Layer, Artifact, TextReveal]

FONT_PATHS = [
    '/System/Library/Fonts/Helvetica.ttc',  # macOS
    '/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf',  # Linux
    '/usr/share/fonts/TTF/DejaVuSans-Bold.ttf',
    'C:\\Windows\\Fonts\\arialbd.ttf',  # Windows
]


# ============================================================================
# Image Format Conversions
# ============================================================================

def cv2_to_pil(cv2_image: np.ndarray) -> Image.Image:
    """Convert OpenCV BGR array to PIL RGB Image"""
    return Image.fromarray(cv2.cvtColor(cv2_image, cv2.COLOR_BGR2RGB))


def to_uint8(canvas: np.ndarray) -> np.ndarray:
    """Float canvas to a BGR uint8 frame ready for the encoder"""
    return np.clip(canvas, 0, 255).astype(np.uint8)


def bgr(color: RGB) -> Tuple[int, int, int]:
    return (color[2], color[1], color[0])


# ============================================================================
# Canvas Operations
# ============================================================================

def create_canvas(width: int, height: int, fill_color: Optional[RGB] = None) -> np.ndarray:
    """
    Allocate a float BGR canvas.

    Examples:
        >>> create_canvas(4, 2).shape
        (2, 4, 3)
    """
    canvas = np.zeros((height, width, 3), dtype=np.float32)
    if fill_color:
        canvas[:] = bgr(fill_color)
    return canvas


def clip_bounds(clip: Optional[ClipRect], width: int, height: int) -> Tuple[int, int, int, int]:
    """Fractional clip rect to pixel bounds (x1, y1, x2, y2), end exclusive

    Examples:
        >>> clip_bounds((0.5, 0.0, 1.0, 1.0), 100, 50)
        (50, 0, 100, 50)
    """
    if clip is None:
        return 0, 0, width, height
    x1 = int(round(max(0.0, min(1.0, clip[0])) * width))
    y1 = int(round(max(0.0, min(1.0, clip[1])) * height))
    x2 = int(round(max(0.0, min(1.0, clip[2])) * width))
    y2 = int(round(max(0.0, min(1.0, clip[3])) * height))
    return x1, y1, max(x1, x2), max(y1, y2)


def composite(
    canvas: np.ndarray,
    overlay: np.ndarray,
    alpha: Union[float, np.ndarray] = 1.0,
    clip: Optional[ClipRect] = None
) -> None:
    """
    Alpha-blend a full-size overlay onto the canvas inside `clip`.

    base * (1 - alpha) + overlay * alpha, with alpha a scalar or an (h, w)
    mask. Modifies canvas in place.
    """
    height, width = canvas.shape[:2]
    x1, y1, x2, y2 = clip_bounds(clip, width, height)
    if x2 <= x1 or y2 <= y1:
        return
    if np.isscalar(alpha):
        a = float(alpha)
        if a <= 0:
            return
        region = canvas[y1:y2, x1:x2]
        region[:] = region * (1.0 - a) + overlay[y1:y2, x1:x2] * a
        return
    mask = np.asarray(alpha, dtype=np.float32)[y1:y2, x1:x2, None]
    region = canvas[y1:y2, x1:x2]
    region[:] = region * (1.0 - mask) + overlay[y1:y2, x1:x2] * mask


def adjust_color(
    image: np.ndarray,
    brightness: float = 1.0,
    saturation: float = 1.0,
    hue_rotate: float = 0.0
) -> np.ndarray:
    """Brightness multiply, saturation scale and hue rotation (degrees)"""
    result = image.astype(np.float32)
    if saturation != 1.0 or hue_rotate:
        hsv = cv2.cvtColor(np.clip(result, 0, 255).astype(np.uint8), cv2.COLOR_BGR2HSV).astype(np.float32)
        # OpenCV stores hue as degrees / 2
        hsv[:, :, 0] = np.mod(hsv[:, :, 0] + hue_rotate / 2.0, 180.0)
        hsv[:, :, 1] = np.clip(hsv[:, :, 1] * saturation, 0, 255)
        result = cv2.cvtColor(hsv.astype(np.uint8), cv2.COLOR_HSV2BGR).astype(np.float32)
    if brightness != 1.0:
        result = result * brightness
    return result


def apply_transform(image: np.ndarray, transform: Transform, width: int, height: int) -> np.ndarray:
    """Scale around the frame center, then translate; outside is black"""
    if image.shape[1] != width or image.shape[0] != height:
        image = cv2.resize(image, (width, height), interpolation=cv2.INTER_LINEAR)
    sx, sy = transform.scale_x, transform.scale_y
    if sx == 1.0 and sy == 1.0 and not transform.translate_x and not transform.translate_y:
        return image.astype(np.float32)
    cx, cy = width / 2.0, height / 2.0
    matrix = np.float32([
        [sx, 0.0, (1.0 - sx) * cx + transform.translate_x],
        [0.0, sy, (1.0 - sy) * cy + transform.translate_y],
    ])
    return cv2.warpAffine(
        image.astype(np.float32), matrix, (width, height),
        flags=cv2.INTER_LINEAR, borderMode=cv2.BORDER_CONSTANT, borderValue=(0, 0, 0)
    )


# ============================================================================
# Stack Order
# ============================================================================

def stack_order(descriptor: VisualDescriptor) -> List[Entry]:
    """All drawable entries sorted bottom to top

    Ties keep descriptor order, with layers before artifacts before texts.
    """
    entries: List[Tuple[int, int, Entry]] = []
    for rank, group in enumerate((descriptor.layers, descriptor.artifacts, descriptor.texts)):
        for entry in group:
            entries.append((entry.z, rank, entry))
    entries.sort(key=lambda item: (item[0], item[1]))
    return [entry for _, _, entry in entries]


# ============================================================================
# Layers
# ============================================================================

def draw_layer(canvas: np.ndarray, layer: Layer, video_frame: Optional[VideoFrameFn] = None) -> None:
    height, width = canvas.shape[:2]
    kind = layer.kind

    if kind == 'video':
        if video_frame is None or layer.asset_id is None:
            return
        source = video_frame(layer.asset_id, layer.asset_time)
        image = apply_transform(source, layer.transform, width, height)
        image = adjust_color(image, layer.brightness, layer.saturation, layer.transform.hue_rotate)
        composite(canvas, image, layer.opacity, layer.clip)

    elif kind == 'solid':
        overlay = np.empty_like(canvas)
        overlay[:] = bgr(layer.color)
        composite(canvas, overlay, layer.opacity, layer.clip)

    elif kind == 'blur':
        radius = int(round(layer.intensity))
        if radius <= 0:
            return
        blurred = cv2.blur(canvas, (2 * radius + 1, 1))
        composite(canvas, blurred, layer.opacity, layer.clip)

    elif kind == 'vignette':
        ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
        dist = np.sqrt(((xs - width / 2.0) / (width / 2.0)) ** 2 + ((ys - height / 2.0) / (height / 2.0)) ** 2)
        inner = max(0.0, 1.0 - layer.size)
        falloff = np.clip((dist / np.sqrt(2.0) - inner) / max(layer.size, 1e-6), 0.0, 1.0)
        mask = falloff * layer.intensity * layer.opacity
        composite(canvas, np.zeros_like(canvas), mask, layer.clip)

    elif kind == 'letterbox':
        bar = int(round(layer.size * height))
        if bar <= 0:
            return
        overlay = canvas.copy()
        overlay[:bar] = 0
        overlay[height - bar:] = 0
        composite(canvas, overlay, layer.opacity, layer.clip)

    elif kind == 'scanlines':
        offset = int(layer.size) % 4
        mask = np.zeros((height, width), dtype=np.float32)
        mask[offset::4] = layer.intensity * layer.opacity
        composite(canvas, np.zeros_like(canvas), mask, layer.clip)

    elif kind == 'light_leak':
        xs = np.arange(width, dtype=np.float32)
        center = layer.size * width
        glow = np.exp(-((xs - center) ** 2) / (2.0 * (0.3 * width) ** 2))
        mask = np.tile(glow, (height, 1)) * layer.intensity * layer.opacity
        overlay = screen(canvas, layer.color)
        composite(canvas, overlay, mask, layer.clip)

    else:
        raise ValueError(f"Unknown layer kind: {kind!r}")


def screen(canvas: np.ndarray, color: RGB) -> np.ndarray:
    """Screen blend of a flat color over the canvas"""
    tint = np.array(bgr(color), dtype=np.float32)
    return 255.0 - (255.0 - canvas) * (255.0 - tint) / 255.0


# ============================================================================
# Artifacts
# ============================================================================

def _rect(artifact: Artifact, width: int, height: int) -> Tuple[int, int, int, int]:
    x1 = max(0, int(round(artifact.x)))
    y1 = max(0, int(round(artifact.y)))
    x2 = min(width, int(round(artifact.x + artifact.width)))
    y2 = min(height, int(round(artifact.y + max(artifact.height, 1.0))))
    return x1, y1, x2, y2


def draw_artifact(canvas: np.ndarray, artifact: Artifact) -> None:
    height, width = canvas.shape[:2]
    effect = artifact.effect
    alpha = max(0.0, min(1.0, artifact.intensity))

    if effect == 'glitch_slice':
        x1, y1, x2, y2 = _rect(artifact, width, height)
        if y2 <= y1:
            return
        overlay = canvas.copy()
        band = np.roll(canvas[y1:y2], int(round(artifact.offset_x)), axis=1)
        overlay[y1:y2] = adjust_color(band, hue_rotate=artifact.hue_rotate)
        composite(canvas, overlay, min(1.0, 0.5 + alpha), artifact.clip)

    elif effect in ('floating_line', 'speed_line', 'scan_line', 'accent_bar'):
        x1, y1, x2, y2 = _rect(artifact, width, height)
        if x2 <= x1 or y2 <= y1:
            return
        overlay = canvas.copy()
        overlay[y1:y2, x1:x2] = bgr(artifact.color)
        composite(canvas, overlay, alpha, artifact.clip)

    elif effect == 'corner_bracket':
        overlay = canvas.copy()
        x, y = int(round(artifact.x)), int(round(artifact.y))
        w, h = int(round(artifact.width)), int(round(artifact.height))
        color = bgr(artifact.color)
        if artifact.index == 0:
            cv2.line(overlay, (x, y), (x + w, y), color, 1, cv2.LINE_AA)
            cv2.line(overlay, (x, y), (x, y + h), color, 1, cv2.LINE_AA)
        else:
            cv2.line(overlay, (x, y + h), (x + w, y + h), color, 1, cv2.LINE_AA)
            cv2.line(overlay, (x + w, y), (x + w, y + h), color, 1, cv2.LINE_AA)
        composite(canvas, overlay, alpha, artifact.clip)

    elif effect == 'crt_dot':
        glow = np.zeros((height, width), dtype=np.float32)
        center = (int(round(artifact.x + artifact.width / 2.0)), int(round(artifact.y + artifact.height / 2.0)))
        radius = max(1, int(round(artifact.width / 2.0)))
        cv2.circle(glow, center, radius * 4, 0.4, -1, cv2.LINE_AA)
        glow = cv2.GaussianBlur(glow, (0, 0), radius * 2)
        cv2.circle(glow, center, radius, 1.0, -1, cv2.LINE_AA)
        overlay = np.empty_like(canvas)
        overlay[:] = bgr(artifact.color)
        composite(canvas, overlay, np.clip(glow, 0.0, 1.0) * alpha, artifact.clip)

    elif effect == 'rgb_split':
        x1, y1, x2, y2 = _rect(artifact, width, height)
        if x2 <= x1 or y2 <= y1:
            return
        overlay = canvas.copy()
        overlay[y1:y2, x1:x2] = screen(canvas[y1:y2, x1:x2], artifact.color)
        composite(canvas, overlay, alpha, artifact.clip)

    elif effect == 'grain':
        rng = np.random.default_rng(artifact.seed)
        noise = rng.standard_normal((height, width)).astype(np.float32)
        overlay = canvas + noise[:, :, None] * 255.0 * alpha
        composite(canvas, overlay, 1.0, artifact.clip)

    else:
        raise ValueError(f"Unknown artifact effect: {effect!r}")


# ============================================================================
# Text
# ============================================================================

@lru_cache(maxsize=32)
def load_font(size: int) -> ImageFont.ImageFont:
    """Bold system font at `size`, falling back to PIL's default font"""
    for font_path in FONT_PATHS:
        try:
            return ImageFont.truetype(font_path, size)
        except (OSError, IOError):
            continue
    return ImageFont.load_default()


def _text_width(font: ImageFont.ImageFont, text: str) -> float:
    if hasattr(font, 'getlength'):
        return float(font.getlength(text))
    return float(font.getbbox(text)[2])


def draw_text(canvas: np.ndarray, text: TextReveal, font: Optional[ImageFont.ImageFont] = None) -> None:
    """Draw a text reveal character by character with per-character alpha"""
    if text.opacity <= 0 or not text.glyphs:
        return
    height, width = canvas.shape[:2]
    font = font or load_font(text.size)

    total = _text_width(font, text.glyphs)
    if text.align == 'center':
        x = text.x - total / 2.0
    elif text.align == 'right':
        x = text.x - total
    else:
        x = text.x
    x += text.offset_x
    y = text.y + text.offset_y

    layer = Image.new('RGBA', (width, height), (0, 0, 0, 0))
    draw = ImageDraw.Draw(layer)
    blur_amount = 0.0
    for i, char in enumerate(text.glyphs):
        progress = text.progress[i] if i < len(text.progress) else 1.0
        char_y = y
        if text.style == 'hacker':
            char_alpha = text.opacity if progress > 0 or char == ' ' else 0.0
        else:
            char_alpha = text.opacity * progress
        if text.style == 'slide':
            char_y += (1.0 - progress) * text.slide_distance
        if text.style == 'blur':
            blur_amount = max(blur_amount, (1.0 - progress) * 8.0)
        if char_alpha > 0:
            draw.text((x, char_y), char, font=font, fill=(*text.color, int(round(255 * char_alpha))))
        x += _text_width(font, char)

    if blur_amount > 0:
        layer = layer.filter(ImageFilter.GaussianBlur(blur_amount))

    rgba = np.array(layer)
    overlay = cv2.cvtColor(rgba[:, :, :3], cv2.COLOR_RGB2BGR).astype(np.float32)
    composite(canvas, overlay, rgba[:, :, 3].astype(np.float32) / 255.0, text.clip)


# ============================================================================
# Whole Frame
# ============================================================================

def rasterize(
    descriptor: VisualDescriptor,
    width: int,
    height: int,
    video_frame: Optional[VideoFrameFn] = None
) -> np.ndarray:
    """
    Render a visual descriptor to a BGR uint8 frame.

    Args:
        descriptor: Layers, artifacts and texts of one composed frame
        width: Output width in pixels
        height: Output height in pixels
        video_frame: Callable (asset_id, seconds) -> BGR frame; video layers
            are skipped when None

    Returns:
        (height, width, 3) uint8 BGR array
    """
    canvas = create_canvas(width, height)
    for entry in stack_order(descriptor):
        if isinstance(entry, Layer):
            draw_layer(canvas, entry, video_frame)
        elif isinstance(entry, Artifact):
            draw_artifact(canvas, entry)
        else:
            draw_text(canvas, entry)
    return to_uint8(canvas)
