"""
Transition Blender - Functional Core

Combines the visual descriptors of two adjacent scenes into one, given a blend
progress in [0, 1] and a presentation kind.

Stacking: the outgoing scene is lifted by Z_STRIDE so it sits on top of the
incoming scene; the flash layer sits above both. Scene renderers keep their
own z values below Z_STRIDE.

Boundary behavior: at progress 0 every presentation returns the outgoing
descriptor unchanged and at progress 1 the incoming one, so the first and last
frames of a window match the single-scene renders next to them.

Pure functions only; slice jitter comes from seeded_random_core.
"""

import math
from dataclasses import replace
from typing import Callable, Dict, Optional, Tuple

from edit_types import (
    Artifact,
    ClipRect,
    Layer,
    PresentationKind,
    Transition,
    VisualDescriptor,
)
from interpolation_core import clamp01
from seeded_random_core import float01, seed_key, signed_offset


Z_STRIDE = 1000
OUTGOING_Z = Z_STRIDE
INCOMING_Z = 0
FLASH_Z = 2 * Z_STRIDE

# Number of seeded slices per transition frame
TRANSITION_SLICES = 6
SLICE_SHOW_THRESHOLD = 0.5
HUE_CORRUPTION = 90.0

FrameSize = Tuple[int, int]
BlendFn = Callable[
    [VisualDescriptor, VisualDescriptor, float, Transition, str, FrameSize],
    VisualDescriptor
]

# direction -> (axis, sign); the wipe edge travels towards `direction`
_DIRECTIONS = {
    "left": ("x", -1.0),
    "right": ("x", 1.0),
    "up": ("y", -1.0),
    "down": ("y", 1.0),
}


# ============================================================================
# Descriptor Helpers
# ============================================================================

def intersect_clips(a: Optional[ClipRect], b: Optional[ClipRect]) -> Optional[ClipRect]:
    """Intersection of two fractional clip rects (None = whole frame)

    Examples:
        >>> intersect_clips(None, (0.0, 0.0, 0.5, 1.0))
        (0.0, 0.0, 0.5, 1.0)
        >>> intersect_clips((0.0, 0.0, 0.5, 1.0), (0.25, 0.0, 1.0, 1.0))
        (0.25, 0.0, 0.5, 1.0)
    """
    if a is None:
        return b
    if b is None:
        return a
    left, top = max(a[0], b[0]), max(a[1], b[1])
    right, bottom = min(a[2], b[2]), min(a[3], b[3])
    return (left, top, max(left, right), max(top, bottom))


def restack(
    descriptor: VisualDescriptor,
    z_offset: int,
    opacity: float = 1.0,
    clip: Optional[ClipRect] = None,
    shift_x: float = 0.0,
    shift_y: float = 0.0,
    hue_rotate: float = 0.0
) -> VisualDescriptor:
    """Move a whole scene descriptor in the stack and apply a shared effect

    Every layer, artifact and text keeps its relative order; opacity
    multiplies, clips intersect, shifts and hue rotation add to the layers'
    transforms and the artifacts' positions.
    """
    layers = tuple(
        replace(
            layer,
            z=layer.z + z_offset,
            opacity=layer.opacity * opacity,
            clip=intersect_clips(layer.clip, clip),
            transform=replace(
                layer.transform,
                translate_x=layer.transform.translate_x + shift_x,
                translate_y=layer.transform.translate_y + shift_y,
                hue_rotate=layer.transform.hue_rotate + hue_rotate,
            ),
        )
        for layer in descriptor.layers
    )
    artifacts = tuple(
        replace(
            artifact,
            z=artifact.z + z_offset,
            intensity=artifact.intensity * opacity,
            clip=intersect_clips(artifact.clip, clip),
            x=artifact.x + shift_x,
            y=artifact.y + shift_y,
        )
        for artifact in descriptor.artifacts
    )
    texts = tuple(
        replace(
            text,
            z=text.z + z_offset,
            opacity=text.opacity * opacity,
            clip=intersect_clips(text.clip, clip),
            offset_x=text.offset_x + shift_x,
            offset_y=text.offset_y + shift_y,
        )
        for text in descriptor.texts
    )
    return VisualDescriptor(layers, artifacts, texts)


def merge(*descriptors: VisualDescriptor) -> VisualDescriptor:
    """Concatenate descriptors; the rasterizer orders entries by z"""
    return VisualDescriptor(
        layers=tuple(layer for d in descriptors for layer in d.layers),
        artifacts=tuple(artifact for d in descriptors for artifact in d.artifacts),
        texts=tuple(text for d in descriptors for text in d.texts),
    )


def _step(progress: float, transition: Transition) -> int:
    """Frame index inside the window, used to re-seed jitter every frame"""
    return int(round(progress * transition.duration))


def _corruption(progress: float) -> float:
    """0 at both ends of the window, 1 in the middle"""
    return math.sin(math.pi * progress)


def transition_slices(
    seed: str,
    step: int,
    strength: float,
    frame_size: FrameSize,
    max_displacement: float,
    sign: Optional[float] = None,
    z: int = 0
) -> Tuple[Artifact, ...]:
    """Seeded displaced bands drawn over the blend

    Args:
        seed: Namespace (transition name)
        step: Frame index within the window
        strength: Displacement scale (0.0-1.0)
        frame_size: (width, height) in pixels
        max_displacement: Peak displacement in pixels
        sign: Force displacement to one direction (+1 or -1), None for both
        z: Stack position
    """
    if strength <= 0:
        return ()
    width, height = frame_size
    band = height / TRANSITION_SLICES
    slices = []
    for i in range(TRANSITION_SLICES):
        if float01(seed_key(seed, "slice", step, i)) > SLICE_SHOW_THRESHOLD:
            continue
        offset = signed_offset(seed_key(seed, "disp", step, i), max_displacement) * strength
        if sign is not None:
            offset = abs(offset) * sign
        slices.append(Artifact(
            effect="glitch_slice",
            index=i,
            x=0.0,
            y=i * band,
            width=float(width),
            height=band,
            intensity=strength,
            z=z,
            offset_x=offset,
            hue_rotate=float01(seed_key(seed, "hue", step, i)) * HUE_CORRUPTION - HUE_CORRUPTION / 2.0,
            seed=step,
        ))
    return tuple(slices)


# ============================================================================
# Presentations
# ============================================================================

def glitch_blend(
    outgoing: VisualDescriptor,
    incoming: VisualDescriptor,
    progress: float,
    transition: Transition,
    seed: str,
    frame_size: FrameSize
) -> VisualDescriptor:
    """Outgoing scene fades out on top with jitter and hue corruption

    The incoming scene stays fully opaque underneath; the outgoing opacity
    1 - p alone sets the mix.
    """
    if progress <= 0:
        return outgoing
    if progress >= 1:
        return incoming

    step = _step(progress, transition)
    jitter = signed_offset(seed_key(seed, "jitter", step), transition.max_displacement) * progress
    hue = signed_offset(seed_key(seed, "hue", step), HUE_CORRUPTION) * progress
    strength = _corruption(progress)

    return merge(
        restack(incoming, INCOMING_Z),
        restack(outgoing, OUTGOING_Z, opacity=1.0 - progress, shift_x=jitter, hue_rotate=hue),
        VisualDescriptor(artifacts=transition_slices(
            seed, step, strength, frame_size, transition.max_displacement,
            z=OUTGOING_Z + Z_STRIDE - 1
        )),
    )


def flash_opacity(progress: float) -> float:
    """Triangular flash curve: 0 at both ends, 1 at progress 0.5

    Examples:
        >>> flash_opacity(0.5)
        1.0
        >>> flash_opacity(0.0)
        0.0
    """
    return clamp01(1.0 - abs(2.0 * clamp01(progress) - 1.0))


def flash_blend(
    outgoing: VisualDescriptor,
    incoming: VisualDescriptor,
    progress: float,
    transition: Transition,
    seed: str,
    frame_size: FrameSize
) -> VisualDescriptor:
    """Cut under a solid color flash that peaks halfway"""
    scene = outgoing if progress < 0.5 else incoming
    opacity = flash_opacity(progress)
    if opacity <= 0:
        return scene
    flash = Layer(
        name=f"flash:{transition.name}",
        kind="solid",
        z=FLASH_Z,
        color=transition.color,
        opacity=opacity,
    )
    return merge(scene, VisualDescriptor(layers=(flash,)))


def wipe_clips(direction: str, progress: float) -> Tuple[ClipRect, ClipRect]:
    """(outgoing clip, incoming clip) for a wipe edge at `progress`

    The incoming scene enters from the side opposite `direction`.

    Examples:
        >>> wipe_clips("left", 0.25)
        ((0.0, 0.0, 0.75, 1.0), (0.75, 0.0, 1.0, 1.0))
    """
    p = clamp01(progress)
    if direction == "left":
        return (0.0, 0.0, 1.0 - p, 1.0), (1.0 - p, 0.0, 1.0, 1.0)
    if direction == "right":
        return (p, 0.0, 1.0, 1.0), (0.0, 0.0, p, 1.0)
    if direction == "up":
        return (0.0, 0.0, 1.0, 1.0 - p), (0.0, 1.0 - p, 1.0, 1.0)
    if direction == "down":
        return (0.0, p, 1.0, 1.0), (0.0, 0.0, 1.0, p)
    raise ValueError(f"Unknown wipe direction: {direction!r}")


def directional_glitch_blend(
    outgoing: VisualDescriptor,
    incoming: VisualDescriptor,
    progress: float,
    transition: Transition,
    seed: str,
    frame_size: FrameSize
) -> VisualDescriptor:
    """Wipe towards `direction` with displacement along that direction only"""
    if transition.direction not in _DIRECTIONS:
        raise ValueError(f"Unknown wipe direction: {transition.direction!r}")
    if progress <= 0:
        return outgoing
    if progress >= 1:
        return incoming

    axis, sign = _DIRECTIONS[transition.direction]
    step = _step(progress, transition)
    push = abs(signed_offset(seed_key(seed, "push", step), transition.max_displacement)) * sign * progress
    shift_x, shift_y = (push, 0.0) if axis == "x" else (0.0, push)
    outgoing_clip, incoming_clip = wipe_clips(transition.direction, progress)

    # Slices are horizontal bands, so vertical wipes only get hue corruption from them
    slice_sign = sign if axis == "x" else None
    return merge(
        restack(incoming, INCOMING_Z, clip=incoming_clip),
        restack(outgoing, OUTGOING_Z, clip=outgoing_clip, shift_x=shift_x, shift_y=shift_y),
        VisualDescriptor(artifacts=transition_slices(
            seed, step, _corruption(progress), frame_size,
            transition.max_displacement if axis == "x" else 0.0,
            sign=slice_sign, z=OUTGOING_Z + Z_STRIDE - 1
        )),
    )


PRESENTATIONS: Dict[PresentationKind, BlendFn] = {
    PresentationKind.GLITCH: glitch_blend,
    PresentationKind.FLASH: flash_blend,
    PresentationKind.DIRECTIONAL_GLITCH: directional_glitch_blend,
}


def blend(
    outgoing: VisualDescriptor,
    incoming: VisualDescriptor,
    progress: float,
    transition: Transition,
    seed: Optional[str] = None,
    frame_size: FrameSize = (1920, 1080)
) -> VisualDescriptor:
    """Blend two scene descriptors with the transition's presentation

    Args:
        outgoing: Descriptor of the scene being left
        incoming: Descriptor of the scene being entered
        progress: Weighted blend progress (clamped to 0.0-1.0)
        transition: Transition carrying kind and presentation options
        seed: Seed namespace for jitter (defaults to the transition name)
        frame_size: (width, height) used to size slice artifacts

    Returns:
        Combined VisualDescriptor

    Raises:
        ValueError: If the presentation kind has no blend function
    """
    blend_fn = PRESENTATIONS.get(transition.kind)
    if blend_fn is None:
        raise ValueError(f"Unknown presentation kind: {transition.kind!r}")
    return blend_fn(
        outgoing, incoming, clamp01(progress), transition,
        seed if seed is not None else transition.name, frame_size
    )
