"""
Edit Configuration

Immutable description of the edit: video settings, asset map, scenes and
transitions. Loaded from YAML (editconfig.yaml) and validated before any frame
is rendered.

parse_edit_config() is pure (dict in, EditConfig out); load_edit_config() is
the only function here that touches the filesystem.
"""

from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml  # type: ignore

from edit_types import PresentationKind, SpringParams, TransitionTiming, RGB


DEFAULT_CONFIG_PATH = Path(__file__).parent / "editconfig.yaml"

WIPE_DIRECTIONS = ("left", "right", "up", "down")


# ============================================================================
# Config Objects
# ============================================================================

@dataclass(frozen=True)
class VideoSettings:
    """Output format shared by every scene"""
    fps: int = 30
    width: int = 1920
    height: int = 1080


@dataclass(frozen=True)
class SceneConfig:
    """One scene of the edit

    Attributes:
        name: Unique scene name (also used to namespace seeds)
        type: Renderer type ('intro', 'glitch', 'speed', 'outro')
        duration: Length in frames
        options: Read-only renderer options (texts, asset ids, trims)
    """
    name: str
    type: str
    duration: int
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)


@dataclass(frozen=True)
class TransitionConfig:
    """One transition of the edit"""
    name: str
    kind: PresentationKind
    duration: int
    timing: TransitionTiming = TransitionTiming()
    color: RGB = (255, 255, 255)
    direction: str = "left"
    max_displacement: float = 80.0


@dataclass(frozen=True)
class EditConfig:
    """Complete, immutable edit description"""
    video: VideoSettings
    assets: Mapping[str, str]
    scenes: Tuple[SceneConfig, ...]
    transitions: Tuple[TransitionConfig, ...]

    @property
    def scene_names(self) -> List[str]:
        return [scene.name for scene in self.scenes]


# ============================================================================
# Parsing (pure)
# ============================================================================

def _positive_int(value: Any, where: str) -> int:
    # bool is an int subclass; a duration of True is a config mistake
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{where} must be an integer, got {value!r}")
    if value < 1:
        raise ValueError(f"{where} must be >= 1, got {value}")
    return value


def _positive_number(value: Any, where: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{where} must be a number, got {value!r}")
    if not value > 0:
        raise ValueError(f"{where} must be positive, got {value}")
    return float(value)


def parse_color(value: Any, where: str = "color") -> RGB:
    """Parse '#rrggbb' or [r, g, b] into an RGB tuple

    Examples:
        >>> parse_color('#00d4ff')
        (0, 212, 255)
        >>> parse_color([255, 255, 255])
        (255, 255, 255)
    """
    if isinstance(value, str):
        text = value.lstrip("#")
        if len(text) != 6:
            raise ValueError(f"{where}: expected '#rrggbb', got {value!r}")
        try:
            return (int(text[0:2], 16), int(text[2:4], 16), int(text[4:6], 16))
        except ValueError:
            raise ValueError(f"{where}: invalid hex color {value!r}")
    if isinstance(value, (list, tuple)) and len(value) == 3:
        channels = []
        for channel in value:
            if isinstance(channel, bool) or not isinstance(channel, int) or not 0 <= channel <= 255:
                raise ValueError(f"{where}: channels must be integers 0-255, got {value!r}")
            channels.append(channel)
        return (channels[0], channels[1], channels[2])
    raise ValueError(f"{where}: expected '#rrggbb' or [r, g, b], got {value!r}")


def _parse_video(data: Optional[Dict[str, Any]]) -> VideoSettings:
    data = data or {}
    defaults = VideoSettings()
    return VideoSettings(
        fps=_positive_int(data.get("fps", defaults.fps), "video.fps"),
        width=_positive_int(data.get("width", defaults.width), "video.width"),
        height=_positive_int(data.get("height", defaults.height), "video.height"),
    )


def _parse_scene(data: Any, index: int) -> SceneConfig:
    where = f"scenes[{index}]"
    if not isinstance(data, dict):
        raise ValueError(f"{where} must be a mapping")
    for key in ("name", "type", "duration"):
        if key not in data:
            raise ValueError(f"{where} is missing '{key}'")
    options = data.get("options") or {}
    if not isinstance(options, dict):
        raise ValueError(f"{where}.options must be a mapping")
    return SceneConfig(
        name=str(data["name"]),
        type=str(data["type"]),
        duration=_positive_int(data["duration"], f"{where}.duration"),
        options=MappingProxyType(dict(options)),
    )


def _parse_timing(data: Any, where: str) -> TransitionTiming:
    if data is None or data == "linear":
        return TransitionTiming()
    if data == "spring":
        return TransitionTiming(kind="spring")
    if isinstance(data, dict) and data.get("kind") == "spring":
        spring = SpringParams(
            damping=_positive_number(data.get("damping", 10.0), f"{where}.damping"),
            stiffness=_positive_number(data.get("stiffness", 100.0), f"{where}.stiffness"),
            mass=_positive_number(data.get("mass", 1.0), f"{where}.mass"),
        )
        return TransitionTiming(kind="spring", spring=spring)
    if isinstance(data, dict) and data.get("kind", "linear") == "linear":
        return TransitionTiming()
    raise ValueError(f"{where}: unknown timing {data!r}")


def _parse_transition(data: Any, index: int) -> TransitionConfig:
    where = f"transitions[{index}]"
    if not isinstance(data, dict):
        raise ValueError(f"{where} must be a mapping")
    for key in ("kind", "duration"):
        if key not in data:
            raise ValueError(f"{where} is missing '{key}'")
    try:
        kind = PresentationKind(data["kind"])
    except ValueError:
        raise ValueError(
            f"{where}.kind: unknown presentation {data['kind']!r}, expected one of "
            f"{[k.value for k in PresentationKind]}"
        )
    direction = data.get("direction", "left")
    if direction not in WIPE_DIRECTIONS:
        raise ValueError(f"{where}.direction must be one of {WIPE_DIRECTIONS}, got {direction!r}")
    return TransitionConfig(
        name=str(data.get("name", f"transition-{index}")),
        kind=kind,
        duration=_positive_int(data["duration"], f"{where}.duration"),
        timing=_parse_timing(data.get("timing"), f"{where}.timing"),
        color=parse_color(data.get("color", [255, 255, 255]), f"{where}.color"),
        direction=direction,
        max_displacement=_positive_number(
            data.get("max_displacement", 80.0), f"{where}.max_displacement"
        ),
    )


def parse_edit_config(data: Any) -> EditConfig:
    """Build an EditConfig from plain data (as loaded from YAML)

    Args:
        data: Mapping with 'video', 'assets', 'scenes', 'transitions'

    Returns:
        Validated, immutable EditConfig

    Raises:
        ValueError: On any malformed or missing entry, naming the offending key
    """
    if not isinstance(data, dict):
        raise ValueError("Edit config must be a mapping")

    scenes_data = data.get("scenes")
    if not isinstance(scenes_data, list) or not scenes_data:
        raise ValueError("Edit config needs a non-empty 'scenes' list")
    transitions_data = data.get("transitions") or []
    if not isinstance(transitions_data, list):
        raise ValueError("'transitions' must be a list")

    scenes = tuple(_parse_scene(item, i) for i, item in enumerate(scenes_data))
    transitions = tuple(_parse_transition(item, i) for i, item in enumerate(transitions_data))

    names = [scene.name for scene in scenes]
    duplicates = sorted({name for name in names if names.count(name) > 1})
    if duplicates:
        raise ValueError(f"Scene names must be unique, duplicated: {duplicates}")

    if len(transitions) != len(scenes) - 1:
        raise ValueError(
            f"Expected {len(scenes) - 1} transitions for {len(scenes)} scenes, "
            f"got {len(transitions)}"
        )

    assets = data.get("assets") or {}
    if not isinstance(assets, dict):
        raise ValueError("'assets' must be a mapping of asset id to path")

    return EditConfig(
        video=_parse_video(data.get("video")),
        assets=MappingProxyType({str(k): str(v) for k, v in assets.items()}),
        scenes=scenes,
        transitions=transitions,
    )


# ============================================================================
# File Loading
# ============================================================================

def load_edit_config(path: Union[str, Path, None] = None) -> EditConfig:
    """Load and validate an edit config from YAML

    Args:
        path: YAML file; defaults to editconfig.yaml next to this module

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the YAML is malformed or fails validation
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    if not config_path.exists():
        raise FileNotFoundError(f"Edit config not found: {config_path}")

    with open(config_path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {config_path}: {e}")

    return parse_edit_config(data)
