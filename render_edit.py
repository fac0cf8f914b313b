#!/usr/bin/env python3
"""
Render the dynamic edit described by editconfig.yaml.

Examples:
  python render_edit.py --describe                 # Print the timeline layout
  python render_edit.py                            # Full render to out/edit.mp4
  python render_edit.py --frames 100:130 --png-dir out/frames --no-video
  python render_edit.py --shard 0/4 --png-dir out/frames --no-video
  python render_edit.py --placeholder              # Render without media files
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional, Tuple

from asset_shell import OpenCVAssetSource, PlaceholderAssetSource
from edit_config import DEFAULT_CONFIG_PATH, load_edit_config
from edit_core import build_composer, describe_timeline
from render_shell import render_frames, render_video, save_frames_png
from timeline_core import TimelineComposer


def parse_frame_range(text: str) -> Tuple[int, Optional[int]]:
    """'a:b' -> (a, b), 'a:' -> (a, None), 'a' -> (a, a + 1)

    Examples:
        >>> parse_frame_range('100:130')
        (100, 130)
        >>> parse_frame_range('42')
        (42, 43)
    """
    try:
        if ':' not in text:
            frame = int(text)
            return frame, frame + 1
        start_text, stop_text = text.split(':', 1)
        start = int(start_text) if start_text else 0
        stop = int(stop_text) if stop_text else None
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid frame range: {text!r} (expected a:b)")
    if start < 0 or (stop is not None and stop <= start):
        raise argparse.ArgumentTypeError(f"Invalid frame range: {text!r}")
    return start, stop


def parse_shard(text: str) -> Tuple[int, int]:
    """'k/n' -> (k, n) with 0 <= k < n

    Examples:
        >>> parse_shard('1/4')
        (1, 4)
    """
    try:
        index_text, count_text = text.split('/', 1)
        index, count = int(index_text), int(count_text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid shard: {text!r} (expected k/n)")
    if count < 1 or not 0 <= index < count:
        raise argparse.ArgumentTypeError(f"Invalid shard: {text!r}")
    return index, count


def select_frames(
    composer: TimelineComposer,
    frame_range: Optional[Tuple[int, Optional[int]]] = None,
    shard: Optional[Tuple[int, int]] = None
) -> List[int]:
    """Frames to render: a range, one shard of it, or the whole timeline"""
    if frame_range is not None:
        frames = list(composer.frames(frame_range[0], frame_range[1]))
    else:
        frames = list(composer.frames())
    if shard is not None:
        index, count = shard
        frames = frames[index::count]
    return frames


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description='Render the frame-indexed dynamic edit (scenes + transitions)',
        epilog=__doc__.split('Examples:', 1)[1] if __doc__ else None,
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--config', default=str(DEFAULT_CONFIG_PATH),
                        help='Edit config YAML (default: editconfig.yaml)')
    parser.add_argument('--assets-dir', default=None,
                        help='Directory asset paths are relative to (default: public/ next to the config)')
    parser.add_argument('--frames', type=parse_frame_range, default=None,
                        help='Frame range a:b (end exclusive)')
    parser.add_argument('--shard', type=parse_shard, default=None,
                        help='Render only shard k of n (frames k, k+n, ...)')
    parser.add_argument('--png-dir', default=None,
                        help='Also write frames as PNG files to this directory')
    parser.add_argument('--output', default='out/edit.mp4',
                        help='Output video path (default: out/edit.mp4)')
    parser.add_argument('--no-video', action='store_true',
                        help='Skip MP4 encoding (use with --png-dir)')
    parser.add_argument('--describe', action='store_true',
                        help='Print the timeline layout and exit')
    parser.add_argument('--no-audio', action='store_true',
                        help='Do not mix the audio track')
    parser.add_argument('--placeholder', action='store_true',
                        help='Use solid placeholder frames and silence instead of media files')
    parser.add_argument('--quiet', action='store_true',
                        help='Only print errors')

    args = parser.parse_args(argv)
    verbose = not args.quiet

    try:
        config = load_edit_config(args.config)
        composer = build_composer(config)
    except (FileNotFoundError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1

    if args.describe:
        for line in describe_timeline(composer):
            print(line)
        return 0

    frames = select_frames(composer, args.frames, args.shard)
    if not frames:
        print("ERROR: No frames selected")
        return 1

    if args.placeholder:
        assets = PlaceholderAssetSource(config.video.width, config.video.height)
    else:
        assets_dir = Path(args.assets_dir) if args.assets_dir else Path(args.config).parent / 'public'
        assets = OpenCVAssetSource(assets_dir, config.assets)

    if verbose:
        print(f"\n{'='*60}")
        print(f"Rendering Edit: {len(config.scenes)} scenes, {len(config.transitions)} transitions")
        print(f"{'='*60}\n")
        print(f"Settings: {config.video.width}x{config.video.height} @ {config.video.fps}fps")
        print(f"Frames: {len(frames)} of {composer.total_duration} ({frames[0]}..{frames[-1]})")
        print()

    try:
        if args.no_video:
            if not args.png_dir:
                print("ERROR: --no-video needs --png-dir")
                return 1
            errors: List[str] = []

            def collected():
                for result in render_frames(composer, frames, assets, verbose):
                    errors.extend(result.errors)
                    yield result

            save_frames_png(collected(), args.png_dir, verbose)
        else:
            Path(args.output).parent.mkdir(parents=True, exist_ok=True)
            errors = render_video(
                composer, assets, args.output, frames,
                include_audio=not args.no_audio,
                png_dir=args.png_dir,
                verbose=verbose
            )
    except RuntimeError as e:
        print(f"ERROR: {e}")
        return 1
    finally:
        assets.close()

    if errors:
        print(f"⚠️  {len(errors)} asset errors (placeholders used)")
    elif verbose:
        print("✓ Render complete")
    return 0


if __name__ == '__main__':
    sys.exit(main())
