"""Atlas file parsing utilities for atlas_unpacker."""
import os
import re
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, NamedTuple, Optional, Tuple

IMAGE_EXTENSIONS = ('.png', '.jpg', '.jpeg')

_LINE_BREAK = re.compile(r'\r?\n')
_IMAGE_EXT = re.compile(r'\.(png|jpg|jpeg)$', re.IGNORECASE)
_XY = re.compile(r'xy:\s*(\d+),\s*(\d+)')
_SIZE = re.compile(r'size:\s*(\d+),\s*(\d+)')


class Point(NamedTuple):
    x: int = 0
    y: int = 0


class Size(NamedTuple):
    w: int = 0
    h: int = 0


@dataclass(frozen=True)
class Region:
    atlas_name: str
    name: str
    rotate: bool = False
    xy: Point = Point()
    size: Size = Size()


class ParserState(Enum):
    AWAITING_HEADER = 'awaiting_header'
    AWAITING_SPRITE = 'awaiting_sprite'
    IN_SPRITE = 'in_sprite'


class LineKind(Enum):
    ATTRIBUTE = 'attribute'
    CANDIDATE = 'candidate'
    IGNORED = 'ignored'


@dataclass(frozen=True)
class _ParseContext:
    """Value threaded through the fold over atlas lines."""
    state: ParserState = ParserState.AWAITING_HEADER
    image_file_name: Optional[str] = None
    image_base_name: Optional[str] = None
    current: Optional[Region] = None


def classify_line(raw: str) -> LineKind:
    """
    Decide whether a raw atlas line is an attribute of the open sprite,
    a candidate header/sprite-name line, or noise.

    Args:
        raw: The untrimmed line

    Returns:
        The LineKind of the line
    """
    line = raw.strip()
    if not line:
        return LineKind.IGNORED
    indented = raw[0].isspace()
    if indented and ':' in line:
        return LineKind.ATTRIBUTE
    if indented or ':' in line:
        # Page-level fields ("size: 2048,2048") and indented junk
        return LineKind.IGNORED
    return LineKind.CANDIDATE


def is_image_file_name(name: str) -> bool:
    return bool(_IMAGE_EXT.search(name))


def strip_image_extension(name: str) -> str:
    return _IMAGE_EXT.sub('', name)


def apply_attribute(region: Region, line: str) -> Region:
    """
    Return a copy of region updated from a single trimmed attribute line.
    Unknown or malformed attributes leave the region unchanged.
    """
    if line.startswith('rotate'):
        return replace(region, rotate='true' in line)
    if line.startswith('xy:'):
        match = _XY.search(line)
        if match:
            return replace(region, xy=Point(int(match.group(1)), int(match.group(2))))
        return region
    if line.startswith('size:'):
        match = _SIZE.search(line)
        if match:
            return replace(region, size=Size(int(match.group(1)), int(match.group(2))))
    return region


def _step(context: _ParseContext, raw: str, atlas_name: str, regions: List[Region]) -> _ParseContext:
    kind = classify_line(raw)
    line = raw.strip()

    if kind is LineKind.ATTRIBUTE:
        if context.state is not ParserState.IN_SPRITE:
            return context
        return replace(context, current=apply_attribute(context.current, line))

    if kind is LineKind.IGNORED:
        return context

    if context.image_file_name is None and is_image_file_name(line):
        state = context.state
        if state is ParserState.AWAITING_HEADER:
            state = ParserState.AWAITING_SPRITE
        return replace(
            context,
            state=state,
            image_file_name=line,
            image_base_name=strip_image_extension(line),
        )

    # Later page images ("page2.png") are never sprites
    if is_image_file_name(line):
        return context

    if context.image_file_name is not None and line == context.image_base_name:
        return context

    if context.current is not None:
        regions.append(context.current)
    return replace(
        context,
        state=ParserState.IN_SPRITE,
        current=Region(atlas_name=atlas_name, name=line),
    )


def parse_atlas(text: str, atlas_name: str) -> List[Region]:
    """
    Parse atlas text into an ordered list of regions.

    The parser never fails on a bad line: malformed attributes keep their
    previous value and unrecognised lines are skipped.

    Args:
        text: Raw atlas text (LF or CRLF line endings)
        atlas_name: Identifier stored on every produced region

    Returns:
        Regions in source order
    """
    regions: List[Region] = []
    context = _ParseContext()
    for raw in _LINE_BREAK.split(text):
        context = _step(context, raw, atlas_name, regions)

    if context.current is not None:
        regions.append(context.current)
    return regions


def read_page_image_name(text: str) -> Optional[str]:
    """Return the image filename header of the atlas text, if it has one."""
    for raw in _LINE_BREAK.split(text):
        if classify_line(raw) is LineKind.CANDIDATE and is_image_file_name(raw.strip()):
            return raw.strip()
    return None


def parse_atlas_file(atlas_path: str, atlas_name: Optional[str] = None) -> Tuple[Optional[List[Region]], Optional[str]]:
    """
    Parse a .atlas file into a list of regions.

    Args:
        atlas_path: Path to the .atlas file
        atlas_name: Identifier for the regions, defaults to the file name without extension

    Returns:
        Tuple of (regions, error message)
        If successful, returns (list, None)
        If failed, returns (None, error_message)
    """
    if atlas_name is None:
        atlas_name = atlas_name_for(atlas_path)

    content, error = read_atlas_file(atlas_path)
    if error:
        return None, error
    return parse_atlas(content, atlas_name), None


def atlas_name_for(atlas_path: str) -> str:
    return os.path.splitext(os.path.basename(atlas_path))[0]


def read_atlas_file(atlas_path: str) -> Tuple[Optional[str], Optional[str]]:
    """Read a .atlas file as UTF-8, returning (text, error message)."""
    try:
        with open(atlas_path, 'r', encoding='utf-8') as f:
            return f.read(), None
    except FileNotFoundError:
        return None, f"Atlas file not found at {atlas_path}"
    except (OSError, UnicodeDecodeError) as e:
        return None, f"Error reading atlas file: {e}"
