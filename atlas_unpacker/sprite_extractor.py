import io
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple, Union

from PIL import Image

from .errors import ExtractionError
from .utils.atlas_operations import Region

OUTPUT_FORMAT = 'PNG'
DEFAULT_MAX_WORKERS = 1


class Transform(Enum):
    IDENTITY = 'identity'
    # Packed sprites are stored rotated 90° clockwise; undo with a CCW turn
    ROTATE_90_CCW = 'rotate_90_ccw'


@dataclass(frozen=True)
class ExtractionPlan:
    width: int
    height: int
    source_rect: Tuple[int, int, int, int]
    transform: Transform


@dataclass(frozen=True)
class ExtractedSprite:
    name: str
    atlas: str
    width: int
    height: int
    data: bytes


def plan_extraction(region: Region) -> ExtractionPlan:
    """
    Map a packed region to its logical output size and sampling transform.

    The source rectangle always uses the packed (as-stored) dimensions;
    only the output surface is swapped for rotated regions.
    """
    w, h = region.size
    source_rect = (region.xy.x, region.xy.y, w, h)
    if region.rotate:
        return ExtractionPlan(h, w, source_rect, Transform.ROTATE_90_CCW)
    return ExtractionPlan(w, h, source_rect, Transform.IDENTITY)


class RenderSurface:
    """Scratch RGBA canvas a single region is composed onto."""

    def __init__(self, width: int, height: int):
        self.image = Image.new('RGBA', (width, height), (0, 0, 0, 0))

    @property
    def size(self) -> Tuple[int, int]:
        return self.image.size

    def compose(self, source: Image.Image, source_rect: Tuple[int, int, int, int], transform: Transform) -> 'RenderSurface':
        x, y, w, h = source_rect
        # Pillow pads out-of-bounds samples with zeros (transparent for RGBA)
        crop = source.crop((x, y, x + w, y + h))
        try:
            if transform is Transform.ROTATE_90_CCW:
                # Rotating about the surface centre lands the w x h crop
                # exactly inside the h x w surface, so paste at the origin.
                rotated = crop.transpose(Image.Transpose.ROTATE_90)
                crop.close()
                crop = rotated
            self.image.paste(crop, (0, 0))
        finally:
            crop.close()
        return self

    def encode(self, fmt: str = OUTPUT_FORMAT) -> bytes:
        buffer = io.BytesIO()
        self.image.save(buffer, format=fmt)
        return buffer.getvalue()

    def close(self):
        self.image.close()


def extract_region(region: Region, source_image: Image.Image) -> ExtractedSprite:
    """
    Crop, unrotate and encode a single region.

    Raises:
        ExtractionError: If the rendering surface fails for this region
    """
    plan = plan_extraction(region)
    surface = None
    try:
        surface = RenderSurface(plan.width, plan.height)
        surface.compose(source_image, plan.source_rect, plan.transform)
        data = surface.encode()
    except Exception as e:
        raise ExtractionError(region.name, e) from e
    finally:
        if surface:
            surface.close()

    return ExtractedSprite(
        name=region.name,
        atlas=region.atlas_name,
        width=plan.width,
        height=plan.height,
        data=data,
    )


def extract_regions(regions: Sequence[Region], source_image: Image.Image, max_workers: int = DEFAULT_MAX_WORKERS) -> List[ExtractedSprite]:
    """
    Extract every region from the source image.

    Args:
        regions: Regions in source order
        source_image: Decoded atlas page, only ever read
        max_workers: Threads to fan the regions out over; 1 runs sequentially

    Returns:
        One sprite per region, in the same order as regions

    Raises:
        ExtractionError: For the first region (in input order) that failed;
            no partial result is returned
    """
    if not regions:
        return []

    if max_workers <= 1 or len(regions) == 1:
        return [extract_region(region, source_image) for region in regions]

    # Force decoding once so worker threads only read pixel data
    source_image.load()
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        return list(executor.map(lambda region: extract_region(region, source_image), regions))


def load_source_image(source: Union[str, bytes, Image.Image], name: Optional[str] = None) -> Image.Image:
    """
    Open an atlas page as an RGBA Pillow image.

    Args:
        source: A file path, encoded image bytes or an already opened image
        name: Label used in the error if decoding fails

    Raises:
        ExtractionError: If the image cannot be decoded
    """
    if isinstance(source, Image.Image):
        return source if source.mode == 'RGBA' else source.convert('RGBA')

    if name is None:
        name = source if isinstance(source, str) else '<image bytes>'
    try:
        fp = io.BytesIO(source) if isinstance(source, (bytes, bytearray)) else source
        with Image.open(fp) as img:
            return img.convert('RGBA')
    except Exception as e:
        raise ExtractionError(name, e) from e
