"""Split libGDX/Spine texture atlases into individual sprite images."""
from .errors import ArchiveError, AtlasUnpackerError, ExtractionError
from .sprite_archiver import create_zip, write_zip
from .sprite_extractor import ExtractedSprite, extract_regions, plan_extraction
from .utils.atlas_operations import Region, parse_atlas, parse_atlas_file

__version__ = "0.1.0"
