"""Exceptions raised by the atlas_unpacker core."""


class AtlasUnpackerError(Exception):
    pass


class ExtractionError(AtlasUnpackerError):
    """A single region could not be cropped, composed or encoded."""

    def __init__(self, region_name, cause):
        self.region_name = region_name
        self.cause = cause
        super().__init__(f"Failed to extract region '{region_name}': {cause}")


class ArchiveError(AtlasUnpackerError):
    """The sprites could not be bundled into an archive."""

    def __init__(self, cause):
        self.cause = cause
        super().__init__(f"Failed to create archive: {cause}")
