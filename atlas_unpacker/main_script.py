import argparse
import os
import sys
import traceback

from tqdm import tqdm

from . import sprite_archiver
from .sprite_extractor import extract_region, extract_regions, load_source_image, DEFAULT_MAX_WORKERS
from .utils.atlas_operations import IMAGE_EXTENSIONS, atlas_name_for, parse_atlas, read_atlas_file, read_page_image_name
from .utils.file_operations import find_atlas_files, find_file_case_insensitive


def _reporter(progress_callback):
    def report_progress(message):
        if progress_callback:
            progress_callback(message)
        print(message)
    return report_progress


def process_atlas(atlas_text, image, atlas_name, progress_callback=None, max_workers=DEFAULT_MAX_WORKERS):
    """
    Parse atlas text and extract every region from the page image.
    Returns a tuple: (success: Boolean, sprites or error message)
    """
    report_progress = _reporter(progress_callback)
    try:
        regions = parse_atlas(atlas_text, atlas_name)
        report_progress(f"Parsed {len(regions)} regions from atlas '{atlas_name}'.")
        source_image = load_source_image(image, atlas_name)
        sprites = extract_regions(regions, source_image, max_workers=max_workers)
        report_progress(f"Extracted {len(sprites)} sprites from atlas '{atlas_name}'.")
        return True, sprites
    except Exception as e:
        print(f"An error occurred while processing atlas '{atlas_name}': {traceback.format_exc()}")
        if progress_callback:
            progress_callback(f"An error occurred: {e}")
        return False, str(e)


def create_zip(sprites, progress_callback=None):
    """
    Bundle extracted sprites into a single ZIP.
    Returns a tuple: (success: Boolean, zip bytes or error message)
    """
    report_progress = _reporter(progress_callback)
    try:
        blob = sprite_archiver.create_zip(sprites)
        report_progress(f"Created archive with {len(sprites)} sprites ({len(blob)} bytes).")
        return True, blob
    except Exception as e:
        print(f"An error occurred while creating archive: {traceback.format_exc()}")
        if progress_callback:
            progress_callback(f"An error occurred: {e}")
        return False, str(e)


def _locate_page_image(atlas_path, atlas_text):
    folder = os.path.dirname(os.path.abspath(atlas_path))
    header = read_page_image_name(atlas_text)
    if header:
        found = find_file_case_insensitive(folder, header)
        if found:
            return found
    # Fall back to a sheet sharing the atlas base name
    base_name = os.path.splitext(os.path.basename(atlas_path))[0]
    for ext in IMAGE_EXTENSIONS:
        found = find_file_case_insensitive(folder, base_name + ext)
        if found:
            return found
    return None


def unpack_atlas(atlas_path, output_path, image_path=None, progress_callback=None, show_progress=False):
    """
    Unpack an .atlas file and its page image into a ZIP on disk.
    Returns a tuple: (success: Boolean, output path or error message)
    """
    report_progress = _reporter(progress_callback)
    try:
        atlas_text, error = read_atlas_file(atlas_path)
        if error:
            report_progress(f"FAILED: {error}")
            return False, error
        regions = parse_atlas(atlas_text, atlas_name_for(atlas_path))
        report_progress(f"Parsed {len(regions)} regions from {atlas_path}")

        if image_path is None:
            image_path = _locate_page_image(atlas_path, atlas_text)
        if not image_path or not os.path.exists(image_path):
            message = f"Page image not found for {atlas_path}"
            report_progress(f"FAILED: {message}")
            return False, message

        source_image = load_source_image(image_path)
        try:
            sprites = []
            for region in tqdm(regions, desc=os.path.basename(atlas_path), unit="sprite", disable=not show_progress):
                sprites.append(extract_region(region, source_image))
        finally:
            source_image.close()

        sprite_archiver.write_zip(sprites, output_path)
        report_progress(f"Wrote {len(sprites)} sprites to {output_path}")
        return True, output_path

    except Exception as e:
        error_message = traceback.format_exc()
        print(f"An error occurred during unpack: {error_message}")
        if progress_callback:
            progress_callback(f"An error occurred: {e}")
        return False, str(e)


def handle_message(message):
    """
    Serve one request of the message contract.

    Requests look like {"type", "data", "requestId"}; the reply always
    echoes the requestId and is either a success payload or
    {"type": "error", "error": <message>}.
    """
    request_type = message.get('type')
    request_id = message.get('requestId')
    data = message.get('data') or {}

    try:
        if request_type == 'processAtlas':
            atlas_name = data['atlasName']
            regions = parse_atlas(data['atlasText'], atlas_name)
            source_image = load_source_image(data['image'], atlas_name)
            sprites = extract_regions(regions, source_image)
            return {'type': 'atlasProcessed', 'sprites': sprites, 'atlasName': atlas_name, 'requestId': request_id}
        elif request_type == 'createZip':
            blob = sprite_archiver.create_zip(data['sprites'])
            return {'type': 'zipCreated', 'blob': blob, 'requestId': request_id}
        raise ValueError(f"Unknown request type: {request_type!r}")
    except Exception as e:
        return {'type': 'error', 'error': str(e), 'requestId': request_id}


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="atlas-unpacker",
        description="Split .atlas sprite sheets into individual PNGs bundled in a ZIP.",
    )
    parser.add_argument("atlas", help="Path to a .atlas file, or a directory of .atlas files")
    parser.add_argument("output", nargs="?", help="Output .zip (defaults to <atlas>.zip next to the atlas)")
    parser.add_argument("--image", help="Page image to use instead of the one named in the atlas")
    parser.add_argument("--recursive", action="store_true", help="Also look for .atlas files in subdirectories")
    args = parser.parse_args(argv)

    if os.path.isdir(args.atlas):
        atlas_paths = find_atlas_files(args.atlas, recursive=args.recursive)
        if args.image and len(atlas_paths) > 1:
            print("--image can only be used with a single atlas", file=sys.stderr)
            return 2
        if args.output and len(atlas_paths) > 1:
            print("An output path can only be used with a single atlas", file=sys.stderr)
            return 2
    elif os.path.isfile(args.atlas):
        atlas_paths = [args.atlas]
    else:
        print(f"Atlas not found: {args.atlas}", file=sys.stderr)
        return 2

    if not atlas_paths:
        print(f"No .atlas files found in {args.atlas}", file=sys.stderr)
        return 2

    failed = 0
    for atlas_path in atlas_paths:
        output_path = args.output or os.path.splitext(atlas_path)[0] + ".zip"
        success, _ = unpack_atlas(atlas_path, output_path, image_path=args.image, show_progress=True)
        if not success:
            failed += 1

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
