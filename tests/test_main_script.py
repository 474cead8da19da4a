import zipfile

from atlas_unpacker import main_script
from conftest import decode


def test_process_atlas(example_atlas, sheet):
    messages = []

    success, sprites = main_script.process_atlas(example_atlas, sheet, "sheet", progress_callback=messages.append)

    assert success
    assert [s.name for s in sprites] == ["hero", "villain"]
    assert messages[-1] == "Extracted 2 sprites from atlas 'sheet'."


def test_process_atlas_failure_returns_message(example_atlas):
    success, message = main_script.process_atlas(example_atlas, b"garbage", "sheet")

    assert success is False
    assert isinstance(message, str) and message


def test_create_zip(example_atlas, sheet):
    _, sprites = main_script.process_atlas(example_atlas, sheet, "sheet")

    success, blob = main_script.create_zip(sprites)

    assert success
    assert blob[:2] == b"PK"


def test_handle_process_atlas_message(example_atlas, sheet_png):
    reply = main_script.handle_message({
        "type": "processAtlas",
        "requestId": 7,
        "data": {"atlasText": example_atlas, "image": sheet_png, "atlasName": "sheet"},
    })

    assert reply["type"] == "atlasProcessed"
    assert reply["requestId"] == 7
    assert reply["atlasName"] == "sheet"
    assert [(s.width, s.height) for s in reply["sprites"]] == [(32, 48), (32, 48)]


def test_handle_create_zip_message(example_atlas, sheet):
    _, sprites = main_script.process_atlas(example_atlas, sheet, "sheet")

    reply = main_script.handle_message({"type": "createZip", "requestId": "z", "data": {"sprites": sprites}})

    assert reply["type"] == "zipCreated"
    assert reply["requestId"] == "z"
    assert reply["blob"][:2] == b"PK"


def test_handle_message_error_keeps_request_id(example_atlas):
    reply = main_script.handle_message({
        "type": "processAtlas",
        "requestId": "r1",
        "data": {"atlasText": example_atlas, "image": b"garbage", "atlasName": "sheet"},
    })

    assert reply["type"] == "error"
    assert reply["requestId"] == "r1"
    assert "sheet" in reply["error"]


def test_handle_message_unknown_type():
    reply = main_script.handle_message({"type": "explode", "requestId": 1})

    assert reply == {"type": "error", "error": "Unknown request type: 'explode'", "requestId": 1}


def _write_atlas(tmp_path, example_atlas, sheet, image_name="sheet.png"):
    atlas_path = tmp_path / "characters.atlas"
    atlas_path.write_text(example_atlas, encoding="utf-8")
    sheet.save(tmp_path / image_name)
    return atlas_path


def test_unpack_atlas_finds_page_image_case_insensitively(tmp_path, example_atlas, sheet):
    atlas_path = _write_atlas(tmp_path, example_atlas, sheet, image_name="Sheet.PNG")
    output = tmp_path / "out.zip"

    success, path = main_script.unpack_atlas(str(atlas_path), str(output))

    assert success
    assert path == str(output)
    with zipfile.ZipFile(output) as zf:
        villain = decode(zf.read("images/villain.png"))
    assert villain.size == (32, 48)


def test_unpack_atlas_without_page_image(tmp_path, example_atlas):
    atlas_path = tmp_path / "characters.atlas"
    atlas_path.write_text(example_atlas, encoding="utf-8")

    success, message = main_script.unpack_atlas(str(atlas_path), str(tmp_path / "out.zip"))

    assert success is False
    assert "Page image not found" in message


def test_main_writes_zip_next_to_atlas(tmp_path, example_atlas, sheet):
    atlas_path = _write_atlas(tmp_path, example_atlas, sheet)

    assert main_script.main([str(atlas_path)]) == 0
    with zipfile.ZipFile(tmp_path / "characters.zip") as zf:
        assert sorted(zf.namelist()) == ["images/", "images/hero.png", "images/villain.png"]


def test_main_directory_mode(tmp_path, example_atlas, sheet):
    _write_atlas(tmp_path, example_atlas, sheet)

    assert main_script.main([str(tmp_path)]) == 0
    assert (tmp_path / "characters.zip").exists()


def test_main_missing_atlas(tmp_path):
    assert main_script.main([str(tmp_path / "nope.atlas")]) == 2


def test_unpack_atlas_reads_atlas_once(tmp_path, example_atlas, sheet, monkeypatch):
    atlas_path = _write_atlas(tmp_path, example_atlas, sheet)
    reads = []
    read_atlas_file = main_script.read_atlas_file

    def counting_read(path):
        reads.append(path)
        return read_atlas_file(path)

    monkeypatch.setattr(main_script, "read_atlas_file", counting_read)

    success, _ = main_script.unpack_atlas(str(atlas_path), str(tmp_path / "out.zip"))

    assert success
    assert reads == [str(atlas_path)]


def test_main_rejects_output_for_several_atlases(tmp_path, example_atlas, sheet):
    _write_atlas(tmp_path, example_atlas, sheet)
    (tmp_path / "other.atlas").write_text(example_atlas, encoding="utf-8")

    assert main_script.main([str(tmp_path), str(tmp_path / "all.zip")]) == 2
    assert not (tmp_path / "all.zip").exists()
    assert not (tmp_path / "characters.zip").exists()


def test_main_recursive_directory_mode(tmp_path, example_atlas, sheet):
    nested = tmp_path / "skins"
    nested.mkdir()
    _write_atlas(nested, example_atlas, sheet)

    assert main_script.main([str(tmp_path)]) == 2
    assert main_script.main([str(tmp_path), "--recursive"]) == 0
    assert (nested / "characters.zip").exists()
