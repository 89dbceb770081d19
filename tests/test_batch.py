import json
import os

import pytest

from banana_pro import BananaPayload, DecodeStatus, embed_payload_batch, scan_folder
from banana_pro.pnginfo import decode
from banana_pro.pnginfo.batch import _atomic_write, unique_output_names


def test_batch_embeds_in_input_order(tmp_path, image_file):
    sources = [image_file("one.jpg", fmt="JPEG"), image_file("two.png")]
    bogus = tmp_path / "three.png"
    bogus.write_bytes(b"not an image")
    sources.append(str(bogus))

    out_dir = tmp_path / "out"
    payload = BananaPayload(mega="a castle", lighting="dawn")
    results = embed_payload_batch(sources, payload, str(out_dir), max_workers=2)

    assert [ok for ok, _, _ in results] == [True, True, False]
    assert results[2][2] is None
    for ok, message, path in results[:2]:
        assert message.startswith("✅")
        assert os.path.basename(path).startswith("BananaPro_Info_")
        with open(path, "rb") as f:
            assert json.loads(decode(f.read()))["mega"] == "a castle"
    assert sorted(os.listdir(out_dir)) == ["BananaPro_Info_one.png", "BananaPro_Info_two.png"]

    records = (tmp_path / "logs" / "records.jsonl").read_text(encoding="utf-8").splitlines()
    events = [json.loads(line)["event"] for line in records]
    assert events[0] == "embed_start"
    assert events[-1] == "embed_batch_complete"
    assert events.count("embed_complete") == 2


def test_batch_accepts_dict_payload(tmp_path, image_file):
    results = embed_payload_batch([image_file("x.png")], {"mega": "m"}, str(tmp_path / "o"))
    assert results[0][0]


def test_empty_batch():
    assert embed_payload_batch([], BananaPayload(mega="m"), "unused") == []


def test_scan_folder(tmp_path, image_file):
    embed_payload_batch([image_file("src.png")], BananaPayload(mega="m"), str(tmp_path / "out"))
    (tmp_path / "out" / "notes.txt").write_text("skip me")
    image_file("plain.png")

    found = scan_folder(str(tmp_path / "out"))
    assert list(found) == [str(tmp_path / "out" / "BananaPro_Info_src.png")]
    assert found[str(tmp_path / "out" / "BananaPro_Info_src.png")].found

    everything = scan_folder(str(tmp_path), recursive=True)
    assert everything[str(tmp_path / "plain.png")].status == DecodeStatus.NOT_FOUND
    assert everything[str(tmp_path / "src.png")].status == DecodeStatus.NOT_FOUND


def test_batch_gives_same_stem_inputs_distinct_outputs(tmp_path, image_file):
    (tmp_path / "b").mkdir()
    sources = [
        image_file("photo.jpg", fmt="JPEG"),
        image_file("photo.png"),
        image_file("b/photo.png"),
    ]
    out_dir = tmp_path / "out"
    results = embed_payload_batch(sources, BananaPayload(mega="m"), str(out_dir), max_workers=3)

    assert all(ok for ok, _, _ in results)
    assert [os.path.basename(path) for _, _, path in results] == [
        "BananaPro_Info_photo.png",
        "BananaPro_Info_photo_1.png",
        "BananaPro_Info_photo_2.png",
    ]
    assert sorted(os.listdir(out_dir)) == [
        "BananaPro_Info_photo.png",
        "BananaPro_Info_photo_1.png",
        "BananaPro_Info_photo_2.png",
    ]


def test_unique_output_names():
    assert unique_output_names(["a/x.png", "b/X.jpg", "x_1.png"]) == [
        "BananaPro_Info_x.png",
        "BananaPro_Info_X_1.png",
        "BananaPro_Info_x_1_1.png",
    ]


def test_atomic_write_cleans_up_on_failure(tmp_path):
    target = tmp_path / "out.png"
    with pytest.raises(TypeError):
        _atomic_write(str(target), "not bytes")
    assert os.listdir(tmp_path) == []

    _atomic_write(str(target), b"data")
    assert os.listdir(tmp_path) == ["out.png"]
    assert target.read_bytes() == b"data"
