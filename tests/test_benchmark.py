import os

from scripts.benchmark import SampleResult, infer_label_from_path, iter_image_files


def test_label_inferred_from_closest_folder():
    assert infer_label_from_path(os.path.join("data", "original", "ai", "x.png")) == "ai_generated"
    assert infer_label_from_path(os.path.join("data", "ai", "edited", "x.jpg")) == "ai_modified"
    assert infer_label_from_path(os.path.join("Real", "x.jpg")) == "original"
    assert infer_label_from_path(os.path.join("misc", "x.jpg")) is None


def test_iter_image_files_filters_extensions(tmp_path):
    (tmp_path / "real").mkdir()
    for name in ("a.JPG", "b.png", "notes.txt", "c.heic"):
        (tmp_path / "real" / name).write_bytes(b"")
    found = [os.path.basename(p) for p in iter_image_files(str(tmp_path))]
    assert found == ["a.JPG", "b.png", "c.heic"]


def test_uncertain_is_not_definitive():
    r = SampleResult("x.jpg", "original", "uncertain", 60, "original", 80, "oracle")
    assert not r.definitive
    assert not r.correct
