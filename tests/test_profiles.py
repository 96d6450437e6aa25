import json

import pytest

from uploadprep import profiles
from uploadprep.config import PipelineConfig, TargetFormat
from uploadprep.profiles import available_profiles, load_config, load_profile


def test_shipped_profiles_are_valid():
    names = available_profiles()
    assert {"default", "photo-upload", "avatar", "lossless"} <= set(names)
    for name in names:
        assert isinstance(load_config(name), PipelineConfig)


def test_default_profile_matches_default_config():
    assert load_config("default") == PipelineConfig()


def test_photo_upload_profile():
    cfg = load_config("photo-upload")
    assert cfg.max_pixels == 4_000_000
    assert cfg.max_width == 2048
    assert cfg.enable_yielding is True
    assert cfg.target.quality == 85


def test_alias_falls_back_to_core_name():
    assert load_profile("avatar@3") == load_profile("avatar")


def test_explicit_path(tmp_path):
    p = tmp_path / "mine.json"
    p.write_text(json.dumps({"pipeline": {"max_width": 10}}))
    assert load_config(str(p)).max_width == 10


def test_profiles_dir_is_configurable(tmp_path, monkeypatch):
    (tmp_path / "tiny.json").write_text(json.dumps({"pipeline": {"max_pixels": 100}}))
    monkeypatch.setattr(profiles, "PROFILES_DIR", tmp_path)
    assert load_config("tiny").max_pixels == 100
    assert available_profiles() == ["tiny"]


def test_missing_profile_lists_available():
    with pytest.raises(FileNotFoundError) as ei:
        load_profile("does-not-exist")
    assert "default" in str(ei.value)


def test_target_quality_cleared_for_non_jpeg():
    assert TargetFormat("image/png", quality=90).quality is None
    assert TargetFormat("image/jpeg", quality=90).quality == 90
    assert PipelineConfig.from_dict({"target": {"mime_type": "image/webp", "quality": 50}}).target.quality is None


def test_max_megapixels():
    assert PipelineConfig().with_max_megapixels(2).max_pixels == 2_000_000
    assert PipelineConfig.from_dict({"max_megapixels": 1.5}).max_pixels == 1_500_000


@pytest.mark.parametrize(
    "data",
    [
        {"max_widht": 10},
        {"max_width": 0},
        {"scale_epsilon": -1},
        {"target": {"mime_type": "image/x-foo"}},
    ],
)
def test_invalid_config_is_rejected(data):
    with pytest.raises(ValueError):
        PipelineConfig.from_dict(data)


def test_to_dict_roundtrip():
    cfg = PipelineConfig(max_width=10, max_height=20, use_area_average_scaler=False,
                         target=TargetFormat("image/png", force=False))
    d = cfg.to_dict()
    d.pop("max_pixels")
    assert PipelineConfig.from_dict(d) == cfg


@pytest.mark.parametrize("quality", ["high", 0, 101, True, [75]])
def test_bad_jpeg_quality_is_rejected(quality):
    with pytest.raises(ValueError):
        TargetFormat("image/jpeg", quality=quality)
    with pytest.raises(ValueError):
        PipelineConfig.from_dict({"target": {"quality": quality}})


def test_numeric_quality_is_coerced():
    assert TargetFormat("image/jpeg", quality="80").quality == 80
    assert TargetFormat("image/jpeg", quality=90.0).quality == 90


def test_versioned_name_and_json_suffix():
    assert load_profile("photo-upload@2") == load_profile("photo-upload.json")
