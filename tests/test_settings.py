from pathlib import Path

from domino_scorer.settings import (
    DEFAULT_ANALYSIS_FPS,
    DetectorParams,
    SettingsStore,
    read_analysis_fps,
)


def test_settings_load_defaults_when_file_missing(tmp_path: Path) -> None:
    loaded = SettingsStore(tmp_path / "config" / "detector.yaml").load()
    assert loaded == DetectorParams()


def test_default_params_match_calibrated_pipeline() -> None:
    params = DetectorParams()
    assert (params.blur_kernel, params.blur_sigma) == (3, 1.0)
    assert (params.canny_low, params.canny_high) == (300.0, 500.0)
    assert (params.dp, params.min_distance, params.param1, params.param2) == (1.0, 20.0, 30.0, 18.0)
    assert (params.min_radius, params.max_radius) == (10, 20)
    assert params.marker_color == (0, 255, 0)


def test_settings_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "config" / "detector.yaml"
    store = SettingsStore(path)
    params = DetectorParams(param2=22.0, min_radius=8, max_radius=24, marker_color=(255, 0, 0))

    saved_path = store.save(params)
    assert saved_path == path
    assert path.exists()
    assert store.load() == params


def test_settings_invalid_values_fallback_to_defaults(tmp_path: Path) -> None:
    path = tmp_path / "detector.yaml"
    path.write_text(
        "blur_kernel: 4\n"
        "canny_low: 600\n"
        "canny_high: 500\n"
        "param2: abc\n"
        "min_radius: 30\n"
        "max_radius: 20\n"
        "min_distance: -5\n"
        "marker_color: [0, 300, 0]\n"
        "dp: 1.5\n",
        encoding="utf-8",
    )

    loaded = SettingsStore(path).load()
    defaults = DetectorParams()
    assert loaded.blur_kernel == defaults.blur_kernel
    assert (loaded.canny_low, loaded.canny_high) == (defaults.canny_low, defaults.canny_high)
    assert loaded.param2 == defaults.param2
    assert (loaded.min_radius, loaded.max_radius) == (defaults.min_radius, defaults.max_radius)
    assert loaded.min_distance == defaults.min_distance
    assert loaded.marker_color == defaults.marker_color
    assert loaded.dp == 1.5


def test_settings_non_mapping_file_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "detector.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")
    assert SettingsStore(path).load() == DetectorParams()


def test_read_analysis_fps_returns_default_when_env_missing() -> None:
    assert read_analysis_fps({}) == DEFAULT_ANALYSIS_FPS


def test_read_analysis_fps_accepts_value_in_valid_range() -> None:
    assert read_analysis_fps({"DOMINO_SCORER_FPS": "1"}) == 1.0
    assert read_analysis_fps({"DOMINO_SCORER_FPS": " 30 "}) == 30.0
    assert read_analysis_fps({"DOMINO_SCORER_FPS": "60"}) == 60.0


def test_read_analysis_fps_rejects_out_of_range_or_invalid_values() -> None:
    for raw in ["0.5", "61", "abc", "", "   "]:
        assert read_analysis_fps({"DOMINO_SCORER_FPS": raw}) == DEFAULT_ANALYSIS_FPS
