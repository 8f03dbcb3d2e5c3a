import pytest
from pydantic import ValidationError

from src.utils.config_loader import DEFAULT_CONFIG_PATH, MatrixConfig, load_matrix_config


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch):
    monkeypatch.delenv("MATRIX_API_BASE", raising=False)
    monkeypatch.delenv("MATRIX_USE_MOCK_BACKEND", raising=False)
    # keep a developer's .env out of these tests
    monkeypatch.setattr("src.utils.config_loader.load_dotenv", lambda: False)


def test_default_config_file_loads():
    config = load_matrix_config(DEFAULT_CONFIG_PATH)

    assert config.backend.base_url == "http://localhost:8082"
    assert config.backend.timeout_seconds == 30
    assert config.selection.default_age == 15
    assert config.selection.default_base_amount == 100
    assert config.selection.progress.matrix_published == 30
    assert config.refresh.delays_seconds == [5, 10]


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_matrix_config(tmp_path / "nope.yml")


def test_partial_file_uses_defaults(tmp_path):
    path = tmp_path / "matrix.yml"
    path.write_text("selection:\n  default_age: 40\n", encoding="utf-8")

    config = load_matrix_config(path)

    assert config.selection.default_age == 40
    assert config.backend.use_mock is False
    assert config.refresh.delays_seconds == [5.0, 10.0]


def test_environment_overrides_backend(tmp_path, monkeypatch):
    path = tmp_path / "matrix.yml"
    path.write_text("backend:\n  base_url: http://file.example\n", encoding="utf-8")
    monkeypatch.setenv("MATRIX_API_BASE", "http://env.example:9000")
    monkeypatch.setenv("MATRIX_USE_MOCK_BACKEND", "true")

    config = load_matrix_config(path)

    assert config.backend.base_url == "http://env.example:9000"
    assert config.backend.use_mock is True


def test_out_of_order_progress_checkpoints_are_rejected(tmp_path):
    path = tmp_path / "matrix.yml"
    path.write_text("selection:\n  progress:\n    primary_detail: 50\n    related_codes: 20\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        load_matrix_config(path)


def test_in_code_defaults_match_shipped_file():
    assert load_matrix_config(DEFAULT_CONFIG_PATH) == MatrixConfig()


@pytest.mark.parametrize("delays", ["[10, 5]", "[-1, 5]"])
def test_unordered_or_negative_refresh_delays_are_rejected(tmp_path, delays):
    path = tmp_path / "matrix.yml"
    path.write_text(f"refresh:\n  delays_seconds: {delays}\n", encoding="utf-8")

    with pytest.raises(ValidationError):
        load_matrix_config(path)
