"""Unit tests for the app_config module."""
import os
from unittest.mock import patch, MagicMock

import pytest
import yaml

from src.app_config import DEFAULT_LOCALE_MAPPING, _load_yaml_config, load_app_config
from src.models import AiPrompt, LocalizationProject, MachineTranslation, PollingPolicy

BASE_CONFIG = {
    "crowdin": {"project_id": 654680, "file_id": 42},
    "source_file_path": "src/assets/i18n/en-GB.json",
    "translations_folder": "src/assets/i18n/lang",
    "pre_translation": {"method": "mt", "engine_id": 443920},
    "locale_mapping": {"de": "de-DE", "pt-PT": "pt-PT"},
}


def _load(config, env=None):
    """Run load_app_config against an in-memory YAML config and environment."""
    environment = {"CROWDIN_TOKEN": "token-123"} if env is None else env
    with patch("src.app_config._load_yaml_config", return_value=config):
        with patch("src.app_config.load_dotenv"):
            with patch("src.app_config.setup_logger") as mock_logger:
                mock_logger.return_value = MagicMock()
                with patch.dict(os.environ, environment, clear=True):
                    return load_app_config()


class TestLoadAppConfig:
    """Test cases for the load_app_config function."""

    def test_load_config_with_valid_yaml(self):
        config = _load(BASE_CONFIG)

        assert config.crowdin_token == "token-123"
        assert config.base_url == "https://api.crowdin.com/api/v2"
        assert config.project == LocalizationProject(
            project_id=654680,
            file_id=42,
            source_file_path="src/assets/i18n/en-GB.json",
            translations_folder="src/assets/i18n/lang",
        )
        assert config.method == MachineTranslation(engine_id=443920)
        assert config.locale_mapping == {"de": "de-DE", "pt-PT": "pt-PT"}
        assert list(config.locale_mapping) == ["de", "pt-PT"]
        assert config.polling_policy == PollingPolicy()
        assert config.storage_filename == "en-GB.json"

    def test_ai_prompt_method(self):
        config = _load(dict(BASE_CONFIG, pre_translation={"method": "ai", "ai_prompt_id": 12}))
        assert config.method == AiPrompt(prompt_id=12)

    def test_polling_limits_are_read(self):
        pre_translation = {
            "method": "mt",
            "engine_id": 1,
            "polling_interval_seconds": 5,
            "max_polling_attempts": 100,
            "polling_timeout_seconds": 600,
        }
        config = _load(dict(BASE_CONFIG, pre_translation=pre_translation))
        assert config.polling_policy == PollingPolicy(interval_seconds=5.0, max_attempts=100, timeout_seconds=600.0)

    def test_explicit_storage_filename(self):
        crowdin = {"project_id": 1, "file_id": 2, "storage_filename": "strings.json"}
        config = _load(dict(BASE_CONFIG, crowdin=crowdin))
        assert config.storage_filename == "strings.json"

    def test_environment_overrides(self):
        env = {
            "CROWDIN_TOKEN": "token-123",
            "CROWDIN_PROJECT_ID": "777",
            "CROWDIN_FILE_ID": "9",
            "CROWDIN_BASE_URL": "https://acme.api.crowdin.com/api/v2",
        }
        config = _load(BASE_CONFIG, env)
        assert config.project.project_id == 777
        assert config.project.file_id == 9
        assert config.base_url == "https://acme.api.crowdin.com/api/v2"

    def test_default_locale_mapping(self):
        config = _load({k: v for k, v in BASE_CONFIG.items() if k != "locale_mapping"})
        assert config.locale_mapping == DEFAULT_LOCALE_MAPPING

    def test_missing_token_exits(self):
        with pytest.raises(SystemExit) as exc_info:
            _load(BASE_CONFIG, env={})
        assert exc_info.value.code == 1

    def test_missing_project_id_exits(self):
        with pytest.raises(SystemExit):
            _load(dict(BASE_CONFIG, crowdin={"file_id": 42}))

    def test_non_integer_file_id_exits(self):
        with pytest.raises(SystemExit):
            _load(dict(BASE_CONFIG, crowdin={"project_id": 1, "file_id": "forty-two"}))

    def test_unknown_method_exits(self):
        with pytest.raises(SystemExit):
            _load(dict(BASE_CONFIG, pre_translation={"method": "tm"}))

    def test_machine_translation_without_engine_exits(self):
        with pytest.raises(SystemExit):
            _load(dict(BASE_CONFIG, pre_translation={"method": "mt"}))

    @pytest.mark.parametrize("mapping", [
        {"de": "de-DE", "de-AT": "de-DE"},
        {"de": ""},
        {"de": "../de-DE"},
        {},
    ])
    def test_invalid_locale_mapping_exits(self, mapping):
        with pytest.raises(SystemExit):
            _load(dict(BASE_CONFIG, locale_mapping=mapping))

    @pytest.mark.parametrize("polling", [
        {"polling_interval_seconds": "fast"},
        {"polling_interval_seconds": -1},
        {"max_polling_attempts": 0},
        {"max_polling_attempts": "many"},
        {"polling_timeout_seconds": 0},
        {"polling_timeout_seconds": -30},
    ])
    def test_invalid_polling_settings_exit(self, polling):
        pre_translation = dict({"method": "mt", "engine_id": 1}, **polling)
        with pytest.raises(SystemExit) as exc_info:
            _load(dict(BASE_CONFIG, pre_translation=pre_translation))
        assert exc_info.value.code == 1

    def test_zero_polling_interval_is_allowed(self):
        config = _load(dict(BASE_CONFIG, pre_translation={"method": "mt", "engine_id": 1, "polling_interval_seconds": 0}))
        assert config.polling_policy.interval_seconds == 0.0

    @pytest.mark.parametrize("rate", ["ten", 0, -5])
    def test_invalid_request_rate_exits(self, rate):
        with pytest.raises(SystemExit) as exc_info:
            _load(dict(BASE_CONFIG, max_requests_per_second=rate))
        assert exc_info.value.code == 1

    def test_request_rate_is_read(self):
        config = _load(dict(BASE_CONFIG, max_requests_per_second="5"))
        assert config.max_requests_per_second == 5


class TestLoadYamlConfig:

    def test_custom_config_file_path(self, tmp_path):
        config_file = tmp_path / "crowdin.yaml"
        config_file.write_text(yaml.dump(BASE_CONFIG), encoding="utf-8")

        with patch.dict(os.environ, {"CROWDIN_CONFIG_FILE": str(config_file)}):
            config = _load_yaml_config(str(tmp_path))

        assert config == BASE_CONFIG

    def test_missing_file_returns_empty(self, tmp_path):
        with patch.dict(os.environ, {}, clear=True):
            assert _load_yaml_config(str(tmp_path)) == {}

    def test_invalid_yaml_returns_empty(self, tmp_path, capsys):
        (tmp_path / "config.yaml").write_text("crowdin: [unclosed", encoding="utf-8")

        with patch.dict(os.environ, {}, clear=True):
            assert _load_yaml_config(str(tmp_path)) == {}
        assert "Invalid YAML" in capsys.readouterr().err

    def test_non_mapping_yaml_returns_empty(self, tmp_path):
        (tmp_path / "config.yaml").write_text("- just\n- a list\n", encoding="utf-8")

        with patch.dict(os.environ, {}, clear=True):
            assert _load_yaml_config(str(tmp_path)) == {}
