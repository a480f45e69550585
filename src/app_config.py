"""Application configuration module for the Crowdin pre-translation sync."""
import logging
import os
import sys
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import yaml
from dotenv import load_dotenv

from src.crowdin_client import DEFAULT_BASE_URL, DEFAULT_MAX_REQUESTS_PER_SECOND
from src.logging_config import setup_logger
from src.models import (
    AiPrompt,
    LocaleMapping,
    LocalizationProject,
    MachineTranslation,
    PollingPolicy,
    TranslationMethod,
)

# Crowdin language ids do not always carry a region while the app's locale
# files always do, e.g. crowdin.com/project/<name>/de holds de-DE.
DEFAULT_LOCALE_MAPPING: LocaleMapping = {
    "de": "de-DE",
    "pt-PT": "pt-PT",
}


@dataclass
class AppConfig:
    """Application configuration dataclass."""
    project_root: str

    # Crowdin
    crowdin_token: str
    base_url: str
    max_requests_per_second: int

    # What to sync
    project: LocalizationProject
    storage_filename: str
    locale_mapping: LocaleMapping

    # Pre-translation
    method: TranslationMethod
    polling_policy: PollingPolicy


def _compute_project_root() -> str:
    """Compute the project root directory."""
    script_real_path = os.path.realpath(__file__)
    script_dir = os.path.dirname(script_real_path)
    return os.path.abspath(os.path.join(script_dir, os.pardir))


def _load_dotenv_files(project_root: str) -> None:
    """Load .env files from project root or docker directory."""
    dotenv_path_project_root = os.path.join(project_root, '.env')
    dotenv_path_docker_dir = os.path.join(project_root, 'docker', '.env')

    if os.path.exists(dotenv_path_project_root):
        load_dotenv(dotenv_path_project_root)
    elif os.path.exists(dotenv_path_docker_dir):
        load_dotenv(dotenv_path_docker_dir)


def _load_yaml_config(project_root: str) -> Dict[str, Any]:
    """Load the YAML configuration file, falling back to defaults when it is missing or invalid."""
    default_config_path = os.path.join(project_root, 'config.yaml')
    config_file = os.environ.get('CROWDIN_CONFIG_FILE', default_config_path)

    if not os.path.isabs(config_file):
        config_file = os.path.abspath(config_file)

    config = {}
    try:
        if not os.path.exists(config_file):
            print(f"Warning: Configuration file '{config_file}' not found. Using default configuration.",
                  file=sys.stderr)
            print(f"Tip: Create a config.yaml file in '{project_root}' or set CROWDIN_CONFIG_FILE environment variable.",
                  file=sys.stderr)
            return config

        if not os.access(config_file, os.R_OK):
            print(f"Error: Configuration file '{config_file}' exists but is not readable. Check file permissions.",
                  file=sys.stderr)
            return config

        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
            if loaded_config is None:
                print(f"Warning: Configuration file '{config_file}' is empty. Using default configuration.",
                      file=sys.stderr)
            elif isinstance(loaded_config, dict):
                config = loaded_config
                print(f"Successfully loaded configuration from: {config_file}", file=sys.stderr)
            else:
                print(f"Error: Configuration file '{config_file}' must contain a YAML dictionary. Using defaults.",
                      file=sys.stderr)

    except yaml.YAMLError as e:
        print(f"Error: Invalid YAML in configuration file '{config_file}': {e}", file=sys.stderr)
        print("Please check your YAML syntax. Using default configuration.", file=sys.stderr)
    except OSError as e:
        print(f"Error: Could not read configuration file '{config_file}': {e}", file=sys.stderr)
        print("Using default configuration.", file=sys.stderr)

    return config


def _setup_logger_from_config(config: Dict[str, Any]) -> logging.Logger:
    """Set up logger based on configuration."""
    log_config = config.get('logging', {})
    log_level_str = log_config.get('log_level', 'INFO').upper()
    log_file_path = log_config.get('log_file_path', 'logs/pretranslation.log')
    log_to_console = log_config.get('log_to_console', True)
    return setup_logger(log_level_str, log_file_path, log_to_console)


def _log_dotenv_status(logger: logging.Logger, project_root: str) -> None:
    """Log the status of .env file loading."""
    dotenv_path_project_root = os.path.join(project_root, '.env')
    dotenv_path_docker_dir = os.path.join(project_root, 'docker', '.env')

    if os.path.exists(dotenv_path_project_root):
        logger.info("Loaded environment variables from: %s", dotenv_path_project_root)
    elif os.path.exists(dotenv_path_docker_dir):
        logger.info("Loaded environment variables from: %s", dotenv_path_docker_dir)
    else:
        logger.info(
            "No .env file found in project root ('%s') or in docker/ ('%s'). Relying on system environment variables if any.",
            dotenv_path_project_root,
            dotenv_path_docker_dir
        )


def _exit_with_config_error(logger: logging.Logger, message: str) -> None:
    logger.critical("CRITICAL: %s", message)
    sys.exit(1)


def _require_crowdin_token(logger: logging.Logger) -> str:
    """Read the Crowdin token from the environment; without it nothing may run."""
    token = os.environ.get('CROWDIN_TOKEN')
    if not token:
        logger.critical("CRITICAL: CROWDIN_TOKEN environment variable not found.")
        logger.critical("Create a personal access token in Crowdin and set CROWDIN_TOKEN or add it to .env.")
        sys.exit(1)
    return token


def _read_int(logger: logging.Logger, name: str, env_var: str, value: Any) -> int:
    """Resolve an integer setting, letting ``env_var`` override the config value."""
    raw = os.environ.get(env_var, value)
    if raw is None:
        _exit_with_config_error(logger, f"{name} is not configured. Set it in config.yaml or {env_var}.")
    try:
        return int(raw)
    except (TypeError, ValueError):
        _exit_with_config_error(logger, f"{name} must be an integer, got {raw!r}.")


def _build_translation_method(logger: logging.Logger, pre_translation: Dict[str, Any]) -> TranslationMethod:
    """Build the pre-translation method from its discriminant and parameters."""
    method = str(pre_translation.get('method', 'mt')).lower()
    if method == 'mt':
        return MachineTranslation(engine_id=_read_int(
            logger, "pre_translation.engine_id", 'CROWDIN_ENGINE_ID', pre_translation.get('engine_id')))
    if method == 'ai':
        return AiPrompt(prompt_id=_read_int(
            logger, "pre_translation.ai_prompt_id", 'CROWDIN_AI_PROMPT_ID', pre_translation.get('ai_prompt_id')))
    _exit_with_config_error(logger, f"Unknown pre-translation method '{method}'. Use 'mt' or 'ai'.")


def _read_number(
        logger: logging.Logger,
        name: str,
        value: Any,
        cast: Callable[[Any], Any],
        minimum: float,
        inclusive: bool = True
) -> Any:
    """Convert a numeric setting with ``cast`` and check it against ``minimum``."""
    try:
        number = cast(value)
    except (TypeError, ValueError):
        _exit_with_config_error(logger, f"{name} must be a number, got {value!r}.")
    if number < minimum or (not inclusive and number == minimum):
        bound = ">=" if inclusive else ">"
        _exit_with_config_error(logger, f"{name} must be {bound} {minimum}, got {value!r}.")
    return number


def _build_polling_policy(logger: logging.Logger, pre_translation: Dict[str, Any]) -> PollingPolicy:
    """Read the polling interval and the optional attempt and time limits."""
    max_attempts = pre_translation.get('max_polling_attempts')
    timeout_seconds = pre_translation.get('polling_timeout_seconds')
    return PollingPolicy(
        interval_seconds=_read_number(
            logger, "pre_translation.polling_interval_seconds",
            pre_translation.get('polling_interval_seconds', 2.0), float, 0),
        max_attempts=_read_number(
            logger, "pre_translation.max_polling_attempts", max_attempts, int, 1)
        if max_attempts is not None else None,
        timeout_seconds=_read_number(
            logger, "pre_translation.polling_timeout_seconds", timeout_seconds, float, 0, inclusive=False)
        if timeout_seconds is not None else None,
    )


def _validate_locale_mapping(logger: logging.Logger, locale_mapping: Any) -> LocaleMapping:
    """
    Check the Crowdin -> local locale mapping.

    Every local locale becomes an output filename stem, so values must be
    unique, non-empty and free of path separators.
    """
    if not isinstance(locale_mapping, dict) or not locale_mapping:
        _exit_with_config_error(logger, "locale_mapping must be a non-empty mapping of Crowdin to local locale ids.")

    mapping: LocaleMapping = {}
    seen: Dict[str, str] = {}
    for crowdin_locale, local_locale in locale_mapping.items():
        crowdin_locale, local_locale = str(crowdin_locale), str(local_locale or '')
        if not local_locale or '/' in local_locale or '\\' in local_locale or local_locale in ('.', '..'):
            _exit_with_config_error(
                logger, f"Invalid local locale {local_locale!r} for Crowdin locale '{crowdin_locale}'.")
        if local_locale in seen:
            _exit_with_config_error(
                logger,
                f"Crowdin locales '{seen[local_locale]}' and '{crowdin_locale}' both map to '{local_locale}'."
            )
        seen[local_locale] = crowdin_locale
        mapping[crowdin_locale] = local_locale
    return mapping


def load_app_config() -> AppConfig:
    """
    Load application configuration from YAML file and environment variables.

    Exits the process with status 1 if the Crowdin token is missing or the
    configuration is invalid, before any request is made.

    Returns:
        AppConfig: The loaded application configuration.
    """
    project_root = _compute_project_root()

    _load_dotenv_files(project_root)
    config = _load_yaml_config(project_root)
    logger = _setup_logger_from_config(config)
    _log_dotenv_status(logger, project_root)

    crowdin_token = _require_crowdin_token(logger)

    crowdin = config.get('crowdin', {}) or {}
    pre_translation = config.get('pre_translation', {}) or {}

    source_file_path = config.get('source_file_path', 'src/assets/i18n/en-GB.json')
    project = LocalizationProject(
        project_id=_read_int(logger, "crowdin.project_id", 'CROWDIN_PROJECT_ID', crowdin.get('project_id')),
        file_id=_read_int(logger, "crowdin.file_id", 'CROWDIN_FILE_ID', crowdin.get('file_id')),
        source_file_path=source_file_path,
        translations_folder=config.get('translations_folder', 'src/assets/i18n/lang'),
    )

    locale_mapping = _validate_locale_mapping(logger, config.get('locale_mapping', DEFAULT_LOCALE_MAPPING))
    storage_filename: Optional[str] = crowdin.get('storage_filename')

    return AppConfig(
        project_root=project_root,
        crowdin_token=crowdin_token,
        base_url=os.environ.get('CROWDIN_BASE_URL', crowdin.get('base_url', DEFAULT_BASE_URL)),
        max_requests_per_second=_read_number(
            logger, "max_requests_per_second",
            config.get('max_requests_per_second', DEFAULT_MAX_REQUESTS_PER_SECOND), int, 1),
        project=project,
        storage_filename=storage_filename or os.path.basename(source_file_path),
        locale_mapping=locale_mapping,
        method=_build_translation_method(logger, pre_translation),
        polling_policy=_build_polling_policy(logger, pre_translation),
    )
