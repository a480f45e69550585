"""Reading, writing and checking the local source and locale files."""
import json
import logging
import os
from typing import Any, Dict, List

import jsonschema

# A locale file is a single JSON object. Values are not constrained so that
# partially compiled or numeric entries can still be audited.
LOCALE_FILE_SCHEMA = {
    "type": "object",
}


def source_file_extension(source_file_path: str) -> str:
    """Return the extension of the source file including the dot (e.g. '.json')."""
    return os.path.splitext(source_file_path)[1]


def locale_output_path(translations_folder: str, mapped_locale: str, source_file_path: str) -> str:
    """
    Compute where a downloaded locale file is written.

    The output keeps the source file's extension so JSON and other structured
    formats round-trip unchanged, e.g. ``lang/de-DE.json``.
    """
    return f"{translations_folder}/{mapped_locale}{source_file_extension(source_file_path)}"


def read_source_file(source_file_path: str) -> str:
    with open(source_file_path, 'r', encoding='utf-8') as f:
        return f.read()


def persist_locale_file(path: str, content: str) -> bool:
    """
    Write downloaded locale content verbatim to ``path``, overwriting it.

    Write failures are logged and reported through the return value so that the
    remaining locales are still written.

    Returns:
        True if the file was written, False otherwise.
    """
    logging.info(f"Writing: {path}")
    try:
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
    except OSError as e:
        logging.error(f"Failed to write '{path}': {e}")
        return False
    return True


def load_locale_file(path: str) -> Dict[str, Any]:
    """
    Parse a JSON locale file and check that it is a single object.

    Raises:
        ValueError: If the file is not valid JSON or not an object.
    """
    with open(path, 'r', encoding='utf-8') as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"'{path}' is not valid JSON: {e}") from e
    try:
        jsonschema.validate(instance=data, schema=LOCALE_FILE_SCHEMA)
    except jsonschema.ValidationError as e:
        raise ValueError(f"'{path}' must contain a JSON object: {e.message}") from e
    return data


def load_locale_keys(path: str) -> List[str]:
    """Return the top-level keys of a locale file in file order."""
    return list(load_locale_file(path).keys())


def validate_local_paths(source_file_path: str, translations_folder: str) -> None:
    """
    Pre-flight checks run before any request is sent to Crowdin.

    The source file must exist and be readable; JSON sources must parse to an
    object. The translations folder is created when missing.
    """
    if not os.path.isfile(source_file_path):
        logging.error(f"Source file '{source_file_path}' does not exist.")
        raise FileNotFoundError(f"Source file '{source_file_path}' does not exist.")
    if not os.access(source_file_path, os.R_OK):
        logging.error(f"Source file '{source_file_path}' is not readable.")
        raise PermissionError(f"Source file '{source_file_path}' is not readable.")

    if source_file_extension(source_file_path).lower() == '.json':
        try:
            load_locale_file(source_file_path)
        except ValueError as e:
            logging.error(f"Source file failed validation: {e}")
            raise

    if not os.path.isdir(translations_folder):
        logging.info(f"Creating translations folder '{translations_folder}'.")
        os.makedirs(translations_folder, exist_ok=True)
    logging.info("Local paths are valid.")
