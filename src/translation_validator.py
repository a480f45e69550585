"""
Audit compiled locale files for keys missing from the base locale file.

Usage:
    python -m src.translation_validator src/assets/i18n/en-GB.json src/assets/i18n/lang

Exits with status 1 if any locale misses any base key, 0 otherwise.
"""
import argparse
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple

from src.locale_files import load_locale_keys, source_file_extension
from src.logging_config import setup_logger


@dataclass
class KeyAuditResult:
    """Missing keys per locale name, plus locale files that could not be parsed."""
    missing: Dict[str, List[str]] = field(default_factory=dict)
    unreadable: Dict[str, str] = field(default_factory=dict)

    @property
    def incomplete_locales(self) -> List[str]:
        return [locale for locale, keys in self.missing.items() if keys]

    @property
    def passed(self) -> bool:
        return not self.incomplete_locales and not self.unreadable


def check_key_coverage(base_keys: Iterable[str], target_keys: Iterable[str]) -> Tuple[List[str], List[str]]:
    """
    Compares the keys in a target locale file against the base locale file.

    Args:
        base_keys: Keys of the base locale file, in file order.
        target_keys: Keys of the target locale file, in file order.

    Returns:
        A tuple of two lists:
        - missing_keys: Keys present in the base file but missing from the target, in base order.
        - extra_keys: Keys present in the target but absent from the base, in target order.
    """
    base_list = list(base_keys)
    target_list = list(target_keys)
    base_set = set(base_list)
    target_set = set(target_list)
    missing_keys = [key for key in base_list if key not in target_set]
    extra_keys = [key for key in target_list if key not in base_set]
    return missing_keys, extra_keys


def list_locale_files(locales_dir: str, extension: str) -> List[str]:
    """Regular files in ``locales_dir`` with ``extension``, sorted by name."""
    return [
        os.path.join(locales_dir, name)
        for name in sorted(os.listdir(locales_dir))
        if os.path.isfile(os.path.join(locales_dir, name)) and name.endswith(extension)
    ]


def audit_locale_directory(base_file_path: str, locales_dir: str) -> KeyAuditResult:
    """
    Compare every compiled locale file in ``locales_dir`` with the base file.

    Every locale is checked before returning; missing keys are logged as they
    are found. A locale file that cannot be parsed is logged and recorded as
    unreadable.

    Returns:
        A KeyAuditResult keyed by locale name (the filename without extension).
        Locales with complete coverage map to an empty list.

    Raises:
        ValueError: If the base file cannot be parsed.
    """
    base_keys = load_locale_keys(base_file_path)
    result = KeyAuditResult()

    for locale_path in list_locale_files(locales_dir, source_file_extension(base_file_path)):
        locale_name = os.path.splitext(os.path.basename(locale_path))[0]
        try:
            locale_keys = load_locale_keys(locale_path)
        except (OSError, ValueError) as e:
            logging.error(f"Could not read locale {locale_name}: {e}")
            result.unreadable[locale_name] = str(e)
            continue

        missing_keys, extra_keys = check_key_coverage(base_keys, locale_keys)
        result.missing[locale_name] = missing_keys

        for key in missing_keys:
            logging.error(f'"{key}" missing from locale: {locale_name}')
        if extra_keys:
            logging.info(f"{locale_name} has {len(extra_keys)} key(s) not in the base file: {', '.join(extra_keys)}")
        if not missing_keys:
            logging.info(f"{locale_name}: all {len(base_keys)} base keys present.")

    return result


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="crowdin-key-audit",
        description="Check that compiled locale files contain every key of the base locale file.",
    )
    parser.add_argument("base_file", help="Path to the base (source) locale file")
    parser.add_argument("locales_dir", help="Directory containing the compiled locale files")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args(argv)

    setup_logger(args.log_level, None, True)

    if not os.path.isdir(args.locales_dir):
        logging.error(f"Locales directory '{args.locales_dir}' does not exist.")
        return 1

    try:
        result = audit_locale_directory(args.base_file, args.locales_dir)
    except (OSError, ValueError) as e:
        logging.error(f"Key audit could not run: {e}")
        return 1

    failed = result.incomplete_locales + list(result.unreadable)
    if failed:
        logging.error(f"Key audit failed for {len(failed)} locale(s): {', '.join(failed)}")
        return 1
    logging.info(f"Key audit passed for {len(result.missing)} locale(s).")
    return 0


if __name__ == "__main__":
    sys.exit(main())
