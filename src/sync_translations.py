"""
Push the source strings file to Crowdin, pre-translate it and pull the results.

Usage:
    CROWDIN_TOKEN=... python -m src.sync_translations
"""
import asyncio
import logging
import sys

from src.app_config import AppConfig, load_app_config
from src.crowdin_client import CrowdinAPIError, CrowdinClient
from src.locale_files import validate_local_paths
from src.pretranslation import (
    PreTranslationFailedError,
    PreTranslationTimeoutError,
    run_pretranslation,
)


async def main(app_config: AppConfig) -> int:
    """
    Run the pre-translation workflow described by ``app_config``.

    Returns:
        0 if every locale file was written, 1 otherwise.
    """
    project = app_config.project
    validate_local_paths(project.source_file_path, project.translations_folder)

    async with CrowdinClient(
            app_config.crowdin_token,
            base_url=app_config.base_url,
            max_requests_per_second=app_config.max_requests_per_second
    ) as client:
        report = await run_pretranslation(
            client,
            project,
            app_config.locale_mapping,
            app_config.method,
            app_config.storage_filename,
            polling_policy=app_config.polling_policy,
        )

    if not report.succeeded:
        logging.error(f"Pre-translation '{report.job_id}' completed with write failures.")
        return 1
    logging.info(f"Pre-translation '{report.job_id}' completed. Translated files are in '{project.translations_folder}'.")
    return 0


def run() -> int:
    """Console entry point."""
    app_config = load_app_config()
    try:
        return asyncio.run(main(app_config))
    except (PreTranslationFailedError, PreTranslationTimeoutError) as e:
        logging.error(str(e))
    except CrowdinAPIError as e:
        logging.error(f"Crowdin request failed: {e}")
    except (OSError, ValueError) as e:
        logging.error(f"Pre-flight check failed: {e}")
    except KeyboardInterrupt:
        logging.error("Interrupted by user.")
        return 130
    return 1


if __name__ == "__main__":
    sys.exit(run())
