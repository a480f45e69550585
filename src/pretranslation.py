"""
Pre-translation workflow against Crowdin.

upload -> register -> trigger -> poll -> (per locale) build, fetch, persist.
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

from tqdm import tqdm

from src.crowdin_client import CrowdinClient
from src.locale_files import locale_output_path, persist_locale_file, read_source_file
from src.models import (
    LocaleMapping,
    LocalizationProject,
    PollingPolicy,
    PreTranslationStatus,
    PretranslationReport,
    TranslationMethod,
)

SleepFunc = Callable[[float], Awaitable[Any]]

# Fill only untranslated strings and leave approvals alone.
PRE_TRANSLATION_OPTIONS: Dict[str, Any] = {
    "autoApproveOption": "none",
    "duplicateTranslations": False,
    "skipApprovedTranslations": False,
    "translateUntranslatedOnly": True,
    "translateWithPerfectMatchOnly": False,
}

# Export everything, including untranslated and unapproved strings.
BUILD_OPTIONS: Dict[str, Any] = {
    "exportAsXliff": False,
    "skipUntranslatedStrings": False,
    "skipUntranslatedFiles": False,
    "exportApprovedOnly": False,
}


class PreTranslationFailedError(Exception):
    """The pre-translation job ended in a status other than 'finished'."""

    def __init__(self, status: PreTranslationStatus):
        super().__init__(
            f"Pre-translation '{status.identifier}' ended with status '{status.status}' "
            f"at {status.progress}% progress"
        )
        self.status = status


class PreTranslationTimeoutError(Exception):
    """The polling policy's attempt or time limit ran out before the job finished."""

    def __init__(self, status: PreTranslationStatus, attempts: int, elapsed: float):
        super().__init__(
            f"Pre-translation '{status.identifier}' still '{status.status}' after "
            f"{attempts} status checks ({elapsed:.1f}s)"
        )
        self.status = status
        self.attempts = attempts
        self.elapsed = elapsed


def _status_from_response(data: Dict[str, Any]) -> PreTranslationStatus:
    return PreTranslationStatus(
        identifier=data["identifier"],
        status=data["status"],
        progress=data.get("progress", 0),
    )


async def upload_source_file(client: CrowdinClient, source_file_path: str, storage_filename: str) -> int:
    """
    Upload the current source strings file to Crowdin storage.

    Returns:
        The storage id, to be handed to ``register_source_file`` once.
    """
    content = read_source_file(source_file_path)
    logging.info(f"Uploading: {source_file_path}")
    storage_id = await client.add_storage(storage_filename, content)
    logging.debug(f"Stored '{storage_filename}' as storage {storage_id}.")
    return storage_id


async def register_source_file(client: CrowdinClient, project: LocalizationProject, storage_id: int) -> None:
    """Replace the project's tracked source file with the uploaded content."""
    await client.update_or_restore_file(project.project_id, project.file_id, storage_id)
    logging.info(f"Updated source file {project.file_id} in project {project.project_id}.")


async def trigger_pre_translation(
        client: CrowdinClient,
        project: LocalizationProject,
        locale_ids: List[str],
        method: TranslationMethod
) -> PreTranslationStatus:
    """Start a pre-translation job for ``locale_ids`` over the tracked source file."""
    body: Dict[str, Any] = {
        "languageIds": list(locale_ids),
        "fileIds": [project.file_id],
    }
    body.update(method.request_params())
    body.update(PRE_TRANSLATION_OPTIONS)

    job = _status_from_response(await client.apply_pre_translation(project.project_id, body))
    logging.info(
        f"Started pre-translation '{job.identifier}' ({method.method}) for "
        f"{', '.join(locale_ids)}; status: {job.status}"
    )
    return job


async def wait_for_pre_translation(
        client: CrowdinClient,
        project_id: int,
        pre_translation_id: str,
        policy: Optional[PollingPolicy] = None,
        sleep: SleepFunc = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic
) -> PreTranslationStatus:
    """
    Poll the job until Crowdin reports a terminal status.

    The first check happens immediately. While the job is 'created' or
    'in_progress' the poller waits ``policy.interval_seconds`` between checks.
    Without limits in the policy it waits indefinitely.

    Returns:
        The terminal status. Callers must check ``is_finished``: any other
        terminal status means the job failed.

    Raises:
        PreTranslationTimeoutError: If the policy's max attempts or timeout is
            reached while the job is still pending.
    """
    policy = policy or PollingPolicy()
    started = clock()
    attempts = 0

    while True:
        status = _status_from_response(await client.pre_translation_status(project_id, pre_translation_id))
        attempts += 1
        logging.info(f"Pre-translation progress: {status.progress}%")

        if status.is_terminal:
            if status.is_finished:
                logging.info("Pre-translation finished.")
            else:
                logging.error(f"Error with pre-translation, status: {status.status}")
            return status

        elapsed = clock() - started
        if policy.max_attempts is not None and attempts >= policy.max_attempts:
            raise PreTranslationTimeoutError(status, attempts, elapsed)
        if policy.timeout_seconds is not None and elapsed + policy.interval_seconds > policy.timeout_seconds:
            raise PreTranslationTimeoutError(status, attempts, elapsed)

        await sleep(policy.interval_seconds)


async def build_and_fetch_locale(client: CrowdinClient, project: LocalizationProject, locale_id: str) -> str:
    """Build the translated source file for one Crowdin language and download it."""
    body = {"targetLanguageId": locale_id}
    body.update(BUILD_OPTIONS)
    build = await client.build_project_file_translation(project.project_id, project.file_id, body)
    logging.debug(f"Build for '{locale_id}' ready at {build['url']}")
    return await client.download(build["url"])


async def run_pretranslation(
        client: CrowdinClient,
        project: LocalizationProject,
        locale_mapping: LocaleMapping,
        method: TranslationMethod,
        storage_filename: str,
        polling_policy: Optional[PollingPolicy] = None,
        sleep: SleepFunc = asyncio.sleep
) -> PretranslationReport:
    """
    Run the full workflow for one project.

    Remote failures propagate. A write failure for one locale is logged and
    recorded in the report; the other locales are still processed.

    Raises:
        PreTranslationFailedError: If the job ends in any status but 'finished'.
            Nothing is built or written in that case.
    """
    locale_ids = list(locale_mapping.keys())

    storage_id = await upload_source_file(client, project.source_file_path, storage_filename)
    await register_source_file(client, project, storage_id)

    job = await trigger_pre_translation(client, project, locale_ids, method)
    final_status = await wait_for_pre_translation(
        client, project.project_id, job.identifier, polling_policy, sleep=sleep
    )
    if not final_status.is_finished:
        raise PreTranslationFailedError(final_status)

    report = PretranslationReport(job_id=job.identifier)
    for locale_id in tqdm(locale_ids, desc="Downloading translations", unit="locale"):
        content = await build_and_fetch_locale(client, project, locale_id)

        mapped_locale = locale_mapping[locale_id]
        path = locale_output_path(project.translations_folder, mapped_locale, project.source_file_path)
        if persist_locale_file(path, content):
            report.written[mapped_locale] = path
        else:
            report.failed[mapped_locale] = path

    if report.failed:
        logging.warning(f"Failed to write {len(report.failed)} locale file(s): {', '.join(report.failed_paths)}")
    logging.info(f"Wrote {len(report.written)} of {len(locale_ids)} locale file(s).")
    return report
