"""Data types shared by the pre-translation workflow and its configuration."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union


# Remote (Crowdin) locale id -> local locale id used as the output filename stem.
LocaleMapping = Dict[str, str]

PENDING_STATUSES = ("created", "in_progress")
FINISHED_STATUS = "finished"


@dataclass(frozen=True)
class LocalizationProject:
    """Identifies the remote project, its tracked source file and the local paths."""
    project_id: int
    file_id: int
    source_file_path: str
    translations_folder: str


@dataclass(frozen=True)
class MachineTranslation:
    """Pre-translate with a machine translation engine configured in Crowdin."""
    engine_id: int
    method: str = field(default="mt", init=False)

    def request_params(self) -> Dict[str, Any]:
        return {"method": self.method, "engineId": self.engine_id}


@dataclass(frozen=True)
class AiPrompt:
    """Pre-translate with a Crowdin AI prompt."""
    prompt_id: int
    method: str = field(default="ai", init=False)

    def request_params(self) -> Dict[str, Any]:
        return {"method": self.method, "aiPromptId": self.prompt_id}


TranslationMethod = Union[MachineTranslation, AiPrompt]


@dataclass(frozen=True)
class PreTranslationStatus:
    """A snapshot of a pre-translation job as reported by Crowdin."""
    identifier: str
    status: str
    progress: int = 0

    @property
    def is_finished(self) -> bool:
        return self.status == FINISHED_STATUS

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATUSES

    @property
    def is_terminal(self) -> bool:
        # Anything Crowdin reports outside created/in_progress ends the job.
        return not self.is_pending


@dataclass(frozen=True)
class PollingPolicy:
    """
    How the pre-translation status is polled.

    The defaults poll every two seconds with no limit. Setting
    ``max_attempts`` or ``timeout_seconds`` bounds the wait.
    """
    interval_seconds: float = 2.0
    max_attempts: Optional[int] = None
    timeout_seconds: Optional[float] = None


@dataclass
class PretranslationReport:
    """Outcome of one workflow run."""
    job_id: str
    written: Dict[str, str] = field(default_factory=dict)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return not self.failed

    @property
    def failed_paths(self) -> List[str]:
        return list(self.failed.values())
