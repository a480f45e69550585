import json
import re

import httpx
import pytest

from src.crowdin_client import CrowdinClient
from src.models import LocalizationProject

API_PREFIX = "/api/v2"
DOWNLOAD_HOST = "downloads.crowdin.test"
JOB_ID = "9e7de270-4f83-41cb-b606-2f90631f26e2"


class FakeCrowdin:
    """
    In-memory stand-in for the Crowdin API endpoints the workflow calls.

    ``statuses`` is consumed one entry per status query; the last entry repeats
    once the list is exhausted. Built files default to the registered source
    content unless ``builds`` has an entry for the language.
    """

    def __init__(self):
        self.statuses = ["created", "in_progress", "finished"]
        self.builds = {}
        self.fail_downloads = set()
        self.requests = []
        self.storage = {}
        self.source_content = None
        self.pre_translation_body = None
        self.build_bodies = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def requests_matching(self, method: str, pattern: str):
        return [
            r for r in self.requests
            if r.method == method and re.fullmatch(pattern, r.url.path)
        ]

    @property
    def status_queries(self):
        return self.requests_matching("GET", rf"{API_PREFIX}/projects/\d+/pre-translations/[\w-]+")

    @property
    def downloads(self):
        return [r for r in self.requests if r.url.host == DOWNLOAD_HOST]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.url.host == DOWNLOAD_HOST:
            locale = request.url.path.rsplit('/', 1)[-1]
            if locale in self.fail_downloads:
                return httpx.Response(500, text="build expired")
            return httpx.Response(200, text=self.builds.get(locale, self.source_content))

        path = request.url.path.removeprefix(API_PREFIX)

        if request.method == "POST" and path == "/storages":
            storage_id = len(self.storage) + 1
            self.storage[storage_id] = request.content.decode("utf-8")
            return httpx.Response(201, json={
                "data": {"id": storage_id, "fileName": request.headers["Crowdin-API-FileName"]}
            })

        match = re.fullmatch(r"/projects/(\d+)/files/(\d+)", path)
        if request.method == "PUT" and match:
            storage_id = json.loads(request.content)["storageId"]
            self.source_content = self.storage[storage_id]
            return httpx.Response(200, json={
                "data": {"id": int(match.group(2)), "projectId": int(match.group(1)), "name": "en-GB.json"}
            })

        if request.method == "POST" and re.fullmatch(r"/projects/\d+/pre-translations", path):
            self.pre_translation_body = json.loads(request.content)
            return httpx.Response(201, json={
                "data": {"identifier": JOB_ID, "status": "created", "progress": 0}
            })

        if request.method == "GET" and re.fullmatch(r"/projects/\d+/pre-translations/[\w-]+", path):
            status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
            progress = 100 if status == "finished" else 50
            return httpx.Response(200, json={
                "data": {"identifier": JOB_ID, "status": status, "progress": progress}
            })

        if request.method == "POST" and re.fullmatch(r"/projects/\d+/translations/builds/files/\d+", path):
            body = json.loads(request.content)
            self.build_bodies.append(body)
            return httpx.Response(200, json={
                "data": {
                    "url": f"https://{DOWNLOAD_HOST}/builds/{body['targetLanguageId']}",
                    "expireIn": "2026-10-19T12:00:00+00:00",
                }
            })

        return httpx.Response(404, json={"error": {"code": 404, "message": "Not Found"}})


@pytest.fixture
def fake_crowdin():
    return FakeCrowdin()


@pytest.fixture
def make_client():
    """Factory for a CrowdinClient talking to a FakeCrowdin."""
    def _make_client(fake: FakeCrowdin) -> CrowdinClient:
        return CrowdinClient("test-token", transport=fake.transport, max_requests_per_second=1000)
    return _make_client


@pytest.fixture
def project(tmp_path):
    """A project with a JSON source file and an empty translations folder."""
    source_file = tmp_path / "en-GB.json"
    source_file.write_text(json.dumps({"greeting": "Hello", "farewell": "Goodbye"}), encoding="utf-8")
    translations_folder = tmp_path / "lang"
    translations_folder.mkdir()
    return LocalizationProject(
        project_id=654680,
        file_id=42,
        source_file_path=str(source_file),
        translations_folder=str(translations_folder),
    )
