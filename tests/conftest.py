import pytest
from fastapi.testclient import TestClient

from app.exceptions import DownloadFailed, StoreUnavailable
from app.main import app
from app.models.submission import SubmissionRecord, UpstreamSubmission


def make_submission(
    submission_id,
    name="Mario",
    file_url="http://x/img.png",
    status="ACTIVE",
    created_at="2024-01-01 10:00:00"
):
    answers = {}
    if name is not None:
        answers["3"] = {"type": "control_textbox", "name": "nomePagina", "text": "Nome", "answer": name}
    if file_url is not None:
        answers["4"] = {"type": "control_fileupload", "name": "caricaFile", "text": "Foto", "answer": [file_url]}
    return UpstreamSubmission.model_validate({
        "id": submission_id,
        "status": status,
        "created_at": created_at,
        "answers": answers,
    })


def make_record(submission_id=None, likes=0, image_url="https://i.ibb.co/old.jpg", name="Old"):
    return SubmissionRecord(submission_id=submission_id, name=name, image_url=image_url, likes=likes)


class FakeStore:
    """In-memory stand-in for the whole-document store."""

    def __init__(self, records=None, unavailable=False):
        self.records = list(records or [])
        self.unavailable = unavailable
        self.writes = 0

    def load(self):
        if self.unavailable:
            raise StoreUnavailable("JSONBin fetch: 503", upstream_status=503, upstream_body="down")
        return [record.model_copy(deep=True) for record in self.records]

    def fetch_all(self):
        try:
            return self.load()
        except StoreUnavailable:
            return []

    def replace_all(self, records):
        self.records = [record.model_copy(deep=True) for record in records]
        self.writes += 1

    def ids(self):
        return [record.submission_id for record in self.records]


class FakeSource:
    def __init__(self, submissions=None, error=None):
        self.submissions = list(submissions or [])
        self.error = error

    def fetch_submissions(self):
        if self.error:
            raise self.error
        return list(self.submissions)


class FakeRelay:
    def __init__(self, failing=(), on_relay=None):
        self.failing = set(failing)
        self.on_relay = on_relay
        self.calls = []

    def relay(self, source_url):
        self.calls.append(source_url)
        if self.on_relay:
            self.on_relay(source_url)
        if source_url in self.failing:
            raise DownloadFailed("Jotform CDN returned non-image (404 text/html)")
        return "https://i.ibb.co/" + source_url.rstrip("/").rsplit("/", 1)[-1]


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def relay():
    return FakeRelay()


@pytest.fixture
def client():
    yield TestClient(app)
    app.dependency_overrides.clear()
