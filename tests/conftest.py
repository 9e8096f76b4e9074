"""Shared fixtures: a five-day course, in-memory caches and a fake backend."""

import json
import os


os.environ.setdefault("LEARNPATH_ENVIRONMENT", "testing")
os.environ.setdefault("LEARNPATH_LOG_TO_FILE", "false")
os.environ.setdefault("LEARNPATH_LOG_LEVEL", "WARNING")
os.environ.setdefault("LEARNPATH_CACHE_BACKEND", "memory")
os.environ.setdefault("LEARNPATH_BACKEND_BASE_URL", "http://backend.test")

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from learnpath.cache.backends import MemoryProgressCache  # noqa: E402
from learnpath.config import get_settings  # noqa: E402
from learnpath.core.http import BackendClient  # noqa: E402
from learnpath.progress.engine import ProgressionEngine  # noqa: E402
from learnpath.roadmap.models import Roadmap  # noqa: E402


COURSE_ID = "course-1"
TOKEN = "test-token"


def mcq(question: str, correct: int, options: int = 3) -> dict:
    """Build a course-document MCQ whose option ``correct`` is the right one."""
    return {
        "question": question,
        "options": [
            {"text": f"{question} option {i}", "isCorrect": i == correct}
            for i in range(options)
        ],
    }


def course_document() -> dict:
    """Five days; days 2 and 4 have quizzes.

    Correct answers: day 2 -> [0, 1]; day 4 -> [2, 0, 1].
    """
    return {
        "_id": COURSE_ID,
        "title": "Python Basics",
        "roadmap": [
            {"day": 1, "topics": "Introduction", "video": "https://videos.test/1", "mcqs": []},
            {
                "day": 2,
                "topics": "Variables",
                "video": "https://videos.test/2",
                "mcqs": [mcq("What is x", 0), mcq("What is y", 1)],
            },
            {"day": 3, "topics": "Loops", "video": "https://videos.test/3"},
            {
                "day": 4,
                "topics": "Functions",
                "video": "https://videos.test/4",
                "mcqs": [mcq("def", 2), mcq("return", 0), mcq("args", 1)],
            },
            {"day": 5, "topics": "Wrap-up", "video": "https://videos.test/5", "mcqs": None},
        ],
    }


class FakeBackend:
    """In-memory stand-in for the learning-platform REST API."""

    def __init__(self, course: dict | None = None):
        self.course = course or course_document()
        self.progress: dict | None = {
            "completedDays": [],
            "progress": 0,
            "status": "enrolled",
        }
        self.submissions: list[dict] = []
        self.requests: list[httpx.Request] = []
        self.queued_submit_responses: list[httpx.Response] = []
        self.progress_error: httpx.Response | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        method = request.method

        if method == "GET" and path == f"/api/courses/{self.course['_id']}":
            return httpx.Response(200, json=self.course)

        if path.startswith("/api/enrollment-progress/"):
            if self.progress_error is not None:
                return self.progress_error
            if method == "GET":
                if self.progress is None:
                    return httpx.Response(404, json={"message": "Enrollment not found"})
                return httpx.Response(200, json=self.progress)
            if method == "PUT":
                self.progress = json.loads(request.content)
                return httpx.Response(200, json={"message": "Progress updated"})

        if method == "POST" and path == "/api/quiz-submissions":
            if self.queued_submit_responses:
                return self.queued_submit_responses.pop(0)
            body = json.loads(request.content)
            record = {
                "dayNumber": body["dayNumber"],
                "attemptNumber": body["attemptNumber"],
                "score": body["score"],
                "totalQuestions": len(body["answers"]),
                "submittedDate": body["submittedDate"],
            }
            self.submissions.append(record)
            return httpx.Response(201, json=record)

        if method == "GET" and path.startswith("/api/quiz-submissions/"):
            day = int(request.url.params["dayNumber"])
            data = [s for s in self.submissions if s["dayNumber"] == day]
            return httpx.Response(200, json={"data": data})

        return httpx.Response(404, json={"message": "Not found"})

    def calls(self, method: str, path_prefix: str) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if r.method == method and r.url.path.startswith(path_prefix)
        ]

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def roadmap() -> Roadmap:
    document = course_document()
    return Roadmap.model_validate(
        {"course_id": COURSE_ID, "title": document["title"], "roadmap": document["roadmap"]}
    )


@pytest.fixture
def cache() -> MemoryProgressCache:
    return MemoryProgressCache("learner-1")


@pytest.fixture
def pushed() -> list:
    """Snapshots handed to the push hook, in order."""
    return []


@pytest.fixture
def engine(roadmap, cache, pushed) -> ProgressionEngine:
    return ProgressionEngine(roadmap, cache=cache, push=pushed.append)


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest_asyncio.fixture
async def backend(fake_backend):
    client = BackendClient(
        "http://backend.test", TOKEN, transport=fake_backend.transport()
    )
    yield client
    await client.aclose()
