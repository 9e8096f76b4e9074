"""Tests for the request context middleware."""

from fastapi import FastAPI
from fastapi.testclient import TestClient

from learnpath.core.context import get_course_id, get_request_id
from learnpath.core.middleware import RequestContextMiddleware, course_id_from_path


def make_app() -> FastAPI:
    app = FastAPI()
    app.add_middleware(RequestContextMiddleware, log_requests=False)

    @app.get("/v1/viewer/courses/{course_id}/days/{day}")
    async def day(course_id: str, day: int) -> dict:
        return {"course_id": get_course_id(), "request_id": get_request_id()}

    @app.get("/other")
    async def other() -> dict:
        return {"course_id": get_course_id()}

    return app


class TestCourseIdFromPath:
    """Tests for course_id_from_path."""

    def test_viewer_paths(self) -> None:
        assert course_id_from_path("/v1/viewer/courses/python-101") == "python-101"
        assert course_id_from_path("/v1/viewer/courses/c1/days/2/quiz") == "c1"

    def test_other_paths(self) -> None:
        assert course_id_from_path("/health") is None
        assert course_id_from_path("/v1/viewer/courses/") is None


class TestRequestContextMiddleware:
    """Context binding around a request."""

    def test_binds_course_and_request_id(self) -> None:
        client = TestClient(make_app())

        response = client.get(
            "/v1/viewer/courses/c1/days/2", headers={"X-Request-ID": "req-42"}
        )

        assert response.json() == {"course_id": "c1", "request_id": "req-42"}
        assert response.headers["X-Request-ID"] == "req-42"

    def test_no_course_outside_viewer(self) -> None:
        client = TestClient(make_app())

        assert client.get("/other").json() == {"course_id": None}
