"""Course load: fetches a course document and builds its roadmap."""

from pydantic import ValidationError

from learnpath.core.exceptions import BackendError, ProgressionError
from learnpath.core.http import BackendClient
from learnpath.core.logging import get_logger
from learnpath.core.results import Outcome

from .models import Roadmap


logger = get_logger(__name__)


class RoadmapService:
    """Loads course roadmaps from the backend."""

    def __init__(self, backend: BackendClient):
        self.backend = backend

    async def load(self, course_id: str) -> Outcome[Roadmap]:
        """Fetch the course and return its validated roadmap.

        Returns:
            Outcome with the Roadmap, or a failure (not authenticated,
            network failure, or a backend error for malformed documents).
        """
        try:
            response = await self.backend.request("GET", f"/api/courses/{course_id}")
            document = response.json()
            roadmap = Roadmap.model_validate(
                {
                    "course_id": str(document.get("_id") or course_id),
                    "title": document.get("title", ""),
                    "roadmap": document.get("roadmap") or [],
                }
            )
        except ProgressionError as e:
            logger.warning("roadmap_load_failed", course_id=course_id, error=e.code)
            return Outcome.fail(e)
        except (ValidationError, ValueError, AttributeError) as e:
            logger.error("roadmap_invalid", course_id=course_id, error=str(e))
            return Outcome.fail(BackendError(f"Invalid course roadmap: {e}"))

        logger.info(
            "roadmap_loaded",
            course_id=course_id,
            total_days=roadmap.total_days,
        )
        return Outcome.ok(roadmap)
