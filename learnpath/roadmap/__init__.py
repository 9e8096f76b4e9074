"""Course roadmap module.

Provides:
- Immutable day descriptors with optional multiple-choice quizzes
- Quiz scoring
- Course load from the backend
"""

from .models import MCQOption, MCQQuestion, Roadmap, RoadmapDay, score_answers


__all__ = [
    "MCQOption",
    "MCQQuestion",
    "Roadmap",
    "RoadmapDay",
    "score_answers",
]
