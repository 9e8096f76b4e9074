"""Course roadmap: the ordered, immutable list of days of one course.

Wire field names follow the backend's course document (``day``, ``topics``,
``video``, ``mcqs``); Python code uses the descriptive names.
"""

from collections.abc import Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from learnpath.utils import percent_of


class MCQOption(BaseModel):
    """One answer option of a multiple-choice question."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    text: str
    is_correct: bool = Field(default=False, alias="isCorrect")


class MCQQuestion(BaseModel):
    """Multiple-choice question shown in a day's quiz."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    question: str
    options: tuple[MCQOption, ...] = ()
    explanation: str | None = None

    def is_correct(self, selected: int | None) -> bool:
        """Check whether the selected option index is a correct answer."""
        if selected is None or not 0 <= selected < len(self.options):
            return False
        return self.options[selected].is_correct


class RoadmapDay(BaseModel):
    """A single day of course content: one video and an optional quiz."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    day_number: int = Field(..., ge=1, alias="day")
    topic_text: str = Field(default="", alias="topics")
    video_reference: str | None = Field(default=None, alias="video")
    transcript: str | None = None
    quiz_questions: tuple[MCQQuestion, ...] = Field(default=(), alias="mcqs")

    @field_validator("quiz_questions", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return () if value is None else value

    @property
    def has_quiz(self) -> bool:
        return len(self.quiz_questions) > 0


def score_answers(
    questions: Sequence[MCQQuestion], answers: Sequence[int | None]
) -> int:
    """Score a quiz as a 0-100 percentage of correctly answered questions.

    ``answers`` holds one selected option index per question; ``None`` or a
    negative index means unanswered. Missing trailing answers count as wrong.
    """
    if not questions:
        return 0
    correct = sum(
        1
        for index, question in enumerate(questions)
        if index < len(answers) and question.is_correct(answers[index])
    )
    return percent_of(correct, len(questions))


class Roadmap(BaseModel):
    """Ordered days of one course. Read-only after course load."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    course_id: str
    title: str = ""
    days: tuple[RoadmapDay, ...] = Field(default=(), alias="roadmap")

    @field_validator("days")
    @classmethod
    def _strictly_increasing(
        cls, days: tuple[RoadmapDay, ...]
    ) -> tuple[RoadmapDay, ...]:
        previous = 0
        for day in days:
            if day.day_number <= previous:
                msg = (
                    f"Day numbers must be unique and strictly increasing "
                    f"(day {day.day_number} follows day {previous})"
                )
                raise ValueError(msg)
            previous = day.day_number
        return days

    @property
    def total_days(self) -> int:
        return len(self.days)

    @property
    def day_numbers(self) -> list[int]:
        return [day.day_number for day in self.days]

    @property
    def first_day(self) -> int | None:
        return self.days[0].day_number if self.days else None

    def get_day(self, day_number: int) -> RoadmapDay | None:
        """Get a day by its number, or None if the course has no such day."""
        for day in self.days:
            if day.day_number == day_number:
                return day
        return None

    def contains(self, day_number: int) -> bool:
        return self.get_day(day_number) is not None

    def has_quiz(self, day_number: int) -> bool:
        day = self.get_day(day_number)
        return day is not None and day.has_quiz

    def quiz_number(self, day_number: int) -> int | None:
        """1-based ordinal of the day's quiz among all quiz days."""
        if not self.has_quiz(day_number):
            return None
        return sum(
            1 for day in self.days if day.has_quiz and day.day_number <= day_number
        )

    def previous_day(self, day_number: int) -> int | None:
        """Day number preceding ``day_number`` in the roadmap, if any."""
        previous = None
        for day in self.days:
            if day.day_number >= day_number:
                break
            previous = day.day_number
        return previous

    def next_day(self, day_number: int) -> int | None:
        """Day number following ``day_number`` in the roadmap, if any."""
        for day in self.days:
            if day.day_number > day_number:
                return day.day_number
        return None
