from __future__ import annotations

from typing import List

from pydantic import BaseModel, Field, computed_field, field_validator


class RoadmapSubtopic(BaseModel):
    """Leaf item of a roadmap topic."""

    id: str
    title: str
    completed: bool = False


class RoadmapTopic(BaseModel):
    """Ordered unit of a learning roadmap; completion is derived from its subtopics."""

    id: str = Field(..., min_length=1)
    title: str
    subtopics: List[RoadmapSubtopic] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def completed(self) -> bool:
        return bool(self.subtopics) and all(subtopic.completed for subtopic in self.subtopics)


class Roadmap(BaseModel):
    """Roadmap as produced by the roadmap-generation feature."""

    id: str
    title: str
    topics: List[RoadmapTopic] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def progress(self) -> float:
        """Fraction of topics whose subtopics are all completed."""
        if not self.topics:
            return 0.0
        return sum(1 for topic in self.topics if topic.completed) / len(self.topics)


class TopicPerformance(BaseModel):
    """Performance snapshot feeding the sequencer's fitness function."""

    topic_id: str
    success_rate: float = Field(0.0, ge=0, le=1)
    completion_time_hours: float = Field(0.0, ge=0)
    attempts_count: int = Field(0, ge=0)

    @field_validator("topic_id")
    @classmethod
    def topic_id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("topic_id must not be blank")
        return value
