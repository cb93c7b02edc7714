"""FastAPI application exposing the adaptive learning scheduler as a REST API."""

from __future__ import annotations

import asyncio
import logging
import os
from datetime import datetime
from functools import lru_cache
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from learning_scheduler.config import load_settings
from learning_scheduler.exceptions import InvalidInputError
from learning_scheduler.learning import LearningPattern, Recommendations
from learning_scheduler.roadmap import RoadmapTopic
from learning_scheduler.services import SchedulerService
from learning_scheduler.utils.logging import configure_from_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _get_service_singleton() -> SchedulerService:
    """Create a singleton SchedulerService from the configured settings."""
    settings = load_settings(os.getenv("LEARNING_SCHEDULER_CONFIG"))
    configure_from_settings(settings.logging)
    logger.info("Initializing SchedulerService for FastAPI service")
    return SchedulerService(settings)


async def get_service() -> SchedulerService:
    """FastAPI dependency that returns the shared SchedulerService."""
    return _get_service_singleton()


class AttemptRequest(BaseModel):
    topic_id: str = Field(..., description="Topic the attempt belongs to")
    time_spent: float = Field(..., description="Seconds spent on the attempt")
    success: bool
    related_topics: List[str] = Field(default_factory=list)
    prerequisites: List[str] = Field(default_factory=list)


class MetricsResponse(BaseModel):
    topic_id: str
    attempts: int
    time_spent: float
    success_rate: float
    difficulty: float
    consistency_score: float
    retention_score: float
    streak_days: int
    average_session_time: float
    last_attempt: Optional[datetime]


class InsightResponse(BaseModel):
    type: str
    message: str
    confidence: float
    recommendation: Optional[str] = None


class StrategyResponse(BaseModel):
    recommended_time_per_session: int
    recommended_attempts: int
    suggested_difficulty: int
    next_review_date: datetime
    confidence_score: float
    alternative_time_per_session: List[int]
    alternative_difficulty: List[int]
    prerequisites_completed: bool
    missing_prerequisites: List[str] = Field(default_factory=list)


class RecommendationsResponse(BaseModel):
    topic_id: str
    strategy: Optional[StrategyResponse]
    insights: List[InsightResponse]


class SequenceRequest(BaseModel):
    topics: List[RoadmapTopic]
    deadline_seconds: Optional[float] = Field(default=None, gt=0)


class SequenceResponse(BaseModel):
    topics: List[RoadmapTopic]
    fitness: float
    generations: int
    stopped_early: bool


def _serialize_metrics(pattern: LearningPattern) -> MetricsResponse:
    metrics = pattern.metrics
    return MetricsResponse(
        topic_id=pattern.topic_id,
        attempts=metrics.attempts,
        time_spent=metrics.time_spent,
        success_rate=metrics.success_rate,
        difficulty=metrics.difficulty,
        consistency_score=metrics.consistency_score,
        retention_score=metrics.retention_score,
        streak_days=metrics.streak_days,
        average_session_time=metrics.average_session_time,
        last_attempt=metrics.last_attempt,
    )


def _serialize_recommendations(
    topic_id: str, recommendations: Recommendations, missing: List[str]
) -> RecommendationsResponse:
    strategy = recommendations.strategy
    strategy_payload = None
    if strategy is not None:
        strategy_payload = StrategyResponse(
            recommended_time_per_session=strategy.recommended_time_per_session,
            recommended_attempts=strategy.recommended_attempts,
            suggested_difficulty=strategy.suggested_difficulty,
            next_review_date=strategy.next_review_date,
            confidence_score=strategy.confidence_score,
            alternative_time_per_session=list(strategy.alternative_strategies.time_per_session),
            alternative_difficulty=list(strategy.alternative_strategies.difficulty),
            prerequisites_completed=strategy.prerequisites_completed,
            missing_prerequisites=missing,
        )
    return RecommendationsResponse(
        topic_id=topic_id,
        strategy=strategy_payload,
        insights=[
            InsightResponse(
                type=insight.type,
                message=insight.message,
                confidence=insight.confidence,
                recommendation=insight.recommendation,
            )
            for insight in recommendations.insights
        ],
    )


app = FastAPI(
    title="Adaptive Learning Scheduler API",
    description="REST API for practice strategies and roadmap sequencing",
    version="0.1.0",
)

# Enable permissive CORS by default (can be overridden via environment variable)
allow_origins = os.getenv("API_ALLOW_ORIGINS", "*")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in allow_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health", summary="Health check")
async def health() -> Dict[str, str]:
    """Return service health information."""
    return {"status": "ok"}


@app.post(
    "/learners/{learner_id}/attempts",
    response_model=MetricsResponse,
    summary="Record a practice attempt",
)
async def record_attempt(
    learner_id: str,
    payload: AttemptRequest,
    service: SchedulerService = Depends(get_service),
) -> MetricsResponse:
    """Record an attempt; the topic's strategy is re-evolved before the response is sent."""
    try:
        pattern = await asyncio.to_thread(
            service.record_attempt,
            learner_id,
            payload.topic_id,
            payload.time_spent,
            payload.success,
            payload.related_topics,
            payload.prerequisites,
        )
    except InvalidInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return _serialize_metrics(pattern)


@app.get(
    "/learners/{learner_id}/topics",
    response_model=List[MetricsResponse],
    summary="List tracked topics and their metrics",
)
async def list_topics(
    learner_id: str,
    service: SchedulerService = Depends(get_service),
) -> List[MetricsResponse]:
    patterns = await asyncio.to_thread(service.list_patterns, learner_id)
    patterns = sorted(patterns, key=lambda pattern: pattern.topic_id)
    return [_serialize_metrics(pattern) for pattern in patterns]


@app.get(
    "/learners/{learner_id}/topics/{topic_id}/recommendations",
    response_model=RecommendationsResponse,
    summary="Current adaptive strategy and insights for a topic",
)
async def get_recommendations(
    learner_id: str,
    topic_id: str,
    service: SchedulerService = Depends(get_service),
) -> RecommendationsResponse:
    recommendations = await asyncio.to_thread(service.get_recommendations, learner_id, topic_id)
    missing = []
    if recommendations.strategy is not None:
        missing = await asyncio.to_thread(service.missing_prerequisites, learner_id, topic_id)
    return _serialize_recommendations(topic_id, recommendations, missing)


@app.post(
    "/learners/{learner_id}/roadmap/sequence",
    response_model=SequenceResponse,
    summary="Order roadmap topics with the genetic sequencer",
)
async def sequence_roadmap(
    learner_id: str,
    payload: SequenceRequest,
    service: SchedulerService = Depends(get_service),
) -> SequenceResponse:
    """Run the sequencer off the event loop; it is CPU-bound and may take a while."""
    try:
        result = await asyncio.to_thread(
            service.sequence_roadmap,
            learner_id,
            payload.topics,
            payload.deadline_seconds,
        )
    except InvalidInputError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return SequenceResponse(
        topics=result.ordering,
        fitness=result.fitness,
        generations=result.generations,
        stopped_early=result.stopped_early,
    )
