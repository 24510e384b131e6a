from fastapi import APIRouter, Depends, HTTPException

from ..config import settings
from ..flows.review_session import ReviewSessionFlow
from ..logging import logger
from ..models.review import (
    ReviewAnswerRequest,
    ReviewQueueCard,
    ReviewSessionRequest,
    ReviewSessionResponse,
    ReviewStats,
    SchedulingStateModel,
)
from ..models.vocabulary import VocabularyCard
from ..store import SRSSQLiteStore, StorageUnavailableError, get_store

router = APIRouter(tags=["review"])


def get_review_flow(store: SRSSQLiteStore = Depends(get_store)) -> ReviewSessionFlow:
    """Build a flow wired to the current settings flags."""
    return ReviewSessionFlow(
        store,
        store,
        unlimited_reviews=settings.unlimited_reviews,
        max_new=settings.srs_max_new_per_session,
    )


def storage_error(exc: StorageUnavailableError, *, operation: str) -> HTTPException:
    logger.error("storage_request_failed", operation=operation, error=str(exc))
    return HTTPException(status_code=503, detail="storage unavailable")


@router.post("/session", response_model=ReviewSessionResponse, summary="復習セッションを開始")
async def start_session(
    req: ReviewSessionRequest, flow: ReviewSessionFlow = Depends(get_review_flow)
) -> ReviewSessionResponse:
    """Return the shuffled review queue and its due/new counts."""
    try:
        session = flow.start_session(req.level, req.categories)
    except StorageUnavailableError as exc:
        raise storage_error(exc, operation="start_session") from exc
    queue = [
        ReviewQueueCard(
            card=VocabularyCard.from_item(card.item),
            progress=SchedulingStateModel.from_state(card.state) if card.state else None,
        )
        for card in session.queue
    ]
    stats = ReviewStats(
        total=session.stats.total, due=session.stats.due, new=session.stats.new
    )
    return ReviewSessionResponse(queue=queue, stats=stats)


@router.post("/answer", response_model=SchedulingStateModel, summary="採点して次回出題時刻を更新")
async def answer(
    req: ReviewAnswerRequest, flow: ReviewSessionFlow = Depends(get_review_flow)
) -> SchedulingStateModel:
    """Grade an item with the SM-2 variant and return the stored progress."""
    try:
        state = flow.answer(req.item_id, req.level, req.categories, req.quality)
    except StorageUnavailableError as exc:
        raise storage_error(exc, operation="answer") from exc
    return SchedulingStateModel.from_state(state)
