import random

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ..config import settings
from ..flows.review_session import ReviewSessionFlow
from ..importer import VocabularyImportError, decode_csv_bytes, parse_vocabulary_csv
from ..logging import logger
from ..models.vocabulary import (
    CategoryCount,
    CategoryListResponse,
    LevelStatsResponse,
    VocabularyCard,
    VocabularyImportResponse,
    VocabularyListResponse,
)
from ..srs import Level
from ..store import SRSSQLiteStore, StorageUnavailableError, get_store
from .review import get_review_flow, storage_error

router = APIRouter(tags=["vocabulary"])


@router.get("/{level}", response_model=VocabularyListResponse, summary="語彙一覧")
async def list_vocabulary(
    level: Level,
    category: list[str] | None = Query(default=None),
    store: SRSSQLiteStore = Depends(get_store),
) -> VocabularyListResponse:
    """List the words of a level; shuffled when RANDOM_ORDER is enabled."""
    try:
        items = store.list_vocabulary(level, category)
    except StorageUnavailableError as exc:
        raise storage_error(exc, operation="list_vocabulary") from exc
    if settings.random_order:
        random.shuffle(items)
    return VocabularyListResponse(items=[VocabularyCard.from_item(it) for it in items])


@router.get("/{level}/categories", response_model=CategoryListResponse, summary="カテゴリ一覧")
async def list_categories(
    level: Level, flow: ReviewSessionFlow = Depends(get_review_flow)
) -> CategoryListResponse:
    try:
        summaries = flow.categories(level)
    except StorageUnavailableError as exc:
        raise storage_error(exc, operation="list_categories") from exc
    return CategoryListResponse(
        level=level,
        categories=[CategoryCount(name=s.name, count=s.count) for s in summaries],
    )


@router.get("/{level}/stats", response_model=LevelStatsResponse, summary="レベル別の進捗統計")
async def level_stats(
    level: Level, flow: ReviewSessionFlow = Depends(get_review_flow)
) -> LevelStatsResponse:
    try:
        stats = flow.level_stats(level)
    except StorageUnavailableError as exc:
        raise storage_error(exc, operation="level_stats") from exc
    return LevelStatsResponse(
        level=level,
        total=stats.total,
        due=stats.due,
        new=stats.new,
        reviewed=stats.reviewed,
    )


@router.post("/{level}/import", response_model=VocabularyImportResponse, summary="CSV から語彙を取り込む")
async def import_vocabulary(
    level: Level,
    request: Request,
    store: SRSSQLiteStore = Depends(get_store),
) -> VocabularyImportResponse:
    """Import a CSV body (columns: Lesson, Japanese, English).

    既に同じ level/category/front の語がある行は追加しない。
    """
    raw = await request.body()
    try:
        drafts = parse_vocabulary_csv(decode_csv_bytes(raw), level)
    except VocabularyImportError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    try:
        added = store.add_vocabulary(drafts)
    except StorageUnavailableError as exc:
        raise storage_error(exc, operation="import_vocabulary") from exc
    logger.info("vocabulary_imported", level=level.value, parsed=len(drafts), added=added)
    return VocabularyImportResponse(level=level, parsed=len(drafts), added=added)
