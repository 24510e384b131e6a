from fastapi import APIRouter, Depends

from ..logging import logger
from ..store import SRSSQLiteStore, StorageUnavailableError, get_store
from .review import storage_error

router = APIRouter(tags=["data"])


@router.delete("/data", summary="全データ削除")
async def reset_data(store: SRSSQLiteStore = Depends(get_store)) -> dict[str, bool]:
    """Delete every vocabulary word and all SRS progress. Cannot be undone."""
    try:
        store.reset()
    except StorageUnavailableError as exc:
        raise storage_error(exc, operation="reset_data") from exc
    logger.warning("data_reset")
    return {"ok": True}
