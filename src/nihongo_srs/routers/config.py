from fastapi import APIRouter

from ..config import settings


router = APIRouter()


@router.get("/config")
def get_runtime_config() -> dict[str, object]:
    """Expose the study settings the frontend needs.

    フロントエンドが表示に使う学習設定（無制限モード・ランダム順・新規上限）を返す。
    """
    return {
        "unlimited_reviews": settings.unlimited_reviews,
        "random_order": settings.random_order,
        "max_new_per_session": settings.srs_max_new_per_session,
    }
