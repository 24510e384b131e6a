from datetime import datetime

from pydantic import BaseModel, ConfigDict

from ..srs import Level, VocabularyItem


class VocabularyCard(BaseModel):
    """A single vocabulary word as shown on the frontend."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    level: Level
    category: str
    front: str
    back: str
    created_at: datetime | None = None

    @classmethod
    def from_item(cls, item: VocabularyItem) -> "VocabularyCard":
        return cls.model_validate(item)


class VocabularyListResponse(BaseModel):
    items: list[VocabularyCard]


class CategoryCount(BaseModel):
    name: str
    count: int


class CategoryListResponse(BaseModel):
    """レベル内のカテゴリ一覧（KANJI が先頭、以降は名前順）。"""

    level: Level
    categories: list[CategoryCount]


class LevelStatsResponse(BaseModel):
    """レベル単位の進捗統計。

    - due: 現時点で復習期限を迎えた語数
    - new: 一度も回答していない語数
    - reviewed: 1 回以上回答した語数
    """

    level: Level
    total: int
    due: int
    new: int
    reviewed: int


class VocabularyImportResponse(BaseModel):
    level: Level
    parsed: int
    added: int
