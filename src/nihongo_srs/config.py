from typing import Annotated

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic_settings.sources.types import NoDecode


DEFAULT_DB_PATH = ".data/srs.sqlite3"
DEFAULT_MAX_NEW_PER_SESSION = 20


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    環境変数から読み込まれるアプリ設定クラス。
    - environment: 実行環境（development/staging/production など）
    - srs_db_path: 語彙と学習進捗を保存する SQLite DB
    - unlimited_reviews / random_order: 学習画面の設定フラグ
    """

    environment: str = Field(
        default="development",
        description="Runtime environment / 実行環境",
    )

    # --- SRS（復習）の永続化設定 ---
    srs_db_path: str = Field(
        default=DEFAULT_DB_PATH,
        description="Path to SRS SQLite database / SRS用SQLite DBパス",
    )
    srs_max_new_per_session: int = Field(
        default=DEFAULT_MAX_NEW_PER_SESSION,
        description="Upper bound of new items per review session / 1セッションあたりの新規語彙の上限",
    )

    # --- 学習設定フラグ ---
    unlimited_reviews: bool = Field(
        default=False,
        description=(
            "Disable due/new filtering and the new-item cap / "
            "復習対象の絞り込みと新規上限を無効化する"
        ),
    )
    random_order: bool = Field(
        default=False,
        description="Shuffle raw vocabulary listings / 語彙一覧をランダム順で返す",
    )

    # --- HTTP ---
    allowed_cors_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(),
        description="Comma separated CORS origins / CORS を許可するオリジン（カンマ区切り）",
    )

    # --- Operations/Observability ---
    sentry_dsn: str | None = Field(default=None, description="Sentry DSN (enable if set)")

    # --- Strict mode ---
    strict_mode: bool = Field(
        default=True,
        description="Fail fast on missing/invalid configuration (disable only for tests)",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("allowed_cors_origins", mode="before")
    @classmethod
    def _normalise_allowed_cors_origins(
        cls, raw_origins: object
    ) -> tuple[str, ...] | object:  # pragma: no cover - pydantic handles typing
        """Convert environment input into a deduplicated tuple of origins."""

        if raw_origins is None:
            candidates: list[str] = []
        elif isinstance(raw_origins, str):
            candidates = raw_origins.split(",")
        else:
            try:
                candidates = list(raw_origins)  # type: ignore[call-overload]
            except TypeError:
                return raw_origins

        normalised: list[str] = []
        seen: set[str] = set()
        for candidate in candidates:
            if not isinstance(candidate, str):
                continue
            trimmed = candidate.strip()
            if not trimmed or trimmed in seen:
                continue
            seen.add(trimmed)
            normalised.append(trimmed)
        return tuple(normalised)

    @model_validator(mode="after")
    def _validate_strict(self) -> "Settings":
        """STRICT_MODE 時は明らかに不正な SRS 設定を起動時に拒否する。"""

        if not self.strict_mode:
            return self
        if not (self.srs_db_path or "").strip():
            raise ValueError("SRS_DB_PATH must be set when STRICT_MODE=true")
        if self.srs_max_new_per_session < 0:
            raise ValueError("SRS_MAX_NEW_PER_SESSION must be >= 0 when STRICT_MODE=true")
        return self


settings = Settings()
