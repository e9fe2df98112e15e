from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central config loaded from environment variables and optionally .env (local).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # -------------------------
    # Relational store
    # -------------------------
    database_url: str = Field("sqlite:///./analytics.db", alias="DATABASE_URL")

    # -------------------------
    # Outlier band (values strictly outside are flagged)
    # -------------------------
    outlier_low_threshold: float = Field(100.0, alias="OUTLIER_LOW_THRESHOLD")
    outlier_high_threshold: float = Field(1000.0, alias="OUTLIER_HIGH_THRESHOLD")

    # -------------------------
    # Reporting
    # -------------------------
    top_n_per_category: int = Field(5, alias="TOP_N_PER_CATEGORY")
    log_level: str = Field("INFO", alias="LOG_LEVEL")

    def model_post_init(self, __context) -> None:
        """
        Normalize the outlier band: a swapped pair is reordered so low <= high.
        """
        if self.outlier_low_threshold > self.outlier_high_threshold:
            self.outlier_low_threshold, self.outlier_high_threshold = (
                self.outlier_high_threshold,
                self.outlier_low_threshold,
            )
        self.log_level = self.log_level.strip().upper() or "INFO"


settings = Settings()
