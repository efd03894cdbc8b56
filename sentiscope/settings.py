from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

from sentiscope.label_policy import LabelPolicy


class AnalysisSettings(BaseSettings):
    """
    Environment-driven settings for local + cloud sentiment analysis and face emotion.
    """

    model_config = SettingsConfigDict(env_prefix="", env_file=".env", extra="ignore")

    # ---- Run ----
    # analysis_mode: "local" or "cloud"
    analysis_mode: str = Field(default="local", alias="ANALYSIS_MODE")
    comments_path: str = Field(default="comments.csv", alias="COMMENTS_PATH")
    isolate_item_errors: bool = Field(default=False, alias="ISOLATE_ITEM_ERRORS")

    # ---- Local model ----
    sentiment_model_path: str = Field(
        default="distilbert-base-uncased-finetuned-sst-2-english",
        alias="SENTIMENT_MODEL_PATH",
    )
    sentiment_max_length: int = Field(default=256, alias="SENTIMENT_MAX_LENGTH")
    # Device: "auto" | "cpu" | "cuda"
    sentiment_device: str = Field(default="auto", alias="SENTIMENT_DEVICE")

    # ---- Label policy ----
    # "three_class" | "cutoff" | "band"
    label_policy_mode: str = Field(default="cutoff", alias="LABEL_POLICY_MODE")
    label_cutoff: float = Field(default=0.7, alias="LABEL_CUTOFF")
    label_band_low: float = Field(default=0.4, alias="LABEL_BAND_LOW")
    label_band_high: float = Field(default=0.6, alias="LABEL_BAND_HIGH")
    # JSON object, e.g. {"label_0": "negative", "label_1": "neutral", "label_2": "positive"}
    label_aliases: dict[str, str] = Field(default_factory=dict, alias="LABEL_ALIASES")

    # ---- AI gateway ----
    ai_gateway_url: str = Field(
        default="https://ai.gateway.lovable.dev/v1/chat/completions",
        alias="AI_GATEWAY_URL",
    )
    ai_gateway_model: str = Field(default="google/gemini-2.5-flash", alias="AI_GATEWAY_MODEL")
    ai_gateway_api_key: str = Field(default="", alias="AI_GATEWAY_API_KEY")

    request_timeout_sec: float = Field(default=30.0, alias="REQUEST_TIMEOUT_SEC")
    batch_size: int = Field(default=10, alias="BATCH_SIZE")
    batch_delay_sec: float = Field(default=1.0, alias="BATCH_DELAY_SEC")

    # 0 = abort the run on the first 429
    rate_limit_retries: int = Field(default=0, alias="RATE_LIMIT_RETRIES")
    backoff_base_sec: float = Field(default=2.0, alias="BACKOFF_BASE_SEC")
    backoff_max_sec: float = Field(default=30.0, alias="BACKOFF_MAX_SEC")

    # ---- Face emotion ----
    vision_url: str = Field(default="", alias="VISION_URL")
    face_interval_sec: float = Field(default=1.0, alias="FACE_INTERVAL_SEC")
    face_confidence: float = Field(default=0.85, alias="FACE_CONFIDENCE")
    face_max_regions: int = Field(default=3, alias="FACE_MAX_REGIONS")

    def label_policy(self) -> LabelPolicy:
        return LabelPolicy(
            mode=self.label_policy_mode,  # type: ignore[arg-type]
            cutoff=self.label_cutoff,
            band_low=self.label_band_low,
            band_high=self.label_band_high,
            aliases={k.lower(): v.lower() for k, v in self.label_aliases.items()},
        )


def load_settings() -> AnalysisSettings:
    return AnalysisSettings()
