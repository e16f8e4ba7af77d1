from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    pdf_engine: str = "pdfplumber"

    # Extraction readiness gate
    grading_min_extracted_chars: int = 700
    grading_min_extraction_confidence: float = 0.68
    grading_min_page_count: int = 1
    grading_max_warnings_before_block: int = 8

    # Extraction quality routing
    auto_ready_min_quality_score: int = 72
    blocked_max_quality_score: int = 40

    # Grading confidence
    modality_missing_cap: float = 0.65
    extraction_bonus_value: float = 0.04

    # Equation fallback
    equation_fallback_enabled: bool = False
    equation_fallback_max_candidates: int = 4
    equation_fallback_min_confidence_to_skip: float = 0.86

    # Equation recovery provider
    equation_recovery_provider: str = "example"
    equation_recovery_api_key: str = ""
    equation_recovery_model_name: str = "gpt-4o-mini"
    equation_recovery_base_url: str = ""
    equation_recovery_timeout_seconds: int = 30
    equation_recovery_temperature: float = 0.0

    policy_file: str = ""
