"""Centralized configuration for documenter-search using Pydantic Settings."""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from documenter_search.observability.logging import configure_logging
from documenter_search.search.scoring import ScoringWeights


class Settings(BaseSettings):
    """Strictly typed engine configuration loaded from ``DOCS_SEARCH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DOCS_SEARCH_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Results
    page_size: int = Field(default=10, ge=1, le=500, description="Results per page")
    excerpt_chars: int = Field(default=160, ge=40, description="Maximum excerpt length in characters")
    highlight_style: Literal["plain", "html"] = Field(
        default="plain", description="Highlight markers: [[term]] (plain) or <mark>term</mark> (html)"
    )

    # Analysis and matching
    analyzer: Literal["default", "english"] = Field(
        default="default", description="Analyzer shared by index builds and queries"
    )
    min_prefix_length: int = Field(
        default=2, ge=1, description="Shortest query term expanded to title tokens it prefixes"
    )
    max_prefix_expansions: int | None = Field(
        default=None, ge=1, description="Optional cap on title tokens one prefix expands to; the shortest are kept"
    )
    enable_fuzzy: bool = Field(default=True, description="Fall back to edit-distance matching for unmatched terms")
    enable_phrase_bonus: bool = Field(default=True, description="Reward multi-term queries found as phrases")

    # Scoring
    title_weight: float = Field(default=5.0, gt=0)
    page_weight: float = Field(default=2.0, gt=0)
    text_weight: float = Field(default=1.0, gt=0)
    prefix_discount: float = Field(default=0.8, gt=0, lt=1)
    fuzzy_discount: float = Field(default=0.5, gt=0, lt=1)
    page_bonus: float = Field(default=0.25, ge=0, description="Tie-break bonus for page-level records")
    phrase_bonus: float = Field(default=1.0, ge=0)

    # Query execution
    query_cache_size: int = Field(default=128, ge=0, description="Ranked queries kept for pagination")
    async_chunk_size: int = Field(default=256, ge=1, description="Candidates scored between event-loop yields")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    log_json: bool = Field(default=True, description="Emit structured JSON logs")

    @model_validator(mode="after")
    def _check_weight_ordering(self) -> "Settings":
        if self.title_weight <= self.page_weight + self.text_weight + self.page_bonus:
            raise ValueError(
                "title_weight must exceed page_weight + text_weight + page_bonus so that a title match "
                "always outranks matches in weaker fields"
            )
        if self.fuzzy_discount > self.prefix_discount:
            raise ValueError("fuzzy_discount must not exceed prefix_discount")
        return self

    def scoring_weights(self) -> ScoringWeights:
        """Return the frozen scoring weights used by the query engine."""
        return ScoringWeights(
            title_weight=self.title_weight,
            page_weight=self.page_weight,
            text_weight=self.text_weight,
            prefix_discount=self.prefix_discount,
            fuzzy_discount=self.fuzzy_discount,
            page_bonus=self.page_bonus,
            phrase_bonus=self.phrase_bonus,
        )

    def apply_logging(self, *, logger_levels: dict[str, str] | None = None) -> None:
        """Configure root logging from ``log_level`` and ``log_json``."""
        configure_logging(self.log_level, self.log_json, logger_levels=logger_levels)
