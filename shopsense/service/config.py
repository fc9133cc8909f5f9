"""Engine configuration.

Defaults mirror the storefront's production behavior. Hosts can override any
of them in code or through SHOPSENSE_* environment variables.
"""

import logging

from pydantic import ValidationError, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from shopsense.recommender.models import DEFAULT_PRICE_UNIT_FACTOR
from shopsense.recommender.ranking import (
    DEFAULT_MAX_ASSUMED_PRICE,
    DEFAULT_PRICE_WEIGHT,
    DEFAULT_RATING_WEIGHT,
    DEFAULT_RELEVANCE_WEIGHT,
    DEFAULT_TOP_TAG_COUNT,
)
from shopsense.service.exceptions import ConfigurationError

# Configure module logger
logger = logging.getLogger(__name__)

ENV_PREFIX = "SHOPSENSE_"

# Default result sizes per operation
DEFAULT_SEARCH_LIMIT = 20
DEFAULT_SIMILAR_LIMIT = 5
DEFAULT_RECOMMEND_LIMIT = 5
DEFAULT_POPULAR_LIMIT = 10

# Search fetches this many candidates per requested result before ranking
DEFAULT_CANDIDATE_MULTIPLIER = 2
# Most recent behavior events considered for personalization
DEFAULT_HISTORY_LIMIT = 20
DEFAULT_POPULARITY_WINDOW_DAYS = 30


class EngineConfig(BaseSettings):
    """Settings for RecommendationEngine.

    Each field can be set from a SHOPSENSE_<FIELD> environment variable, e.g.
    SHOPSENSE_SEARCH_LIMIT=40. Keyword arguments take precedence over the
    environment. Search weights are normalized to sum to 1 on construction.
    """

    search_limit: int = DEFAULT_SEARCH_LIMIT
    similar_limit: int = DEFAULT_SIMILAR_LIMIT
    recommend_limit: int = DEFAULT_RECOMMEND_LIMIT
    popular_limit: int = DEFAULT_POPULAR_LIMIT
    candidate_multiplier: int = DEFAULT_CANDIDATE_MULTIPLIER
    relevance_weight: float = DEFAULT_RELEVANCE_WEIGHT
    rating_weight: float = DEFAULT_RATING_WEIGHT
    price_weight: float = DEFAULT_PRICE_WEIGHT
    max_assumed_price: int = DEFAULT_MAX_ASSUMED_PRICE
    price_unit_factor: int = DEFAULT_PRICE_UNIT_FACTOR
    history_limit: int = DEFAULT_HISTORY_LIMIT
    top_tag_count: int = DEFAULT_TOP_TAG_COUNT
    popularity_window_days: int = DEFAULT_POPULARITY_WINDOW_DAYS

    model_config = SettingsConfigDict(env_prefix=ENV_PREFIX, frozen=True)

    @field_validator(
        "search_limit",
        "similar_limit",
        "recommend_limit",
        "popular_limit",
        "candidate_multiplier",
        "max_assumed_price",
        "price_unit_factor",
        "history_limit",
        "top_tag_count",
        "popularity_window_days",
    )
    @classmethod
    def _check_positive(cls, value: int, info: ValidationInfo) -> int:
        if value <= 0:
            raise ConfigurationError(info.field_name, value, "must be positive")
        return value

    @field_validator("relevance_weight", "rating_weight", "price_weight")
    @classmethod
    def _check_weight(cls, value: float, info: ValidationInfo) -> float:
        if value < 0:
            raise ConfigurationError(info.field_name, value, "must not be negative")
        return value

    @model_validator(mode="after")
    def _normalize_weights(self) -> "EngineConfig":
        total_weight = self.relevance_weight + self.rating_weight + self.price_weight
        if total_weight <= 0:
            raise ConfigurationError("search weights", total_weight, "must not all be zero")

        # Frozen model: write through object to normalize in place
        object.__setattr__(self, "relevance_weight", self.relevance_weight / total_weight)
        object.__setattr__(self, "rating_weight", self.rating_weight / total_weight)
        object.__setattr__(self, "price_weight", self.price_weight / total_weight)
        return self

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """Build a config from the environment, reporting bad values as ConfigurationError.

        Unset variables keep their defaults.
        """
        try:
            config = cls()
        except ValidationError as e:
            error = e.errors()[0]
            field_name = str(error["loc"][0]) if error["loc"] else "settings"
            raise ConfigurationError(
                ENV_PREFIX + field_name.upper(), error.get("input"), error["msg"]
            ) from e

        if config.model_fields_set:
            logger.info(
                f"Engine config overrides from environment: {sorted(config.model_fields_set)}"
            )

        return config
