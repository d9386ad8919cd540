"""Configuration management for the route engine."""

import os
from dataclasses import dataclass, field
from os import environ
from typing import Optional


def _optional_int(name: str) -> Optional[int]:
    value = environ.get(name, "").strip()
    return int(value) if value else None


@dataclass
class Config:
    """Application configuration loaded from environment variables."""

    # Database - EDTear-style Postgres holding stations and listing history
    # Requires DB_CONNECTION_STRING env var (no default for security)
    db_connection_string: str = field(
        default_factory=lambda: environ.get("DB_CONNECTION_STRING", "")
    )
    db_pool_size: int = field(
        default_factory=lambda: int(environ.get("DB_POOL_SIZE", "5"))
    )

    # Worker pool for pair solving
    # Defaults to the number of CPUs; each worker solves a chunk of pairs at a time
    max_workers: int = field(
        default_factory=lambda: int(
            environ.get("MAX_WORKERS", str(os.cpu_count() or 1))
        )
    )
    pair_chunk_size: int = field(
        default_factory=lambda: int(environ.get("PAIR_CHUNK_SIZE", "256"))
    )

    # Number of routes kept by the ranker
    top_n: int = field(default_factory=lambda: int(environ.get("TOP_N", "5")))

    # Fraction of the galaxy sampled when the caller does not say otherwise
    # The full galaxy is ~40k stations; 0.01 keeps the pair count near 160k
    default_sample_probability: float = field(
        default_factory=lambda: float(
            environ.get("DEFAULT_SAMPLE_PROBABILITY", "0.01")
        )
    )

    # Per-pair wall clock limit handed to HiGHS (seconds)
    solver_time_limit: float = field(
        default_factory=lambda: float(environ.get("SOLVER_TIME_LIMIT", "5.0"))
    )

    # Seed for the station sampler. Unset means fresh entropy per run
    random_seed: Optional[int] = field(
        default_factory=lambda: _optional_int("RANDOM_SEED")
    )

    # Logging configuration
    # LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    # LOG_FORMAT: json (for production), text (for local development)
    log_level: str = field(
        default_factory=lambda: environ.get("LOG_LEVEL", "INFO").upper()
    )
    log_format: str = field(
        default_factory=lambda: environ.get("LOG_FORMAT", "json").lower()
    )

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []
        if not self.db_connection_string:
            errors.append("DB_CONNECTION_STRING is required")
        if self.db_pool_size < 1:
            errors.append("DB_POOL_SIZE must be at least 1")
        if self.max_workers < 1:
            errors.append("MAX_WORKERS must be at least 1")
        if self.pair_chunk_size < 1:
            errors.append("PAIR_CHUNK_SIZE must be at least 1")
        if self.top_n < 1:
            errors.append("TOP_N must be at least 1")
        if not 0.0 < self.default_sample_probability <= 1.0:
            errors.append("DEFAULT_SAMPLE_PROBABILITY must be in (0, 1]")
        if self.solver_time_limit <= 0:
            errors.append("SOLVER_TIME_LIMIT must be positive")
        if self.log_format not in ("json", "text"):
            errors.append("LOG_FORMAT must be 'json' or 'text'")
        return errors


# Global config instance
config = Config()
