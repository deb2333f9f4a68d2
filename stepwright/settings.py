from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

BackoffKind = Literal['exponential', 'linear', 'constant']


class RetrySettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    max_retries: int = Field(3, ge=0, description="Retries after the first attempt; total attempts are max_retries + 1.")
    backoff: BackoffKind = 'exponential'
    initial_delay_seconds: float = Field(1.0, ge=0.0, description="Base delay fed into the backoff formula.")
    max_delay_seconds: float = Field(30.0, ge=0.0, description="Upper bound on any single delay, jitter included.")


class CircuitBreakerSettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    failure_threshold: int = Field(5, ge=1, description="Consecutive failures that open a closed circuit.")
    success_threshold: int = Field(2, ge=1, description="Consecutive half-open successes that close the circuit.")
    timeout_seconds: float = Field(60.0, ge=0.0, description="How long an open circuit rejects calls before probing.")


class CacheSettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    max_size: int = Field(100, ge=1, description="Maximum number of URLs kept.")
    ttl_seconds: float = Field(60.0, gt=0.0, description="Entries older than this (from insertion) are misses.")
    max_entry_size: int = Field(500 * 1024, ge=1, description="Summaries larger than this many UTF-8 bytes are never stored.")


class ExecutorSettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    max_recursion_depth: int = Field(2, ge=0, description="Bound on DOM <-> vision fallback cycles for one action.")
    navigation_timeout_seconds: float = 30.0
    default_wait_timeout_seconds: float = 5.0
    fallback_discovery_attempts: int = Field(3, ge=1)
    fallback_discovery_delay_seconds: float = Field(0.5, ge=0.0, description="Attempt i waits delay * (i + 1) before rediscovery.")
    stabilization_timeout_seconds: float = 2.0
    action_timeout_seconds: float | None = Field(
        None,
        description="Optional deadline for one execute() call; exceeding it yields a failed result.",
    )


class PlannerSettings(BaseModel):
    model_config = ConfigDict(extra='forbid')

    model: str | None = Field(None, description="Completion model; defaults to CONFIG.OPENAI_MODEL.")
    max_refinement_history: int = Field(20, ge=1, description="Oldest refinement records are dropped beyond this many.")
    refinement_confidence_threshold: float = Field(0.6, ge=0.0, le=1.0)
    default_refinement_confidence: float = Field(0.5, ge=0.0, le=1.0, description="Assumed when a refinement omits confidence.")
    max_structure_chars: int = Field(15000, ge=1000, description="Structure summaries are truncated to this length in prompts.")
    structure_max_elements: int = 200
    adapt_max_retries: int = 2
    refinement_retry: RetrySettings = Field(
        default_factory=lambda: RetrySettings(max_retries=2, initial_delay_seconds=1.0, max_delay_seconds=10.0)
    )


class EngineSettings(BaseModel):
    """Aggregated tunables for one engine; every section has working defaults."""

    model_config = ConfigDict(extra='forbid')

    llm_retry: RetrySettings = Field(
        default_factory=lambda: RetrySettings(max_retries=3, initial_delay_seconds=1.0, max_delay_seconds=10.0)
    )
    circuit_breaker: CircuitBreakerSettings = Field(default_factory=CircuitBreakerSettings)
    cache: CacheSettings = Field(default_factory=CacheSettings)
    executor: ExecutorSettings = Field(default_factory=ExecutorSettings)
    planner: PlannerSettings = Field(default_factory=PlannerSettings)

    @model_validator(mode='after')
    def _check_delays(self) -> 'EngineSettings':
        for section in (self.llm_retry, self.planner.refinement_retry):
            if section.max_delay_seconds < section.initial_delay_seconds:
                raise ValueError('max_delay_seconds must be >= initial_delay_seconds')
        return self
