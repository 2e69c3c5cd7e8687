# prelab/retry_policy.py
from dataclasses import dataclass, field, replace
from typing import FrozenSet


@dataclass(frozen=True)
class RetryPolicy:
    """
    When and how long to back off between attempts of one LLM request.
    Attempts are numbered from 0; a request makes at most max_retries + 1 attempts.
    """
    max_retries: int = 2
    base_delay: float = 1.5  # seconds, grows linearly with the attempt number
    retryable_statuses: FrozenSet[int] = field(default_factory=lambda: frozenset({429, 503}))

    def should_retry(self, status_code: int, attempt: int) -> bool:
        return status_code in self.retryable_statuses and attempt < self.max_retries

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * (attempt + 1)

    def with_max_retries(self, max_retries: int) -> "RetryPolicy":
        return replace(self, max_retries=max_retries)
