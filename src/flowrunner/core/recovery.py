"""
Failure classification and recovery
"""
import asyncio
import logging
from collections import Counter, deque
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from ..models.execution import Execution, ExecutionStatus, utcnow
from ..models.failure import FailureKind, FailureRecord, RecoveryResult
from ..exceptions import CredentialError


logger = logging.getLogger(__name__)


# first match wins
CLASSIFICATION_RULES: List[Tuple[FailureKind, Tuple[str, ...]]] = [
    (FailureKind.TIMEOUT, ("timeout",)),
    (FailureKind.NETWORK_ERROR, ("network", "fetch")),
    (FailureKind.RATE_LIMIT, ("rate limit", "too many requests")),
    (FailureKind.AUTH_ERROR, ("auth", "unauthorized")),
    (FailureKind.NOT_FOUND, ("not found",)),
]


def classify(error: Union[BaseException, str, None]) -> FailureKind:
    """Classify an error by case-insensitive substring search of its message"""
    message = str(error if error is not None else "").lower()
    for kind, needles in CLASSIFICATION_RULES:
        if any(needle in message for needle in needles):
            return kind
    return FailureKind.UNKNOWN


RetryCallable = Callable[[], Awaitable[Execution]]
SleepCallable = Callable[[float], Awaitable[Any]]


@dataclass
class RecoveryContext:
    """What a strategy knows about the failure it is recovering"""
    workflow_id: str
    error_message: str
    kind: FailureKind
    retry: Optional[RetryCallable] = None
    service_id: Optional[str] = None


Strategy = Callable[[RecoveryContext], Awaitable[RecoveryResult]]


class FailureRecoveryAgent:
    """
    Classifies execution failures and applies a recovery strategy.

    Recovery re-runs the workflow from scratch through ``retry`` when one is
    supplied. Without it the agent is advisory: it walks through the delay
    protocol and reports the retry as successful, without replaying nodes.

    Every failure is recorded in a bounded history used for statistics.
    """

    def __init__(
        self,
        credential_rotator=None,
        max_retries: int = 3,
        backoff_base: float = 1.0,
        rate_limit_cooldown: float = 60.0,
        history_limit: int = 100,
        sleep: SleepCallable = asyncio.sleep
    ):
        self.credential_rotator = credential_rotator
        self.max_retries = max_retries
        self.backoff_base = backoff_base
        self.rate_limit_cooldown = rate_limit_cooldown
        self.failure_history: deque = deque(maxlen=history_limit)
        self._sleep = sleep
        self.recovery_strategies: Dict[FailureKind, Strategy] = {}
        self._setup_default_strategies()

    def _setup_default_strategies(self):
        self.register_strategy(FailureKind.TIMEOUT, self._retry_with_backoff)
        self.register_strategy(FailureKind.NETWORK_ERROR, self._retry_with_backoff)
        self.register_strategy(FailureKind.RATE_LIMIT, self._delay_and_retry)
        self.register_strategy(FailureKind.AUTH_ERROR, self._refresh_credentials_and_retry)

    def register_strategy(self, kind: FailureKind, strategy: Strategy):
        self.recovery_strategies[FailureKind(kind)] = strategy

    def classify(self, error) -> FailureKind:
        return classify(error)

    async def handle_failure(
        self,
        workflow_id: str,
        error: Union[BaseException, str],
        retry: Optional[RetryCallable] = None,
        service_id: Optional[str] = None,
        execution_id: Optional[str] = None
    ) -> RecoveryResult:
        """Classify, attempt recovery once, record the failure. Never raises."""
        message = str(error)
        kind = classify(message)
        context = RecoveryContext(
            workflow_id=workflow_id,
            error_message=message,
            kind=kind,
            retry=retry,
            service_id=service_id
        )

        strategy = self.recovery_strategies.get(kind)
        recovery_error = None
        if strategy is None:
            logger.info(f"No recovery strategy for {kind.value} failure of workflow {workflow_id}")
            result = RecoveryResult(kind=kind, error=message)
        else:
            try:
                result = await strategy(context)
                result.attempted = True
            except Exception as e:
                logger.error(f"Recovery failed for workflow {workflow_id}: {e}", exc_info=True)
                recovery_error = str(e)
                result = RecoveryResult(kind=kind, attempted=True, success=False, error=recovery_error)

        self.failure_history.append(FailureRecord(
            workflow_id=workflow_id,
            error_message=message,
            kind=kind,
            execution_id=execution_id,
            recovery_attempted=result.attempted,
            recovery_success=result.success,
            recovery_attempts=result.attempts,
            recovery_error=recovery_error or (None if result.success else result.error),
            retry_execution_id=result.execution.id if result.execution is not None else None
        ))
        return result

    def backoff_delay(self, attempt: int) -> float:
        """2^attempt seconds, scaled by backoff_base"""
        return self.backoff_base * (2 ** attempt)

    async def _retry_with_backoff(self, context: RecoveryContext, max_retries: int = None) -> RecoveryResult:
        max_retries = self.max_retries if max_retries is None else max_retries
        last_error = context.error_message
        last_execution = None

        for attempt in range(1, max_retries + 1):
            delay = self.backoff_delay(attempt)
            logger.info(
                f"Retry attempt {attempt}/{max_retries} for {context.workflow_id} in {delay}s"
            )
            await self._sleep(delay)

            if context.retry is None:
                return RecoveryResult(kind=context.kind, success=True, attempts=attempt)

            try:
                execution = await context.retry()
            except Exception as e:
                logger.warning(f"Retry {attempt} of workflow {context.workflow_id} raised: {e}")
                last_error = str(e)
                continue

            last_execution = execution
            if execution.status == ExecutionStatus.COMPLETED:
                logger.info(f"Workflow {context.workflow_id} recovered on attempt {attempt}")
                return RecoveryResult(kind=context.kind, success=True, attempts=attempt, execution=execution)
            last_error = execution.error

        logger.warning(f"Max retries exceeded for workflow {context.workflow_id}: {last_error}")
        return RecoveryResult(
            kind=context.kind,
            success=False,
            attempts=max_retries,
            error=f"Max retries exceeded: {last_error}",
            execution=last_execution
        )

    async def _delay_and_retry(self, context: RecoveryContext) -> RecoveryResult:
        logger.info(f"Rate limit detected, waiting {self.rate_limit_cooldown}s before retry")
        await self._sleep(self.rate_limit_cooldown)
        return await self._retry_with_backoff(context, max_retries=1)

    async def _refresh_credentials_and_retry(self, context: RecoveryContext) -> RecoveryResult:
        logger.info(f"Auth error detected, refreshing credentials for {context.service_id}")
        if self.credential_rotator is None:
            logger.warning("No credential rotator configured, retrying with current credentials")
        else:
            try:
                await self.credential_rotator.refresh(context.service_id)
            except CredentialError as e:
                logger.warning(f"Credential refresh failed, retrying with current credentials: {e}")
        return await self._retry_with_backoff(context, max_retries=1)

    def get_failure_stats(self) -> Dict[str, Any]:
        """Totals, recovery rate (percent) and failures in the last 24 hours"""
        total = len(self.failure_history)
        recovered = sum(1 for record in self.failure_history if record.recovery_success)
        cutoff = utcnow() - timedelta(hours=24)
        recent = sum(1 for record in self.failure_history if record.timestamp >= cutoff)

        return {
            "total_failures": total,
            "recovered_failures": recovered,
            "recovery_rate": round(recovered / total * 100, 1) if total else 0.0,
            "recent_failures": recent,
            "by_kind": dict(Counter(record.kind.value for record in self.failure_history)),
        }

    def recent_failures(self, limit: int = 10) -> List[FailureRecord]:
        """Newest first"""
        return list(reversed(self.failure_history))[:limit]

    def get_failure(self, execution_id: str) -> Optional[FailureRecord]:
        """Failure record of the given execution, if it is still in the history"""
        for record in reversed(self.failure_history):
            if record.execution_id == execution_id:
                return record
        return None
