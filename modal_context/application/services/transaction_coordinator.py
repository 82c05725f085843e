"""Transaction coordinator - the single entry point for callers.

The coordinator validates a claimed transition, runs the caller's
operation only when the rules allow it, records exactly one
TransitionAttempt per invocation, and returns a TransactionResult
envelope. It is the translation boundary between internal failures and
caller-visible results.

Propagation Policy:
- Invalid requests and illegal transitions -> failure result
- Operation exceptions -> failure result (message kept in the audit log)
- Transaction log failures -> propagate (an unaudited transition is
  worse than a failed one)
- Compensating callback failures -> logged, outcome unchanged
- Metrics sink failures -> logged, outcome unchanged
- Cancellation (also during a compensating callback) -> Cancelled
  attempt logged, then the cancellation propagates

Concurrency:
Transitions of the same entity are NOT serialized here. Two callers may
both pass validation against the state each of them observed; storage
collaborators resolve that race (see ConcurrentTransitionError).

Usage:
    coordinator = TransactionCoordinator(rule_store, transaction_log, recorder)
    result = await coordinator.execute_transaction(
        "task", 42, "pending", "in_progress", actor_id=7,
        operation=lambda: task_repository.start(42),
    )
    if not result.success:
        ...  # result.error_code, result.error_message
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, TypeVar
from uuid import uuid4

import structlog
from structlog import get_logger

from modal_context.application.ports.transaction_log import TransactionLogPort
from modal_context.application.ports.transition_metrics import (
    TransitionMetricsProtocol,
)
from modal_context.application.services.compliance_recorder import ComplianceRecorder
from modal_context.application.services.rule_store import RuleStore
from modal_context.application.services.transition_validator import (
    StateLike,
    TransitionValidator,
)
from modal_context.config.transition_config import (
    DEFAULT_TRANSITION_ENGINE_CONFIG,
    TransitionEngineConfig,
)
from modal_context.domain.errors.audit_log import TransactionLogError
from modal_context.domain.errors.transition import (
    ConcurrentTransitionError,
    InvalidTransitionRequestError,
)
from modal_context.domain.models.compliance_record import ComplianceRecord
from modal_context.domain.models.distributed_transaction import (
    NO_COMPENSATION,
    CompensatingActions,
    CompensatingCallback,
    DistributedTransactionContext,
)
from modal_context.domain.models.transaction_result import (
    TransactionErrorCode,
    TransactionResult,
)
from modal_context.domain.models.transition_attempt import TransitionAttempt
from modal_context.domain.models.transition_check import (
    CoordinatorPhase,
    TransitionCheck,
)
from modal_context.domain.models.transition_rules import (
    RuleSnapshot,
    TransitionRuleSet,
)

logger = get_logger()

T = TypeVar("T")

Operation = Callable[[], Awaitable[T]]
DistributedOperation = Callable[[DistributedTransactionContext], Awaitable[T]]

CANCELLED_REASON = "cancelled"

# Caller metadata values shadowed by coordinator-recorded keys land here
SHADOWED_METADATA_KEY = "caller_metadata"


def _elapsed_ms(started: float) -> float:
    return (time.perf_counter() - started) * 1000


def _raw_name(value: object) -> str:
    """Best-effort string form of a possibly malformed identifier."""
    if value is None:
        return ""
    return str(getattr(value, "value", value)).strip()


def _exception_reason(exc: BaseException) -> str:
    return str(exc) or type(exc).__name__


def _merge_audit_metadata(
    caller_metadata: Mapping[str, Any], recorded: Mapping[str, Any], log: Any
) -> dict[str, Any]:
    """Combine caller metadata with the keys the coordinator records itself.

    Recorded keys (exception_type, steps, ...) win. A caller value under
    the same name is kept under SHADOWED_METADATA_KEY instead of being lost.
    """
    merged = dict(caller_metadata)
    shadowed = {key: merged[key] for key in recorded if key in merged}
    merged.update(recorded)
    if shadowed:
        log.warning("audit_metadata_keys_shadowed", keys=sorted(shadowed))
        merged[SHADOWED_METADATA_KEY] = shadowed
    return merged


def _failure_code(exc: Exception) -> TransactionErrorCode:
    if isinstance(exc, ConcurrentTransitionError):
        return TransactionErrorCode.CONCURRENCY_CONFLICT
    return TransactionErrorCode.OPERATION_FAILED


class TransactionCoordinator:
    """Validates, executes and audits entity state transitions.

    Attributes:
        _rule_store: Process-wide transition rules.
        _validator: Request normalization and rule checks.
        _transaction_log: Append-only audit trail (failures propagate).
        _compliance_recorder: Fire-and-forget compliance evaluations.
        _metrics: Optional operational metrics sink.
        _config: History limits and other engine settings.
    """

    def __init__(
        self,
        rule_store: RuleStore,
        transaction_log: TransactionLogPort,
        compliance_recorder: ComplianceRecorder,
        metrics: TransitionMetricsProtocol | None = None,
        config: TransitionEngineConfig | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            rule_store: Loaded rule store.
            transaction_log: Transaction log adapter.
            compliance_recorder: Compliance recorder service.
            metrics: Optional metrics sink.
            config: Engine configuration. Uses default if not provided.
        """
        self._rule_store = rule_store
        self._validator = TransitionValidator(rule_store)
        self._transaction_log = transaction_log
        self._compliance_recorder = compliance_recorder
        self._metrics = metrics
        self._config = config or DEFAULT_TRANSITION_ENGINE_CONFIG

    # =========================================================================
    # Validation
    # =========================================================================

    async def validate_transition(
        self,
        entity_type: StateLike,
        from_state: StateLike,
        to_state: StateLike,
        actor_id: str | int | None = None,
        metadata: Mapping[str, Any] | None = None,
    ) -> TransitionCheck:
        """Check a transition without executing anything.

        Malformed requests produce an invalid check rather than raising.
        Nothing is appended to the transaction log.
        """
        try:
            return await self._validator.validate_transition(
                entity_type, from_state, to_state, actor_id, metadata
            )
        except InvalidTransitionRequestError as exc:
            return TransitionCheck(
                entity_type=_raw_name(entity_type),
                from_state=_raw_name(from_state),
                to_state=_raw_name(to_state),
                is_valid=False,
                reason=str(exc),
            )

    def get_available_transitions(
        self, entity_type: StateLike, from_state: StateLike
    ) -> tuple[str, ...]:
        """Get legal target states (empty for unknown types or states)."""
        return self._validator.available_transitions(entity_type, from_state)

    def get_rules(self, entity_type: str) -> TransitionRuleSet | None:
        return self._rule_store.get_rules(entity_type)

    def list_entity_types(self) -> frozenset[str]:
        return self._rule_store.list_entity_types()

    def get_rules_snapshot(self) -> RuleSnapshot:
        """Current rule snapshot (all entity types, one version)."""
        return self._rule_store.snapshot

    @property
    def rules_version(self) -> int:
        return self._rule_store.version

    async def reload_rules(self) -> RuleSnapshot:
        """Reload all rules from the configured rule source.

        Raises:
            RuleSourceError: If the source is unreadable; old rules stay.
        """
        return await self._rule_store.reload()

    async def update_rules(
        self, entity_type: str, rules: Mapping[str, Any]
    ) -> RuleSnapshot:
        """Replace the rules of one entity type at runtime."""
        return await self._rule_store.update_rules(entity_type, rules)

    # =========================================================================
    # Single-entity transactions
    # =========================================================================

    async def execute_transaction(
        self,
        entity_type: StateLike,
        entity_id: str | int,
        from_state: StateLike,
        to_state: StateLike,
        actor_id: str | int,
        operation: Operation[T],
        metadata: Mapping[str, Any] | None = None,
        *,
        username: str | None = None,
        transaction_id: str | None = None,
    ) -> TransactionResult[T]:
        """Run an operation under a validated state transition.

        The operation is invoked only if the rules permit
        from_state -> to_state. Exactly one TransitionAttempt is appended
        whatever the outcome.

        Args:
            entity_type: Entity type name or enum.
            entity_id: Entity identifier.
            from_state: State the caller observed.
            to_state: Requested state.
            actor_id: Acting user.
            operation: Zero-argument async callable doing the work.
            metadata: Extra audit context stored with the attempt.
            username: Acting user's display name.
            transaction_id: Correlation id, when part of larger work.

        Returns:
            TransactionResult wrapping the operation's value or an error.

        Raises:
            TransactionLogError: If the attempt could not be audited.
            asyncio.CancelledError: If cancelled (after auditing).
        """
        started = time.perf_counter()
        caller_metadata: Mapping[str, Any] = metadata or {}
        recorded: dict[str, Any] = {}
        log = logger.bind(
            entity_type=_raw_name(entity_type),
            entity_id=str(entity_id),
            from_state=_raw_name(from_state),
            to_state=_raw_name(to_state),
            actor_id=str(actor_id),
            transaction_id=transaction_id,
        )
        self._enter_phase(log, CoordinatorPhase.START)
        self._enter_phase(log, CoordinatorPhase.VALIDATING)

        def _attempt_failed(
            entity: str,
            source: str,
            target: str,
            code: TransactionErrorCode,
            reason: str,
        ) -> TransitionAttempt:
            return TransitionAttempt.failed(
                entity_type=entity,
                entity_id=entity_id,
                from_state=source,
                to_state=target,
                user_id=actor_id,
                username=username,
                failure_reason=reason,
                error_code=code.value,
                metadata=_merge_audit_metadata(caller_metadata, recorded, log),
                duration_ms=_elapsed_ms(started),
                transaction_id=transaction_id,
            )

        try:
            check = self._validator.check(entity_type, from_state, to_state)
        except InvalidTransitionRequestError as exc:
            self._enter_phase(log, CoordinatorPhase.REJECTED)
            reason = str(exc)
            attempt_id = await self._append(
                _attempt_failed(
                    _raw_name(entity_type), _raw_name(from_state), _raw_name(to_state),
                    TransactionErrorCode.INVALID_REQUEST, reason,
                ),
                log,
            )
            log.warning("transition_request_invalid", reason=reason, attempt_id=attempt_id)
            return TransactionResult.failed(
                TransactionErrorCode.INVALID_REQUEST, reason, attempt_id, transaction_id
            )

        entity, source, target = check.entity_type, check.from_state, check.to_state
        if not check.is_valid:
            self._enter_phase(log, CoordinatorPhase.REJECTED)
            reason = check.reason or "invalid transition"
            attempt_id = await self._append(
                _attempt_failed(
                    entity, source, target, TransactionErrorCode.INVALID_TRANSITION, reason
                ),
                log,
            )
            log.info(
                "transition_rejected",
                reason=reason,
                available_transitions=list(check.available_transitions),
                attempt_id=attempt_id,
            )
            return TransactionResult.failed(
                TransactionErrorCode.INVALID_TRANSITION, reason, attempt_id, transaction_id
            )

        self._enter_phase(log, CoordinatorPhase.EXECUTING)
        try:
            value = await operation()
        except asyncio.CancelledError:
            self._enter_phase(log, CoordinatorPhase.FAILED)
            attempt_id = await self._append(
                _attempt_failed(
                    entity, source, target, TransactionErrorCode.CANCELLED, CANCELLED_REASON
                ),
                log,
            )
            log.warning("transaction_cancelled", attempt_id=attempt_id)
            raise
        except Exception as exc:
            self._enter_phase(log, CoordinatorPhase.FAILED)
            code = _failure_code(exc)
            reason = _exception_reason(exc)
            recorded["exception_type"] = type(exc).__name__
            attempt_id = await self._append(
                _attempt_failed(entity, source, target, code, reason), log
            )
            log.warning(
                "transaction_failed",
                error_code=code.value,
                error=reason,
                exception_type=type(exc).__name__,
                attempt_id=attempt_id,
            )
            return TransactionResult.failed(code, reason, attempt_id, transaction_id)

        self._enter_phase(log, CoordinatorPhase.SUCCEEDED)
        attempt = TransitionAttempt.succeeded(
            entity_type=entity,
            entity_id=entity_id,
            from_state=source,
            to_state=target,
            user_id=actor_id,
            username=username,
            metadata=_merge_audit_metadata(caller_metadata, recorded, log),
            duration_ms=_elapsed_ms(started),
            transaction_id=transaction_id,
        )
        attempt_id = await self._append(attempt, log)
        log.info(
            "transaction_succeeded",
            attempt_id=attempt_id,
            duration_ms=round(attempt.duration_ms or 0.0, 2),
        )
        return TransactionResult.succeeded(value, attempt_id, transaction_id)

    # =========================================================================
    # Distributed transactions
    # =========================================================================

    async def execute_distributed_transaction(
        self,
        transaction_type: str,
        transaction_id: str | None,
        from_state: str,
        to_state: str,
        actor_id: str | int,
        operation: DistributedOperation[T],
        compensating_actions: CompensatingActions | None = None,
        metadata: Mapping[str, Any] | None = None,
        *,
        username: str | None = None,
    ) -> TransactionResult[T]:
        """Run a multi-entity operation with compensating callbacks.

        There is no validation gate: participants self-validate (e.g., via
        RuleStore.require_transition) and record progress on the shared
        context. After the operation resolves exactly one of on_success
        or on_failure runs, then one attempt tagged with the correlation
        id is appended.

        Args:
            transaction_type: Name of the multi-entity operation.
            transaction_id: Correlation id; generated when None or empty.
            from_state: Aggregate state before the operation.
            to_state: Aggregate state after the operation.
            actor_id: Acting user.
            operation: Async callable receiving the shared context.
            compensating_actions: Optional on_success/on_failure callbacks.
            metadata: Extra audit context stored with the attempt.
            username: Acting user's display name.

        Returns:
            TransactionResult wrapping the operation's value or an error.

        Raises:
            TransactionLogError: If the attempt could not be audited.
            asyncio.CancelledError: If cancelled (after compensating and auditing).
        """
        started = time.perf_counter()
        correlation_id = transaction_id or str(uuid4())
        actions = compensating_actions or NO_COMPENSATION
        caller_metadata: Mapping[str, Any] = metadata or {}
        recorded: dict[str, Any] = {}
        context = DistributedTransactionContext(
            transaction_id=correlation_id,
            transaction_type=transaction_type,
            from_state=from_state,
            to_state=to_state,
        )

        with structlog.contextvars.bound_contextvars(transaction_id=correlation_id):
            log = logger.bind(
                transaction_type=transaction_type,
                from_state=from_state,
                to_state=to_state,
                actor_id=str(actor_id),
            )
            self._enter_phase(log, CoordinatorPhase.START)
            self._enter_phase(log, CoordinatorPhase.EXECUTING)

            def _attempt(
                code: TransactionErrorCode | None, reason: str | None
            ) -> TransitionAttempt:
                recorded["context_result"] = context.result
                recorded["steps"] = list(context.steps)
                audit_metadata = _merge_audit_metadata(caller_metadata, recorded, log)
                if code is None:
                    return TransitionAttempt.succeeded(
                        entity_type=transaction_type,
                        entity_id=correlation_id,
                        from_state=from_state,
                        to_state=to_state,
                        user_id=actor_id,
                        username=username,
                        metadata=audit_metadata,
                        duration_ms=_elapsed_ms(started),
                        transaction_id=correlation_id,
                    )
                return TransitionAttempt.failed(
                    entity_type=transaction_type,
                    entity_id=correlation_id,
                    from_state=from_state,
                    to_state=to_state,
                    user_id=actor_id,
                    username=username,
                    failure_reason=reason or code.value,
                    error_code=code.value,
                    metadata=audit_metadata,
                    duration_ms=_elapsed_ms(started),
                    transaction_id=correlation_id,
                )

            async def _audit_cancelled() -> None:
                self._enter_phase(log, CoordinatorPhase.FAILED)
                attempt_id = await self._append(
                    _attempt(TransactionErrorCode.CANCELLED, CANCELLED_REASON), log
                )
                log.warning("distributed_transaction_cancelled", attempt_id=attempt_id)

            try:
                value = await operation(context)
            except asyncio.CancelledError:
                # The attempt is appended even if on_failure is cancelled too
                try:
                    await self._compensate(
                        actions.on_failure, context, recorded, log, "on_failure"
                    )
                finally:
                    await _audit_cancelled()
                raise
            except Exception as exc:
                code = _failure_code(exc)
                reason = _exception_reason(exc)
                recorded["exception_type"] = type(exc).__name__
                log.warning(
                    "distributed_operation_failed",
                    error=reason,
                    exception_type=type(exc).__name__,
                )
                try:
                    await self._compensate(
                        actions.on_failure, context, recorded, log, "on_failure"
                    )
                except asyncio.CancelledError:
                    await _audit_cancelled()
                    raise
                self._enter_phase(log, CoordinatorPhase.FAILED)
                attempt_id = await self._append(_attempt(code, reason), log)
                log.warning(
                    "distributed_transaction_failed",
                    error_code=code.value,
                    attempt_id=attempt_id,
                )
                return TransactionResult.failed(code, reason, attempt_id, correlation_id)

            try:
                await self._compensate(
                    actions.on_success, context, recorded, log, "on_success"
                )
            except asyncio.CancelledError:
                recorded["operation_completed"] = True
                await _audit_cancelled()
                raise
            self._enter_phase(log, CoordinatorPhase.SUCCEEDED)
            attempt_id = await self._append(_attempt(None, None), log)
            log.info(
                "distributed_transaction_succeeded",
                attempt_id=attempt_id,
                steps=len(context.steps),
            )
            return TransactionResult.succeeded(value, attempt_id, correlation_id)

    # =========================================================================
    # Audit queries and compliance
    # =========================================================================

    async def get_entity_transactions(
        self,
        entity_type: str,
        entity_id: str | int,
        limit: int | None = None,
    ) -> tuple[TransitionAttempt, ...]:
        """Get the transition history of an entity, newest first.

        The limit defaults to and is capped by the configured history limits.

        Raises:
            TransactionLogError: If the query fails.
        """
        return await self._transaction_log.get_entity_history(
            entity_type.strip(),
            str(entity_id),
            self._config.clamp_history_limit(limit),
        )

    async def get_correlated_transactions(
        self, transaction_id: str
    ) -> tuple[TransitionAttempt, ...]:
        """Get every attempt tagged with a correlation id, oldest first."""
        return await self._transaction_log.get_by_transaction_id(transaction_id)

    async def log_compliance_check(
        self,
        entity_type: str,
        entity_id: str | int,
        actor_id: str | int,
        rule_id: str,
        rule_name: str,
        is_compliant: bool,
        message: str,
        transaction_id: str | None = None,
    ) -> ComplianceRecord | None:
        """Record a compliance evaluation (never fails the caller).

        Returns:
            The stored record, or None if it could not be persisted.
        """
        return await self._compliance_recorder.record(
            entity_type,
            entity_id,
            actor_id,
            rule_id,
            rule_name,
            is_compliant,
            message,
            transaction_id=transaction_id,
        )

    async def get_entity_compliance(
        self,
        entity_type: str,
        entity_id: str | int,
        limit: int | None = None,
    ) -> tuple[ComplianceRecord, ...]:
        return await self._compliance_recorder.get_entity_compliance(
            entity_type, entity_id, self._config.clamp_history_limit(limit)
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _enter_phase(self, log: Any, phase: CoordinatorPhase) -> None:
        log.debug("coordinator_phase", phase=phase.value)

    async def _append(self, attempt: TransitionAttempt, log: Any) -> int:
        """Append an attempt; failures propagate to the caller."""
        try:
            attempt_id = await self._transaction_log.append(attempt)
        except TransactionLogError as exc:
            log.critical(
                "transaction_log_append_failed",
                error=str(exc),
                success=attempt.success,
            )
            raise
        if self._metrics is not None:
            # Attempt is committed; metrics errors are logged only
            try:
                self._metrics.record_attempt(
                    attempt.entity_type,
                    "success" if attempt.success else (attempt.error_code or "failure"),
                    attempt.duration_ms / 1000 if attempt.duration_ms is not None else None,
                )
            except Exception:
                log.exception("transition_metrics_failed", attempt_id=attempt_id)
        return attempt_id

    async def _compensate(
        self,
        callback: CompensatingCallback | None,
        context: DistributedTransactionContext,
        recorded: dict[str, Any],
        log: Any,
        callback_name: str,
    ) -> None:
        """Run one compensating callback, best effort.

        Exceptions are logged and noted in the audit metadata. Cancellation
        is noted too, then propagates so the caller can audit and re-raise.
        """
        if callback is None:
            return
        self._enter_phase(log, CoordinatorPhase.COMPENSATING)
        try:
            await callback(context)
        except asyncio.CancelledError:
            recorded["compensation_error"] = CANCELLED_REASON
            log.warning("compensation_cancelled", callback=callback_name)
            raise
        except Exception as exc:
            recorded["compensation_error"] = _exception_reason(exc)
            log.exception(
                "compensation_failed",
                callback=callback_name,
                error=_exception_reason(exc),
                exception_type=type(exc).__name__,
            )
            if self._metrics is not None:
                try:
                    self._metrics.record_compensation_failure(context.transaction_type)
                except Exception:
                    log.exception("transition_metrics_failed")
            return
        log.info("compensation_completed", callback=callback_name)
