"""Single-flight submission pipeline for privileged contract calls."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from ..classifier import classify_error
from ..constants import get_network_profile
from ..events import NotificationChannel
from ..exceptions import BusyError, ContractNotFoundError, ContractRevertError
from ..types import (
    OperationKind,
    OperationResult,
    OperationStatus,
    PendingOperation,
    SubmittedTransaction,
    Topic,
)
from ..utils import apply_gas_margin
from .connections import ConnectionManager
from .operations import OperationSpec, get_operation

logger = logging.getLogger(__name__)

RefreshCallback = Callable[[], Awaitable[Any]]


class PipelineGuard:
    """Process-wide marker allowing at most one privileged operation at a time."""

    def __init__(self) -> None:
        self._pending: PendingOperation | None = None

    @property
    def active(self) -> PendingOperation | None:
        return self._pending

    @property
    def is_busy(self) -> bool:
        return self._pending is not None

    def acquire(self, kind: OperationKind) -> PendingOperation:
        if self._pending is not None:
            raise BusyError(active=self._pending, details={"active": self._pending.kind.value})
        self._pending = PendingOperation(kind=kind)
        return self._pending

    def release(self) -> None:
        self._pending = None


class TransactionPipeline:
    """Run a privileged operation: validate, confirm, estimate, submit, await, reconcile."""

    def __init__(
        self,
        connections: ConnectionManager,
        channel: NotificationChannel,
        *,
        guard: PipelineGuard | None = None,
        on_success: RefreshCallback | None = None,
    ) -> None:
        self._connections = connections
        self._channel = channel
        self.guard = guard or PipelineGuard()
        self._on_success = on_success

    def set_refresh_callback(self, callback: RefreshCallback | None) -> None:
        self._on_success = callback

    async def execute(self, kind: OperationKind, inputs: Any) -> OperationResult:
        spec = get_operation(kind)

        try:
            self.guard.acquire(kind)
        except BusyError as exc:
            logger.info("Rejected %s: %s is still pending", kind.value, exc.details.get("active"))
            self._channel.warning(exc.message, operation=kind.value)
            return OperationResult(kind, OperationStatus.REJECTED, exc.message, error=exc)

        self._channel.state(Topic.BUSY, "busy", busy=True, operation=kind.value)
        try:
            return await self._run(spec, inputs)
        finally:
            self.guard.release()
            self._channel.state(Topic.BUSY, "idle", busy=False, operation=kind.value)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    async def _run(self, spec: OperationSpec, inputs: Any) -> OperationResult:
        kind = spec.kind

        try:
            self._connections.ensure_connected()
            await self._connections.enforce_network()
            gateway = self._connections.gateway
            sender = self._connections.state.wallet_address
            assert sender is not None
            if not gateway.is_configured:
                raise ContractNotFoundError(
                    f"No contract address is configured for {self._connections.network_label()}"
                )
            spec.validate(inputs)
            prepared = await spec.prepare(inputs, gateway)
        except Exception as exc:
            return self._fail(kind, OperationStatus.REJECTED, exc)

        if prepared.confirm_prompt is not None:
            if not await self._channel.confirm(prepared.confirm_prompt):
                logger.info("%s cancelled by the operator", kind.value)
                self._channel.info("Cancelled", operation=kind.value)
                return OperationResult(kind, OperationStatus.CANCELLED, "Cancelled")

        try:
            estimate = await gateway.estimate_gas(prepared.method, prepared.args, sender=sender)
        except Exception as exc:
            return self._fail(kind, OperationStatus.FAILED, exc)

        gas_limit = apply_gas_margin(estimate, spec.gas_margin)
        logger.info(
            "Dispatching %s via %s (gas estimate=%s limit=%s)",
            kind.value,
            prepared.method,
            estimate,
            gas_limit,
        )
        try:
            handle = await gateway.transact(
                prepared.method, prepared.args, sender=sender, gas_limit=gas_limit
            )
        except Exception as exc:
            return self._fail(kind, OperationStatus.FAILED, exc)

        submitted = SubmittedTransaction(
            hash=handle.hash, gas_estimate=estimate, gas_limit_sent=gas_limit
        )
        explorer_url = get_network_profile(gateway.chain_id).tx_url(handle.hash)
        logger.info("Transaction sent for action=%s hash=%s", kind.value, handle.hash)
        self._channel.info(
            f"Transaction sent: {prepared.description}\n{explorer_url}",
            operation=kind.value,
            tx_hash=handle.hash,
            explorer_url=explorer_url,
        )

        try:
            receipt = await handle.wait()
        except Exception as exc:
            error = classify_error(exc)
            logger.warning("Awaiting %s (hash=%s) failed: %s", kind.value, handle.hash, error.message)
            message = (
                f"The transaction was sent but its confirmation could not be read "
                f"({error.message}). Check hash {handle.hash} on the block explorer: {explorer_url}"
            )
            self._channel.warning(
                message, operation=kind.value, tx_hash=handle.hash, explorer_url=explorer_url
            )
            return OperationResult(
                kind,
                OperationStatus.UNCONFIRMED,
                message,
                error=error,
                transaction=submitted,
                explorer_url=explorer_url,
            )

        status = receipt.get("status")
        if status is not None and int(status) != 1:
            error = ContractRevertError(
                "The transaction was mined but reverted", details={"tx_hash": handle.hash}
            )
            logger.error("Transaction reverted for action=%s hash=%s", kind.value, handle.hash)
            message = (
                f"{prepared.description} reverted on-chain. Hash: {handle.hash}. "
                f"Verify on the block explorer: {explorer_url}"
            )
            self._channel.error(
                message, operation=kind.value, tx_hash=handle.hash, explorer_url=explorer_url
            )
            return OperationResult(
                kind,
                OperationStatus.REVERTED,
                message,
                error=error,
                transaction=submitted,
                explorer_url=explorer_url,
            )

        logger.info(
            "Transaction confirmed for action=%s hash=%s block=%s",
            kind.value,
            handle.hash,
            receipt.get("blockNumber"),
        )
        message = f"{prepared.description}: confirmed. Hash: {handle.hash}"
        self._channel.success(
            message, operation=kind.value, tx_hash=handle.hash, explorer_url=explorer_url
        )
        await self._reconcile(spec)
        return OperationResult(
            kind,
            OperationStatus.SUCCEEDED,
            message,
            transaction=submitted,
            explorer_url=explorer_url,
            cleared_fields=spec.clears,
        )

    async def _reconcile(self, spec: OperationSpec) -> None:
        if self._on_success is not None:
            try:
                await self._on_success()
            except Exception:
                logger.exception("Refresh after %s failed", spec.kind.value)
        self._channel.state(
            Topic.CLEAR_INPUTS, spec.kind.value, operation=spec.kind.value, fields=spec.clears
        )

    def _fail(self, kind: OperationKind, status: OperationStatus, exc: Exception) -> OperationResult:
        error = classify_error(exc)
        if status is OperationStatus.REJECTED:
            logger.warning("%s rejected before submission: %s", kind.value, error.message)
        else:
            logger.error("%s failed: %s", kind.value, error.message)
        self._channel.error(error.message, operation=kind.value, kind=error.kind.value)
        return OperationResult(kind, status, error.message, error=error)
