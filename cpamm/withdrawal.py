"""Two-phase withdrawal of pooled balances to the external ledger.

A withdrawal moves an amount of a reserve asset from a participant's
internal balance to the same participant on the asset's external ledger.
The external transfer goes first; the internal debit is applied only when
the confirmation signal reports success:

    REQUESTED -> TRANSFER_PENDING -> CONFIRMED | FAILED

Each request is recorded under a correlation id so the confirmation can be
matched to the requester captured at request time, regardless of who
delivers it. No balance check happens at request time, there is no timeout
and no retry; a transfer that is never confirmed stays TRANSFER_PENDING.
Between request and confirmation the requested amount still counts toward
the requester's balance (and so toward any reserve it sits in).
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

import structlog

from cpamm.errors import (
    ExternalTransferFailed,
    InsufficientBalance,
    InvalidArguments,
    InvalidWithdrawalState,
    UnknownWithdrawal,
)
from cpamm.ledger import FungibleLedger

logger = structlog.get_logger()


class WithdrawalState(str, Enum):
    """Lifecycle state of a withdrawal request."""

    REQUESTED = "requested"
    TRANSFER_PENDING = "transfer_pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (WithdrawalState.CONFIRMED, WithdrawalState.FAILED)


@dataclass
class PendingWithdrawal:
    """Record of one withdrawal request.

    Attributes:
        correlation_id: Id the confirmation signal must quote
        requester: Account that asked for the withdrawal (and is debited)
        asset: Reserve asset being withdrawn
        amount: Amount in the asset's native decimals
        state: Current lifecycle state
        debited: True once the internal balance has been debited
        failure_reason: Reason reported by the capability on failure
    """

    correlation_id: str
    requester: str
    asset: str
    amount: int
    state: WithdrawalState = WithdrawalState.REQUESTED
    debited: bool = False
    failure_reason: str | None = None


@runtime_checkable
class TransferCapability(Protocol):
    """External transfer mechanism.

    transfer() only issues the transfer. Its outcome arrives later through
    WithdrawalCoordinator.resolve() quoting the same correlation id. Raising
    from transfer() means the transfer could not even be issued.
    """

    def transfer(self, destination: str, asset: str, amount: int, correlation_id: str) -> None: ...


class ReserveBook(Protocol):
    """What the coordinator needs from the pool."""

    def reserve_ledger(self, asset: str) -> FungibleLedger: ...


class QueuedTransferCapability:
    """In-process transfer capability that queues outgoing transfers.

    Issued transfers are kept in ``issued`` until something (an operator, the
    dispatch layer, a test) delivers their confirmation to the pool.
    """

    def __init__(self) -> None:
        self.issued: dict[str, tuple[str, str, int]] = {}

    def transfer(self, destination: str, asset: str, amount: int, correlation_id: str) -> None:
        self.issued[correlation_id] = (destination, asset, amount)
        logger.info(
            "external_transfer_queued",
            correlation_id=correlation_id,
            destination=destination,
            asset=asset,
            amount=amount,
        )


class WithdrawalCoordinator:
    """Drives withdrawal requests through the external transfer capability.

    Args:
        book: Source of the reserve ledgers to debit on confirmation
        capability: External transfer mechanism
    """

    def __init__(self, book: ReserveBook, capability: TransferCapability) -> None:
        self._book = book
        self.capability = capability
        self._records: dict[str, PendingWithdrawal] = {}

    def get(self, correlation_id: str) -> PendingWithdrawal:
        """Look up a withdrawal record.

        Raises:
            UnknownWithdrawal: If no request was issued under correlation_id
        """
        try:
            return self._records[correlation_id]
        except KeyError:
            raise UnknownWithdrawal(f"No withdrawal with correlation id {correlation_id}") from None

    def pending(self) -> list[PendingWithdrawal]:
        """Withdrawals still waiting for their confirmation signal."""
        return [r for r in self._records.values() if r.state is WithdrawalState.TRANSFER_PENDING]

    def request(self, requester: str, asset: str, amount: int) -> PendingWithdrawal:
        """Issue the external transfer for a withdrawal.

        The requester's internal balance is not checked here.

        Args:
            requester: Account withdrawing (external destination and debited account)
            asset: Registered reserve asset
            amount: Amount in the asset's native decimals

        Returns:
            The record, in TRANSFER_PENDING

        Raises:
            UnknownAsset: If asset is not a reserve asset of the pool
            InvalidArguments: If amount is negative
            ExternalTransferFailed: If the capability refused to issue the transfer
        """
        self._book.reserve_ledger(asset)
        if not isinstance(amount, int) or amount < 0:
            raise InvalidArguments(f"Withdrawal amount must be a non-negative integer, got {amount!r}")

        record = PendingWithdrawal(
            correlation_id=uuid.uuid4().hex,
            requester=requester,
            asset=asset,
            amount=amount,
        )
        self._records[record.correlation_id] = record

        try:
            self.capability.transfer(requester, asset, amount, record.correlation_id)
        except Exception as err:
            record.state = WithdrawalState.FAILED
            record.failure_reason = str(err)
            logger.warning(
                "withdrawal_failed",
                correlation_id=record.correlation_id,
                requester=requester,
                asset=asset,
                amount=amount,
                reason=record.failure_reason,
            )
            raise ExternalTransferFailed(f"Transfer of {amount} {asset} to {requester} failed: {err}") from err

        record.state = WithdrawalState.TRANSFER_PENDING
        logger.info(
            "withdrawal_requested",
            correlation_id=record.correlation_id,
            requester=requester,
            asset=asset,
            amount=amount,
        )
        return record

    def resolve(self, correlation_id: str, success: bool, reason: str | None = None) -> PendingWithdrawal:
        """Apply the confirmation signal for a pending withdrawal.

        On success the original requester's internal balance is debited. On
        failure nothing is debited and the request is dropped.

        Args:
            correlation_id: Id issued by request()
            success: Outcome reported by the external system
            reason: Optional failure description

        Returns:
            The record, in CONFIRMED or FAILED

        Raises:
            UnknownWithdrawal: If correlation_id was never issued
            InvalidWithdrawalState: If the withdrawal is not pending
            InsufficientBalance: If the transfer succeeded but the requester's
                internal balance no longer covers it (record still CONFIRMED,
                debited stays False)
        """
        record = self.get(correlation_id)
        if record.state is not WithdrawalState.TRANSFER_PENDING:
            raise InvalidWithdrawalState(
                f"Withdrawal {correlation_id} is {record.state.value}, expected {WithdrawalState.TRANSFER_PENDING.value}"
            )

        if not success:
            record.state = WithdrawalState.FAILED
            record.failure_reason = reason or "external transfer failed"
            logger.warning(
                "withdrawal_failed",
                correlation_id=correlation_id,
                requester=record.requester,
                asset=record.asset,
                amount=record.amount,
                reason=record.failure_reason,
            )
            return record

        record.state = WithdrawalState.CONFIRMED
        try:
            self._book.reserve_ledger(record.asset).withdraw(record.requester, record.amount)
        except InsufficientBalance:
            logger.error(
                "withdrawal_debit_failed",
                correlation_id=correlation_id,
                requester=record.requester,
                asset=record.asset,
                amount=record.amount,
            )
            raise

        record.debited = True
        logger.info(
            "withdrawal_confirmed",
            correlation_id=correlation_id,
            requester=record.requester,
            asset=record.asset,
            amount=record.amount,
        )
        return record
