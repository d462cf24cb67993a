"""Request and response models for the pool API.

Amounts travel as u128 decimal strings, as the pool's ledgers hold u128.
"""

from pydantic import BaseModel, Field

from cpamm.models.types import U128, AccountId, AssetMetadata
from cpamm.withdrawal import PendingWithdrawal, WithdrawalState


class InitializeRequest(BaseModel):
    asset_a: AccountId = Field(alias="assetA")
    asset_b: AccountId = Field(alias="assetB")
    metadata_a: AssetMetadata = Field(alias="metadataA")
    metadata_b: AssetMetadata = Field(alias="metadataB")

    model_config = {"populate_by_name": True}


class SwapRequest(BaseModel):
    buy_asset: AccountId = Field(alias="buyAsset")
    sell_asset: AccountId = Field(alias="sellAsset")
    sell_amount: U128 = Field(alias="sellAmount")

    model_config = {"populate_by_name": True}


class SwapResponse(BaseModel):
    buy_amount: U128 = Field(alias="buyAmount")

    model_config = {"populate_by_name": True}


class AddLiquidityRequest(BaseModel):
    asset_a: AccountId = Field(alias="assetA")
    amount_a: U128 = Field(alias="amountA")
    asset_b: AccountId = Field(alias="assetB")
    amount_b: U128 = Field(alias="amountB")

    model_config = {"populate_by_name": True}


class AddLiquidityResponse(BaseModel):
    share: U128


class RemoveLiquidityRequest(BaseModel):
    asset_a: AccountId = Field(alias="assetA")
    asset_b: AccountId = Field(alias="assetB")

    model_config = {"populate_by_name": True}


class RemoveLiquidityResponse(BaseModel):
    amount_a: U128 = Field(alias="amountA")
    amount_b: U128 = Field(alias="amountB")

    model_config = {"populate_by_name": True}


class DepositRequest(BaseModel):
    """Notification from a token contract that ``sender`` transferred ``amount`` to the pool."""

    sender: AccountId
    amount: U128


class RegisterAccountRequest(BaseModel):
    asset: AccountId
    account: AccountId


class WithdrawalRequest(BaseModel):
    asset: AccountId
    amount: U128


class ConfirmationRequest(BaseModel):
    success: bool
    reason: str | None = None


class WithdrawalResponse(BaseModel):
    correlation_id: str = Field(alias="correlationId")
    requester: str
    asset: str
    amount: U128
    state: WithdrawalState
    debited: bool
    failure_reason: str | None = Field(default=None, alias="failureReason")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_record(cls, record: PendingWithdrawal) -> "WithdrawalResponse":
        return cls(
            correlation_id=record.correlation_id,
            requester=record.requester,
            asset=record.asset,
            amount=str(record.amount),
            state=record.state,
            debited=record.debited,
            failure_reason=record.failure_reason,
        )


class BalanceResponse(BaseModel):
    asset: str
    account: str
    balance: U128


class ErrorResponse(BaseModel):
    error: str
    detail: str
