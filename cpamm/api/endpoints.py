"""API endpoints for the pool.

Every route is a thin translation between JSON and one Pool operation. The
calling account is taken from the ``X-Account-Id`` header, standing in for
the signer of the request.

Handlers are ``async def`` and call the pool without awaiting, so each pool
operation runs to completion on the event loop before the next request is
served.
"""

import os
from functools import lru_cache

import structlog
from fastapi import APIRouter, Depends, Header

from cpamm.api.schemas import (
    AddLiquidityRequest,
    AddLiquidityResponse,
    BalanceResponse,
    ConfirmationRequest,
    DepositRequest,
    InitializeRequest,
    RegisterAccountRequest,
    RemoveLiquidityRequest,
    RemoveLiquidityResponse,
    SwapRequest,
    SwapResponse,
    WithdrawalRequest,
    WithdrawalResponse,
)
from cpamm.config import PoolConfig
from cpamm.errors import Unauthorized
from cpamm.pool import Pool

logger = structlog.get_logger()

router = APIRouter()

# Account id of the pool served by this process
POOL_ACCOUNT = os.environ.get("CPAMM_POOL_ACCOUNT", "pool.cpamm")


@lru_cache(maxsize=1)
def get_default_pool() -> Pool:
    """Process-wide pool built from the environment configuration."""
    pool = Pool(POOL_ACCOUNT, config=PoolConfig.from_env())
    logger.info("pool_created", pool=POOL_ACCOUNT)
    return pool


def get_pool() -> Pool:
    """Dependency provider for the pool instance.

    Override this in tests to inject an isolated pool:
        app.dependency_overrides[get_pool] = lambda: my_pool
    """
    return get_default_pool()


@router.post("/initialize", status_code=201)
async def initialize(request: InitializeRequest, pool: Pool = Depends(get_pool)) -> dict[str, str]:
    pool.initialize(request.asset_a, request.asset_b, request.metadata_a, request.metadata_b)
    return {"status": "initialized", "pool": pool.account_id}


@router.post("/swap")
async def swap(
    request: SwapRequest,
    caller: str = Header(alias="X-Account-Id"),
    pool: Pool = Depends(get_pool),
) -> SwapResponse:
    buy_amount = pool.swap(caller, request.buy_asset, request.sell_asset, int(request.sell_amount))
    return SwapResponse(buy_amount=str(buy_amount))


@router.post("/liquidity/add")
async def add_liquidity(
    request: AddLiquidityRequest,
    caller: str = Header(alias="X-Account-Id"),
    pool: Pool = Depends(get_pool),
) -> AddLiquidityResponse:
    share = pool.add_liquidity(
        caller,
        request.asset_a,
        int(request.amount_a),
        request.asset_b,
        int(request.amount_b),
    )
    return AddLiquidityResponse(share=str(share))


@router.post("/liquidity/remove")
async def remove_liquidity(
    request: RemoveLiquidityRequest,
    caller: str = Header(alias="X-Account-Id"),
    pool: Pool = Depends(get_pool),
) -> RemoveLiquidityResponse:
    amount_a, amount_b = pool.remove_liquidity(caller, request.asset_a, request.asset_b)
    return RemoveLiquidityResponse(amount_a=str(amount_a), amount_b=str(amount_b))


@router.post("/deposits")
async def deposit(
    request: DepositRequest,
    caller: str = Header(alias="X-Account-Id"),
    pool: Pool = Depends(get_pool),
) -> dict[str, str]:
    """Receiving side of an external transfer into the pool.

    The caller is the asset's token contract reporting that ``sender``
    transferred ``amount`` to the pool; any other caller is an unknown asset.
    Returns the amount to refund to the sender, which is always "0".
    """
    refund = pool.deposit(caller, request.sender, int(request.amount))
    return {"refund": str(refund)}


@router.post("/accounts/register")
async def register_account(request: RegisterAccountRequest, pool: Pool = Depends(get_pool)) -> dict[str, bool]:
    return {"registered": pool.register_account(request.asset, request.account)}


@router.post("/withdrawals", status_code=202)
async def request_withdrawal(
    request: WithdrawalRequest,
    caller: str = Header(alias="X-Account-Id"),
    pool: Pool = Depends(get_pool),
) -> WithdrawalResponse:
    record = pool.request_withdrawal(caller, request.asset, int(request.amount))
    return WithdrawalResponse.from_record(record)


@router.post("/withdrawals/{correlation_id}/confirm")
async def confirm_withdrawal(
    correlation_id: str,
    request: ConfirmationRequest,
    caller: str = Header(alias="X-Account-Id"),
    pool: Pool = Depends(get_pool),
) -> WithdrawalResponse:
    """Confirmation signal from the external system.

    Only the pool's own account may deliver the signal. The debit applies
    to the account that requested the withdrawal.
    """
    if caller != pool.account_id:
        raise Unauthorized(f"Withdrawal confirmations must come from {pool.account_id}, not {caller}")
    record = pool.confirm_withdrawal(correlation_id, request.success, request.reason)
    return WithdrawalResponse.from_record(record)


@router.get("/withdrawals/{correlation_id}")
async def get_withdrawal(correlation_id: str, pool: Pool = Depends(get_pool)) -> WithdrawalResponse:
    return WithdrawalResponse.from_record(pool.withdrawals.get(correlation_id))


@router.get("/balances/{asset}/{account}")
async def balance_of(asset: str, account: str, pool: Pool = Depends(get_pool)) -> BalanceResponse:
    return BalanceResponse(asset=asset, account=account, balance=str(pool.balance_of(asset, account)))
