"""Transaction router: all /api/transactions/* endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from napft.config import Settings, get_settings
from napft.database import get_session
from napft.db.models import MAX_BIGINT
from napft.query.envelope import ApiResponse
from napft.query.filters import TransactionQuery
from napft.query.pagination import PageParams, page_params
from napft.transactions import service
from napft.transactions.schemas import CreateTransactionRequest, TransactionResponse, TransactionType

router = APIRouter(prefix="/api/transactions", tags=["Transactions"])


def transaction_query(
    type: TransactionType | None = None,  # noqa: A002
    from_address: str | None = Query(None, alias="from"),
    to_address: str | None = Query(None, alias="to"),
    start_date: datetime | None = Query(None, alias="startDate"),
    end_date: datetime | None = Query(None, alias="endDate"),
) -> TransactionQuery:
    return TransactionQuery(
        type=type,
        from_address=from_address,
        to_address=to_address,
        start_date=start_date,
        end_date=end_date,
    )


@router.get("", response_model=ApiResponse[list[TransactionResponse]])
async def get_all_transactions(
    query: TransactionQuery = Depends(transaction_query),  # noqa: B008
    params: PageParams = Depends(page_params),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[list[TransactionResponse]]:
    txs, pagination = await service.list_transactions(db, query, params)
    return ApiResponse(data=[TransactionResponse.model_validate(t) for t in txs], pagination=pagination)


@router.get("/recent", response_model=ApiResponse[list[TransactionResponse]])
async def get_recent_transactions(
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[list[TransactionResponse]]:
    """Latest sales and mints."""
    txs = await service.get_recent(db, limit)
    return ApiResponse(data=[TransactionResponse.model_validate(t) for t in txs])


@router.get("/user/{address}", response_model=ApiResponse[list[TransactionResponse]])
async def get_transactions_by_user(
    address: str,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[list[TransactionResponse]]:
    txs = await service.get_by_user(db, address)
    return ApiResponse(data=[TransactionResponse.model_validate(t) for t in txs])


@router.get("/nft/{nft_id}", response_model=ApiResponse[list[TransactionResponse]])
async def get_transactions_by_nft(
    nft_id: int = Path(ge=0, le=MAX_BIGINT),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[list[TransactionResponse]]:
    txs = await service.get_by_nft(db, nft_id)
    return ApiResponse(data=[TransactionResponse.model_validate(t) for t in txs])


@router.post("", status_code=201, response_model=ApiResponse[TransactionResponse])
async def create_transaction(
    body: CreateTransactionRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ApiResponse[TransactionResponse]:
    """Record a transaction by applying the matching transition."""
    tx = await service.create_transaction(db, body, settings)
    return ApiResponse(data=TransactionResponse.model_validate(tx), message="Transaction recorded")
