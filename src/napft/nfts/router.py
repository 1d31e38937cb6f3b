"""NFT router: all /api/nfts/* endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from napft.config import Settings, get_settings
from napft.database import get_session
from napft.db.models import MAX_BIGINT, NFT
from napft.nfts import service
from napft.nfts.schemas import (
    BuyRequest,
    ListRequest,
    MintRequest,
    NFTDetailResponse,
    NFTResponse,
    NFTTransitionResponse,
    TransferRequest,
    UnlistRequest,
    UpdateNFTRequest,
)
from napft.query.envelope import ApiResponse
from napft.query.filters import NFTQuery, NFTSort
from napft.query.pagination import PageParams, page_params
from napft.transactions.schemas import TransactionResponse

router = APIRouter(prefix="/api/nfts", tags=["NFTs"])


def nft_query(
    category: str | None = None,
    creator: str | None = None,
    owner: str | None = None,
    min_price: float | None = Query(None, alias="minPrice", ge=0),
    max_price: float | None = Query(None, alias="maxPrice", ge=0),
    search: str | None = None,
    is_listed: bool | None = Query(None, alias="isListed"),
    token_standard: str | None = Query(None, alias="tokenStandard"),
    rarity: str | None = None,
    collection_id: int | None = Query(None, alias="collectionId", ge=0, le=MAX_BIGINT),
    sort: NFTSort = "newest",
) -> NFTQuery:
    return NFTQuery(
        category=category,
        creator=creator,
        owner=owner,
        min_price=min_price,
        max_price=max_price,
        search=search,
        is_listed=is_listed,
        token_standard=token_standard,
        rarity=rarity,
        collection_id=collection_id,
        sort=sort,
    )


def _detail(nft: NFT, history: list) -> NFTDetailResponse:
    data = NFTResponse.model_validate(nft).model_dump()
    return NFTDetailResponse(
        **data,
        transaction_history=[TransactionResponse.model_validate(tx) for tx in history],
    )


def _transition_response(nft: NFT, tx: object) -> NFTTransitionResponse:
    return NFTTransitionResponse(
        nft=NFTResponse.model_validate(nft),
        transaction=TransactionResponse.model_validate(tx),
    )


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


@router.get("", response_model=ApiResponse[list[NFTResponse]])
async def get_all_nfts(
    query: NFTQuery = Depends(nft_query),  # noqa: B008
    params: PageParams = Depends(page_params),  # noqa: B008
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[list[NFTResponse]]:
    nfts, pagination = await service.list_nfts(db, query, params)
    return ApiResponse(data=[NFTResponse.model_validate(n) for n in nfts], pagination=pagination)


@router.get("/trending", response_model=ApiResponse[list[NFTResponse]])
async def get_trending_nfts(
    limit: int = Query(4, ge=1, le=50),
    db: AsyncSession = Depends(get_session),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ApiResponse[list[NFTResponse]]:
    nfts = await service.get_trending(db, limit, settings.trending_window_days)
    return ApiResponse(data=[NFTResponse.model_validate(n) for n in nfts])


@router.get("/token/{token_id}", response_model=ApiResponse[NFTDetailResponse])
async def get_nft_by_token_id(
    token_id: int = Path(ge=0, le=MAX_BIGINT),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[NFTDetailResponse]:
    nft = await service.get_by_token(db, token_id)
    history = await service.get_history(db, nft.id)
    return ApiResponse(data=_detail(nft, history))


@router.get("/owner/{address}", response_model=ApiResponse[list[NFTResponse]])
async def get_nfts_by_owner(
    address: str,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[list[NFTResponse]]:
    nfts = await service.get_by_owner(db, address)
    return ApiResponse(data=[NFTResponse.model_validate(n) for n in nfts])


@router.get("/creator/{address}", response_model=ApiResponse[list[NFTResponse]])
async def get_nfts_by_creator(
    address: str,
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[list[NFTResponse]]:
    nfts = await service.get_by_creator(db, address)
    return ApiResponse(data=[NFTResponse.model_validate(n) for n in nfts])


@router.get("/transactions/{token_id}", response_model=ApiResponse[list[TransactionResponse]])
async def get_nft_transactions(
    token_id: int = Path(ge=0, le=MAX_BIGINT),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[list[TransactionResponse]]:
    nft = await service.get_by_token(db, token_id)
    history = await service.get_history(db, nft.id)
    return ApiResponse(data=[TransactionResponse.model_validate(tx) for tx in history])


@router.get("/{nft_id}", response_model=ApiResponse[NFTDetailResponse])
async def get_nft_by_id(
    nft_id: int = Path(ge=0, le=MAX_BIGINT),
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> ApiResponse[NFTDetailResponse]:
    nft = await service.get_by_id(db, nft_id)
    history = await service.get_history(db, nft.id)
    return ApiResponse(data=_detail(nft, history))


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


@router.post("", status_code=201, response_model=ApiResponse[NFTTransitionResponse])
async def create_nft(
    body: MintRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ApiResponse[NFTTransitionResponse]:
    """Mint an NFT. The creator becomes its first owner."""
    nft, tx = await service.mint_nft(db, body, settings)
    return ApiResponse(data=_transition_response(nft, tx), message="NFT minted")


@router.post("/buy", response_model=ApiResponse[NFTTransitionResponse])
async def buy_nft(
    body: BuyRequest,
    db: AsyncSession = Depends(get_session),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ApiResponse[NFTTransitionResponse]:
    nft, tx = await service.buy_nft(db, body.token_id, body.buyer, body.tx_hash, settings)
    return ApiResponse(data=_transition_response(nft, tx), message="NFT purchased")


@router.put("/{token_id}", response_model=ApiResponse[NFTResponse])
async def update_nft(
    body: UpdateNFTRequest,
    token_id: int = Path(ge=0, le=MAX_BIGINT),
    db: AsyncSession = Depends(get_session),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ApiResponse[NFTResponse]:
    nft = await service.update_nft(db, token_id, body, settings)
    return ApiResponse(data=NFTResponse.model_validate(nft), message="NFT updated")


@router.post("/{token_id}/list", response_model=ApiResponse[NFTTransitionResponse])
async def list_nft(
    body: ListRequest,
    token_id: int = Path(ge=0, le=MAX_BIGINT),
    db: AsyncSession = Depends(get_session),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ApiResponse[NFTTransitionResponse]:
    nft, tx = await service.list_nft(db, token_id, body.address, body.price, body.currency, body.tx_hash, settings)
    return ApiResponse(data=_transition_response(nft, tx), message="NFT listed")


@router.post("/{token_id}/unlist", response_model=ApiResponse[NFTTransitionResponse])
async def unlist_nft(
    body: UnlistRequest,
    token_id: int = Path(ge=0, le=MAX_BIGINT),
    db: AsyncSession = Depends(get_session),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ApiResponse[NFTTransitionResponse]:
    nft, tx = await service.unlist_nft(db, token_id, body.address, body.tx_hash, settings)
    return ApiResponse(data=_transition_response(nft, tx), message="NFT unlisted")


@router.post("/{token_id}/transfer", response_model=ApiResponse[NFTTransitionResponse])
async def transfer_nft(
    body: TransferRequest,
    token_id: int = Path(ge=0, le=MAX_BIGINT),
    db: AsyncSession = Depends(get_session),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ApiResponse[NFTTransitionResponse]:
    nft, tx = await service.transfer_nft(db, token_id, body.address, body.to, body.tx_hash, settings)
    return ApiResponse(data=_transition_response(nft, tx), message="NFT transferred")
