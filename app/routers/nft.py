"""Wallet linking and NFT holder verification."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_current_user
from app.models.user import User
from app.schemas.auth import WalletConnectRequest, VerifyNftRequest, NftStatusResponse, UserResponse
from app.services.nft_verification import (
    NftVerificationError,
    chain_configured,
    verify_nft_ownership,
    disconnect_wallet,
)

router = APIRouter(prefix="/auth", tags=["nft"])


def _verify(db: Session, user: User, force_refresh: bool) -> NftStatusResponse:
    if not chain_configured():
        raise HTTPException(
            status_code=503,
            detail="NFT verification is not configured. Set CHAIN_RPC_URL and NFT_CONTRACT_ADDRESS in .env.",
        )
    try:
        result = verify_nft_ownership(db, user, force_refresh=force_refresh)
    except NftVerificationError as e:
        db.rollback()
        raise HTTPException(status_code=502, detail=str(e))
    db.commit()
    return NftStatusResponse(**result)


@router.post("/wallet-connect", response_model=NftStatusResponse)
def connect_wallet(
    data: WalletConnectRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    other = (
        db.query(User)
        .filter(User.wallet_address == data.wallet_address, User.id != current_user.id)
        .first()
    )
    if other:
        raise HTTPException(status_code=409, detail="This wallet is already linked to another account")
    if current_user.wallet_address != data.wallet_address:
        # New wallet: previous cache rows and holder status no longer apply
        disconnect_wallet(db, current_user)
        current_user.wallet_address = data.wallet_address
        db.flush()
    return _verify(db, current_user, force_refresh=True)


@router.delete("/wallet-connect", response_model=UserResponse)
def remove_wallet(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not current_user.wallet_address:
        raise HTTPException(status_code=400, detail="No wallet connected")
    disconnect_wallet(db, current_user)
    db.commit()
    db.refresh(current_user)
    return current_user


@router.post("/verify-nft", response_model=NftStatusResponse)
def verify_nft(
    data: VerifyNftRequest | None = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if not current_user.wallet_address:
        raise HTTPException(status_code=400, detail="Connect a wallet before verifying NFT ownership")
    return _verify(db, current_user, force_refresh=bool(data and data.force_refresh))
