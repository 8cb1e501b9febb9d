"""NFT ownership: on-chain balanceOf with a 24h per-wallet cache."""
import logging
import re
from datetime import datetime, timedelta

from sqlalchemy.orm import Session
from web3 import Web3

from app.config import get_settings
from app.models.nft_verification import NftVerification
from app.models.user import User
from app.services.time_utils import utcnow, as_utc

logger = logging.getLogger(__name__)

WALLET_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

# ERC-721 balanceOf(address) -> uint256
ERC721_BALANCE_OF_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    }
]


class NftVerificationError(Exception):
    pass


def is_valid_wallet_address(address: str | None) -> bool:
    return bool(address) and bool(WALLET_ADDRESS_RE.match(address))


def chain_configured() -> bool:
    s = get_settings()
    return bool(s.chain_rpc_url and s.nft_contract_address)


def fetch_nft_balance(wallet_address: str) -> int:
    """Call balanceOf on the membership NFT contract. Raises NftVerificationError on RPC failure."""
    s = get_settings()
    if not chain_configured():
        raise NftVerificationError("NFT verification is not configured")
    w3 = Web3(Web3.HTTPProvider(s.chain_rpc_url, request_kwargs={"timeout": 10}))
    contract = w3.eth.contract(
        address=Web3.to_checksum_address(s.nft_contract_address),
        abi=ERC721_BALANCE_OF_ABI,
    )
    try:
        return int(contract.functions.balanceOf(Web3.to_checksum_address(wallet_address)).call())
    except Exception as e:  # web3 wraps transport and contract errors in many exception types
        logger.error("balanceOf failed for %s: %s", wallet_address, e)
        raise NftVerificationError("Failed to verify NFT ownership on-chain") from e


def get_cached_verification(db: Session, user_id: int, wallet_address: str, now: datetime | None = None) -> NftVerification | None:
    now = now or utcnow()
    row = (
        db.query(NftVerification)
        .filter(NftVerification.user_id == user_id, NftVerification.wallet_address == wallet_address)
        .first()
    )
    if row and as_utc(row.expires_at) > now:
        return row
    return None


def _upsert_cache(db: Session, user_id: int, wallet_address: str, balance: int, now: datetime) -> NftVerification:
    ttl = timedelta(hours=get_settings().nft_verification_cache_hours)
    row = (
        db.query(NftVerification)
        .filter(NftVerification.user_id == user_id, NftVerification.wallet_address == wallet_address)
        .first()
    )
    if row is None:
        row = NftVerification(user_id=user_id, wallet_address=wallet_address)
        db.add(row)
    row.nft_balance = balance
    row.verified_at = now
    row.expires_at = now + ttl
    return row


def verify_nft_ownership(db: Session, user: User, force_refresh: bool = False) -> dict:
    """Refresh user.nft_holder from the cache or the chain. Caller commits."""
    if not user.wallet_address:
        raise NftVerificationError("No wallet connected")
    now = utcnow()
    wallet = user.wallet_address
    cached = None if force_refresh else get_cached_verification(db, user.id, wallet, now)
    if cached is not None:
        balance = cached.nft_balance
        verified_at = as_utc(cached.verified_at)
        expires_at = as_utc(cached.expires_at)
        from_cache = True
    else:
        balance = fetch_nft_balance(wallet)
        row = _upsert_cache(db, user.id, wallet, balance, now)
        verified_at = now
        expires_at = as_utc(row.expires_at)
        from_cache = False

    user.nft_holder = balance > 0
    user.nft_verified_at = verified_at
    db.flush()
    return {
        "wallet_address": wallet,
        "nft_holder": user.nft_holder,
        "nft_balance": balance,
        "verified_at": verified_at,
        "expires_at": expires_at,
        "cached": from_cache,
    }


def disconnect_wallet(db: Session, user: User) -> None:
    db.query(NftVerification).filter(NftVerification.user_id == user.id).delete(synchronize_session=False)
    user.wallet_address = None
    user.nft_holder = False
    user.nft_verified_at = None
    db.flush()


def cleanup_expired_verifications(db: Session, now: datetime | None = None) -> int:
    now = now or utcnow()
    deleted = (
        db.query(NftVerification)
        .filter(NftVerification.expires_at < now)
        .delete(synchronize_session=False)
    )
    db.flush()
    return deleted
