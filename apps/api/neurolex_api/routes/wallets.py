"""Wallet linkage endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from neurolex_api.auth.session import get_current_account_id
from neurolex_api.db.session import get_db
from neurolex_api.settings import get_settings
from neurolex_api.wallets.linkage import WalletLinkageVerifier, build_link_challenge

router = APIRouter(prefix="/v1/wallets", tags=["wallets"])


class LinkWalletRequest(BaseModel):
    """Signed challenge proving control of a wallet."""

    wallet_address: str = Field(..., max_length=64)
    message: str = Field(..., max_length=2048)
    signature: str = Field(..., max_length=256)


class LinkWalletResponse(BaseModel):
    """Linked wallet."""

    success: bool = True
    wallet_address: str
    linked_at: datetime


@router.get("/challenge")
def get_link_challenge(
    wallet_address: str,
    account_id: str = Depends(get_current_account_id),
):
    """Return the challenge text the wallet should sign."""
    settings = get_settings()
    message = build_link_challenge(settings.app_name, account_id, wallet_address, datetime.utcnow())
    return {"message": message}


@router.post("/link", response_model=LinkWalletResponse)
def link_wallet(
    request: LinkWalletRequest,
    account_id: str = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Link a wallet to the calling account."""
    account = WalletLinkageVerifier(db).link(
        account_id,
        request.wallet_address,
        request.message,
        request.signature,
    )
    return LinkWalletResponse(
        wallet_address=account.wallet_address,
        linked_at=account.wallet_linked_at,
    )
