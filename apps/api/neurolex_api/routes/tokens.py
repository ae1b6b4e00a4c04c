"""Token purchase and balance endpoints."""

from typing import Optional, Union

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from neurolex_api.auth.session import get_current_account_id
from neurolex_api.blockchain.errors import PurchaseError, PurchaseParameterError, RejectionReason
from neurolex_api.blockchain.verifier import TransactionVerifier
from neurolex_api.db.session import get_db
from neurolex_api.ledger.service import LedgerService
from neurolex_api.models import Account
from neurolex_api.purchases.dependencies import get_transaction_verifier
from neurolex_api.purchases.orchestrator import PurchaseClaim, PurchaseOrchestrator
from neurolex_api.purchases.validator import parse_price
from neurolex_api.settings import get_settings

router = APIRouter(prefix="/v1/tokens", tags=["tokens"])

# Keeps quoted prices within decimal precision
MAX_QUOTE_UNITS = 10**15


class PurchaseRequest(BaseModel):
    """Client claim that a transaction paid for TA tokens."""

    # Left loose so the validator reports NOT_A_POSITIVE_INTEGER itself
    amount: Union[int, float, str]
    price: str = Field(..., max_length=64)
    transaction_hash: str = Field(..., max_length=128)


class PurchaseResponse(BaseModel):
    """Committed purchase."""

    success: bool = True
    credited_amount: int
    new_balance: int
    transaction_hash: str
    ledger_entry_id: str


@router.get("/purchase-config")
def get_purchase_config():
    """Public purchase configuration for clients building the payment."""
    settings = get_settings()
    return {
        "chain_id": settings.chain_id,
        "chain_name": settings.chain_name,
        "explorer_url": settings.chain_explorer_url,
        "receiving_address": settings.platform_receiving_address,
        "token_unit_price": str(settings.token_unit_price),
        "min_purchase": settings.min_purchase,
        "max_purchase": settings.max_purchase,
        "quote_min": str(settings.purchase_policy.quote_price(settings.min_purchase)),
        "quote_max": str(settings.purchase_policy.quote_price(settings.max_purchase)),
    }


@router.get("/quote")
def get_quote(
    units: Optional[int] = Query(None, ge=1, le=MAX_QUOTE_UNITS),
    price: Optional[str] = Query(None, max_length=64),
):
    """Quote the price of a number of units, or the units a given ether amount buys."""
    policy = get_settings().purchase_policy
    if units is None:
        parsed = parse_price(price) if price is not None else None
        if parsed is None or parsed <= 0:
            raise PurchaseParameterError(
                RejectionReason.PRICE_MISMATCH,
                "Provide a positive number of units or a positive ETH price",
            )
        units = policy.units_for_price(parsed)

    return {
        "units": units,
        "price": str(policy.quote_price(units)),
        "within_limits": policy.min_purchase <= units <= policy.max_purchase,
    }


@router.post("/purchase", response_model=PurchaseResponse)
def purchase_tokens(
    request: PurchaseRequest,
    account_id: str = Depends(get_current_account_id),
    db: Session = Depends(get_db),
    verifier: TransactionVerifier = Depends(get_transaction_verifier),
):
    """Credit TA tokens for a verified on-chain payment."""
    amount = request.amount
    if isinstance(amount, str):
        try:
            amount = int(amount.strip())
        except ValueError:
            pass

    claim = PurchaseClaim(
        account_id=account_id,
        desired_units=amount,
        claimed_price=request.price,
        transaction_hash=request.transaction_hash,
    )
    result = PurchaseOrchestrator(db, verifier).purchase(claim)
    return PurchaseResponse(
        credited_amount=result.credited_amount,
        new_balance=result.new_balance,
        transaction_hash=result.transaction_hash,
        ledger_entry_id=result.ledger_entry_id,
    )


@router.get("/balance")
def get_balance(
    account_id: str = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Current balances for the calling account."""
    if not db.query(Account.id).filter(Account.id == account_id).first():
        raise PurchaseError(RejectionReason.UNKNOWN_ACCOUNT, "Account not found")
    balance = LedgerService(db).get_balance(account_id)
    db.commit()
    return {"account_id": account_id, "balances": balance.as_dict()}


@router.get("/transactions")
def list_transactions(
    limit: int = Query(50, ge=1, le=200),
    account_id: str = Depends(get_current_account_id),
    db: Session = Depends(get_db),
):
    """Ledger entries for the calling account, newest first."""
    entries = LedgerService(db).list_entries(account_id, limit=limit)
    return {"transactions": [entry.as_dict() for entry in entries]}
