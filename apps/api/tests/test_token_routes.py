"""Tests for wallet and token HTTP endpoints."""

import pytest
from fastapi.testclient import TestClient

from conftest import PLATFORM_ADDRESS, TX_HASH, WEI_PER_ETHER, sign_text
from neurolex_api.auth.session import create_session_token
from neurolex_api.blockchain.verifier import TransactionVerifier
from neurolex_api.db.session import get_db
from neurolex_api.main import app
from neurolex_api.purchases.dependencies import get_transaction_verifier


@pytest.fixture
def client(db, verifier):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_transaction_verifier] = lambda: verifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _auth(account):
    return {"Authorization": f"Bearer {create_session_token(account.id)}"}


def _purchase(client, account, amount=100, price="0.100000", tx_hash=TX_HASH):
    return client.post(
        "/v1/tokens/purchase",
        headers=_auth(account),
        json={"amount": amount, "price": price, "transaction_hash": tx_hash},
    )


class TestAuthentication:
    """Bearer session handling."""

    def test_purchase_config_is_public(self, client):
        response = client.get("/v1/tokens/purchase-config")
        assert response.status_code == 200
        data = response.json()
        assert data["chain_id"] == 11155111
        assert data["receiving_address"] == PLATFORM_ADDRESS
        assert data["token_unit_price"] == "0.001"
        assert data["min_purchase"] == 10
        assert data["max_purchase"] == 10000
        assert data["quote_min"] == "0.010000"

    def test_missing_token(self, client):
        response = client.get("/v1/tokens/balance")
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/v1/tokens/balance", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401


class TestWalletRoutes:
    """Wallet challenge and linking."""

    def test_challenge_then_link(self, client, account, wallet):
        response = client.get(
            "/v1/wallets/challenge",
            params={"wallet_address": wallet.address},
            headers=_auth(account),
        )
        assert response.status_code == 200
        message = response.json()["message"]
        assert f"User: {account.id}" in message.splitlines()

        response = client.post(
            "/v1/wallets/link",
            headers=_auth(account),
            json={
                "wallet_address": wallet.address,
                "message": message,
                "signature": sign_text(wallet, message),
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["wallet_address"] == wallet.address.lower()

    def test_bad_signature_is_forbidden(self, client, account, wallet, other_wallet):
        message = f"Neurolex\nUser: {account.id}\nWallet: {wallet.address}\nDate: now"
        response = client.post(
            "/v1/wallets/link",
            headers=_auth(account),
            json={
                "wallet_address": wallet.address,
                "message": message,
                "signature": sign_text(other_wallet, message),
            },
        )

        assert response.status_code == 403
        data = response.json()
        assert data["success"] is False
        assert data["error_code"] == "INVALID_SIGNATURE"
        assert data["retryable"] is False

    def test_malformed_address_is_bad_request(self, client, account, wallet):
        response = client.post(
            "/v1/wallets/link",
            headers=_auth(account),
            json={"wallet_address": "0x12", "message": "x", "signature": "0x00"},
        )
        assert response.status_code == 400
        assert response.json()["error_code"] == "MALFORMED_ADDRESS"


class TestPurchaseRoutes:
    """Token purchase over HTTP."""

    def test_purchase_then_duplicate(self, client, linked_account, wallet, chain):
        chain.add_payment(TX_HASH, wallet.address, PLATFORM_ADDRESS, WEI_PER_ETHER // 10)

        response = _purchase(client, linked_account)
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["credited_amount"] == 100
        assert data["new_balance"] == 100
        assert data["transaction_hash"] == TX_HASH

        response = _purchase(client, linked_account)
        assert response.status_code == 409
        assert response.json()["error_code"] == "DUPLICATE_TRANSACTION"

    def test_amount_sent_as_string(self, client, linked_account, wallet, chain):
        chain.add_payment(TX_HASH, wallet.address, PLATFORM_ADDRESS, WEI_PER_ETHER // 10)
        response = _purchase(client, linked_account, amount="100")
        assert response.status_code == 200

    def test_below_minimum(self, client, linked_account, chain):
        response = _purchase(client, linked_account, amount=5, price="0.005")
        assert response.status_code == 400
        assert response.json()["error_code"] == "BELOW_MINIMUM"
        assert chain.calls == []

    def test_non_integer_amount(self, client, linked_account):
        response = _purchase(client, linked_account, amount="ten")
        assert response.status_code == 400
        assert response.json()["error_code"] == "NOT_A_POSITIVE_INTEGER"

    def test_wallet_not_linked(self, client, account):
        response = _purchase(client, account)
        assert response.status_code == 403
        assert response.json()["error_code"] == "WALLET_NOT_LINKED"

    def test_chain_unavailable_is_retryable(self, client, linked_account, policy):
        app.dependency_overrides[get_transaction_verifier] = lambda: TransactionVerifier(None, policy)

        response = _purchase(client, linked_account)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "30"
        data = response.json()
        assert data["error_code"] == "SERVICE_UNAVAILABLE"
        assert data["retryable"] is True


class TestBalanceRoutes:
    """Balance and ledger history."""

    def test_balance_and_history(self, client, linked_account, wallet, chain):
        chain.add_payment(TX_HASH, wallet.address, PLATFORM_ADDRESS, WEI_PER_ETHER // 10)
        _purchase(client, linked_account)

        response = client.get("/v1/tokens/balance", headers=_auth(linked_account))
        assert response.status_code == 200
        assert response.json()["balances"] == {"TP": 0, "TA": 100, "TGR": 0}

        response = client.get("/v1/tokens/transactions", headers=_auth(linked_account))
        assert response.status_code == 200
        transactions = response.json()["transactions"]
        assert len(transactions) == 1
        assert transactions[0]["transaction_type"] == "purchased"
        assert transactions[0]["related_id"] == TX_HASH

    def test_balance_unknown_account(self, client):
        headers = {"Authorization": f"Bearer {create_session_token('ghost')}"}
        response = client.get("/v1/tokens/balance", headers=headers)
        assert response.status_code == 404
        assert response.json()["error_code"] == "UNKNOWN_ACCOUNT"


class TestQuoteRoute:
    """Price quotes for the purchase form."""

    def test_quote_for_units_is_public(self, client):
        response = client.get("/v1/tokens/quote", params={"units": 100})
        assert response.status_code == 200
        assert response.json() == {"units": 100, "price": "0.100000", "within_limits": True}

    def test_quote_for_price_floors_units(self, client):
        response = client.get("/v1/tokens/quote", params={"price": "0.0259"})
        assert response.status_code == 200
        data = response.json()
        assert data["units"] == 25
        assert data["price"] == "0.025000"
        assert data["within_limits"] is True

    def test_quote_outside_limits(self, client):
        data = client.get("/v1/tokens/quote", params={"units": 5}).json()
        assert data["within_limits"] is False

    @pytest.mark.parametrize("price", ["abc", "0", "-1", "1e999999999"])
    def test_quote_rejects_bad_price(self, client, price):
        response = client.get("/v1/tokens/quote", params={"price": price})
        assert response.status_code == 400
        assert response.json()["error_code"] == "PRICE_MISMATCH"

    def test_quote_needs_units_or_price(self, client):
        response = client.get("/v1/tokens/quote")
        assert response.status_code == 400
