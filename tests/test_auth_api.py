"""Tests for registration, login, token refresh, password reset and wallet linking."""

from datetime import timedelta
from unittest.mock import patch

import pytest

from conftest import TEST_PASSWORD, auth_headers, make_user
from app.models.nft_verification import NftVerification
from app.models.user import User
from app.services.auth import create_refresh_token, get_password_hash, verify_password
from app.services.nft_verification import NftVerificationError
from app.services.time_utils import utcnow

pytestmark = pytest.mark.api

WALLET = "0x" + "b" * 40


@pytest.mark.unit
class TestPasswordHashing:
    def test_salted_hashes_both_verify(self):
        first = get_password_hash(TEST_PASSWORD)
        second = get_password_hash(TEST_PASSWORD)
        assert first != second
        assert verify_password(TEST_PASSWORD, first)
        assert verify_password(TEST_PASSWORD, second)

    def test_wrong_password_and_garbage_hash(self):
        hashed = get_password_hash(TEST_PASSWORD)
        assert not verify_password(TEST_PASSWORD + "x", hashed)
        assert not verify_password(TEST_PASSWORD, "not-a-bcrypt-hash")


class TestRegisterLogin:
    def test_register_returns_tokens(self, client):
        response = client.post(
            "/auth/register",
            json={"email": "New@Example.com", "password": TEST_PASSWORD, "full_name": "New Member"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["access_token"]
        assert body["refresh_token"]
        assert body["user"]["email"] == "new@example.com"
        assert body["user"]["role"] == "user"

    def test_register_duplicate(self, client, member):
        response = client.post(
            "/auth/register",
            json={"email": member.email, "password": TEST_PASSWORD, "full_name": "Again"},
        )
        assert response.status_code == 409

    def test_register_weak_password(self, client):
        response = client.post(
            "/auth/register",
            json={"email": "weak@example.com", "password": "password", "full_name": "Weak"},
        )
        assert response.status_code == 422

    def test_login(self, client, member, db_session):
        response = client.post("/auth/login", json={"email": member.email, "password": TEST_PASSWORD})
        assert response.status_code == 200
        db_session.refresh(member)
        assert member.last_login_at is not None

    def test_login_wrong_password(self, client, member):
        response = client.post("/auth/login", json={"email": member.email, "password": "Wrong123!"})
        assert response.status_code == 401

    def test_me_requires_token(self, client):
        assert client.get("/auth/me").status_code == 401

    def test_me(self, client, member):
        response = client.get("/auth/me", headers=auth_headers(member))
        assert response.status_code == 200
        assert response.json()["id"] == member.id

    def test_update_profile(self, client, member):
        response = client.patch("/auth/me", json={"full_name": "Renamed"}, headers=auth_headers(member))
        assert response.status_code == 200
        assert response.json()["full_name"] == "Renamed"


class TestRefresh:
    def test_refresh_token(self, client, member):
        response = client.post("/auth/refresh", json={"refresh_token": create_refresh_token(member)})
        assert response.status_code == 200
        assert response.json()["user"]["id"] == member.id

    def test_access_token_is_not_a_refresh_token(self, client, member):
        token = auth_headers(member)["Authorization"].split(" ", 1)[1]
        response = client.post("/auth/refresh", json={"refresh_token": token})
        assert response.status_code == 401


class TestPasswordReset:
    def test_forgot_password_does_not_reveal_accounts(self, client, member):
        known = client.post("/auth/forgot-password", json={"email": member.email})
        unknown = client.post("/auth/forgot-password", json={"email": "nobody@example.com"})
        assert known.status_code == unknown.status_code == 200
        assert known.json() == unknown.json()

    def test_reset_with_token(self, client, member, db_session):
        with patch("app.routers.auth.send_password_reset", return_value=True) as send:
            client.post("/auth/forgot-password", json={"email": member.email})
        token = send.call_args.args[2]
        response = client.post("/auth/reset-password", json={"token": token, "password": "NewPassword1!"})
        assert response.status_code == 200
        login = client.post("/auth/login", json={"email": member.email, "password": "NewPassword1!"})
        assert login.status_code == 200

    def test_expired_token(self, client, member, db_session):
        member.password_reset_token = "expired-token"
        member.password_reset_expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()
        response = client.post("/auth/reset-password", json={"token": "expired-token", "password": "NewPassword1!"})
        assert response.status_code == 400


# =============================================================================
# WALLET / NFT
# =============================================================================


class TestWallet:
    def test_chain_not_configured(self, client, member):
        response = client.post("/auth/wallet-connect", json={"wallet_address": WALLET}, headers=auth_headers(member))
        assert response.status_code == 503

    def test_invalid_address(self, client, member):
        response = client.post("/auth/wallet-connect", json={"wallet_address": "0x123"}, headers=auth_headers(member))
        assert response.status_code == 422

    def test_connect_verifies_holder(self, client, member, db_session):
        with patch("app.routers.nft.chain_configured", return_value=True), \
                patch("app.services.nft_verification.fetch_nft_balance", return_value=2):
            response = client.post(
                "/auth/wallet-connect", json={"wallet_address": WALLET.upper().replace("0X", "0x")}, headers=auth_headers(member)
            )
        assert response.status_code == 200
        body = response.json()
        assert body["wallet_address"] == WALLET
        assert body["nft_holder"] is True
        assert body["cached"] is False
        db_session.refresh(member)
        assert member.nft_holder is True
        assert db_session.query(NftVerification).filter(NftVerification.user_id == member.id).count() == 1

    def test_wallet_already_linked(self, client, member, db_session):
        make_user(db_session, email="other@example.com", wallet_address=WALLET)
        with patch("app.routers.nft.chain_configured", return_value=True):
            response = client.post("/auth/wallet-connect", json={"wallet_address": WALLET}, headers=auth_headers(member))
        assert response.status_code == 409

    def test_rpc_failure(self, client, member):
        with patch("app.routers.nft.chain_configured", return_value=True), \
                patch("app.services.nft_verification.fetch_nft_balance", side_effect=NftVerificationError("boom")):
            response = client.post("/auth/wallet-connect", json={"wallet_address": WALLET}, headers=auth_headers(member))
        assert response.status_code == 502

    def test_verify_uses_cache(self, client, member):
        with patch("app.routers.nft.chain_configured", return_value=True), \
                patch("app.services.nft_verification.fetch_nft_balance", return_value=1) as fetch:
            client.post("/auth/wallet-connect", json={"wallet_address": WALLET}, headers=auth_headers(member))
            response = client.post("/auth/verify-nft", json={}, headers=auth_headers(member))
        assert response.status_code == 200
        assert response.json()["cached"] is True
        assert fetch.call_count == 1

    def test_disconnect(self, client, nft_member, db_session):
        response = client.delete("/auth/wallet-connect", headers=auth_headers(nft_member))
        assert response.status_code == 200
        assert response.json()["wallet_address"] is None
        assert response.json()["nft_holder"] is False
        assert db_session.query(User).filter(User.id == nft_member.id).one().nft_holder is False
