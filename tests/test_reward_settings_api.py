"""Tests for the reward settings loader and save action endpoints."""

import math

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from app.api.deps import get_reward_settings_service
from app.config import settings
from app.main import app
from app.models.reward_settings import RewardSettings
from app.services.reward_settings_service import (
    RewardSettingsReadError,
    RewardSettingsWriteError,
)

SHOP = "shop1.myshopify.com"

URL = "/api/v1/reward-settings"

FIELD_SET = {
    "affiliate_reward_type": "fixed",
    "affiliate_reward_value": "25",
    "customer_reward_type": "percentage",
    "customer_reward_value": "5",
    "next_order_discount_type": "percentage",
    "next_order_discount_value": "5",
}


async def _rows(session_factory):
    async with session_factory() as session:
        result = await session.execute(select(RewardSettings))
        return result.scalars().all()


class TestLoader:
    async def test_defaults_when_no_row(self, client, auth_headers):
        response = await client.get(URL, headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["shop"] == SHOP
        settings_body = body["settings"]
        assert settings_body["affiliate_reward_type"] == "percentage"
        assert settings_body["affiliate_reward_value"] == 10
        assert settings_body["customer_reward_type"] == "percentage"
        assert settings_body["customer_reward_value"] == 5
        assert settings_body["next_order_discount_type"] == "percentage"
        assert settings_body["next_order_discount_value"] == 5

    async def test_existing_row_returned_verbatim(self, client, auth_headers, db_session):
        db_session.add(RewardSettings(
            shop_domain=SHOP,
            affiliate_reward_type="fixed",
            affiliate_reward_value=12.5,
            customer_reward_type="fixed",
            customer_reward_value=None,
            next_order_discount_type="percentage",
            next_order_discount_value=0,
        ))
        await db_session.commit()

        response = await client.get(URL, headers=auth_headers)

        settings_body = response.json()["settings"]
        assert settings_body["shop_domain"] == SHOP
        assert settings_body["affiliate_reward_type"] == "fixed"
        assert settings_body["affiliate_reward_value"] == 12.5
        assert settings_body["customer_reward_type"] == "fixed"
        # A missing value is not replaced by a default
        assert settings_body["customer_reward_value"] is None
        assert settings_body["next_order_discount_value"] == 0
        assert settings_body["updated_at"] is not None
        assert isinstance(settings_body["id"], int)
        assert settings_body["created_at"] is not None

    async def test_other_shop_row_is_not_visible(self, client, make_session_token, db_session):
        db_session.add(RewardSettings(
            shop_domain="other.myshopify.com",
            affiliate_reward_type="fixed",
            affiliate_reward_value=99,
            customer_reward_type="fixed",
            customer_reward_value=99,
            next_order_discount_type="fixed",
            next_order_discount_value=99,
        ))
        await db_session.commit()

        token = make_session_token()
        response = await client.get(URL, headers={"Authorization": f"Bearer {token}"})

        assert response.json()["settings"]["affiliate_reward_value"] == 10

    async def test_read_error_is_503(self, client, auth_headers):
        class FailingService:
            async def load_view_model(self, shop_domain):
                raise RewardSettingsReadError("connection refused")

        app.dependency_overrides[get_reward_settings_service] = lambda: FailingService()

        response = await client.get(URL, headers=auth_headers)

        assert response.status_code == 503
        assert "connection refused" in response.json()["detail"]


class TestAction:
    async def test_save_then_load_round_trips(self, client, auth_headers):
        field_set = {
            "affiliate_reward_type": "percentage",
            "affiliate_reward_value": "12.5",
            "customer_reward_type": "fixed",
            "customer_reward_value": "3",
            "next_order_discount_type": "fixed",
            "next_order_discount_value": "0",
        }

        response = await client.post(URL, data=field_set, headers=auth_headers)
        assert response.status_code == 200
        assert response.json() == {"success": True}

        loaded = (await client.get(URL, headers=auth_headers)).json()["settings"]
        assert loaded["affiliate_reward_type"] == "percentage"
        assert loaded["affiliate_reward_value"] == 12.5
        assert loaded["customer_reward_type"] == "fixed"
        assert loaded["customer_reward_value"] == 3
        assert loaded["next_order_discount_type"] == "fixed"
        assert loaded["next_order_discount_value"] == 0

    async def test_saving_twice_keeps_one_row(self, client, auth_headers, session_factory):
        await client.post(URL, data=FIELD_SET, headers=auth_headers)
        second = dict(FIELD_SET, affiliate_reward_value="30")
        await client.post(URL, data=second, headers=auth_headers)

        rows = await _rows(session_factory)
        assert len(rows) == 1
        assert rows[0].affiliate_reward_value == 30

    async def test_first_save_scenario(self, client, auth_headers, session_factory):
        defaults = (await client.get(URL, headers=auth_headers)).json()["settings"]
        assert defaults["affiliate_reward_value"] == 10

        response = await client.post(URL, data=FIELD_SET, headers=auth_headers)
        assert response.status_code == 200

        rows = await _rows(session_factory)
        assert len(rows) == 1
        row = rows[0]
        assert row.shop_domain == "shop1.myshopify.com"
        assert row.affiliate_reward_type == "fixed"
        assert row.affiliate_reward_value == 25
        assert row.customer_reward_type == "percentage"
        assert row.customer_reward_value == 5
        assert row.next_order_discount_type == "percentage"
        assert row.next_order_discount_value == 5

        loaded = (await client.get(URL, headers=auth_headers)).json()["settings"]
        assert loaded["affiliate_reward_type"] == "fixed"
        assert loaded["affiliate_reward_value"] == 25
        assert loaded["customer_reward_value"] == 5
        assert loaded["next_order_discount_value"] == 5

    async def test_non_numeric_value_is_stored_without_rejection(
        self, client, auth_headers, session_factory
    ):
        data = dict(FIELD_SET, affiliate_reward_value="abc")

        response = await client.post(URL, data=data, headers=auth_headers)

        assert response.status_code == 200
        rows = await _rows(session_factory)
        value = rows[0].affiliate_reward_value
        # SQLite stores NaN as NULL
        assert value is None or math.isnan(value)

    async def test_unknown_type_passes_through(self, client, auth_headers, session_factory):
        data = dict(FIELD_SET, customer_reward_type="bogus")

        response = await client.post(URL, data=data, headers=auth_headers)

        assert response.status_code == 200
        rows = await _rows(session_factory)
        assert rows[0].customer_reward_type == "bogus"

    async def test_strict_mode_rejects_bad_fields(
        self, client, auth_headers, session_factory, monkeypatch
    ):
        monkeypatch.setattr(settings, "STRICT_REWARD_VALIDATION", True)
        data = dict(FIELD_SET, affiliate_reward_value="abc", customer_reward_type="bogus")

        response = await client.post(URL, data=data, headers=auth_headers)

        assert response.status_code == 422
        detail = response.json()["detail"]
        assert "affiliate_reward_value" in detail
        assert "customer_reward_type" in detail
        assert await _rows(session_factory) == []

    async def test_write_error_is_500_with_message(self, client, auth_headers):
        class FailingService:
            async def save_form(self, shop_domain, fields, strict=False):
                raise RewardSettingsWriteError("duplicate key value violates unique constraint")

        app.dependency_overrides[get_reward_settings_service] = lambda: FailingService()

        response = await client.post(URL, data=FIELD_SET, headers=auth_headers)

        assert response.status_code == 500
        assert response.json()["detail"] == "duplicate key value violates unique constraint"

    async def test_each_shop_gets_its_own_row(self, client, make_session_token, session_factory):
        for shop in ("a.myshopify.com", "b.myshopify.com"):
            token = make_session_token(shop=shop)
            await client.post(URL, data=FIELD_SET, headers={"Authorization": f"Bearer {token}"})

        async with session_factory() as session:
            count = await session.scalar(select(func.count(RewardSettings.id)))
        assert count == 2


class TestAuthentication:
    async def test_missing_token_is_401(self, client):
        response = await client.get(URL)

        assert response.status_code == 401
        assert response.json()["detail"] == "Could not validate credentials"

    async def test_bad_signature_is_401(self, client, make_session_token):
        token = make_session_token(secret="not-the-secret")

        response = await client.get(URL, headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    async def test_unauthenticated_save_writes_nothing(self, client, session_factory):
        response = await client.post(URL, data=FIELD_SET)

        assert response.status_code == 401
        assert await _rows(session_factory) == []

    async def test_id_token_query_parameter(self, client, make_session_token):
        token = make_session_token()

        response = await client.get(URL, params={"id_token": token})

        assert response.status_code == 200
        assert response.json()["shop"] == SHOP


async def test_health_reports_connected_database(client, session_factory, monkeypatch):
    monkeypatch.setattr("app.main.async_session_factory", session_factory)

    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["checks"]["database"] == "connected"


async def test_health_reports_unreachable_database(client, monkeypatch):
    def broken_factory():
        raise OperationalError("SELECT 1", {}, Exception("connection refused"))

    monkeypatch.setattr("app.main.async_session_factory", broken_factory)

    response = await client.get("/health")

    assert response.status_code == 503
    assert response.json()["checks"]["database"].startswith("error:")


async def test_root(client):
    response = await client.get("/")

    assert response.status_code == 200
    assert response.json()["settings_page"] == "/app/settings"
