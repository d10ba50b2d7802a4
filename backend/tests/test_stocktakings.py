"""Stocktaking lifecycle: single active snapshot, copy-forward, all-or-nothing creation."""
import asyncio
import datetime

import pytest
from sqlalchemy import select
from sqlalchemy import exc as sa_exc

from core.config import settings
from core.errors import NotFound, StorageError, StorageUnavailable, ValidationError
from db.database import Stocktaking
from services import records as record_service
from services import stocktakings as stocktaking_service
from services.bootstrap import seed_defaults

Q2_DATE = datetime.date(2024, 6, 1)


async def active_ids(db):
    result = await db.execute(select(Stocktaking.id).where(Stocktaking.active.is_(True)))
    return list(result.scalars().all())


def copied_values(records):
    return sorted(
        (r.item_id, r.storage_location_id, r.unit_id, r.quantity, r.expiry_date)
        for r in records
    )


class TestCreateStocktaking:
    async def test_first_stocktaking_becomes_active(self, db_session):
        created = await stocktaking_service.create_stocktaking(db_session, "Q1", datetime.date(2024, 3, 1))
        assert created.active is True
        assert await active_ids(db_session) == [created.id]

    async def test_new_stocktaking_deactivates_previous(self, db_session, first_stocktaking):
        created = await stocktaking_service.create_stocktaking(db_session, "Q2", Q2_DATE)
        assert await active_ids(db_session) == [created.id]

        await db_session.refresh(first_stocktaking)
        assert first_stocktaking.active is False

    async def test_copy_forward(self, db_session, stocked):
        source, source_records = stocked

        created = await stocktaking_service.create_stocktaking(
            db_session, "Q2", Q2_DATE, copy_from_id=source.id
        )

        copies = await record_service.list_by_snapshot(db_session, created.id)
        assert len(copies) == 3
        assert copied_values(copies) == copied_values(source_records)
        assert all(c.stocktaking_id == created.id for c in copies)
        assert {c.id for c in copies}.isdisjoint({r.id for r in source_records})

        # The source keeps its own records
        originals = await record_service.list_by_snapshot(db_session, source.id)
        assert sorted(r.id for r in originals) == sorted(r.id for r in source_records)

    async def test_copies_are_independent(self, db_session, stocked):
        source, source_records = stocked
        source_id = source.id
        expected = copied_values(source_records)
        created = await stocktaking_service.create_stocktaking(
            db_session, "Q2", Q2_DATE, copy_from_id=source_id
        )

        copies = await record_service.list_by_snapshot(db_session, created.id)
        copies[0].quantity = 0
        await db_session.commit()
        db_session.expire_all()

        originals = await record_service.list_by_snapshot(db_session, source_id)
        assert copied_values(originals) == expected

    async def test_unknown_source_creates_empty_snapshot(self, db_session, stocked):
        created = await stocktaking_service.create_stocktaking(db_session, "Q2", Q2_DATE, copy_from_id=999)
        assert await record_service.list_by_snapshot(db_session, created.id) == []
        assert await active_ids(db_session) == [created.id]

    async def test_empty_source_copies_nothing(self, db_session, first_stocktaking):
        created = await stocktaking_service.create_stocktaking(
            db_session, "Q2", Q2_DATE, copy_from_id=first_stocktaking.id
        )
        assert await record_service.list_by_snapshot(db_session, created.id) == []

    @pytest.mark.parametrize("name", ["", "   ", None])
    async def test_name_required(self, db_session, name):
        with pytest.raises(ValidationError):
            await stocktaking_service.create_stocktaking(db_session, name, Q2_DATE)

    async def test_date_required(self, db_session):
        with pytest.raises(ValidationError):
            await stocktaking_service.create_stocktaking(db_session, "Q2", None)


class TestAtomicity:
    async def test_failed_copy_rolls_everything_back(self, db_session, stocked, monkeypatch):
        source_id = stocked[0].id

        async def broken_clone(db, source_id, target_id):
            raise sa_exc.OperationalError("INSERT INTO stock_records", {}, Exception("disk I/O error"))

        monkeypatch.setattr(stocktaking_service, "_clone_records", broken_clone)

        with pytest.raises(StorageError) as excinfo:
            await stocktaking_service.create_stocktaking(db_session, "Q2", Q2_DATE, copy_from_id=source_id)
        assert not isinstance(excinfo.value, StorageUnavailable)

        # No new row, and the previous stocktaking is still the active one
        assert await stocktaking_service.count_stocktakings(db_session) == 1
        assert await active_ids(db_session) == [source_id]

    async def test_timeout_rolls_back_and_reports_unavailable(self, db_session, stocked, monkeypatch):
        source_id = stocked[0].id

        async def stalled_clone(db, source_id, target_id):
            await asyncio.sleep(5)

        monkeypatch.setattr(stocktaking_service, "_clone_records", stalled_clone)
        monkeypatch.setattr(settings, "storage_timeout_seconds", 0.05)

        with pytest.raises(StorageUnavailable):
            await stocktaking_service.create_stocktaking(db_session, "Q2", Q2_DATE, copy_from_id=source_id)

        assert await stocktaking_service.count_stocktakings(db_session) == 1
        assert await active_ids(db_session) == [source_id]

    async def test_single_active_index(self, db_session, first_stocktaking):
        db_session.add(Stocktaking(name="Rogue", date=Q2_DATE, active=True))
        with pytest.raises(sa_exc.IntegrityError):
            await db_session.commit()
        await db_session.rollback()


class TestQueries:
    async def test_deactivate_all_is_idempotent(self, db_session, first_stocktaking):
        await stocktaking_service.deactivate_all(db_session)
        await stocktaking_service.deactivate_all(db_session)
        await db_session.commit()

        assert await active_ids(db_session) == []
        assert await stocktaking_service.active_stocktaking(db_session) is None

    async def test_list_newest_date_first(self, db_session):
        for name, day in [("March", 1), ("June", 6), ("April", 4)]:
            await stocktaking_service.create_stocktaking(db_session, name, datetime.date(2024, day, 1))
        db_session.expire_all()

        listed = await stocktaking_service.list_stocktakings(db_session)
        assert [s.name for s in listed] == ["June", "April", "March"]
        assert [s.active for s in listed] == [False, True, False]

    async def test_get_unknown_stocktaking(self, db_session):
        with pytest.raises(NotFound):
            await stocktaking_service.get_stocktaking(db_session, 42)


class TestStocktakingApi:
    async def test_quarterly_rollover(self, client, db_session, masters):
        """Log in, record stock in the seeded snapshot, then open Q2 from it."""
        await seed_defaults(db_session)
        assert (await client.post("/api/login", json={"name": "admin", "password": "password123"})).status_code == 200

        active = (await client.get("/api/stocktakings/active")).json()
        assert active["id"] == 1

        for item, location, quantity in [
            ("water", "warehouse", 120),
            ("water", "office", 24),
            ("blanket", "warehouse", 60),
        ]:
            resp = await client.post(
                "/api/records",
                json={
                    "bichikuhinId": masters[item].id,
                    "locationId": masters[location].id,
                    "quantity": quantity,
                    "stocktakingId": 1,
                },
            )
            assert resp.status_code == 200

        resp = await client.post(
            "/api/stocktakings",
            json={"name": "Q2", "date": "2024-06-01", "copyFromId": 1},
        )
        assert resp.status_code == 201
        q2 = resp.json()
        assert q2["active"] is True
        assert q2["name"] == "Q2"

        listed = (await client.get("/api/stocktakings")).json()
        assert [s["id"] for s in listed if s["active"]] == [q2["id"]]

        assert (await client.get("/api/stocktakings/active")).json()["id"] == q2["id"]

        copies = (await client.get(f"/api/records/{q2['id']}")).json()
        originals = (await client.get("/api/records/1")).json()
        assert len(copies) == len(originals) == 3
        assert sorted(r["quantity"] for r in copies) == [24, 60, 120]

    @pytest.mark.parametrize("copy_from", ["", 0, None])
    async def test_blank_copy_source(self, client, user_headers, db_session, stocked, copy_from):
        resp = await client.post(
            "/api/stocktakings",
            json={"name": "Q2", "date": "2024-06-01", "copyFromId": copy_from},
            headers=user_headers,
        )
        assert resp.status_code == 201
        created_id = resp.json()["id"]

        records = (await client.get(f"/api/records/{created_id}", headers=user_headers)).json()
        assert records == []

    async def test_no_active_stocktaking(self, client, user_headers):
        resp = await client.get("/api/stocktakings/active", headers=user_headers)
        assert resp.status_code == 404

    async def test_missing_fields(self, client, user_headers):
        resp = await client.post("/api/stocktakings", json={"name": "Q2"}, headers=user_headers)
        assert resp.status_code == 400

        resp = await client.post(
            "/api/stocktakings", json={"name": " ", "date": "2024-06-01"}, headers=user_headers
        )
        assert resp.status_code == 400

    async def test_requires_session(self, client):
        resp = await client.post("/api/stocktakings", json={"name": "Q2", "date": "2024-06-01"})
        assert resp.status_code == 401
        assert (await client.get("/api/stocktakings")).status_code == 401
