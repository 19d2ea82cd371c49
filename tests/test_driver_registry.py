"""Driver writes share the order store's error translation."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from sqlalchemy.exc import OperationalError

from fulfillment.core.errors import StorageError, ValidationError
from fulfillment.models import DriverStatus
from fulfillment.services import driver_registry


def _locked():
    return AsyncMock(side_effect=OperationalError("COMMIT", {}, Exception("database is locked")))


@pytest.mark.asyncio
async def test_new_driver_starts_offline_with_baselines(session):
    driver = await driver_registry.create_driver(session, name="Dara", phone="+44 7700 900001")

    stored = await driver_registry.get_driver(session, driver.id)
    assert stored.status is DriverStatus.OFFLINE
    assert stored.rating == driver_registry.NEW_DRIVER_RATING


@pytest.mark.asyncio
async def test_store_outage_on_create_is_a_storage_error(session, monkeypatch):
    monkeypatch.setattr(session, "commit", _locked())

    with pytest.raises(StorageError) as excinfo:
        await driver_registry.create_driver(session, name="Dara", phone="+44 7700 900001")
    assert excinfo.value.retryable is True


@pytest.mark.asyncio
async def test_store_outage_on_status_change_is_a_storage_error(session, make_driver, monkeypatch):
    driver = await make_driver()
    driver_id = driver.id
    monkeypatch.setattr(session, "commit", _locked())

    with pytest.raises(StorageError):
        await driver_registry.set_driver_status(session, driver_id, "active")

    monkeypatch.undo()
    stored = await driver_registry.get_driver(session, driver_id)
    assert stored.status is DriverStatus.OFFLINE


@pytest.mark.asyncio
async def test_unknown_driver_status_is_rejected(session, make_driver):
    driver = await make_driver()
    with pytest.raises(ValidationError, match="Unknown driver status"):
        await driver_registry.set_driver_status(session, driver.id, "asleep")
