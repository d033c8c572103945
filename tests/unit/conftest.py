from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))
sys.path.insert(0, str(Path(__file__).resolve().parent))

from fakes import (
    FakeGeoTokenRepository,
    FakeLocationRepository,
    FakeMenuRepository,
    FakeOrderRepository,
    FakePaymentGateway,
    FakePublisher,
    make_location,
    make_menu,
)
from walkin.domain.location.entities import Location


@pytest.fixture
def location() -> Location:
    return make_location()


@pytest.fixture
def location_repository(location: Location) -> FakeLocationRepository:
    return FakeLocationRepository(location)


@pytest.fixture
def menu_repository() -> FakeMenuRepository:
    return FakeMenuRepository(make_menu())


@pytest.fixture
def geo_token_repository() -> FakeGeoTokenRepository:
    return FakeGeoTokenRepository()


@pytest.fixture
def order_repository(geo_token_repository: FakeGeoTokenRepository) -> FakeOrderRepository:
    return FakeOrderRepository(geo_token_repository)


@pytest.fixture
def publisher() -> FakePublisher:
    return FakePublisher()


@pytest.fixture
def payment_gateway() -> FakePaymentGateway:
    return FakePaymentGateway()
