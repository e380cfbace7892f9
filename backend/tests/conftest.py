import os

# Must be set before chemdose.config is imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"

from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from chemdose.database import Base, get_db
from chemdose.main import app
from chemdose.models import Tank, Reading, ChemicalSupply, ShapeType, SystemType


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def client(engine):
    Session = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    def override_get_db():
        session = Session()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    # No context manager: the lifespan scheduler is not started in tests
    yield TestClient(app)
    app.dependency_overrides.clear()


def make_tank(**kwargs) -> Tank:
    """Transient tank without geometry: 10 L per cm, 1000 L capacity."""
    values = dict(
        id=1,
        name="T-1",
        system=SystemType.OTHER,
        capacity_liters=1000.0,
        factor=10.0,
        validation_threshold=30.0,
    )
    values.update(kwargs)
    return Tank(**values)


def make_reading(day: datetime, volume: float, tank_id: int = 1, added: float = 0.0, sg: float = 1.0, **kwargs) -> Reading:
    return Reading(
        tank_id=tank_id,
        timestamp=day,
        level_cm=volume / 10,
        calculated_volume=volume,
        calculated_weight_kg=volume * sg,
        applied_specific_gravity=sg,
        added_amount_liters=added,
        **kwargs,
    )


def make_supply(start: datetime, sg: float = 1.2, price: float = None, ppm: float = None, tank_id: int = 1, id: int = None) -> ChemicalSupply:
    return ChemicalSupply(
        id=id,
        tank_id=tank_id,
        supplier_name="Acme",
        chemical_name="Inhibitor",
        specific_gravity=sg,
        price=price,
        start_date=start,
        target_ppm=ppm,
    )


@pytest.fixture
def vertical_tank():
    return make_tank(
        factor=None,
        capacity_liters=None,
        shape_type=ShapeType.VERTICAL_CYLINDER,
        diameter_cm=100.0,
        height_cm=200.0,
    )
