import os
import tempfile
from pathlib import Path

# ---- test DB path: must be set before db.py creates the engine ----
_TMP_DIR = Path(tempfile.mkdtemp(prefix="equip_lending_"))
os.environ["APP_DB_PATH"] = str(_TMP_DIR / "test_equip.db")
os.environ.setdefault("APP_LOCK_TIMEOUT", "5")

import pytest
from fastapi.testclient import TestClient


@pytest.fixture(scope="session")
def app_module():
    import main

    return main


@pytest.fixture()
def client(app_module):
    def _get_db_override():
        db = app_module.SessionLocal()
        try:
            yield db
        finally:
            db.close()

    app_module.app.dependency_overrides[app_module.get_db] = _get_db_override
    with TestClient(app_module.app) as c:
        yield c
    app_module.app.dependency_overrides.clear()


@pytest.fixture()
def db_session(app_module):
    db = app_module.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def coordinator(app_module):
    return app_module.app.state.coordinator


@pytest.fixture(autouse=True)
def clean_db(app_module, db_session):
    # bulk deletes skip the ORM delete hooks; records go first (asset FK is RESTRICT)
    from sqlalchemy import delete
    from orm import AssetORM, BorrowerORM, LendingRecordORM

    db_session.execute(delete(LendingRecordORM))
    db_session.execute(delete(AssetORM))
    db_session.execute(delete(BorrowerORM))
    db_session.commit()
    yield


@pytest.fixture()
def make_asset(db_session):
    import crud
    from models import AssetIn

    def _make(name="Projector", category="AV", description=None):
        return crud.create_asset(db_session, AssetIn(name=name, category=category, description=description))

    return _make


@pytest.fixture()
def make_borrower(db_session):
    import crud
    from models import BorrowerIn

    def _make(name="Alice", contact="alice@example.com"):
        return crud.create_borrower(db_session, BorrowerIn(name=name, contact=contact))

    return _make
