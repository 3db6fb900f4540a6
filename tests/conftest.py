import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from marketstock.database import Base, get_db, get_session_factory, make_engine
from marketstock.main import app
import marketstock.models  # noqa: F401
from marketstock.utils.cache import QueryCache, get_query_cache
from marketstock.utils.store import RemoteStore


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def store(db):
    return RemoteStore(db)


@pytest.fixture
def cache():
    return QueryCache()


@pytest.fixture
def client(session_factory, cache):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_query_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


# ---- data helpers ----
@pytest.fixture
def seed(store):
    """Two markets, two categories, two suppliers and nothing else."""
    markets = store.table("markets").insert([{"name": "Marché Bastille"}, {"name": "Marché Aligre"}])
    categories = store.table("categories").insert([{"name": "Fruits"}, {"name": "Épicerie"}])
    suppliers = store.table("suppliers").insert([
        {"name": "Dupont Primeurs", "phone_number": "+33 6 12 34 56 78"},
        {"name": "Martin SARL", "phone_number": None},
    ])
    return {
        "markets": [m["id"] for m in markets],
        "categories": [c["id"] for c in categories],
        "suppliers": [s["id"] for s in suppliers],
    }
