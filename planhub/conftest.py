# planhub/conftest.py
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, insert
from sqlalchemy.pool import StaticPool
from sqlalchemy.orm import sessionmaker

from planhub.core.config import settings
from planhub.core.database import get_db, metadata, plans, users
from planhub.core.tokens import issue_access_token

TEST_JWT_SECRET = "test-secret-key-for-planhub-procedures"


@pytest.fixture(autouse=True)
def jwt_settings():
    """Sign and verify tokens with a fixed HS256 secret; restore afterwards."""
    orig = {
        "secret": settings.JWT_SECRET_KEY,
        "algorithm": settings.JWT_ALGORITHM,
        "issuer": settings.JWT_ISSUER,
        "aud": settings.JWT_AUDIENCE,
    }

    settings.JWT_SECRET_KEY = TEST_JWT_SECRET
    settings.JWT_ALGORITHM = "HS256"
    settings.JWT_ISSUER = None
    settings.JWT_AUDIENCE = None

    yield settings

    settings.JWT_SECRET_KEY = orig["secret"]
    settings.JWT_ALGORITHM = orig["algorithm"]
    settings.JWT_ISSUER = orig["issuer"]
    settings.JWT_AUDIENCE = orig["aud"]


@pytest.fixture
def test_engine():
    engine = create_engine(
        "sqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(test_engine):
    return sessionmaker(bind=test_engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    from planhub.main import app

    def override_get_db():
        db = session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def seed(test_engine):
    """Insert users/plans directly, bypassing the procedures."""

    class Seeder:
        def user(self, user_id: str, is_admin: bool = False, email=None):
            with test_engine.begin() as conn:
                conn.execute(insert(users).values(id=user_id, email=email, is_admin=is_admin))
            return user_id

        def plan(self, plan_id: str, name: str, price: float):
            with test_engine.begin() as conn:
                conn.execute(insert(plans).values(id=plan_id, name=name, price=price))
            return plan_id

    return Seeder()


@pytest.fixture
def admin_headers(seed):
    seed.user("admin-1", is_admin=True, email="admin@mail.com")
    return {"Authorization": f"Bearer {issue_access_token('admin-1')}"}


@pytest.fixture
def user_headers(seed):
    seed.user("user-1", is_admin=False, email="user@mail.com")
    return {"Authorization": f"Bearer {issue_access_token('user-1')}"}
