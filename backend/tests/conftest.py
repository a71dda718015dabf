import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from app.database import get_db
from app.main import app
from app.config import settings
from app.models import Follow, Review, Subject, SubjectType, User
from app.services.session_service import session_service


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
def tmp_data(tmp_path):
    data_path = tmp_path / "ReviewHubData"
    data_path.mkdir()
    return data_path


@pytest.fixture
def test_db(tmp_data):
    db_path = tmp_data / "reviewhub.sqlite"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    TestSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    from app.database import init_db
    init_db(db_path)

    def override_get_db():
        db = TestSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestSession
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def db(test_db):
    session = test_db()
    yield session
    session.close()


@pytest.fixture
def fresh_sessions():
    """Reset the bearer session store for each test."""
    session_service.clear()
    yield session_service
    session_service.clear()


@pytest.fixture
def client(tmp_data, test_db, fresh_sessions):
    original_data_path = settings.data_path
    settings.data_path = tmp_data
    c = TestClient(app)
    yield c
    settings.data_path = original_data_path


class Seeder:
    """Direct inserts, for datasets that need exact timestamps."""

    def __init__(self, db):
        self.db = db
        self._subject_type = None

    def _save(self, obj):
        self.db.add(obj)
        self.db.commit()
        self.db.refresh(obj)
        return obj

    def user(self, username="reviewer", display_name=None, is_moderator=False):
        return self._save(User(
            username=username,
            display_name=display_name,
            password_hash="not-a-real-hash",
            is_moderator=is_moderator,
            created_at="2024-01-01T00:00:00Z",
        ))

    def subject_type(self, key="books", display_name="Books"):
        return self._save(SubjectType(key=key, display_name=display_name))

    def subject(self, name, slug=None, subject_type=None, created_at="2024-01-01T00:00:00Z"):
        if subject_type is None:
            if self._subject_type is None:
                self._subject_type = self.subject_type()
            subject_type = self._subject_type
        return self._save(Subject(
            subject_type_id=subject_type.id,
            name=name,
            slug=slug or name.lower().replace(" ", "-"),
            is_deleted=False,
            created_at=created_at,
        ))

    def review(self, subject, user, title=None, content=None,
               created_at="2024-01-01T00:00:00Z", status="approved"):
        return self._save(Review(
            subject_id=subject.id,
            user_id=user.id,
            title=title,
            content=content,
            status=status,
            is_deleted=False,
            created_at=created_at,
            updated_at=created_at,
        ))

    def follow(self, follower, target_type, target):
        follow = Follow(follower_id=follower.id, target_type=target_type, created_at="2024-01-01T00:00:00Z")
        column = {"subject": "subject_id", "subject_type": "subject_type_id", "user": "followed_user_id"}[target_type]
        setattr(follow, column, target.id)
        return self._save(follow)


@pytest.fixture
def seed(db):
    return Seeder(db)


@pytest.fixture
def bearer(fresh_sessions):
    """Headers for a seeded user, skipping the password round trip."""
    def _headers(user):
        return {"Authorization": f"Bearer {fresh_sessions.issue(user.id)['token']}"}
    return _headers


@pytest.fixture
def auth_headers(client, db):
    """Register and log in a user through the API; returns (user_id, headers)."""
    def _login(username="alice", password="correct-horse-battery"):
        r = client.post("/api/v1/users", json={"username": username, "password": password})
        assert r.status_code == 201
        user_id = r.json()["id"]
        r = client.post("/api/v1/users/login", json={"username": username, "password": password})
        assert r.status_code == 200
        return user_id, {"Authorization": f"Bearer {r.json()['token']}"}
    return _login
