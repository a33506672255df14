import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.api.deps import get_image_storage
from app.database import Base, get_db
from app.main import app
from app.models.category import Category
from app.services.category_service import CategoryService
from app.services.category_store import CategoryStore
from app.services.errors import StorageFault
from app.services.image_storage import ImageUpload, LocalImageStorage
from app.utils.security import create_access_token

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


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
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def storage(tmp_path):
    return LocalImageStorage(
        upload_dir=str(tmp_path / "uploads"),
        private_dir=str(tmp_path / "private"),
        base_url="https://cdn.test",
    )


@pytest.fixture
def store(db):
    return CategoryStore(db)


@pytest.fixture
def service(store, storage):
    return CategoryService(store, storage)


@pytest.fixture
def png_image():
    return ImageUpload(content=PNG_BYTES, filename="banner.png", content_type="image/png")


class FailingStorage(LocalImageStorage):
    """Object store whose every call fails"""

    def put(self, content, original_name, folder, visibility="public-read"):
        raise StorageFault("Error uploading file: bucket unavailable")

    def delete(self, url):
        raise StorageFault(f"Error deleting {url}: bucket unavailable")


@pytest.fixture
def failing_storage(tmp_path):
    return FailingStorage(upload_dir=str(tmp_path / "uploads"), base_url="https://cdn.test")


@pytest.fixture
def check_invariants(db):
    """Assert level and is_parent are consistent for every stored category"""
    def check():
        db.expire_all()
        rows = {c.id: c for c in db.query(Category).all()}
        for category in rows.values():
            if category.is_active:
                if category.parent_id is None:
                    assert category.level == 0, category.name
                else:
                    assert category.level == rows[category.parent_id].level + 1, category.name
            has_active_child = any(
                child.parent_id == category.id and child.is_active for child in rows.values()
            )
            assert category.is_parent == has_active_child, category.name
        names = [c.name for c in rows.values()]
        slugs = [c.slug for c in rows.values()]
        assert len(names) == len(set(names))
        assert len(slugs) == len(set(slugs))
    return check


@pytest.fixture
def client(session_factory, storage):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_image_storage] = lambda: storage
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = create_access_token({"sub": "admin-1", "role": "administrator"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def viewer_headers():
    token = create_access_token({"sub": "buyer-7", "role": "customer"})
    return {"Authorization": f"Bearer {token}"}
