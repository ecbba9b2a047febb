# tests/conftest.py
import pytest

from worktrack.app import build_services
from worktrack.database import models
from worktrack.database.database import Base, make_engine, make_session_factory
from worktrack.services.actor import Actor
from worktrack.services.identity_service import IdentityService
from worktrack.utils.passwords import hash_password

TEST_PASSWORD = "secret123"

# ===================================================================
#  공통 Fixture
# ===================================================================

@pytest.fixture(autouse=True)
def clear_token_cache():
    """토큰 캐시는 클래스 변수이므로 테스트마다 비워줍니다."""
    IdentityService._token_cache.clear()
    yield
    IdentityService._token_cache.clear()

@pytest.fixture
def engine():
    """테스트마다 새로운 인메모리 SQLite 엔진을 만듭니다."""
    engine = make_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)

@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()

@pytest.fixture
def services(db_session):
    return build_services(db_session)

@pytest.fixture
def make_user(db_session):
    """이름과 역할을 받아 사용자를 저장하고 Actor를 돌려주는 팩토리."""
    def _make(name: str, role: models.Role, active: bool = True) -> Actor:
        user = models.User(
            name=name,
            email=f"{name.lower().replace(' ', '.')}@example.com",
            password_hash=hash_password(TEST_PASSWORD),
            role=role,
            active=active,
        )
        db_session.add(user)
        db_session.commit()
        return Actor.from_user(user)
    return _make

@pytest.fixture
def admin(make_user) -> Actor:
    return make_user("Admin", models.Role.ADMIN)

@pytest.fixture
def leader(make_user) -> Actor:
    return make_user("Lena Leader", models.Role.LEADER)

@pytest.fixture
def other_leader(make_user) -> Actor:
    return make_user("Oscar Leader", models.Role.LEADER)

@pytest.fixture
def member(make_user) -> Actor:
    return make_user("Mia Member", models.Role.MEMBER)

@pytest.fixture
def other_member(make_user) -> Actor:
    return make_user("Noah Member", models.Role.MEMBER)
