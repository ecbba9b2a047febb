# tests/database/test_db_init.py
import pytest
from sqlalchemy.exc import IntegrityError

from worktrack import config
from worktrack.database import models
from worktrack.database.database import make_engine, make_session_factory
from worktrack.database.db_init import initialize_db
from worktrack.database.unit_of_work import UnitOfWork
from worktrack.utils.passwords import verify_password


@pytest.fixture
def fresh_engine():
    """테이블이 아직 없는 인메모리 엔진"""
    engine = make_engine("sqlite://")
    yield engine
    engine.dispose()


class TestInitializeDb:
    def test_seeds_admin_once(self, fresh_engine):
        session_factory = make_session_factory(fresh_engine)

        initialize_db(fresh_engine, session_factory)
        # 두 번째 호출은 기존 사용자가 있으므로 아무것도 하지 않아야 함
        initialize_db(fresh_engine, session_factory)

        session = session_factory()
        users = session.query(models.User).all()
        session.close()
        assert len(users) == 1
        assert users[0].role is models.Role.ADMIN
        assert users[0].email == config.ADMIN_EMAIL
        assert verify_password(config.ADMIN_PASSWORD, users[0].password_hash)


class TestUnitOfWork:
    def test_commits_on_success(self, db_session):
        with UnitOfWork(db_session):
            db_session.add(models.User(name="Kim", email="kim@example.com", password_hash="x", role=models.Role.MEMBER))

        db_session.expunge_all()
        assert db_session.query(models.User).filter_by(email="kim@example.com").count() == 1

    def test_rolls_back_and_reraises_on_error(self, db_session):
        with pytest.raises(RuntimeError):
            with UnitOfWork(db_session):
                db_session.add(models.User(name="Kim", email="kim@example.com", password_hash="x", role=models.Role.MEMBER))
                db_session.flush()
                raise RuntimeError("boom")

        assert db_session.query(models.User).filter_by(email="kim@example.com").count() == 0

    def test_foreign_keys_are_enforced(self, db_session):
        """SQLite에서도 외래 키 제약이 켜져 있어야 CASCADE 삭제가 동작합니다."""
        db_session.add(models.Module(project_id=12345, module_name="Orphan", progress=0))
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()
