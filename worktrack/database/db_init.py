import logging

from worktrack import config
from worktrack.utils.passwords import hash_password
from .database import Base, make_engine, make_session_factory
from .models import *

logger = logging.getLogger(__name__)


def initialize_db(engine, session_factory):
    """
    테이블을 생성하고, 사용자가 한 명도 없으면 기본 관리자 계정을 삽입합니다.
    SQLAlchemy 모델을 사용하여 모든 작업을 수행합니다.
    """
    logger.info("Initializing database schema...")

    # 모든 테이블을 생성합니다. (이미 존재하면 생성하지 않음)
    Base.metadata.create_all(bind=engine)

    db = session_factory()
    try:
        # 기본 데이터가 이미 있는지 확인
        if db.query(User).first():
            logger.info("Users already exist. Skipping seed data.")
            return

        password_hash = hash_password(config.ADMIN_PASSWORD)
        admin_user = User(
            name=config.ADMIN_NAME,
            email=config.ADMIN_EMAIL,
            password_hash=password_hash,
            role=Role.ADMIN,
            active=True,
        )
        db.add(admin_user)
        db.commit()
        logger.info("Seeded admin account '%s'.", config.ADMIN_EMAIL)
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


if __name__ == '__main__':
    config.configure_logging()
    engine = make_engine(config.DATABASE_URL)
    initialize_db(engine, make_session_factory(engine))
