from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

# 모든 모델 클래스가 상속받을 Base 클래스
Base = declarative_base()


def make_engine(database_url: str) -> Engine:
    """
    주어진 연결 문자열로 SQLAlchemy 엔진을 생성합니다.

    엔진은 프로세스 시작 시 한 번 만들어 서비스 계층까지 명시적으로 전달합니다.
    SQLite의 경우 외래 키 제약(ON DELETE CASCADE / SET NULL)이 동작하도록
    연결마다 PRAGMA를 켭니다.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    # connect_args는 SQLite에서만 필요합니다. (thread-safe 설정)
    options = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # 인메모리 DB는 연결 하나를 공유해야 테이블이 유지됩니다.
        options["poolclass"] = StaticPool
    engine = create_engine(database_url, **options)

    @event.listens_for(engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def make_session_factory(engine: Engine) -> sessionmaker:
    # autocommit=False, autoflush=False로 설정하여, 명시적으로 commit을 호출해야 DB에 반영됩니다.
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)
