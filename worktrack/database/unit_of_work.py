import logging

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


class UnitOfWork:
    """
    하나의 요청(작업 단위)에 대한 트랜잭션 경계를 관리하는 Context Manager.

    with 블록이 정상 종료되면 commit, 예외가 발생하면 rollback 합니다.
    리포지토리는 flush만 수행하고 commit은 항상 이 객체가 담당하므로,
    태스크 변경과 진행률 재계산이 하나의 트랜잭션으로 묶입니다.
    """
    def __init__(self, session: Session):
        self.session = session

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            self.session.commit()
        else:
            logger.debug("Rolling back unit of work after %s", exc_type.__name__)
            self.session.rollback()
        # 예외는 호출한 쪽으로 그대로 전파합니다.
        return False
