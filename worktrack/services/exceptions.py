# worktrack/services/exceptions.py

# --- Not Found ---
class NotFoundError(Exception):
    """요청한 리소스(또는 그 상위 리소스)가 존재하지 않을 때"""
    pass

class ProjectNotFoundError(NotFoundError):
    """프로젝트를 찾을 수 없을 때"""
    pass

class ProjectModuleNotFoundError(NotFoundError):
    """모듈을 찾을 수 없을 때"""
    pass

class TaskNotFoundError(NotFoundError):
    """태스크를 찾을 수 없을 때"""
    pass

class UserNotFoundError(NotFoundError):
    """사용자를 찾을 수 없을 때"""
    pass

class LeaderNotFoundError(NotFoundError):
    """리더 역할의 사용자를 찾을 수 없을 때"""
    pass

# --- Forbidden ---
class ForbiddenError(Exception):
    """접근 판정기(AccessResolver)가 요청을 거부했을 때"""
    pass

# --- Conflict ---
class ConflictError(Exception):
    """이미 존재하는 데이터와 충돌할 때"""
    pass

class MembershipAlreadyExistsError(ConflictError):
    """프로젝트 멤버십 또는 팀 멤버십이 이미 존재할 때"""
    pass

class UserAlreadyExistsError(ConflictError):
    """이메일이 이미 등록되어 있을 때"""
    pass

# --- Invalid State ---
class InvalidStateError(Exception):
    """현재 상태에서 요청을 처리할 수 없을 때"""
    pass

class NoFieldsToUpdateError(InvalidStateError):
    """수정할 필드가 하나도 없을 때"""
    pass

class UserHasProjectsError(InvalidStateError):
    """프로젝트를 소유한 사용자를 삭제하려고 할 때"""
    pass

# --- Auth Exceptions ---
class TokenInvalidError(Exception):
    """토큰이 유효하지 않거나 없을 때"""
    pass

class AuthenticationError(Exception):
    """사용자 자격 증명 실패 시"""
    pass

class AccountDeactivatedError(Exception):
    """비활성화된 계정으로 접근하려고 할 때"""
    pass
