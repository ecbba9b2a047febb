# worktrack/app.py
from wsgiref.simple_server import make_server
from urllib.parse import parse_qs
import json
import logging
import re
import sys

from worktrack import config
from worktrack.database.database import make_engine, make_session_factory
from worktrack.database.db_init import initialize_db
from worktrack.database.unit_of_work import UnitOfWork
from worktrack.repositories.sqlalchemy import (
    SqlalchemyModuleRepository, SqlalchemyProjectMemberRepository, SqlalchemyProjectRepository,
    SqlalchemyTaskRepository, SqlalchemyTeamMemberRepository, SqlalchemyUserRepository
)
from worktrack.services.access_resolver import AccessResolver
from worktrack.services.identity_service import USER_UPDATABLE_FIELDS, IdentityService
from worktrack.services.membership_index import MembershipIndex
from worktrack.services.progress_aggregator import ProgressAggregator
from worktrack.services.project_service import (
    MODULE_UPDATABLE_FIELDS, PROJECT_UPDATABLE_FIELDS, TASK_UPDATABLE_FIELDS, ProjectService
)
from worktrack.services.team_service import TeamService
from worktrack.services.exceptions import *

logger = logging.getLogger(__name__)

# --------------------------------------------------------------------------
## 의존성 구성
# --------------------------------------------------------------------------

def build_services(db_session, token_ttl_hours=config.TOKEN_TTL_HOURS):
    """요청 하나에 대한 세션으로 리포지토리와 서비스를 조립합니다."""
    uow = UnitOfWork(db_session)
    user_repo = SqlalchemyUserRepository(db_session)
    project_repo = SqlalchemyProjectRepository(db_session)
    module_repo = SqlalchemyModuleRepository(db_session)
    task_repo = SqlalchemyTaskRepository(db_session)
    member_repo = SqlalchemyProjectMemberRepository(db_session)
    team_repo = SqlalchemyTeamMemberRepository(db_session)

    membership_index = MembershipIndex(project_repo, member_repo, team_repo)
    resolver = AccessResolver(membership_index)
    aggregator = ProgressAggregator(project_repo, module_repo, task_repo)

    return {
        'identity': IdentityService(user_repo, project_repo, task_repo, resolver, uow, token_ttl_hours),
        'projects': ProjectService(
            project_repo, module_repo, task_repo, member_repo, user_repo, membership_index, resolver, aggregator, uow
        ),
        'teams': TeamService(team_repo, user_repo, task_repo, membership_index, resolver, uow),
    }

# --------------------------------------------------------------------------
## 요청 처리 유틸리티 함수
# --------------------------------------------------------------------------

def get_request_data(environ):
    try:
        content_length = int(environ.get("CONTENT_LENGTH") or 0)
        data = json.loads(environ["wsgi.input"].read(content_length)) if content_length > 0 else {}
    except (ValueError, json.JSONDecodeError):
        raise ValueError("Invalid or missing JSON body.")
    if not isinstance(data, dict):
        raise ValueError("JSON body must be an object.")
    return data

def get_update_fields(environ, allowed):
    # 수정 가능한 필드만 남깁니다. 나머지 키(id, progress 등)는 무시합니다.
    data = get_request_data(environ)
    return {key: value for key, value in data.items() if key in allowed}

def get_query_param(environ, name, cast=None):
    values = parse_qs(environ.get("QUERY_STRING", "")).get(name)
    if not values:
        return None
    return cast(values[0]) if cast else values[0]

def get_auth_token(environ):
    auth_token = environ.get('HTTP_X_AUTH_TOKEN')
    if not auth_token:
        header = environ.get('HTTP_AUTHORIZATION', '')
        if header.lower().startswith('bearer '):
            auth_token = header[7:].strip()
    if not auth_token:
        raise TokenInvalidError("Missing 'X-Auth-Token' header.")
    return auth_token

def authorize(environ):
    """토큰을 검증하고 요청 주체(Actor)를 반환합니다."""
    return environ['services']['identity'].validate_token(get_auth_token(environ))

ERROR_STATUSES = [
    (TokenInvalidError, "401 Unauthorized"),
    (AuthenticationError, "401 Unauthorized"),
    (AccountDeactivatedError, "403 Forbidden"),
    (ForbiddenError, "403 Forbidden"),
    (NotFoundError, "404 Not Found"),
    (ConflictError, "409 Conflict"),
    (InvalidStateError, "400 Bad Request"),
    (ValueError, "400 Bad Request"),
]

def handle_exception(e):
    for error_type, status in ERROR_STATUSES:
        if isinstance(e, error_type):
            return status, json.dumps({"error": str(e)})
    logger.exception("Unhandled error while processing request")
    return "500 Internal Server Error", json.dumps({"error": "Internal Server Error"})

# --------------------------------------------------------------------------
## 핸들러 함수 - 인증
# --------------------------------------------------------------------------

def auth_tokens_handler(environ, *args):
    data = get_request_data(environ)
    token = environ['services']['identity'].authenticate(data.get('email'), data.get('password'))
    return '201 Created', json.dumps(token)

def revoke_token_handler(environ, *args):
    environ['services']['identity'].revoke_token(get_auth_token(environ))
    return '204 No Content', ''

def get_me_handler(environ, *args):
    actor = authorize(environ)
    return '200 OK', json.dumps(environ['services']['identity'].get_profile(actor))

def update_me_handler(environ, *args):
    actor = authorize(environ)
    data = get_request_data(environ)
    profile = environ['services']['identity'].update_profile(
        actor, name=data.get('name'), email=data.get('email'), password=data.get('password')
    )
    return '200 OK', json.dumps(profile)

# --------------------------------------------------------------------------
## 핸들러 함수 - 프로젝트 / 모듈 / 태스크
# --------------------------------------------------------------------------

def list_projects_handler(environ, *args):
    actor = authorize(environ)
    return '200 OK', json.dumps({"projects": environ['services']['projects'].list_projects(actor)})

def create_project_handler(environ, *args):
    actor = authorize(environ)
    data = get_request_data(environ)
    project = environ['services']['projects'].create_project(
        actor,
        title=data.get('title'),
        description=data.get('description'),
        start_date=data.get('start_date'),
        end_date=data.get('end_date'),
        status=data.get('status') or 'active',
    )
    return '201 Created', json.dumps(project)

def get_project_handler(environ, project_id):
    actor = authorize(environ)
    return '200 OK', json.dumps(environ['services']['projects'].get_project(actor, int(project_id)))

def update_project_handler(environ, project_id):
    actor = authorize(environ)
    data = get_update_fields(environ, PROJECT_UPDATABLE_FIELDS)
    project = environ['services']['projects'].update_project(actor, int(project_id), **data)
    return '200 OK', json.dumps(project)

def delete_project_handler(environ, project_id):
    actor = authorize(environ)
    environ['services']['projects'].delete_project(actor, int(project_id))
    return '204 No Content', ''

def my_tasks_handler(environ, *args):
    actor = authorize(environ)
    return '200 OK', json.dumps({"tasks": environ['services']['projects'].list_my_tasks(actor)})

def list_modules_handler(environ, project_id):
    actor = authorize(environ)
    modules = environ['services']['projects'].list_modules(actor, int(project_id))
    return '200 OK', json.dumps({"modules": modules})

def create_module_handler(environ, project_id):
    actor = authorize(environ)
    data = get_request_data(environ)
    module = environ['services']['projects'].create_module(actor, int(project_id), data.get('module_name'))
    return '201 Created', json.dumps(module)

def get_module_handler(environ, module_id):
    actor = authorize(environ)
    return '200 OK', json.dumps(environ['services']['projects'].get_module(actor, int(module_id)))

def update_module_handler(environ, module_id):
    actor = authorize(environ)
    data = get_update_fields(environ, MODULE_UPDATABLE_FIELDS)
    return '200 OK', json.dumps(environ['services']['projects'].update_module(actor, int(module_id), **data))

def delete_module_handler(environ, module_id):
    actor = authorize(environ)
    environ['services']['projects'].delete_module(actor, int(module_id))
    return '204 No Content', ''

def list_tasks_handler(environ, module_id):
    actor = authorize(environ)
    tasks = environ['services']['projects'].list_tasks(actor, int(module_id))
    return '200 OK', json.dumps({"tasks": tasks})

def create_task_handler(environ, module_id):
    actor = authorize(environ)
    data = get_request_data(environ)
    task = environ['services']['projects'].create_task(
        actor,
        int(module_id),
        task_name=data.get('task_name'),
        description=data.get('description'),
        assigned_to=data.get('assigned_to'),
        status=data.get('status') or 'pending',
    )
    return '201 Created', json.dumps(task)

def get_task_handler(environ, task_id):
    actor = authorize(environ)
    return '200 OK', json.dumps(environ['services']['projects'].get_task(actor, int(task_id)))

def update_task_handler(environ, task_id):
    actor = authorize(environ)
    data = get_update_fields(environ, TASK_UPDATABLE_FIELDS)
    return '200 OK', json.dumps(environ['services']['projects'].update_task(actor, int(task_id), **data))

def delete_task_handler(environ, task_id):
    actor = authorize(environ)
    environ['services']['projects'].delete_task(actor, int(task_id))
    return '204 No Content', ''

# --------------------------------------------------------------------------
## 핸들러 함수 - 프로젝트 멤버
# --------------------------------------------------------------------------

def list_project_members_handler(environ, project_id):
    actor = authorize(environ)
    members = environ['services']['projects'].list_members(actor, int(project_id))
    return '200 OK', json.dumps({"members": members})

def add_project_member_handler(environ, project_id):
    actor = authorize(environ)
    data = get_request_data(environ)
    if data.get('user_id') is None:
        raise ValueError("'user_id' is required.")
    environ['services']['projects'].add_member(
        actor, int(project_id), int(data['user_id']), data.get('role_in_project')
    )
    return '201 Created', json.dumps({"message": "Member added"})

def remove_project_member_handler(environ, project_id, user_id):
    actor = authorize(environ)
    environ['services']['projects'].remove_member(actor, int(project_id), int(user_id))
    return '204 No Content', ''

def available_project_members_handler(environ, project_id):
    actor = authorize(environ)
    users = environ['services']['projects'].list_available_members(actor, int(project_id))
    return '200 OK', json.dumps({"users": users})

def project_member_tasks_handler(environ, project_id):
    actor = authorize(environ)
    user_id = get_query_param(environ, 'user_id', int)
    if user_id is None:
        raise ValueError("'user_id' is required.")
    tasks = environ['services']['projects'].list_member_tasks(actor, int(project_id), user_id)
    return '200 OK', json.dumps({"tasks": tasks})

# --------------------------------------------------------------------------
## 핸들러 함수 - 팀
# --------------------------------------------------------------------------

def list_team_members_handler(environ, *args):
    actor = authorize(environ)
    members = environ['services']['teams'].list_members(actor, get_query_param(environ, 'leader_id', int))
    return '200 OK', json.dumps({"members": members})

def add_team_member_handler(environ, *args):
    actor = authorize(environ)
    data = get_request_data(environ)
    if data.get('user_id') is None:
        raise ValueError("'user_id' is required.")
    leader_id = int(data['leader_id']) if data.get('leader_id') is not None else None
    environ['services']['teams'].add_member(actor, int(data['user_id']), leader_id)
    return '201 Created', json.dumps({"message": "Team member added"})

def remove_team_member_handler(environ, user_id):
    actor = authorize(environ)
    environ['services']['teams'].remove_member(actor, int(user_id), get_query_param(environ, 'leader_id', int))
    return '204 No Content', ''

def available_team_users_handler(environ, *args):
    actor = authorize(environ)
    users = environ['services']['teams'].list_available_users(actor, get_query_param(environ, 'leader_id', int))
    return '200 OK', json.dumps({"users": users})

def team_member_tasks_handler(environ, *args):
    actor = authorize(environ)
    user_id = get_query_param(environ, 'user_id', int)
    if user_id is None:
        raise ValueError("'user_id' is required.")
    tasks = environ['services']['teams'].list_member_tasks(actor, user_id, get_query_param(environ, 'leader_id', int))
    return '200 OK', json.dumps({"tasks": tasks})

def team_projects_handler(environ, *args):
    actor = authorize(environ)
    projects = environ['services']['teams'].list_team_projects(actor, get_query_param(environ, 'leader_id', int))
    return '200 OK', json.dumps({"projects": projects})

def all_teams_handler(environ, *args):
    actor = authorize(environ)
    return '200 OK', json.dumps({"teams": environ['services']['teams'].list_all_teams(actor)})

def team_details_handler(environ, leader_id):
    actor = authorize(environ)
    return '200 OK', json.dumps(environ['services']['teams'].get_team_details(actor, int(leader_id)))

def available_leaders_handler(environ, *args):
    actor = authorize(environ)
    return '200 OK', json.dumps({"leaders": environ['services']['teams'].list_leaders(actor)})

# --------------------------------------------------------------------------
## 핸들러 함수 - 사용자 (관리자 전용)
# --------------------------------------------------------------------------

def create_user_handler(environ, *args):
    actor = authorize(environ)
    data = get_request_data(environ)
    user = environ['services']['identity'].create_user(
        actor, data.get('name'), data.get('email'), data.get('password'), data.get('role') or 'member'
    )
    return '201 Created', json.dumps(user)

def list_users_handler(environ, *args):
    actor = authorize(environ)
    return '200 OK', json.dumps({"users": environ['services']['identity'].list_users(actor)})

def get_user_handler(environ, user_id):
    actor = authorize(environ)
    return '200 OK', json.dumps(environ['services']['identity'].get_user(actor, int(user_id)))

def update_user_handler(environ, user_id):
    actor = authorize(environ)
    data = get_update_fields(environ, USER_UPDATABLE_FIELDS)
    return '200 OK', json.dumps(environ['services']['identity'].update_user(actor, int(user_id), **data))

def delete_user_handler(environ, user_id):
    actor = authorize(environ)
    environ['services']['identity'].delete_user(actor, int(user_id))
    return '204 No Content', ''

ROUTES = [
    ('POST', r'^/v1/auth/tokens$', auth_tokens_handler),
    ('DELETE', r'^/v1/auth/tokens$', revoke_token_handler),
    ('GET', r'^/v1/auth/me$', get_me_handler),
    ('PUT', r'^/v1/auth/me$', update_me_handler),
    ('GET', r'^/v1/projects$', list_projects_handler),
    ('POST', r'^/v1/projects$', create_project_handler),
    ('GET', r'^/v1/projects/my-tasks$', my_tasks_handler),
    ('GET', r'^/v1/projects/([0-9]+)$', get_project_handler),
    ('PUT', r'^/v1/projects/([0-9]+)$', update_project_handler),
    ('DELETE', r'^/v1/projects/([0-9]+)$', delete_project_handler),
    ('GET', r'^/v1/projects/([0-9]+)/modules$', list_modules_handler),
    ('POST', r'^/v1/projects/([0-9]+)/modules$', create_module_handler),
    ('GET', r'^/v1/projects/([0-9]+)/members$', list_project_members_handler),
    ('POST', r'^/v1/projects/([0-9]+)/members$', add_project_member_handler),
    ('DELETE', r'^/v1/projects/([0-9]+)/members/([0-9]+)$', remove_project_member_handler),
    ('GET', r'^/v1/projects/([0-9]+)/available-members$', available_project_members_handler),
    ('GET', r'^/v1/projects/([0-9]+)/member-tasks$', project_member_tasks_handler),
    ('GET', r'^/v1/modules/([0-9]+)$', get_module_handler),
    ('PUT', r'^/v1/modules/([0-9]+)$', update_module_handler),
    ('DELETE', r'^/v1/modules/([0-9]+)$', delete_module_handler),
    ('GET', r'^/v1/modules/([0-9]+)/tasks$', list_tasks_handler),
    ('POST', r'^/v1/modules/([0-9]+)/tasks$', create_task_handler),
    ('GET', r'^/v1/tasks/([0-9]+)$', get_task_handler),
    ('PUT', r'^/v1/tasks/([0-9]+)$', update_task_handler),
    ('DELETE', r'^/v1/tasks/([0-9]+)$', delete_task_handler),
    ('GET', r'^/v1/teams/members$', list_team_members_handler),
    ('POST', r'^/v1/teams/members$', add_team_member_handler),
    ('DELETE', r'^/v1/teams/members/([0-9]+)$', remove_team_member_handler),
    ('GET', r'^/v1/teams/available-users$', available_team_users_handler),
    ('GET', r'^/v1/teams/member-tasks$', team_member_tasks_handler),
    ('GET', r'^/v1/teams/projects$', team_projects_handler),
    ('GET', r'^/v1/teams/admin/all-teams$', all_teams_handler),
    ('GET', r'^/v1/teams/admin/team-details/([0-9]+)$', team_details_handler),
    ('GET', r'^/v1/teams/admin/available-leaders$', available_leaders_handler),
    ('GET', r'^/v1/users$', list_users_handler),
    ('POST', r'^/v1/users$', create_user_handler),
    ('GET', r'^/v1/users/([0-9]+)$', get_user_handler),
    ('PUT', r'^/v1/users/([0-9]+)$', update_user_handler),
    ('DELETE', r'^/v1/users/([0-9]+)$', delete_user_handler),
]

# --------------------------------------------------------------------------
## WSGI 애플리케이션 (의존성 주입 및 라우팅)
# --------------------------------------------------------------------------

def create_app(session_factory, token_ttl_hours=config.TOKEN_TTL_HOURS):
    """세션 팩토리를 주입받아 WSGI 애플리케이션을 생성합니다."""

    def application(environ, start_response):
        db_session = session_factory()
        try:
            environ['services'] = build_services(db_session, token_ttl_hours)

            path = environ.get("PATH_INFO", "")
            method = environ.get("REQUEST_METHOD", "")

            handler, path_args = None, []
            for route_method, pattern, route_handler in ROUTES:
                if method == route_method and (match := re.match(pattern, path)):
                    handler, path_args = route_handler, match.groups()
                    break

            if handler:
                status, response_body = handler(environ, *path_args)
            else:
                status, response_body = '404 Not Found', json.dumps({'error': 'Not Found'})

        except Exception as e:
            status, response_body = handle_exception(e)
        finally:
            db_session.close()

        start_response(status, [("Content-Type", "application/json")])
        return [response_body.encode("utf-8")]

    return application

# --------------------------------------------------------------------------
## 서버 실행
# --------------------------------------------------------------------------

if __name__ == "__main__":
    config.configure_logging()
    engine = make_engine(config.DATABASE_URL)
    session_factory = make_session_factory(engine)
    initialize_db(engine, session_factory)
    try:
        with make_server(config.HOST, config.PORT, create_app(session_factory)) as httpd:
            logger.info("Serving worktrack on port %s...", config.PORT)
            httpd.serve_forever()
    except Exception as e:
        print(f"Error starting server: {e}", file=sys.stderr)
        engine.dispose()
        sys.exit(1)
