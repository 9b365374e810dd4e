"""FastAPI application entrypoint and HTTP controllers.

This module defines the HTTP endpoints of the alumni network backend.
Controllers are intentionally thin: they accept requests, delegate to
services, translate domain errors to status codes and return DTOs.

Endpoints implemented:
- GET/POST /users, GET/PUT /users/{id}
- GET/POST /groups, GET/PUT/DELETE /groups/{id}, POST /groups/{id}/join
- GET/POST /topics, GET /topics/{id}, POST /topics/{id}/join,
  GET /topics/{id}/posts
- POST /posts, GET /posts/{id}
- GET /health
"""

from fastapi import APIRouter, FastAPI, Depends, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.engine import Engine
from sqlmodel import Session
from typing import List, Optional
import json
import logging
import time
import uuid
from .database import build_engine, create_db_and_tables, get_session
from . import services, schemas
from .auth import get_current_user_id, get_listing_user_id, get_optional_user_id
from .config import Settings, settings as default_settings
from .errors import ConflictError, DomainError, ForbiddenError, NotFoundError, UnauthorizedError

logger = logging.getLogger("alumni_network.api")

router = APIRouter()

_ERROR_STATUS = (
    (NotFoundError, 404),
    (ConflictError, 409),
    (ForbiddenError, 403),
    (UnauthorizedError, 401),
)


def _http_error(exc: DomainError) -> HTTPException:
    """Map a domain error to the matching HTTPException."""
    for kind, status in _ERROR_STATUS:
        if isinstance(exc, kind):
            return HTTPException(status_code=status, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))


async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    context = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "client": request.client.host if request.client else "unknown",
    }
    try:
        response = await call_next(request)
    except Exception:
        context["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception("request_failed %s", json.dumps(context, ensure_ascii=True))
        raise
    response.headers["X-Request-ID"] = req_id
    context["status_code"] = response.status_code
    context["duration_ms"] = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info("request_done %s", json.dumps(context, ensure_ascii=True))
    return response


# Users

@router.get('/users', response_model=schemas.UserRead)
def get_me(db: Session = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    """Return the profile of the authenticated caller."""
    try:
        user = services.UserService(db).get_user(user_id)
    except DomainError as e:
        raise _http_error(e)
    return schemas.UserRead.model_validate(user)


@router.get('/users/{user_id}', response_model=schemas.UserRead)
def get_user(user_id: str, db: Session = Depends(get_session), caller_id: str = Depends(get_current_user_id)):
    """Return a user profile by id."""
    try:
        user = services.UserService(db).get_user(user_id)
    except DomainError as e:
        raise _http_error(e)
    return schemas.UserRead.model_validate(user)


@router.put('/users/{user_id}', response_model=schemas.UserRead)
def update_user(user_id: str, payload: schemas.UserUpdate, db: Session = Depends(get_session), caller_id: str = Depends(get_current_user_id)):
    """Partially update the caller's own profile.

    Only fields present in the body are changed. Updating another
    user's profile is rejected with 401.
    """
    try:
        user = services.UserService(db).update_user(user_id, payload, caller_id)
    except DomainError as e:
        raise _http_error(e)
    return schemas.UserRead.model_validate(user)


@router.post('/users', response_model=schemas.UserRead, status_code=201)
def create_user(payload: schemas.UserCreate, response: Response, db: Session = Depends(get_session), caller_id: str = Depends(get_current_user_id)):
    """Register a user record, by default for the token's subject."""
    try:
        user = services.UserService(db).create_user(payload, caller_id)
    except DomainError as e:
        raise _http_error(e)
    response.headers['Location'] = f'/users/{user.id}'
    return schemas.UserRead.model_validate(user)


# Groups

@router.get('/groups', response_model=List[schemas.GroupRead])
def list_groups(db: Session = Depends(get_session), viewer_id: Optional[str] = Depends(get_listing_user_id)):
    """List public groups and the private groups the caller belongs to."""
    groups = services.GroupService(db).list_groups(viewer_id)
    return [schemas.GroupRead.model_validate(g) for g in groups]


@router.get('/groups/{group_id}', response_model=schemas.GroupRead)
def get_group(group_id: int, db: Session = Depends(get_session), viewer_id: str = Depends(get_current_user_id)):
    """Return a group; private groups are visible to members only."""
    try:
        group = services.GroupService(db).get_group(group_id, viewer_id)
    except DomainError as e:
        raise _http_error(e)
    return schemas.GroupRead.model_validate(group)


@router.put('/groups/{group_id}', status_code=204)
def update_group(group_id: int, payload: schemas.GroupUpdate, db: Session = Depends(get_session), caller_id: Optional[str] = Depends(get_optional_user_id)):
    """Replace a group's fields.

    The body must carry the group's `id` and the `version` last read;
    a stale version is rejected with 409. Private groups only accept
    updates from their members (403 otherwise, anonymous callers included).
    """
    if group_id != payload.id:
        raise HTTPException(status_code=400, detail='id in path and body differ')
    try:
        services.GroupService(db).update_group(group_id, payload, caller_id)
    except DomainError as e:
        raise _http_error(e)
    return Response(status_code=204)


@router.post('/groups', response_model=schemas.GroupRead, status_code=201)
def create_group(payload: schemas.GroupCreate, response: Response, db: Session = Depends(get_session), creator_id: Optional[str] = Depends(get_optional_user_id)):
    """Create a group; an authenticated creator becomes its first member."""
    try:
        group = services.GroupService(db).create_group(payload, creator_id)
    except DomainError as e:
        raise _http_error(e)
    response.headers['Location'] = f'/groups/{group.id}'
    return schemas.GroupRead.model_validate(group)


@router.delete('/groups/{group_id}', status_code=204)
def delete_group(group_id: int, db: Session = Depends(get_session), caller_id: Optional[str] = Depends(get_optional_user_id)):
    """Delete a group; private groups can only be deleted by a member."""
    try:
        services.GroupService(db).delete_group(group_id, caller_id)
    except DomainError as e:
        raise _http_error(e)
    return Response(status_code=204)


@router.post('/groups/{group_id}/join', response_model=schemas.MemberList)
def join_group(group_id: int, db: Session = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    """Add the caller to a group's members (idempotent)."""
    try:
        group = services.MembershipService(db).join_group(group_id, user_id)
    except DomainError as e:
        raise _http_error(e)
    return schemas.MemberList(id=group.id, members=group.members)


# Topics

@router.get('/topics', response_model=List[schemas.TopicRead])
def list_topics(db: Session = Depends(get_session), viewer_id: Optional[str] = Depends(get_listing_user_id)):
    """List every topic with its description and members."""
    topics = services.TopicService(db).get_all_topics()
    return [schemas.TopicRead.model_validate(t) for t in topics]


@router.get('/topics/{topic_id}', response_model=schemas.TopicRead)
def get_topic(topic_id: int, db: Session = Depends(get_session), viewer_id: str = Depends(get_current_user_id)):
    try:
        topic = services.TopicService(db).get_topic(topic_id)
    except DomainError as e:
        raise _http_error(e)
    return schemas.TopicRead.model_validate(topic)


@router.post('/topics', response_model=schemas.TopicRead, status_code=201)
def create_topic(payload: schemas.TopicCreate, response: Response, db: Session = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    """Create a topic with the caller as its first member.

    Returns 404 when the caller has no user record yet.
    """
    try:
        topic = services.TopicService(db).create(payload, user_id)
    except DomainError as e:
        raise _http_error(e)
    response.headers['Location'] = f'/topics/{topic.id}'
    return schemas.TopicRead.model_validate(topic)


@router.post('/topics/{topic_id}/join', response_model=schemas.MemberList)
def join_topic(topic_id: int, db: Session = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    """Add the caller to a topic's members (idempotent)."""
    try:
        topic = services.MembershipService(db).join_topic(topic_id, user_id)
    except DomainError as e:
        raise _http_error(e)
    return schemas.MemberList(id=topic.id, members=topic.users)


@router.get('/topics/{topic_id}/posts', response_model=List[schemas.PostRead])
def list_topic_posts(topic_id: int, db: Session = Depends(get_session), viewer_id: str = Depends(get_current_user_id)):
    """Return the posts addressed to a topic, newest first."""
    try:
        posts = services.PostService(db).list_topic_posts(topic_id)
    except DomainError as e:
        raise _http_error(e)
    return [schemas.PostRead.model_validate(p) for p in posts]


# Posts

@router.post('/posts', response_model=schemas.PostRead, status_code=201)
def create_post(payload: schemas.PostCreate, response: Response, db: Session = Depends(get_session), user_id: str = Depends(get_current_user_id)):
    """Post a message to a topic or an event as the caller."""
    try:
        post = services.PostService(db).create_post(payload, user_id)
    except DomainError as e:
        raise _http_error(e)
    response.headers['Location'] = f'/posts/{post.id}'
    return schemas.PostRead.model_validate(post)


@router.get('/posts/{post_id}', response_model=schemas.PostRead)
def get_post(post_id: int, db: Session = Depends(get_session), viewer_id: str = Depends(get_current_user_id)):
    try:
        post = services.PostService(db).get_post(post_id)
    except DomainError as e:
        raise _http_error(e)
    return schemas.PostRead.model_validate(post)


@router.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """Build the application around a settings object and a store.

    Both default to the environment-driven configuration; tests and
    scripts pass their own. The engine is kept on `app.state` and every
    request gets its own session from it.
    """
    settings = settings or default_settings
    if not logging.getLogger().handlers:
        logging.basicConfig(level=settings.LOG_LEVEL)
    engine = engine if engine is not None else build_engine(settings)
    create_db_and_tables(engine)

    app = FastAPI(title="Alumni Network API")
    app.state.settings = settings
    app.state.engine = engine

    # Wide-open CORS keeps local frontends working without extra config in dev.
    if settings.ALLOW_DEV_CORS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )
    app.middleware("http")(request_context_middleware)
    app.include_router(router)
    return app


app = create_app()
