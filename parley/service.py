"""HTTP API for the Parley messaging backend."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from .auth import AuthResult, AuthService
from .config import Settings
from .database import DataStore
from .dms import DmManager, MessagePage
from .errors import ParleyError
from .messages import MessageSender
from .models import User
from .security import SessionToken, resolve_user_id
from .users import UserService

logger = logging.getLogger("parley.service")


class RegisterRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=254)
    password: str
    name_first: str
    name_last: str


class LoginRequest(BaseModel):
    email: str
    password: str


class AuthResponse(BaseModel):
    token: str
    auth_user_id: int


class DmCreateRequest(BaseModel):
    user_ids: List[int] = Field(default_factory=list)


class DmCreateResponse(BaseModel):
    dm_id: int


class DmSummaryResponse(BaseModel):
    dm_id: int
    name: str


class DmListResponse(BaseModel):
    dms: List[DmSummaryResponse]


class UserProfileResponse(BaseModel):
    user_id: int
    email: str
    name_first: str
    name_last: str
    handle: str


class UserListResponse(BaseModel):
    users: List[UserProfileResponse]


class UserResponse(BaseModel):
    user: UserProfileResponse


class SetNameRequest(BaseModel):
    name_first: str
    name_last: str


class SetEmailRequest(BaseModel):
    email: str


class SetHandleRequest(BaseModel):
    handle: str


class DmDetailsResponse(BaseModel):
    name: str
    owner_members: List[UserProfileResponse]
    members: List[UserProfileResponse]


class DmLeaveRequest(BaseModel):
    dm_id: int


class MessageResponse(BaseModel):
    message_id: int
    author_id: int
    body: str
    sent_at: int


class MessagePageResponse(BaseModel):
    messages: List[MessageResponse]
    start: int
    end: int


class SendDmMessageRequest(BaseModel):
    dm_id: int
    message: str


class SendDmMessageResponse(BaseModel):
    message_id: int


def _auth_to_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(token=result.token, auth_user_id=result.auth_user_id)


def _user_to_profile(user: User) -> UserProfileResponse:
    return UserProfileResponse(**user.to_profile())


def _page_to_response(page: MessagePage) -> MessagePageResponse:
    return MessagePageResponse(
        messages=[MessageResponse(**message.to_payload()) for message in page.messages],
        start=page.start,
        end=page.end,
    )


def register_routes(app: FastAPI, store: DataStore) -> None:
    """Expose the auth, user, DM and message endpoints on ``app``."""

    auth = AuthService(store)
    users = UserService(store)
    dms = DmManager(store)
    sender = MessageSender(store)
    session_token = SessionToken()

    @app.get("/healthz")
    async def healthcheck() -> Dict[str, str]:
        return {"status": "ok"}

    @app.post("/auth/register/v3", response_model=AuthResponse)
    async def register(request: RegisterRequest) -> AuthResponse:
        result = auth.register(request.email, request.password, request.name_first, request.name_last)
        return _auth_to_response(result)

    @app.post("/auth/login/v3", response_model=AuthResponse)
    async def login(request: LoginRequest) -> AuthResponse:
        return _auth_to_response(auth.login(request.email, request.password))

    @app.post("/auth/logout/v2")
    async def logout(token: Optional[str] = Depends(session_token)) -> Dict[str, object]:
        auth.logout(token)
        return {}

    @app.get("/users/all/v2", response_model=UserListResponse)
    async def list_users(token: Optional[str] = Depends(session_token)) -> UserListResponse:
        return UserListResponse(users=[_user_to_profile(user) for user in users.list_all(token)])

    @app.get("/user/profile/v3", response_model=UserResponse)
    async def user_profile(
        user_id: int = Query(...),
        token: Optional[str] = Depends(session_token),
    ) -> UserResponse:
        return UserResponse(user=_user_to_profile(users.profile(token, user_id)))

    @app.put("/user/profile/setname/v2")
    async def set_name(
        request: SetNameRequest,
        token: Optional[str] = Depends(session_token),
    ) -> Dict[str, object]:
        users.set_name(token, request.name_first, request.name_last)
        return {}

    @app.put("/user/profile/setemail/v2")
    async def set_email(
        request: SetEmailRequest,
        token: Optional[str] = Depends(session_token),
    ) -> Dict[str, object]:
        users.set_email(token, request.email)
        return {}

    @app.put("/user/profile/sethandle/v2")
    async def set_handle(
        request: SetHandleRequest,
        token: Optional[str] = Depends(session_token),
    ) -> Dict[str, object]:
        users.set_handle(token, request.handle)
        return {}

    @app.post("/dm/create/v2", response_model=DmCreateResponse)
    async def create_dm(
        request: DmCreateRequest,
        token: Optional[str] = Depends(session_token),
    ) -> DmCreateResponse:
        return DmCreateResponse(dm_id=dms.create(token, request.user_ids))

    @app.get("/dm/list/v2", response_model=DmListResponse)
    async def list_dms(token: Optional[str] = Depends(session_token)) -> DmListResponse:
        summaries = dms.list(token)
        return DmListResponse(
            dms=[DmSummaryResponse(dm_id=summary.dm_id, name=summary.name) for summary in summaries]
        )

    @app.get("/dm/details/v2", response_model=DmDetailsResponse)
    async def dm_details(
        dm_id: int = Query(...),
        token: Optional[str] = Depends(session_token),
    ) -> DmDetailsResponse:
        details = dms.details(token, dm_id)
        return DmDetailsResponse(
            name=details.name,
            owner_members=[_user_to_profile(user) for user in details.owner_members],
            members=[_user_to_profile(user) for user in details.all_members],
        )

    @app.delete("/dm/remove/v2")
    async def remove_dm(
        dm_id: int = Query(...),
        token: Optional[str] = Depends(session_token),
    ) -> Dict[str, object]:
        dms.delete(token, dm_id)
        return {}

    @app.post("/dm/leave/v2")
    async def leave_dm(
        request: DmLeaveRequest,
        token: Optional[str] = Depends(session_token),
    ) -> Dict[str, object]:
        dms.leave(token, request.dm_id)
        return {}

    @app.get("/dm/messages/v2", response_model=MessagePageResponse)
    async def dm_messages(
        dm_id: int = Query(...),
        start: int = Query(...),
        token: Optional[str] = Depends(session_token),
    ) -> MessagePageResponse:
        user_id = resolve_user_id(store, token)
        return _page_to_response(dms.page_messages(user_id, dm_id, start))

    @app.post("/message/senddm/v2", response_model=SendDmMessageResponse)
    async def send_dm_message(
        request: SendDmMessageRequest,
        token: Optional[str] = Depends(session_token),
    ) -> SendDmMessageResponse:
        return SendDmMessageResponse(message_id=sender.send_dm_message(token, request.dm_id, request.message))

    @app.delete("/clear/v1")
    async def clear() -> Dict[str, object]:
        store.clear()
        logger.info("Data store cleared")
        return {}

    @app.exception_handler(ParleyError)
    async def handle_parley_error(_: object, exc: ParleyError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


def create_app(
    *,
    store: DataStore | None = None,
    settings: Settings | None = None,
) -> FastAPI:
    """Instantiate the FastAPI application for the messaging backend."""

    if store is None:
        resolved = (settings or Settings()).resolved_data_path()
        store = DataStore(resolved)
        store.initialize()

    app = FastAPI(
        title="Parley Messaging API",
        version="0.1.0",
        description="Users, direct-message groups and their message history.",
    )
    app.state.store = store

    register_routes(app, store)
    return app


__all__ = ["create_app", "register_routes"]
