import logging
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status, Response, Request
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from slowapi.util import get_remote_address

from .schemas.lecturer import RegisterRequest, RegisterResponse, LoginRequest, LoginResponse, LecturerResponse, SessionToken
from ..models.session_models import LecturerSession
from ..services.auth_service import (
    AuthService,
    AlreadyRegisteredError,
    LecturerNotFoundError,
    BadCredentialError,
    NotAuthenticatedError,
)
from ..services.errors import ServiceError, TransientIOError
from .dependencies import get_auth_service, get_registry
from .utilities.limiter import limiter

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"]
)
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token")


# --- Dependency for protected routes ---
async def get_current_session(
    token: str = Depends(oauth2_scheme),
    service: AuthService = Depends(get_auth_service),
) -> LecturerSession:
    """
    Resolves the bearer value to the cached login. The value is the opaque
    session id handed out at login; it is valid until logout.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        session_id = UUID(token)
    except ValueError:
        logger.warning("Bearer value is not a session id.")
        raise credentials_exception

    try:
        return await service.get_current_lecturer(session_id)
    except NotAuthenticatedError:
        logger.warning(f"Session {session_id} is unknown or logged out. Denying access.")
        raise credentials_exception
    except TransientIOError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))


async def _perform_login(course_code: str, security_key: str, service: AuthService) -> LoginResponse:
    try:
        session = await service.login(course_code, security_key)
    except LecturerNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except BadCredentialError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))
    except TransientIOError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except ServiceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return LoginResponse(
        session=SessionToken(access_token=str(session.session_id)),
        lecturer=LecturerResponse.model_validate(session.lecturer),
    )


# --- API endpoints ---

@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute", key_func=get_remote_address)
async def register(request: Request, register_request: RegisterRequest, service: AuthService = Depends(get_auth_service)):
    """Creates the lecturer of record for a course code."""
    try:
        lecturer = await service.register(register_request.name, register_request.course_code, register_request.security_key)
    except AlreadyRegisteredError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except TransientIOError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except ServiceError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return RegisterResponse(name=lecturer.name, course_code=lecturer.course_code, created_at=lecturer.created_at)


@router.post("/token", response_model=SessionToken)
@limiter.limit("60/minute", key_func=get_remote_address)
async def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    service: AuthService = Depends(get_auth_service),
):
    """Standard OAuth2 endpoint for the interactive docs: username is the course code."""
    login_response = await _perform_login(form_data.username, form_data.password, service)
    return login_response.session


@router.post("/login", response_model=LoginResponse)
@limiter.limit("60/minute", key_func=get_remote_address)
async def login(request: Request, login_request: LoginRequest, service: AuthService = Depends(get_auth_service)):
    """Login endpoint for the web client."""
    return await _perform_login(login_request.course_code, login_request.security_key, service)


@router.get("/me", response_model=LecturerResponse)
async def me(current: LecturerSession = Depends(get_current_session)):
    return current.lecturer


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
@limiter.limit("60/minute")
async def logout(
    request: Request,
    current: LecturerSession = Depends(get_current_session),
    service: AuthService = Depends(get_auth_service),
):
    """Ends the login and forgets any unsaved marks it had."""
    logger.info(f"Lecturer for course '{current.lecturer.course_code}' logging out.")
    try:
        await service.logout(current.session_id)
    except TransientIOError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    get_registry(request).drop_owner(str(current.session_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
