"""
Authentication router.

Provides REST API endpoints for:
- Account sign-up
- Sign-in (JWT returned in the body and set as an HTTP-only cookie)
- Logout (clears the cookie)
"""

import structlog
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from bookstore_api.config import get_settings
from bookstore_api.dependencies import (
    get_audit_service,
    get_auth_service,
    get_client_ip,
    get_user_agent,
)
from bookstore_api.models.audit import AuditAction, AuditStatus, ResourceType
from bookstore_api.models.auth import (
    ErrorResponse, LoginRequest, MessageResponse, SignupRequest,
    SignupResponse, TokenResponse, UserSummary,
)
from bookstore_api.rate_limit import limiter, signin_limit
from bookstore_api.services.audit_service import AuditService
from bookstore_api.services.auth_service import AuthService
from shared.metrics import setup_metrics

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        422: {"model": ErrorResponse, "description": "Validation Error"}
    }
)


# ============================================================================
# SIGN-UP
# ============================================================================


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Account",
    description="""
    Register a new account.

    **Authentication:** Not required (public endpoint)

    **Request Body:**
    - firstName, lastName, email, password (required)
    - role: "user" (default) or "vendor"; any other value becomes "user"

    **Error Responses:**
    - 400: Missing required fields or password too short
    - 409: Email already in use
    - 422: Malformed email
    """,
    responses={
        400: {"model": ErrorResponse, "description": "Missing required fields"},
        409: {"model": ErrorResponse, "description": "Email already in use"}
    }
)
async def signup(
    signup_request: SignupRequest,
    auth_service: AuthService = Depends(get_auth_service),
    audit_service: AuditService = Depends(get_audit_service),
    client_ip: str = Depends(get_client_ip),
    user_agent: Optional[str] = Depends(get_user_agent)
) -> SignupResponse:
    missing = signup_request.missing_fields()
    if missing:
        logger.warning("signup_missing_fields", fields=missing)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing required fields"
        )

    min_length = get_settings().password_min_length
    if len(signup_request.password) < min_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {min_length} characters"
        )

    try:
        user = await auth_service.register(signup_request)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email already in use"
        )

    await audit_service.record(
        AuditAction.USER_SIGNUP,
        ResourceType.USER,
        user_id=user.id,
        resource_id=user.id,
        details={"role": user.role},
        ip_address=client_ip,
        user_agent=user_agent,
        status_code=status.HTTP_201_CREATED,
    )

    logger.info("user_signed_up", user_id=user.id, role=user.role)

    return SignupResponse(
        data=UserSummary(
            id=user.id,
            first_name=user.first_name,
            last_name=user.last_name,
            email=user.email,
            role=user.role,
        )
    )


# ============================================================================
# SIGN-IN / LOGOUT
# ============================================================================


@router.post(
    "/signin",
    response_model=TokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Sign In",
    description="""
    Authenticate with email and password.

    Returns a JWT and also sets it as the HTTP-only ``token`` cookie used by
    the dashboard. Rate-limited per client IP.

    **Error Responses:**
    - 401: Invalid credentials
    - 429: Too many attempts
    """,
    responses={
        401: {
            "description": "Invalid credentials",
            "model": ErrorResponse,
            "content": {
                "application/json": {
                    "example": {"detail": "Invalid credentials"}
                }
            }
        }
    }
)
@limiter.limit(signin_limit)
async def signin(
    request: Request,
    response: Response,
    login_request: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
    audit_service: AuditService = Depends(get_audit_service),
    client_ip: str = Depends(get_client_ip),
    user_agent: Optional[str] = Depends(get_user_agent)
) -> TokenResponse:
    """
    Authenticate user, return a JWT and set the auth cookie.

    Raises:
        HTTPException: If authentication fails
    """
    _, bookstore_metrics = setup_metrics()
    logger.info("signin_attempt", email=login_request.email, ip_address=client_ip)

    token_response = await auth_service.login(login_request)

    if not token_response:
        bookstore_metrics.signin_attempts.labels(outcome="failure").inc()
        await audit_service.record(
            AuditAction.LOGIN_FAILURE,
            ResourceType.AUTH,
            details={"email": login_request.email},
            ip_address=client_ip,
            user_agent=user_agent,
            status_code=status.HTTP_401_UNAUTHORIZED,
            status=AuditStatus.FAILURE,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"}
        )

    settings = get_settings()
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token_response.access_token,
        max_age=settings.access_token_expire_seconds,
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.auth_cookie_samesite,
        path="/",
    )

    bookstore_metrics.signin_attempts.labels(outcome="success").inc()
    payload = auth_service.decode_token(token_response.access_token)
    await audit_service.record(
        AuditAction.LOGIN_SUCCESS,
        ResourceType.AUTH,
        user_id=payload.sub if payload else None,
        ip_address=client_ip,
        user_agent=user_agent,
    )

    return token_response


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Log Out",
    description="Clear the auth cookie. Bearer tokens stay valid until they expire."
)
async def logout(response: Response) -> MessageResponse:
    settings = get_settings()
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite=settings.auth_cookie_samesite,
    )
    return MessageResponse(message="Logged out successfully")
