"""
Authentication API endpoints for login, token refresh, current user and OTP registration.
"""

from fastapi import APIRouter, Depends, status
from buildex.models.user import User
from buildex.services.auth import AuthService
from buildex.services.otp import OtpService
from buildex.schemas.auth import (
    LoginRequest,
    LoginResponse,
    RefreshTokenRequest,
    AccessTokenResponse,
    CurrentUserResponse,
    RegisterRequest,
    RegisterResponse,
    VerifyOtpRequest,
    VerifyOtpResponse
)
from buildex.schemas.user import UserResponse
from buildex.schemas.error import get_error_responses
from buildex.utils.dependencies import (
    get_auth_service,
    get_otp_service,
    get_current_active_user
)
from buildex.utils.exceptions import exception_from_error
from buildex.utils.result import Err
from buildex.config import settings


router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=status.HTTP_200_OK,
    summary="User login",
    description="Authenticate user with email and password, returns JWT tokens",
    responses=get_error_responses(401, 403, 422)
)
async def login(
    login_data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> LoginResponse:
    """
    Authenticate user and return JWT tokens.

    Raises:
        InvalidCredentialsError: If credentials are invalid
        InactiveUserError: If user account is inactive
    """
    user, access_token, refresh_token = await auth_service.login(
        email=login_data.email,
        password=login_data.password
    )

    return LoginResponse(
        user=CurrentUserResponse.from_user(user),
        access_token=access_token,
        refresh_token=refresh_token,
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60
    )


@router.post(
    "/refresh",
    response_model=AccessTokenResponse,
    status_code=status.HTTP_200_OK,
    summary="Refresh access token",
    description="Generate new access token using refresh token",
    responses=get_error_responses(401, 403)
)
async def refresh_token(
    refresh_data: RefreshTokenRequest,
    auth_service: AuthService = Depends(get_auth_service)
) -> AccessTokenResponse:
    """
    Create new access token from refresh token.

    Raises:
        InvalidTokenError: If refresh token is invalid
        TokenExpiredError: If refresh token is expired
        InactiveUserError: If user account is inactive
    """
    access_token = await auth_service.refresh_access_token(
        refresh_token=refresh_data.refresh_token
    )

    return AccessTokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=settings.access_token_expire_minutes * 60
    )


@router.get(
    "/me",
    response_model=CurrentUserResponse,
    status_code=status.HTTP_200_OK,
    summary="Get current user",
    description="Get current authenticated user information",
    responses=get_error_responses(401, 403)
)
async def get_current_user_info(
    current_user: User = Depends(get_current_active_user)
) -> CurrentUserResponse:
    return CurrentUserResponse.from_user(current_user)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start registration",
    description="Validate the registration details and email a one-time code",
    responses=get_error_responses(409, 422, 503)
)
async def register(
    register_data: RegisterRequest,
    otp_service: OtpService = Depends(get_otp_service)
) -> RegisterResponse:
    """
    Issue a registration OTP. The account is only created by /verify-otp.
    """
    result = await otp_service.request_registration(register_data.model_dump())
    if isinstance(result, Err):
        raise exception_from_error(result)

    return RegisterResponse(
        email=result.value["email"],
        expires_in_seconds=result.value["expires_in_seconds"]
    )


@router.post(
    "/verify-otp",
    response_model=VerifyOtpResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Verify registration OTP",
    description="Check the emailed code and create the account",
    responses=get_error_responses(409, 422, 500)
)
async def verify_otp(
    verify_data: VerifyOtpRequest,
    otp_service: OtpService = Depends(get_otp_service)
) -> VerifyOtpResponse:
    result = await otp_service.verify_registration(verify_data.email, verify_data.otp)
    if isinstance(result, Err):
        raise exception_from_error(result)

    return VerifyOtpResponse(user=UserResponse.model_validate(result.value))
