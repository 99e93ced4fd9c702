from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from phototitler.schemas import LoginRequest, TokenResponse
from phototitler.utils.jwt import check_password, create_access_token

router = APIRouter()


@router.post("/login", summary="Login", response_model=TokenResponse)
def login(body: LoginRequest) -> TokenResponse | JSONResponse:
    """
    Authenticate the photographer by password and return a session token.
    """
    if check_password(body.password):
        return TokenResponse(access_token=create_access_token())
    return JSONResponse(
        {"detail": "Invalid password"},
        status_code=status.HTTP_401_UNAUTHORIZED,
    )
