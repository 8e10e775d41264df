from fastapi import APIRouter, Depends

from minilibrary.api.deps import get_auth_service
from minilibrary.core.responses import success
from minilibrary.schemas import schemas
from minilibrary.services.auth import AuthService

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", status_code=201, response_model=schemas.ApiResponse[schemas.UserOut])
def register(user_in: schemas.UserCreate, auth: AuthService = Depends(get_auth_service)):
    user = auth.register(user_in)
    return success("User created successfully", schemas.UserOut.model_validate(user), status_code=201)


@router.post("/login", response_model=schemas.ApiResponse[schemas.TokenOut])
def login(credentials: schemas.LoginRequest, auth: AuthService = Depends(get_auth_service)):
    token = auth.login(credentials.username, credentials.password)
    return success("Logged in successfully", schemas.TokenOut(token=token))
