from fastapi import APIRouter

from minilibrary.core.clock import utcnow
from minilibrary.core.responses import success
from minilibrary.schemas import schemas

router = APIRouter(tags=["Health"])


@router.get("/health-check", response_model=schemas.ApiResponse[schemas.HealthOut])
def health_check():
    return success("API is up and running", schemas.HealthOut(status="UP", time=utcnow()))
