import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from coderush.auth.router import get_current_user
from coderush.verify.client import VerificationError, verify_code

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/functions/v1", tags=["verify"])


class VerifyRequest(BaseModel):
    code: str
    problem: str
    language: str = "python"


class VerifyResponse(BaseModel):
    is_correct: bool


@router.post("/verify-code", response_model=VerifyResponse)
def verify_code_endpoint(payload: VerifyRequest, request: Request):
    user = get_current_user(request)
    try:
        is_correct = verify_code(
            payload.code,
            payload.problem,
            payload.language,
            user_id=user.id if user else None,
        )
    except VerificationError as e:
        return JSONResponse({"error": str(e)}, status_code=500)

    return VerifyResponse(is_correct=is_correct)
