"""联系表单与健康检查。"""

from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel

from eduhub.services.contact import submit_contact

router = APIRouter()


class ContactRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    message: Optional[str] = None


class ContactResponse(BaseModel):
    success: bool
    message: str


@router.post("/contact", response_model=ContactResponse, tags=["contact"])
def contact(payload: ContactRequest):
    return submit_contact(payload.name, payload.email, payload.message)


@router.get("/health", tags=["health"])
def health_check():
    return {"status": "ok"}
