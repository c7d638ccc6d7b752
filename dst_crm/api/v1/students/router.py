from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from dst_crm.auth.dependencies import get_current_user
from dst_crm.auth.rbac import require_admin, require_staff
from dst_crm.auth.schemas import CurrentUser
from dst_crm.core.exceptions import ServiceError
from dst_crm.db.session import get_db

from .schemas import (
    StudentCreate,
    StudentDetail,
    StudentProfileResponse,
    StudentResponse,
    StudentSelfUpdate,
    StudentUpdate,
)
from . import service

router = APIRouter(prefix="/api/v1/students", tags=["students"])


# --- Own profile (any signed-in role) ---
@router.get("/me", response_model=StudentProfileResponse)
async def get_my_profile(
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> StudentProfileResponse:
    """Student record carrying the signed-in email, with its matched payments. Empty when none exists."""
    return await service.get_own_profile(db, current_user.email)


@router.patch("/me", response_model=StudentResponse)
async def update_my_profile(
    payload: StudentSelfUpdate,
    db: AsyncSession = Depends(get_db),
    current_user: CurrentUser = Depends(get_current_user),
) -> StudentResponse:
    student = await service.update_own_profile(db, current_user.email, payload)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No student record for this account")
    return student


# --- Management ---
@router.get(
    "",
    response_model=List[StudentResponse],
    dependencies=[Depends(require_staff)],
)
async def list_students(
    search: Optional[str] = Query(None, description="Matches name, surname, mail, school or vs"),
    db: AsyncSession = Depends(get_db),
) -> List[StudentResponse]:
    return await service.list_students(db, search=search)


@router.post(
    "",
    response_model=StudentResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_student(
    payload: StudentCreate,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    return await service.create_student(db, payload)


@router.get(
    "/{student_id}",
    response_model=StudentDetail,
    dependencies=[Depends(require_staff)],
)
async def get_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> StudentDetail:
    student = await service.get_student(db, student_id)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return student


@router.patch(
    "/{student_id}",
    response_model=StudentResponse,
    dependencies=[Depends(require_admin)],
)
async def update_student(
    student_id: UUID,
    payload: StudentUpdate,
    db: AsyncSession = Depends(get_db),
) -> StudentResponse:
    student = await service.update_student(db, student_id, payload)
    if not student:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return student


@router.delete(
    "/{student_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(require_admin)],
)
async def delete_student(
    student_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> None:
    try:
        deleted = await service.delete_student(db, student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not deleted:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
