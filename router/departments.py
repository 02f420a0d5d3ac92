"""
Departments Router
==================
Departments scope what leaders can see and manage. Admins create them.
"""

from fastapi import APIRouter, Depends, HTTPException, status, Path
from sqlalchemy.orm import Session
from typing import List

from models import Department
from schemas import DepartmentCreate, DepartmentOut
from db import get_db
from dependencies import allow_admin, get_current_user
from datetime import datetime, timezone

router = APIRouter(
    prefix="/departments",
    tags=["Departments"],
    dependencies=[Depends(get_current_user)],
)


# ============================================================================
# CREATE DEPARTMENT
# ============================================================================

@router.post("", response_model=DepartmentOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(allow_admin)])
def create_department(
    department: DepartmentCreate,
    db: Session = Depends(get_db)
):
    """Create new department. Admin only; names are unique."""
    name = department.name.strip()
    existing = db.query(Department).filter(Department.name == name).first()
    if existing:
        raise HTTPException(
            status_code=400,
            detail=f"Department '{name}' already exists"
        )

    db_department = Department(
        name=name,
        created_at=datetime.now(timezone.utc).replace(tzinfo=None),
    )
    db.add(db_department)
    db.commit()
    db.refresh(db_department)
    return db_department


# ============================================================================
# GET DEPARTMENTS
# ============================================================================

@router.get("", response_model=List[DepartmentOut])
def get_departments(db: Session = Depends(get_db)):
    """Get all departments. Available to all authenticated users."""
    return db.query(Department).order_by(Department.name).all()


@router.get("/{department_id}", response_model=DepartmentOut)
def get_department(
    department_id: int = Path(...),
    db: Session = Depends(get_db)
):
    """Get specific department by ID."""
    department = db.query(Department).filter(Department.id == department_id).first()
    if not department:
        raise HTTPException(status_code=404, detail="Department not found")
    return department
