"""Assembly (bill of materials) API endpoints"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from retailops.api import deps
from retailops.core.permissions import Action, authorize
from retailops.models.assembly import AssemblyStatus
from retailops.models.auth import User
from retailops.schemas.assembly import AssemblyCreate, AssemblyResponse, AssemblyValidation
from retailops.schemas.common import TransitionRequest
from retailops.services.assemblies import AssemblyService

router = APIRouter()


@router.get("", response_model=List[AssemblyResponse])
async def list_assemblies(
    assembly_status: Optional[AssemblyStatus] = Query(None, alias="status"),
    pagination: dict = Depends(deps.get_pagination_params),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """List assemblies."""
    return AssemblyService(db, current_user).list(status=assembly_status, **pagination)


@router.post("", response_model=AssemblyResponse, status_code=status.HTTP_201_CREATED)
async def create_assembly(
    assembly_data: AssemblyCreate,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Create a Pending assembly with its bill of materials."""
    return AssemblyService(db, current_user).create(assembly_data)


@router.get("/{assembly_id}", response_model=AssemblyResponse)
async def get_assembly(
    assembly_id: int,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Get specific assembly by ID."""
    return AssemblyService(db, current_user).read(assembly_id)


@router.get("/{assembly_id}/validate", response_model=AssemblyValidation)
async def validate_assembly(
    assembly_id: int,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """
    Check materials against current stock.

    Read-only; lists every short line with its shortfall.
    """
    authorize(current_user, Action.ASSEMBLY_MANAGE)
    return AssemblyService(db, current_user).validate(assembly_id)


@router.post("/{assembly_id}/start", response_model=AssemblyResponse)
async def start_assembly(
    assembly_id: int,
    request: TransitionRequest = TransitionRequest(),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Pending -> InProgress when every material is available."""
    return AssemblyService(db, current_user).start(assembly_id, request.notes)


@router.post("/{assembly_id}/complete", response_model=AssemblyResponse)
async def complete_assembly(
    assembly_id: int,
    request: TransitionRequest = TransitionRequest(),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """InProgress -> Completed, consuming materials and crediting the output."""
    return AssemblyService(db, current_user).complete(assembly_id, request.notes)


@router.post("/{assembly_id}/cancel", response_model=AssemblyResponse)
async def cancel_assembly(
    assembly_id: int,
    request: TransitionRequest = TransitionRequest(),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    """Cancel a Pending or InProgress assembly."""
    return AssemblyService(db, current_user).cancel(assembly_id, request.notes)
