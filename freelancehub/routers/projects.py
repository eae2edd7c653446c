"""Project endpoints."""
from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from freelancehub.db import get_db
from freelancehub.models.project import Project, ProjectStatus
from freelancehub.schemas.project import (
    ClosedProjectCount,
    ProjectActionRead,
    ProjectCreate,
    ProjectRead,
    ProjectUpdate,
)
from freelancehub.security import Principal, require_principal
from freelancehub.services import projects as project_service
from freelancehub.services.notifications import ActionResult

from ._responses import notification_reads

router = APIRouter(prefix="/projects", tags=["projects"])


def _action_read(result: ActionResult[Project]) -> ProjectActionRead:
    return ProjectActionRead(
        project=ProjectRead.model_validate(result.entity),
        notifications=notification_reads(result.notifications),
    )


@router.post("", response_model=ProjectRead, status_code=status.HTTP_201_CREATED)
def create_project(
    payload: ProjectCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> Project:
    return project_service.create_project(db, principal, payload)


@router.get("", response_model=list[ProjectRead])
def list_projects(
    project_status: ProjectStatus | None = Query(default=None, alias="status"),
    client_id: int | None = None,
    freelancer_id: int | None = None,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> list[Project]:
    return project_service.list_projects(
        db, status=project_status, client_id=client_id, freelancer_id=freelancer_id
    )


@router.get("/closed-count", response_model=ClosedProjectCount)
def closed_project_count(
    client_id: int,
    freelancer_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> ClosedProjectCount:
    """How many closed projects link a client and a freelancer (review eligibility)."""

    count = project_service.has_closed_project(db, client_id, freelancer_id)
    return ClosedProjectCount(client_id=client_id, freelancer_id=freelancer_id, closed_projects=count)


@router.get("/{project_id}", response_model=ProjectRead)
def get_project(
    project_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> Project:
    return project_service.get_project(db, project_id)


@router.put("/{project_id}", response_model=ProjectRead)
def update_project(
    project_id: int,
    payload: ProjectUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> Project:
    return project_service.update_project(db, principal, project_id, payload)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT, response_class=Response)
def delete_project(
    project_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> Response:
    project_service.delete_project(db, principal, project_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{project_id}/cancel", response_model=ProjectActionRead)
def cancel_project(
    project_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> ProjectActionRead:
    return _action_read(project_service.cancel_project(db, principal, project_id))


@router.post("/{project_id}/reopen", response_model=ProjectActionRead)
def reopen_project(
    project_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> ProjectActionRead:
    return _action_read(project_service.reopen_project(db, principal, project_id))


@router.post("/{project_id}/complete", response_model=ProjectActionRead)
def complete_project(
    project_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> ProjectActionRead:
    return _action_read(project_service.complete_project(db, principal, project_id))


@router.post("/{project_id}/unmark-complete", response_model=ProjectActionRead)
def unmark_complete(
    project_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> ProjectActionRead:
    return _action_read(project_service.unmark_complete(db, principal, project_id))


@router.post("/{project_id}/settle", response_model=ProjectActionRead)
def settle_project(
    project_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> ProjectActionRead:
    return _action_read(project_service.settle_project(db, principal, project_id))


@router.post("/{project_id}/accept-payment", response_model=ProjectActionRead)
def accept_payment(
    project_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> ProjectActionRead:
    return _action_read(project_service.accept_payment(db, principal, project_id))


@router.post("/{project_id}/admin-close", response_model=ProjectActionRead)
def admin_close_project(
    project_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> ProjectActionRead:
    return _action_read(project_service.admin_close_project(db, principal, project_id))
