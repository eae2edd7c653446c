"""Bid endpoints."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from freelancehub.db import get_db
from freelancehub.models.bid import Bid
from freelancehub.schemas.bid import BidAcceptRead, BidCreate, BidRead, BidUpdate, BidWithdrawRead
from freelancehub.schemas.project import ProjectRead
from freelancehub.security import Principal, require_principal
from freelancehub.services import bids as bid_service
from freelancehub.services import projects as project_service

from ._responses import notification_reads

router = APIRouter(tags=["bids"])


@router.post("/projects/{project_id}/bids", response_model=BidRead, status_code=status.HTTP_201_CREATED)
def create_bid(
    project_id: int,
    payload: BidCreate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> Bid:
    return bid_service.create_bid(db, principal, project_id, payload)


@router.get("/projects/{project_id}/bids", response_model=list[BidRead])
def list_project_bids(
    project_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> list[Bid]:
    return bid_service.list_bids_for_project(db, principal, project_id)


@router.get("/freelancers/{freelancer_id}/bids", response_model=list[BidRead])
def list_freelancer_bids(
    freelancer_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> list[Bid]:
    return bid_service.list_bids_for_freelancer(db, principal, freelancer_id)


@router.get("/bids/{bid_id}", response_model=BidRead)
def get_bid(
    bid_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> Bid:
    return bid_service.get_visible_bid(db, principal, bid_id)


@router.put("/bids/{bid_id}", response_model=BidRead)
def update_bid(
    bid_id: int,
    payload: BidUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> Bid:
    return bid_service.update_bid(db, principal, bid_id, payload)


@router.post("/bids/{bid_id}/accept", response_model=BidAcceptRead)
def accept_bid(
    bid_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> BidAcceptRead:
    result = bid_service.accept_bid(db, principal, bid_id)
    project = project_service.get_project(db, result.entity.project_id)
    return BidAcceptRead(
        bid=BidRead.model_validate(result.entity),
        project=ProjectRead.model_validate(project),
        notifications=notification_reads(result.notifications),
    )


@router.delete("/bids/{bid_id}", response_model=BidWithdrawRead)
def withdraw_bid(
    bid_id: int,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_principal),
) -> BidWithdrawRead:
    result = bid_service.withdraw_bid(db, principal, bid_id)
    return BidWithdrawRead(
        bid_id=bid_id,
        project=ProjectRead.model_validate(result.entity),
        notifications=notification_reads(result.notifications),
    )
