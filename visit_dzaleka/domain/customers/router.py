"""Customer router - FastAPI endpoints for the visitor CRM"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_role
from ...database import get_db
from ...models import User
from ...schemas import customer_profile_to_response
from ...services.audit_service import record_audit
from ..bookings.schemas import booking_to_response
from .schemas import CustomerDetail, CustomerSummary, CustomerUpdate
from .service import CustomerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/customers", tags=["Customers"])

require_staff = require_role("admin", "coordinator")
require_crm_reader = require_role("admin", "coordinator", "guide")


def get_customer_service(db: Session = Depends(get_db)) -> CustomerService:
    """Dependency injection for CustomerService"""
    return CustomerService(db)


@router.get("", response_model=list[CustomerSummary])
async def list_customers(
    search: Optional[str] = Query(None),
    current_user: User = Depends(require_crm_reader),
    service: CustomerService = Depends(get_customer_service),
):
    return [
        CustomerSummary(**customer_profile_to_response(user).model_dump(), stats=stats)
        for user, stats in service.get_customers(search)
    ]


@router.get("/{user_id}", response_model=CustomerDetail)
async def get_customer(
    user_id: int,
    current_user: User = Depends(require_staff),
    service: CustomerService = Depends(get_customer_service),
):
    user, bookings, stats = service.get_customer_detail(user_id)
    return CustomerDetail(
        user=customer_profile_to_response(user),
        bookings=[booking_to_response(b) for b in bookings],
        stats=stats,
    )


@router.patch("/{user_id}")
async def update_customer(
    user_id: int,
    data: CustomerUpdate,
    current_user: User = Depends(require_staff),
    service: CustomerService = Depends(get_customer_service),
):
    user = service.update_customer(user_id, data)
    record_audit(
        service.db,
        current_user.id,
        "update",
        "customer",
        user.id,
        new_values=data.model_dump(exclude_unset=True, mode="json"),
    )
    service.db.commit()
    return customer_profile_to_response(user)
