from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from cms_api.deps import get_customer_service, require_user
from cms_api.models.user import User
from cms_api.schemas.address import AddressUpdate
from cms_api.schemas.common import ok
from cms_api.services.customers import CustomerService

router = APIRouter(prefix="/addresses", tags=["addresses"])


@router.put("/{address_id}")
def update_address(
    payload: AddressUpdate,
    address_id: int = Path(..., gt=0),
    _user: User = Depends(require_user),
    service: CustomerService = Depends(get_customer_service),
):
    return ok(service.update_address(address_id, payload), "Address updated successfully")


@router.delete("/{address_id}")
def delete_address(
    address_id: int = Path(..., gt=0),
    _user: User = Depends(require_user),
    service: CustomerService = Depends(get_customer_service),
):
    service.delete_address(address_id)
    return ok(None, "Address deleted successfully")
