from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query, status

from cms_api.deps import get_customer_service, require_user
from cms_api.models.user import User
from cms_api.schemas.address import AddressCreate
from cms_api.schemas.common import ok
from cms_api.schemas.customer import CustomerCreate, CustomerUpdate
from cms_api.services.customers import CustomerService

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("")
def list_customers(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    search: str | None = Query(default=None, max_length=150),
    _user: User = Depends(require_user),
    service: CustomerService = Depends(get_customer_service),
):
    return ok(service.list_customers(page=page, limit=limit, search=search))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: CustomerCreate,
    _user: User = Depends(require_user),
    service: CustomerService = Depends(get_customer_service),
):
    return ok(service.create_customer(payload), "Customer created successfully")


@router.get("/{customer_id}")
def get_customer(
    customer_id: int = Path(..., gt=0),
    _user: User = Depends(require_user),
    service: CustomerService = Depends(get_customer_service),
):
    return ok(service.get_customer(customer_id))


@router.put("/{customer_id}")
def update_customer(
    payload: CustomerUpdate,
    customer_id: int = Path(..., gt=0),
    _user: User = Depends(require_user),
    service: CustomerService = Depends(get_customer_service),
):
    return ok(service.update_customer(customer_id, payload), "Customer updated successfully")


@router.delete("/{customer_id}")
def delete_customer(
    customer_id: int = Path(..., gt=0),
    _user: User = Depends(require_user),
    service: CustomerService = Depends(get_customer_service),
):
    service.delete_customer(customer_id)
    return ok(None, "Customer deleted successfully")


@router.get("/{customer_id}/addresses")
def list_customer_addresses(
    customer_id: int = Path(..., gt=0),
    _user: User = Depends(require_user),
    service: CustomerService = Depends(get_customer_service),
):
    return ok(service.list_addresses(customer_id))


@router.post("/{customer_id}/addresses", status_code=status.HTTP_201_CREATED)
def add_customer_address(
    payload: AddressCreate,
    customer_id: int = Path(..., gt=0),
    _user: User = Depends(require_user),
    service: CustomerService = Depends(get_customer_service),
):
    return ok(service.add_address(customer_id, payload), "Address added successfully")
