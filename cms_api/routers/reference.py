from __future__ import annotations

from fastapi import APIRouter, Depends, Path

from cms_api.deps import get_reference_validator
from cms_api.schemas.common import ok
from cms_api.schemas.reference import CityRead, StateRead
from cms_api.services.reference import ReferenceValidator

router = APIRouter(prefix="/reference", tags=["reference"])


@router.get("/states")
def list_states(references: ReferenceValidator = Depends(get_reference_validator)):
    return ok([StateRead.model_validate(row) for row in references.list_states()])


@router.get("/cities")
def list_cities(references: ReferenceValidator = Depends(get_reference_validator)):
    return ok([CityRead.model_validate(row) for row in references.list_cities()])


@router.get("/states/{state_id}/cities")
def list_cities_for_state(
    state_id: int = Path(..., gt=0),
    references: ReferenceValidator = Depends(get_reference_validator),
):
    return ok([CityRead.model_validate(row) for row in references.list_cities_for_state(state_id)])
