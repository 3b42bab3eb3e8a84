from fastapi import APIRouter, Depends
from typing import List
from library_api.dependencies import get_catalog, get_circulation
from library_api.schemas.fine import FineUpdate
from library_api.schemas.records import Fine
from library_api.services.catalog import CatalogService
from library_api.services.circulation import CirculationService

router = APIRouter(prefix="/api/fines", tags=["Fines"])

@router.get("", response_model=List[Fine])
async def get_fines(catalog: CatalogService = Depends(get_catalog)):
    return catalog.rows(Fine)

@router.put("/{fine_id}", response_model=Fine)
async def update_fine(
    fine_id: str,
    fine_data: FineUpdate,
    circulation: CirculationService = Depends(get_circulation)
):
    """Merge the supplied fields into a fine."""
    return circulation.update_fine(fine_id, fine_data.model_dump(exclude_unset=True))

@router.post("/{fine_id}/pay", response_model=Fine)
async def pay_fine(
    fine_id: str,
    circulation: CirculationService = Depends(get_circulation)
):
    return circulation.mark_fine_paid(fine_id)
