from fastapi import APIRouter, Depends
from library_api.dependencies import get_catalog, get_members
from library_api.schemas.member import MemberCreate
from library_api.schemas.records import Member, Staff
from library_api.services.catalog import CatalogService
from library_api.services.members import MemberService

router = APIRouter(prefix="/api", tags=["Members"])

# Password hashes never leave the API
MEMBER_FIELDS_EXCLUDED = {"password_hash"}

@router.get("/members")
async def list_members(catalog: CatalogService = Depends(get_catalog)):
    return [m.model_dump(mode="json", exclude=MEMBER_FIELDS_EXCLUDED) for m in catalog.rows(Member)]

@router.post("/members")
async def create_member(
    member_data: MemberCreate,
    members: MemberService = Depends(get_members)
):
    """Register a new member."""
    member = members.register(member_data.name, member_data.email, member_data.password)
    return member.model_dump(mode="json", exclude=MEMBER_FIELDS_EXCLUDED)

@router.get("/staff")
async def list_staff(catalog: CatalogService = Depends(get_catalog)):
    return [s.model_dump(mode="json") for s in catalog.rows(Staff)]
