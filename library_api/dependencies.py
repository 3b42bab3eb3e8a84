from fastapi import Request
from library_api.services.catalog import CatalogService
from library_api.services.circulation import CirculationService
from library_api.services.members import MemberService
from library_api.services.notifier import ChangeNotifier

# Services are built once in main.create_app and kept on app.state

def get_circulation(request: Request) -> CirculationService:
    return request.app.state.circulation

def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog

def get_members(request: Request) -> MemberService:
    return request.app.state.members

def get_notifier(request: Request) -> ChangeNotifier:
    return request.app.state.notifier
