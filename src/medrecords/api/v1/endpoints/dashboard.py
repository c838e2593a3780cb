"""Dashboard endpoint: record counts and the latest patients."""
from fastapi import APIRouter

from ....core.rbac import CurrentSession
from ....core.responses import GenericResponse
from ....db.session import DbSession
from ....schemas.dashboard import DashboardSummary
from ....services.record_service import DashboardService

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get(
    "",
    response_model=GenericResponse[DashboardSummary],
    summary="Dashboard summary",
    description="Active doctor and patient counts plus the five most recent patients.",
)
async def get_dashboard(_: CurrentSession, db: DbSession) -> GenericResponse[DashboardSummary]:
    return GenericResponse(
        message="Dashboard retrieved",
        data=await DashboardService(db).summary(),
    )
