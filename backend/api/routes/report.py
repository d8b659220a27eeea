from fastapi import APIRouter, BackgroundTasks, Depends

from models.incident import IncidentCreated, ReportIn
from models.user import UserProfile
from routes.deps import get_intake
from routes.incident import admit_report
from services.auth import get_current_user
from services.intake import IncidentIntake

router = APIRouter(tags=["report"])


@router.post("/reports", status_code=201, response_model=IncidentCreated)
def create_report(
    data: ReportIn,
    background: BackgroundTasks,
    user: UserProfile = Depends(get_current_user),
    intake: IncidentIntake = Depends(get_intake),
):
    """
    Any signed-in (non-banned) user may report; account verification is not
    required here. Goes through the same intake pipeline as /incidents.
    """
    return admit_report(data.to_report(), user, intake, background)
