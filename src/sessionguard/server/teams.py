# Teams router: a small session-protected resource used to exercise
# state-changing requests end to end.

from __future__ import annotations

import logging
from datetime import UTC, datetime
from itertools import count

from fastapi import APIRouter, Depends, HTTPException, Request

from sessionguard.server.deps import require_session
from sessionguard.server.schemas import SuccessResponse, TeamIn
from sessionguard.server.sessions import Session

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Teams"])


class TeamStore:
    def __init__(self):
        self._teams: dict[int, dict] = {}
        self._ids = count(1)

    def all(self) -> list[dict]:
        return list(self._teams.values())

    def create(self, data: TeamIn, owner_id: int) -> dict:
        team = {
            "id": next(self._ids),
            "name": data.name,
            "ageGroup": data.age_group,
            "createdBy": owner_id,
            "createdAt": datetime.now(UTC).isoformat(),
        }
        self._teams[team["id"]] = team
        return team

    def update(self, team_id: int, data: TeamIn) -> dict | None:
        team = self._teams.get(team_id)
        if team is None:
            return None
        team.update(name=data.name, ageGroup=data.age_group)
        return team

    def delete(self, team_id: int) -> bool:
        return self._teams.pop(team_id, None) is not None


@router.get("/teams")
async def list_teams(request: Request, session: Session = Depends(require_session)):
    return request.app.state.teams.all()


@router.post("/teams", status_code=201)
async def create_team(body: TeamIn, request: Request, session: Session = Depends(require_session)):
    team = request.app.state.teams.create(body, session.user_id)
    logger.info("Team %s created by user %s", team["id"], session.user_id)
    return team


@router.put("/teams/{team_id}")
async def update_team(
    team_id: int, body: TeamIn, request: Request, session: Session = Depends(require_session)
):
    team = request.app.state.teams.update(team_id, body)
    if team is None:
        raise HTTPException(status_code=404, detail="Team not found")
    return team


@router.delete("/teams/{team_id}", response_model=SuccessResponse)
async def delete_team(team_id: int, request: Request, session: Session = Depends(require_session)):
    if not request.app.state.teams.delete(team_id):
        raise HTTPException(status_code=404, detail="Team not found")
    return SuccessResponse()
