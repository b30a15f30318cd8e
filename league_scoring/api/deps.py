from dataclasses import dataclass

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession
from jose import JWTError

from league_scoring.core.database import get_db
from league_scoring.core.security import decode_access_token
from league_scoring.models.models import Team
from league_scoring.services.lookups import get_league_season_or_raise, get_team_for_owner

# Tokens come from the external identity provider; there is no login route here
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/token", auto_error=True)


@dataclass(frozen=True)
class Identity:
    owner_id: str
    is_commissioner: bool = False


async def get_current_user(token: str = Depends(oauth2_scheme)) -> Identity:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_access_token(token)
        owner_id = payload.get("sub")
    except JWTError:
        raise credentials_exception
    if not owner_id:
        raise credentials_exception
    return Identity(owner_id=str(owner_id), is_commissioner=bool(payload.get("is_commissioner", False)))


async def require_commissioner(
    current_user: Identity = Depends(get_current_user),
) -> Identity:
    if not current_user.is_commissioner:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Commissioner access required",
        )
    return current_user


async def get_viewer_team(
    league_season_id: int,
    db: AsyncSession = Depends(get_db),
    current_user: Identity = Depends(get_current_user),
) -> Team | None:
    """The caller's team in this league season, or None for onlookers."""
    await get_league_season_or_raise(db, league_season_id)
    return await get_team_for_owner(db, league_season_id, current_user.owner_id)


async def require_team(team: Team | None = Depends(get_viewer_team)) -> Team:
    if team is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have a team in this league season",
        )
    return team
