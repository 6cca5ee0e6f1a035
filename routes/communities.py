from fastapi import APIRouter, Depends

from config import Settings
from schemas import CommunityListResponse, CommunityResponse
from schemas.communities import COMMUNITY_NAMES, DEFAULT_COMMUNITY
from utils.route_helpers import get_app_settings

router = APIRouter(prefix="/api/communities", tags=["communities"])

@router.get("", response_model=CommunityListResponse)
def list_communities(settings: Settings = Depends(get_app_settings)):
    """Community tags posts may be filed under."""
    communities = [
        CommunityResponse(id=tag, name=COMMUNITY_NAMES.get(tag, tag.strip("/")))
        for tag in settings.communities
    ]
    default = DEFAULT_COMMUNITY if DEFAULT_COMMUNITY in settings.communities else settings.communities[0]
    return CommunityListResponse(communities=communities, default=default)
