from typing import List

from pydantic import BaseModel

# Display names for the default community catalogue
COMMUNITY_NAMES = {
    "/prj/": "Project Hub",
    "/std/": "Daily Check-in",
    "/evt/": "World News (Tech)",
    "/dmp/": "Ideation Dump",
    "/tls/": "Toolbox",
    "/tut/": "Knowledge Base",
    "/dsk/": "Peer Support",
    "/ot/": "Lounge (Off-Topic)",
    "/test/": "Testing",
    "/gen/": "General Discussion",
}

DEFAULT_COMMUNITY = "/gen/"


class CommunityResponse(BaseModel):
    id: str
    name: str

class CommunityListResponse(BaseModel):
    communities: List[CommunityResponse]
    default: str
