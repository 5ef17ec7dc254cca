from pydantic import BaseModel

from fitsocial.follow.models import RelationshipStatus

class DirectoryCandidate(BaseModel):
    user_id: str
    name: str
    status: RelationshipStatus = RelationshipStatus.NONE
