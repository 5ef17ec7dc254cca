from typing import List
from pydantic import BaseModel

from .models import FeedItem

class FeedResponse(BaseModel):
    items: List[FeedItem] = []
    count: int
