from typing import TypedDict, Union, Optional, List
from datetime import datetime
from bson import ObjectId


class ThreadDocument(TypedDict):

    _id: ObjectId
    text: str
    author: ObjectId
    community: None  # always stored as null
    parent_id: Optional[ObjectId]
    children: List[ObjectId]
    likes: List[str]
    created_at: datetime


class UserDocument(TypedDict, total=False):

    _id: Union[ObjectId, str]
    id: str
    name: str
    image: Optional[str]
    threads: List[ObjectId]
