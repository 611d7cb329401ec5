"""
User profile document

Stored at user:{id}. The identity itself lives with the identity provider;
this document only carries display fields.
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict


class UserProfile(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    email: str
    username: str
    created_at: str

    full_name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None

    @staticmethod
    def key(user_id: str) -> str:
        return f"user:{user_id}"
