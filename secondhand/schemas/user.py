"""
User schemas
"""
from typing import Any, Dict, Optional
from pydantic import BaseModel

from secondhand.models.user import UserProfile


class SignupRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    username: Optional[str] = None


class SignupResponse(BaseModel):
    user: Dict[str, Any]


class ProfileUpdate(BaseModel):
    username: Optional[str] = None
    full_name: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None


class ProfileResponse(BaseModel):
    profile: UserProfile


class UserStats(BaseModel):
    totalListings: int
    totalSales: int
    totalPurchases: int


class UserStatsResponse(BaseModel):
    stats: UserStats


class ImageUploadResponse(BaseModel):
    imageUrl: str
    imagePath: str
