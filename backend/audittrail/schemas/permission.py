"""ACL entry schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from ..core.permissions import permission_names
from .common import CamelModel


class GrantRequest(CamelModel):
    permissions: int = Field(..., ge=0, le=63, description="Permission bitmask; 0 revokes")
    inherit_to_subfolders: Optional[bool] = None
    inherit_to_files: Optional[bool] = None
    expiry_date: Optional[datetime] = None


class RevokeRequest(CamelModel):
    reason: Optional[str] = None


class AccessEntryResponse(CamelModel):
    id: int
    category_id: int
    role_id: Optional[int] = None
    user_id: Optional[str] = None
    permissions: int
    permission_names: List[str] = []
    inherit_to_subfolders: bool
    inherit_to_files: bool
    granted_by: Optional[str] = None
    granted_date: datetime
    expiry_date: Optional[datetime] = None
    is_active: bool

    @classmethod
    def from_entry(cls, entry) -> "AccessEntryResponse":
        response = cls.model_validate(entry)
        response.permission_names = permission_names(entry.permissions)
        return response


class EffectivePermissionsResponse(CamelModel):
    target_id: str
    permissions: int
    permission_names: List[str]
