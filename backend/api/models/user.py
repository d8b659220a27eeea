# backend/api/models/user.py
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ---------- STATE KEPT ON THE USER ROW ----------

class UserWarningState(BaseModel):
    # GPS mismatch escalation; only admins lift a ban
    gps_warnings: int = Field(0, ge=0)
    is_banned: bool = False
    ban_reason: Optional[str] = None

class UserProfile(UserWarningState):
    # what the auth dependency hands to the routes
    user_id: str
    email: Optional[str] = None
    is_verified: bool = False
    is_trusted: bool = False
    is_admin: bool = False
    coins_balance: int = 0

# ---------- WIRE ----------

class ProfileOut(UserProfile):
    # GET /me, camelCase for the dashboard
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
