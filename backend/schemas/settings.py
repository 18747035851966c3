from typing import Any, Optional
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel


class SystemSettingBase(BaseModel):
    key: str
    value: Any
    value_type: str = "string"  # one of SETTING_VALUE_TYPES
    description: Optional[str] = None


class SystemSettingCreate(SystemSettingBase):
    pass


class SystemSettingUpdate(BaseModel):
    value: Optional[Any] = None
    value_type: Optional[str] = None
    description: Optional[str] = None


class SystemSettingResponse(BaseModel):
    id: UUID
    key: str
    value: str
    value_type: str
    description: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
