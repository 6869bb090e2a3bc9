"""
Audit log Pydantic schemas.
"""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional, Dict, Any, List


class AuditLogResponse(BaseModel):
    id: int
    actor_email: Optional[str]
    action: str
    target_email: Optional[str]
    meta_data: Optional[Dict[str, Any]]
    ip_address: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class AuditLogListResponse(BaseModel):
    logs: List[AuditLogResponse]
    total: int
