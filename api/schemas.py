"""
Pydantic schemas for API responses.
"""

from typing import Dict, Optional

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    error: str


class InfoResponse(BaseModel):
    version: str
    db_version: Optional[str] = None


class ReplicationUpdateResponse(BaseModel):
    message: str = "Success!"
    tables: Dict[str, int]
