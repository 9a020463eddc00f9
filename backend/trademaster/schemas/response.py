"""Generic API response schemas"""

from pydantic import BaseModel
from typing import Optional, Any, Dict


class MessageResponse(BaseModel):
    """Body of endpoints that only report an outcome"""
    message: str


class ErrorResponse(BaseModel):
    """Generic API error response"""
    success: bool = False
    error: str
    code: Optional[str] = None
    details: Optional[Dict[str, Any]] = None
    path: Optional[str] = None
    timestamp: str


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    version: str
    timestamp: str
    readiness: Dict[str, Any]
