"""Pydantic models shared across the bridge backend."""

from .api import ServiceInfo, StatusResponse

__all__ = [
	"ServiceInfo",
	"StatusResponse",
]
