from typing import Optional

from pydantic import BaseModel, Field


class ErrorResponse(BaseModel):
    error: str = Field(..., description="Human readable description of what went wrong.")


class GenerateUrlRequest(BaseModel):
    destination_url: str = Field(..., description="The absolute URL to route through the proxy.")
    proxy_base_url: Optional[str] = Field(
        None, description="Public base URL of this proxy. If omitted, a proxy-relative path is returned."
    )


class GenerateUrlResponse(BaseModel):
    url: str = Field(..., description="The proxy URL for the destination.")
