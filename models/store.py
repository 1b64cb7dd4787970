"""
Shopify store schemas.
"""

from pydantic import Field, model_validator
from typing import Optional

from models.base import BaseSchema


class StoreConfig(BaseSchema):
    """
    Shopify store connection for a tenant.

    Rows keep domain and access token inside a `settings` JSON column;
    they are lifted to top-level fields here.
    """

    id: str = Field(..., description="Store UUID")
    tenant_id: str = Field(..., description="Owning tenant")
    name: Optional[str] = Field(None, description="Display name")
    domain: str = Field(..., min_length=1, description="myshopify.com domain")
    access_token: str = Field(..., min_length=1, repr=False, description="Admin API token")

    @model_validator(mode="before")
    @classmethod
    def lift_settings(cls, data):
        if isinstance(data, dict) and isinstance(data.get("settings"), dict):
            data = dict(data)
            store_settings = data.pop("settings")
            data.setdefault("domain", store_settings.get("domain"))
            data.setdefault(
                "access_token",
                store_settings.get("accessToken") or store_settings.get("access_token")
            )
        return data
