from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    company_id: int
    enable_vat: bool
    enable_cis: bool
    is_vat_registered: bool
    default_labour_rate: float
    default_tax_percent: float
    default_cis_percent: float


class SettingsUpdate(BaseModel):
    enable_vat: Optional[bool] = None
    enable_cis: Optional[bool] = None
    is_vat_registered: Optional[bool] = None
    default_labour_rate: Optional[float] = Field(default=None, ge=0)
    default_tax_percent: Optional[float] = Field(default=None, ge=0, le=100)
    default_cis_percent: Optional[float] = Field(default=None, ge=0, le=100)
