from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

TIERS = ("upload", "download", "share")


class PlanFlagFields(BaseModel):
    can_share_document: bool = False
    can_view_activity_logs: bool = False
    can_view_chat: bool = False
    can_view_reports: bool = False
    allow_multiple_uploads: bool = False


class PricingFields(BaseModel):
    storage_limit_gb: int = Field(0, ge=0)
    docs_upload_limit: int = Field(0, ge=0)
    monthly_bill: Decimal | None = Field(None, ge=0)
    price_description: str | None = None
    billing_duration: int = Field(1, ge=1)
    upload_price: Decimal = Field(Decimal("0"), ge=0)
    upload_unit_count: int = Field(0, ge=0)
    download_price: Decimal = Field(Decimal("0"), ge=0)
    download_unit_count: int = Field(0, ge=0)
    share_price: Decimal = Field(Decimal("0"), ge=0)
    share_unit_count: int = Field(0, ge=0)

    @model_validator(mode="after")
    def _priced_tiers_have_units(self):
        for tier in TIERS:
            if getattr(self, f"{tier}_price") > 0 and getattr(self, f"{tier}_unit_count") == 0:
                raise ValueError(f"{tier}_unit_count must be positive when {tier}_price is set")
        return self


# Update fields that may be explicitly cleared.
NULLABLE_FIELDS = {"description", "monthly_bill", "price_description"}


class PartialUpdate(BaseModel):
    @model_validator(mode="after")
    def _required_fields_not_null(self):
        for field in sorted(self.model_fields_set - NULLABLE_FIELDS):
            if getattr(self, field) is None:
                raise ValueError(f"{field} cannot be null")
        return self


class PlanCreate(PlanFlagFields, PricingFields):
    name: str = Field(..., min_length=1)
    description: str | None = None
    can_add_client: bool = False
    number_of_clients: int = Field(0, ge=0)
    total_users: int = Field(0, ge=0)


class PlanUpdate(PartialUpdate):
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    can_share_document: bool | None = None
    can_view_activity_logs: bool | None = None
    can_view_chat: bool | None = None
    can_view_reports: bool | None = None
    allow_multiple_uploads: bool | None = None
    can_add_client: bool | None = None
    number_of_clients: int | None = Field(None, ge=0)
    total_users: int | None = Field(None, ge=0)
    storage_limit_gb: int | None = Field(None, ge=0)
    docs_upload_limit: int | None = Field(None, ge=0)
    monthly_bill: Decimal | None = Field(None, ge=0)
    price_description: str | None = None
    billing_duration: int | None = Field(None, ge=1)
    upload_price: Decimal | None = Field(None, ge=0)
    upload_unit_count: int | None = Field(None, ge=0)
    download_price: Decimal | None = Field(None, ge=0)
    download_unit_count: int | None = Field(None, ge=0)
    share_price: Decimal | None = Field(None, ge=0)
    share_unit_count: int | None = Field(None, ge=0)


class PlanResponse(PlanCreate):
    id: str
    created_at: str
    company_count: int = 0


class ClientPlanCreate(PlanFlagFields, PricingFields):
    name: str = Field(..., min_length=1)


class ClientPlanUpdate(PartialUpdate):
    name: str | None = Field(None, min_length=1)
    can_share_document: bool | None = None
    can_view_activity_logs: bool | None = None
    can_view_chat: bool | None = None
    can_view_reports: bool | None = None
    allow_multiple_uploads: bool | None = None
    storage_limit_gb: int | None = Field(None, ge=0)
    docs_upload_limit: int | None = Field(None, ge=0)
    monthly_bill: Decimal | None = Field(None, ge=0)
    price_description: str | None = None
    billing_duration: int | None = Field(None, ge=1)
    upload_price: Decimal | None = Field(None, ge=0)
    upload_unit_count: int | None = Field(None, ge=0)
    download_price: Decimal | None = Field(None, ge=0)
    download_unit_count: int | None = Field(None, ge=0)
    share_price: Decimal | None = Field(None, ge=0)
    share_unit_count: int | None = Field(None, ge=0)


class ClientPlanResponse(ClientPlanCreate):
    id: str
    company_id: str
    created_at: str
    client_count: int = 0
