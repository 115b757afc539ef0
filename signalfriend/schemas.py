"""Request and webhook payload schemas.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import re
from decimal import Decimal
from typing import Annotated, List, Literal, Optional

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from signalfriend.utils import ADDRESS_RE, MAX_TOKEN_ID, validate_no_urls

SortOrder = Literal["asc", "desc"]
RiskLevel = Literal["low", "medium", "high"]
PotentialReward = Literal["normal", "medium", "high"]
ReportReason = Literal["false_signal", "misleading_info", "scam", "duplicate_content", "other"]
ReportStatus = Literal["pending", "reviewed", "resolved", "dismissed"]
DisputeStatus = Literal["pending", "contacted", "resolved", "rejected"]

AVATAR_EXTENSION_RE = re.compile(r"\.(jpg|jpeg|png|gif)(\?.*)?$", re.IGNORECASE)
SLUG_RE = re.compile(r"^[a-z0-9-]+$")
MAX_SIGNAL_PRICE_USDT = 100000


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


def _reject_null(value):
    # Partial updates: a field may be omitted, but an explicit null would clear a required column
    if value is None:
        raise ValueError("Field cannot be null")
    return value


def _check_address(value: str) -> str:
    if not ADDRESS_RE.match(value):
        raise ValueError("Invalid Ethereum address")
    return value


EthAddress = Annotated[str, AfterValidator(_check_address)]


# ============================================================================
# Shared query shapes
# ============================================================================


class PageQuery(ApiModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=50)


# ============================================================================
# Auth
# ============================================================================


class NonceQuery(ApiModel):
    address: EthAddress


class VerifyBody(ApiModel):
    message: str = Field(min_length=1)
    signature: str = Field(min_length=1)


# ============================================================================
# Predictors
# ============================================================================


class ListPredictorsQuery(PageQuery):
    category_id: Optional[str] = None
    active: bool = True
    sort_by: Literal["totalSales", "averageRating", "joinedAt", "totalSignals"] = "totalSales"
    sort_order: SortOrder = "desc"
    search: Optional[str] = Field(default=None, max_length=100)


class TopPredictorsQuery(ApiModel):
    metric: Literal["totalSales", "averageRating", "totalSignals"] = "totalSales"
    limit: int = Field(default=10, ge=1, le=50)


class CheckUniqueQuery(ApiModel):
    field: Literal["displayName", "telegram", "discord"]
    value: str = Field(min_length=1, max_length=100)
    exclude_address: Optional[EthAddress] = None


class SocialLinks(ApiModel):
    twitter: Optional[str] = Field(default=None, max_length=100)
    telegram: Optional[str] = Field(default=None, max_length=100)
    discord: Optional[str] = Field(default=None, max_length=100)


class UpdateProfileBody(ApiModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    bio: Optional[str] = Field(default=None, max_length=500)
    avatar_url: Optional[str] = Field(default=None, max_length=500)
    social_links: Optional[SocialLinks] = None
    preferred_contact: Optional[Literal["telegram", "discord"]] = None
    category_ids: Optional[List[str]] = Field(default=None, max_length=5)

    @field_validator("display_name")
    @classmethod
    def _display_name_has_no_links(cls, value):
        if value is not None:
            validate_no_urls(value, "Display name")
        return value

    @field_validator("bio")
    @classmethod
    def _bio_has_no_links(cls, value):
        if value:
            validate_no_urls(value, "Bio")
        return value

    @field_validator("avatar_url")
    @classmethod
    def _avatar_is_image(cls, value):
        if not value:
            return value
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("Invalid URL format")
        if not AVATAR_EXTENSION_RE.search(value):
            raise ValueError("Only JPG, PNG, and GIF images are allowed")
        return value


# ============================================================================
# Signals
# ============================================================================


class ListSignalsQuery(PageQuery):
    category_id: Optional[str] = None
    predictor_address: Optional[EthAddress] = None
    exclude_buyer_address: Optional[EthAddress] = None
    active: bool = True
    sort_by: Literal["createdAt", "totalSales", "averageRating", "priceUsdt"] = "createdAt"
    sort_order: SortOrder = "desc"
    search: Optional[str] = Field(default=None, max_length=100)
    min_price: Optional[float] = Field(default=None, ge=0)
    max_price: Optional[float] = Field(default=None, ge=0)
    risk_level: Optional[RiskLevel] = None
    potential_reward: Optional[PotentialReward] = None

    @model_validator(mode="after")
    def _price_range(self):
        if self.min_price is not None and self.max_price is not None and self.min_price > self.max_price:
            raise ValueError("minPrice cannot be greater than maxPrice")
        return self


class MySignalsQuery(PageQuery):
    status: Literal["active", "inactive", "all"] = "all"
    sort_by: Literal["createdAt", "totalSales", "priceUsdt"] = "createdAt"
    sort_order: SortOrder = "desc"


class PredictorSignalsQuery(ApiModel):
    include_inactive: bool = False
    sort_by: Literal["createdAt", "totalSales", "averageRating", "priceUsdt"] = "createdAt"
    sort_order: SortOrder = "desc"


class CreateSignalBody(ApiModel):
    title: str = Field(min_length=1, max_length=100)
    description: str = Field(min_length=1, max_length=1000)
    content: str = Field(min_length=1, max_length=10000)
    category_id: str = Field(min_length=1)
    price_usdt: float = Field(gt=0, le=MAX_SIGNAL_PRICE_USDT)
    expiry_days: int = Field(ge=1, le=30)
    risk_level: RiskLevel
    potential_reward: PotentialReward

    @field_validator("title")
    @classmethod
    def _title_has_no_links(cls, value):
        validate_no_urls(value, "Title")
        return value

    @field_validator("description")
    @classmethod
    def _description_has_no_links(cls, value):
        validate_no_urls(value, "Description")
        return value

    @field_validator("price_usdt")
    @classmethod
    def _two_decimals(cls, value):
        if Decimal(str(value)).as_tuple().exponent < -2:
            raise ValueError("Price can have at most 2 decimal places")
        return value


class UpdateSignalBody(ApiModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, min_length=1, max_length=1000)
    content: Optional[str] = Field(default=None, min_length=1, max_length=10000)
    category_id: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("title", "description", "content", "category_id", "is_active")
    @classmethod
    def _not_null(cls, value):
        return _reject_null(value)

    @field_validator("title")
    @classmethod
    def _title_has_no_links(cls, value):
        if value is not None:
            validate_no_urls(value, "Title")
        return value

    @field_validator("description")
    @classmethod
    def _description_has_no_links(cls, value):
        if value is not None:
            validate_no_urls(value, "Description")
        return value


# ============================================================================
# Receipts, reviews, reports
# ============================================================================


class ReceiptsQuery(PageQuery):
    sort_by: Literal["purchasedAt", "priceUsdt"] = "purchasedAt"
    sort_order: SortOrder = "desc"


class CreateReviewBody(ApiModel):
    token_id: int = Field(ge=0, le=MAX_TOKEN_ID)
    score: int = Field(ge=1, le=5)
    review_text: Optional[str] = Field(default=None, max_length=1000)


class CreateReportBody(ApiModel):
    token_id: int = Field(ge=0, le=MAX_TOKEN_ID)
    reason: ReportReason
    description: Optional[str] = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def _other_needs_description(self):
        if self.reason == "other" and not (self.description or "").strip():
            raise ValueError("Description is required when reason is 'other'")
        return self


class PredictorReportsQuery(PageQuery):
    status: Optional[ReportStatus] = None


# ============================================================================
# Categories
# ============================================================================


class CategoriesQuery(ApiModel):
    active: bool = True


class CreateCategoryBody(ApiModel):
    name: str = Field(min_length=1, max_length=50)
    slug: str = Field(min_length=1, max_length=50)
    main_group: str = Field(min_length=1, max_length=50)
    description: str = Field(default="", max_length=200)
    icon: str = Field(default="", max_length=10)
    is_active: bool = True
    sort_order: int = Field(default=0, ge=0)

    @field_validator("slug")
    @classmethod
    def _slug_format(cls, value):
        if not SLUG_RE.match(value):
            raise ValueError("Slug must contain only lowercase letters, numbers, and hyphens")
        return value


class UpdateCategoryBody(ApiModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    main_group: Optional[str] = Field(default=None, min_length=1, max_length=50)
    description: Optional[str] = Field(default=None, max_length=200)
    icon: Optional[str] = Field(default=None, max_length=10)
    is_active: Optional[bool] = None
    sort_order: Optional[int] = Field(default=None, ge=0)

    @field_validator("name", "main_group", "description", "icon", "is_active", "sort_order")
    @classmethod
    def _not_null(cls, value):
        return _reject_null(value)


# ============================================================================
# Admin & disputes
# ============================================================================


class AdminReportsQuery(ApiModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    status: Optional[ReportStatus] = None
    predictor_address: Optional[EthAddress] = None


class UpdateReportBody(ApiModel):
    status: ReportStatus
    admin_notes: Optional[str] = Field(default=None, max_length=2000)


class ListDisputesQuery(ApiModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)
    status: Optional[DisputeStatus] = None


class UpdateDisputeBody(ApiModel):
    status: DisputeStatus
    admin_notes: Optional[str] = Field(default=None, max_length=2000)


class ResolveDisputeBody(ApiModel):
    admin_notes: Optional[str] = Field(default=None, max_length=2000)


# ============================================================================
# Alchemy webhooks
# ============================================================================


class ActivityLog(ApiModel):
    address: str
    topics: List[str]
    data: str
    block_number: str
    transaction_hash: str
    transaction_index: str
    block_hash: str
    log_index: str
    removed: bool


class RawContract(ApiModel):
    raw_value: str
    address: Optional[str] = None
    decimals: Optional[int] = None


class Activity(ApiModel):
    from_address: str
    to_address: Optional[str] = None
    block_num: str
    hash: str
    log: Optional[ActivityLog] = None
    category: str
    raw_contract: Optional[RawContract] = None
    value: Optional[float] = None
    asset: Optional[str] = None


class AddressActivityEvent(ApiModel):
    network: str
    activity: List[Activity]


class GraphqlAccount(ApiModel):
    address: str


class GraphqlTransaction(ApiModel):
    hash: str


class GraphqlLog(ApiModel):
    topics: List[str]
    data: str
    account: GraphqlAccount
    transaction: GraphqlTransaction


class GraphqlBlock(ApiModel):
    number: Optional[int] = None
    logs: List[GraphqlLog]


class GraphqlData(ApiModel):
    block: GraphqlBlock


class GraphqlEvent(ApiModel):
    data: GraphqlData


class WebhookPayload(ApiModel):
    webhook_id: str
    id: str
    created_at: str
    type: Literal["ADDRESS_ACTIVITY", "MINED_TRANSACTION", "DROPPED_TRANSACTION", "GRAPHQL"]
    event: dict

    @model_validator(mode="after")
    def _event_matches_type(self):
        # Parse the event body for the shapes we process; others are acknowledged only
        if self.type == "ADDRESS_ACTIVITY":
            AddressActivityEvent.model_validate(self.event)
        elif self.type == "GRAPHQL":
            GraphqlEvent.model_validate(self.event)
        return self

    def address_activity(self) -> AddressActivityEvent:
        return AddressActivityEvent.model_validate(self.event)

    def graphql(self) -> GraphqlEvent:
        return GraphqlEvent.model_validate(self.event)
