from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import AfterValidator, BaseModel, BeforeValidator, Field, StringConstraints, field_validator, model_validator
from pydantic.alias_generators import to_camel

from bannerhub.core.timeutils import to_naive_utc
from bannerhub.services.analytics import conversion_rate, ctr

BannerType = Literal["reward", "promotion", "announcement", "seasonal"]
RewardType = Literal["welcome", "birthday", "loyalty", "seasonal", "custom"]
ApprovalStatus = Literal["draft", "pending_approval", "approved", "rejected"]
SortField = Literal["priority", "createdAt", "updatedAt", "title", "bannerType"]

Title = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
Detail = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=1000)]
BannerId = Union[int, str]

IMAGE_PREFIXES = ("http://", "https://", "data:")


class CamelModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True


class ImageIn(CamelModel):
    url: str
    storage_ref: Optional[str] = Field(default=None, max_length=255)
    alt_text: Optional[str] = Field(default=None, max_length=255)

    @field_validator("url")
    @classmethod
    def _url_scheme(cls, v: str) -> str:
        v = v.strip()
        if not v.startswith(IMAGE_PREFIXES):
            raise ValueError("Image URL must be a valid URL or base64 data")
        return v


def _coerce_image(v):
    # A bare string is shorthand for {"url": ...}
    if isinstance(v, str):
        return {"url": v}
    return v


class TextPosition(CamelModel):
    x: float = 20
    y: float = 20


class DisplaySettings(CamelModel):
    show_on_mobile: bool = True
    show_on_desktop: bool = True
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @field_validator("start_date", "end_date")
    @classmethod
    def _naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)

    @model_validator(mode="after")
    def _window_order(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        return self


class RewardDetails(CamelModel):
    reward_type: RewardType = "welcome"
    discount_percentage: Optional[float] = Field(default=None, ge=0, le=100)
    discount_amount: Optional[float] = Field(default=None, ge=0)
    min_order_value: float = Field(default=0, ge=0)
    max_discount_amount: Optional[float] = Field(default=None, ge=0)
    validity_days: int = Field(default=30, ge=1)
    is_stackable: bool = False


class SeoIn(CamelModel):
    # slug is derived from the title at creation and never accepted from callers
    meta_title: Optional[str] = Field(default=None, max_length=60)
    meta_description: Optional[str] = Field(default=None, max_length=160)


def _normalize_tags(v: Optional[List[str]]) -> Optional[List[str]]:
    if v is None:
        return None
    seen: list[str] = []
    for raw in v:
        tag = raw.strip().lower()
        if not 1 <= len(tag) <= 50:
            raise ValueError("Each tag must be between 1 and 50 characters")
        if tag not in seen:
            seen.append(tag)
    return seen


ImageField = Annotated[ImageIn, BeforeValidator(_coerce_image)]
TagList = Annotated[List[str], AfterValidator(_normalize_tags)]


class BannerCreate(CamelModel):
    title: Title
    detail: Detail
    image: ImageField
    priority: Optional[int] = Field(default=None, ge=1)
    text_position: Optional[TextPosition] = None
    banner_type: BannerType = "reward"
    display_settings: Optional[DisplaySettings] = None
    reward_details: Optional[RewardDetails] = None
    seo: Optional[SeoIn] = None
    tags: Optional[TagList] = None


class BannerUpdate(CamelModel):
    title: Optional[Title] = None
    detail: Optional[Detail] = None
    image: Optional[ImageField] = None
    priority: Optional[int] = Field(default=None, ge=1)
    text_position: Optional[TextPosition] = None
    banner_type: Optional[BannerType] = None
    display_settings: Optional[DisplaySettings] = None
    reward_details: Optional[RewardDetails] = None
    seo: Optional[SeoIn] = None
    tags: Optional[TagList] = None
    is_active: Optional[bool] = None
    is_published: Optional[bool] = None

    @field_validator("is_published")
    @classmethod
    def _publish_only_via_action(cls, v: Optional[bool]) -> Optional[bool]:
        if v:
            raise ValueError("isPublished can only be set to true through the publish action")
        return v


class RejectRequest(CamelModel):
    reason: str = ""


class ReorderItem(CamelModel):
    id: BannerId
    priority: int = Field(ge=1)


class BulkReorderRequest(CamelModel):
    priorities: List[ReorderItem] = Field(min_length=1)


class BulkUpdateFields(CamelModel):
    is_active: Optional[bool] = None
    is_published: Optional[bool] = None
    banner_type: Optional[BannerType] = None

    @field_validator("is_published")
    @classmethod
    def _publish_only_via_action(cls, v: Optional[bool]) -> Optional[bool]:
        if v:
            raise ValueError("isPublished can only be set to true through the publish action")
        return v

    @model_validator(mode="after")
    def _not_empty(self):
        if not self.model_dump(exclude_none=True):
            raise ValueError("updates must contain at least one of isActive, isPublished, bannerType")
        return self


class BulkUpdateRequest(CamelModel):
    banner_ids: List[BannerId] = Field(min_length=1)
    updates: BulkUpdateFields


class ImageOut(CamelModel):
    url: str
    storage_ref: Optional[str] = None
    alt_text: Optional[str] = None


class AnalyticsOut(CamelModel):
    views: int
    clicks: int
    conversions: int
    last_viewed: Optional[datetime] = None


class SeoOut(CamelModel):
    meta_title: Optional[str] = None
    meta_description: Optional[str] = None
    slug: str


class BannerOut(CamelModel):
    id: int
    external_id: str
    title: str
    detail: str
    image: ImageOut
    priority: int
    text_position: TextPosition
    is_active: bool
    is_published: bool
    banner_type: str
    display_settings: DisplaySettings
    reward_details: RewardDetails
    analytics: AnalyticsOut
    seo: SeoOut
    approval_status: str
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    tags: List[str]
    created_by: str
    updated_by: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    url: str
    ctr: float
    conversion_rate: float

    @classmethod
    def from_record(cls, b) -> "BannerOut":
        return cls(
            id=b.id,
            external_id=b.external_id,
            title=b.title,
            detail=b.detail,
            image=ImageOut(url=b.image_url, storage_ref=b.image_storage_ref, alt_text=b.image_alt_text),
            priority=b.priority,
            text_position=TextPosition(x=b.text_position_x, y=b.text_position_y),
            is_active=b.is_active,
            is_published=b.is_published,
            banner_type=b.banner_type,
            display_settings=DisplaySettings.model_construct(
                show_on_mobile=b.show_on_mobile,
                show_on_desktop=b.show_on_desktop,
                start_date=b.start_date,
                end_date=b.end_date,
            ),
            reward_details=RewardDetails.model_construct(
                reward_type=b.reward_type,
                discount_percentage=b.discount_percentage,
                discount_amount=b.discount_amount,
                min_order_value=b.min_order_value,
                max_discount_amount=b.max_discount_amount,
                validity_days=b.validity_days,
                is_stackable=b.is_stackable,
            ),
            analytics=AnalyticsOut(views=b.views, clicks=b.clicks, conversions=b.conversions, last_viewed=b.last_viewed),
            seo=SeoOut(meta_title=b.meta_title, meta_description=b.meta_description, slug=b.slug),
            approval_status=b.approval_status,
            approved_by=b.approved_by,
            approved_at=b.approved_at,
            rejection_reason=b.rejection_reason,
            tags=list(b.tags or []),
            created_by=b.created_by,
            updated_by=b.updated_by,
            created_at=b.created_at,
            updated_at=b.updated_at,
            url=f"/banners/{b.slug or b.external_id}",
            ctr=ctr(b.views, b.clicks),
            conversion_rate=conversion_rate(b.clicks, b.conversions),
        )


def serialize_banner(b) -> dict:
    return BannerOut.from_record(b).model_dump(by_alias=True, mode="json")
