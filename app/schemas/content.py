"""Blog and event schemas."""
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field
from app.models.booking import PaymentStatus
from app.models.content import RsvpStatus


class BlogPostSummary(BaseModel):
    id: int
    title: str
    slug: str
    excerpt: str | None = None
    author_name: str | None = None
    image_url: str | None = None
    tags: list[str] | None = None
    category: str | None = None
    published_at: datetime | None = None
    reading_time: int | None = None

    class Config:
        from_attributes = True


class BlogPostResponse(BlogPostSummary):
    content: str


class BlogPostListResponse(BaseModel):
    posts: list[BlogPostSummary]
    total: int
    page: int
    limit: int


class BlogCategoryResponse(BaseModel):
    id: int
    name: str
    slug: str
    description: str | None = None
    post_count: int

    class Config:
        from_attributes = True


class EventResponse(BaseModel):
    id: int
    title: str
    slug: str
    description: str
    start_time: datetime
    end_time: datetime
    location: str
    host: str
    external_rsvp_url: str | None = None
    image_url: str | None = None
    tags: list[str] | None = None
    capacity: int | None = None
    price: float
    spots_remaining: int | None = None

    class Config:
        from_attributes = True


class RsvpCreate(BaseModel):
    guest_name: str | None = Field(default=None, max_length=255)
    guest_email: EmailStr | None = None


class RsvpResponse(BaseModel):
    id: int
    event_id: int
    status: RsvpStatus
    payment_status: PaymentStatus | None = None
    client_secret: str | None = None
    message: str
