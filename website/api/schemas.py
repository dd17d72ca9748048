"""Response schemas for the page endpoints."""

from pydantic import BaseModel, Field

from website.content.models import ContentRecord

DATE_FORMAT = "%d-%b-%Y"


class BlogLink(BaseModel):
    """Summary of one blog as shown on list pages."""

    id: int
    title: str
    name: str
    created: str = Field(..., description="Creation date, e.g. 04-Jul-2026")
    updated: str | None = Field(None, description="Last update date, if any")
    topics: list[str] = Field(default_factory=list)

    @classmethod
    def from_record(cls, record: ContentRecord) -> "BlogLink":
        return cls(
            id=record.id or 0,
            title=record.title or record.name,
            name=record.name,
            created=record.created_at.strftime(DATE_FORMAT) if record.created_at else "",
            updated=record.updated_at.strftime(DATE_FORMAT) if record.updated_at else None,
            topics=list(record.topics),
        )


class BlogList(BaseModel):
    """A list page: blogs newest first."""

    count: int
    blogs: list[BlogLink]
    topic: str | None = None

    @classmethod
    def from_records(
        cls, records: list[ContentRecord], topic: str | None = None
    ) -> "BlogList":
        links = [BlogLink.from_record(record) for record in records]
        return cls(count=len(links), blogs=links, topic=topic)


class HealthResponse(BaseModel):
    status: str
    version: str
    watchers: dict[str, str]
