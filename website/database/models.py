"""SQLAlchemy models for tracked content files and topics."""

from sqlalchemy import (
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from website.core.clock import utcnow

from .base import Base


class BlogModel(Base):
    """A blog post backed by one file in the blogs directory."""

    __tablename__ = "blog"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(Text, nullable=False)
    file_name = Column(Text, nullable=False, unique=True)
    hash = Column(Text, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)

    # Relationships
    blog_topics = relationship(
        "BlogTopicModel",
        back_populates="blog",
        cascade="all, delete-orphan",
        order_by="BlogTopicModel.id",
    )


class StaticFileModel(Base):
    """An image or stylesheet backed by one file in its directory."""

    __tablename__ = "static_file"
    __table_args__ = (UniqueConstraint("type", "name", name="uq_static_file_type_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False)
    hash = Column(Text, nullable=False)
    type = Column(
        Enum("IMAGE", "STYLESHEET", name="static_file_type_enum"),
        nullable=False,
    )

    # Timestamps
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, nullable=True)


class TopicModel(Base):
    """A name-unique tag attached to blogs."""

    __tablename__ = "topic"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(Text, nullable=False, unique=True)

    blog_topics = relationship("BlogTopicModel", back_populates="topic")


class BlogTopicModel(Base):
    """Join row between a blog and a topic."""

    __tablename__ = "blog_topic"
    __table_args__ = (UniqueConstraint("blog_id", "topic_id", name="uq_blog_topic"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    blog_id = Column(
        Integer, ForeignKey("blog.id", ondelete="CASCADE"), nullable=False
    )
    topic_id = Column(
        Integer, ForeignKey("topic.id", ondelete="CASCADE"), nullable=False
    )

    blog = relationship("BlogModel", back_populates="blog_topics")
    topic = relationship("TopicModel", back_populates="blog_topics")
