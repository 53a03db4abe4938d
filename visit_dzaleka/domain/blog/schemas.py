"""Blog schemas"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class BlogPostCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    excerpt: Optional[str] = None
    coverImage: Optional[str] = None
    slug: Optional[str] = None
    published: bool = False


class BlogPostUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=255)
    content: Optional[str] = None
    excerpt: Optional[str] = None
    coverImage: Optional[str] = None
    slug: Optional[str] = None
    published: Optional[bool] = None


class BlogPostResponse(BaseModel):
    id: int
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    coverImage: Optional[str] = None
    authorId: Optional[int] = None
    authorName: Optional[str] = None
    published: bool
    publishedAt: Optional[datetime] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    class Config:
        from_attributes = True


class BlogListResponse(BaseModel):
    posts: list[BlogPostResponse]
    total: int
    page: int
    totalPages: int


def post_to_response(post) -> BlogPostResponse:
    return BlogPostResponse(
        id=post.id,
        title=post.title,
        slug=post.slug,
        content=post.content,
        excerpt=post.excerpt,
        coverImage=post.cover_image,
        authorId=post.author_id,
        authorName=post.author.full_name if post.author else None,
        published=post.published,
        publishedAt=post.published_at,
        createdAt=post.created_at,
        updatedAt=post.updated_at,
    )
