"""Blog service - Publishing, search and pagination"""

import logging
import math
from datetime import datetime
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import is_staff
from ...models import BlogPost, User
from ...security_utils import sanitize_html
from ...utils.sanitization import sanitize_string, slugify
from .repository import BlogRepository
from .schemas import BlogPostCreate, BlogPostUpdate

logger = logging.getLogger(__name__)

POSTS_PER_PAGE = 6


def search_posts(posts: list, search: Optional[str]) -> list:
    """Case-insensitive substring match on title, content or excerpt"""
    term = (search or "").strip().lower()
    if not term:
        return list(posts)
    return [
        p for p in posts
        if any(term in (text or "").lower() for text in (p.title, p.content, p.excerpt))
    ]


def paginate(items: list, page: int, per_page: int = POSTS_PER_PAGE) -> tuple[list, int]:
    """Slice for a 1-based page, plus the total page count"""
    total_pages = math.ceil(len(items) / per_page)
    start = (max(page, 1) - 1) * per_page
    return items[start:start + per_page], total_pages


class BlogService:
    """Service layer for blog business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BlogRepository()

    def list_posts(self, user: Optional[User], search: Optional[str] = None, page: int = 1) -> dict:
        """Staff also see drafts; everyone else only published posts"""
        posts = self.repo.get_posts(self.db, published_only=not is_staff(user))
        filtered = search_posts(posts, search)
        page_posts, total_pages = paginate(filtered, page)
        return {
            "posts": page_posts,
            "total": len(filtered),
            "page": page,
            "totalPages": total_pages,
        }

    def get_post_by_slug(self, slug: str, user: Optional[User]) -> BlogPost:
        post = self.repo.get_post_by_slug(self.db, slug)
        if not post or (not post.published and not is_staff(user)):
            raise HTTPException(status_code=404, detail="Blog post not found")
        return post

    def get_post(self, post_id: int) -> BlogPost:
        post = self.repo.get_post_by_id(self.db, post_id)
        if not post:
            raise HTTPException(status_code=404, detail="Blog post not found")
        return post

    def _unique_slug(self, source: str, exclude_id: Optional[int] = None) -> str:
        base = slugify(source)
        slug = base
        suffix = 2
        while self.repo.slug_taken(self.db, slug, exclude_id):
            slug = f"{base}-{suffix}"
            suffix += 1
        return slug

    def create_post(self, data: BlogPostCreate, user: User) -> BlogPost:
        post = self.repo.create_post(
            self.db,
            title=sanitize_string(data.title.strip()),
            slug=self._unique_slug(data.slug or data.title),
            content=sanitize_html(data.content),
            excerpt=sanitize_string(data.excerpt),
            cover_image=data.coverImage,
            author_id=user.id,
            published=data.published,
            published_at=datetime.utcnow() if data.published else None,
        )
        logger.info(f"✅ Blog post {post.id} created: {post.slug}")
        return post

    def update_post(self, post_id: int, data: BlogPostUpdate) -> BlogPost:
        post = self.get_post(post_id)
        updates = {}
        if data.title is not None:
            updates["title"] = sanitize_string(data.title.strip())
        if data.slug is not None:
            updates["slug"] = self._unique_slug(data.slug, exclude_id=post.id)
        if data.content is not None:
            updates["content"] = sanitize_html(data.content)
        if data.excerpt is not None:
            updates["excerpt"] = sanitize_string(data.excerpt)
        if data.coverImage is not None:
            updates["cover_image"] = data.coverImage

        # The publish date is kept while a post stays published
        if data.published is True and not post.published:
            updates["published"] = True
            updates["published_at"] = datetime.utcnow()
        elif data.published is False:
            updates["published"] = False
            updates["published_at"] = None

        post = self.repo.update_post(self.db, post, **updates)
        logger.info(f"✅ Blog post {post.id} updated")
        return post

    def delete_post(self, post_id: int) -> None:
        post = self.get_post(post_id)
        self.repo.delete_post(self.db, post)
        logger.info(f"🗑️ Blog post {post_id} deleted")
