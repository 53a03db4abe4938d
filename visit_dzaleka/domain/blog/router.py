"""Blog router - Public reading and staff publishing"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from ...auth import get_optional_user, require_role
from ...database import get_db
from ...models import User
from ...services.audit_service import record_audit
from .schemas import BlogListResponse, BlogPostCreate, BlogPostResponse, BlogPostUpdate, post_to_response
from .service import BlogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blog", tags=["Blog"])

require_staff = require_role("admin", "coordinator")


def get_blog_service(db: Session = Depends(get_db)) -> BlogService:
    """Dependency injection for BlogService"""
    return BlogService(db)


@router.get("", response_model=BlogListResponse)
async def list_posts(
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    current_user: Optional[User] = Depends(get_optional_user),
    service: BlogService = Depends(get_blog_service),
):
    result = service.list_posts(current_user, search, page)
    result["posts"] = [post_to_response(p) for p in result["posts"]]
    return result


@router.get("/id/{post_id}", response_model=BlogPostResponse)
async def get_post_by_id(
    post_id: int,
    current_user: User = Depends(require_staff),
    service: BlogService = Depends(get_blog_service),
):
    return post_to_response(service.get_post(post_id))


@router.get("/{slug}", response_model=BlogPostResponse)
async def get_post(
    slug: str,
    current_user: Optional[User] = Depends(get_optional_user),
    service: BlogService = Depends(get_blog_service),
):
    return post_to_response(service.get_post_by_slug(slug, current_user))


@router.post("", response_model=BlogPostResponse, status_code=201)
async def create_post(
    data: BlogPostCreate,
    current_user: User = Depends(require_staff),
    service: BlogService = Depends(get_blog_service),
):
    post = service.create_post(data, current_user)
    record_audit(service.db, current_user.id, "create", "blog_post", post.id, new_values={"slug": post.slug})
    service.db.commit()
    return post_to_response(post)


@router.patch("/{post_id}", response_model=BlogPostResponse)
async def update_post(
    post_id: int,
    data: BlogPostUpdate,
    current_user: User = Depends(require_staff),
    service: BlogService = Depends(get_blog_service),
):
    post = service.update_post(post_id, data)
    record_audit(
        service.db,
        current_user.id,
        "update",
        "blog_post",
        post.id,
        new_values=data.model_dump(exclude_none=True, exclude={"content"}),
    )
    service.db.commit()
    return post_to_response(post)


@router.delete("/{post_id}", status_code=204)
async def delete_post(
    post_id: int,
    current_user: User = Depends(require_staff),
    service: BlogService = Depends(get_blog_service),
):
    service.delete_post(post_id)
    record_audit(service.db, current_user.id, "delete", "blog_post", post_id)
    service.db.commit()
    return Response(status_code=204)
