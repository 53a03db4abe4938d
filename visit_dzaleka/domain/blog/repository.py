"""Blog repository - Database operations for blog posts"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import BlogPost


class BlogRepository:
    """Repository for blog post database operations"""

    @staticmethod
    def get_posts(db: Session, published_only: bool = True) -> list[BlogPost]:
        """Newest first: publish date for published posts, creation date otherwise"""
        query = db.query(BlogPost)
        if published_only:
            query = query.filter(BlogPost.published.is_(True))
        posts = query.all()
        posts.sort(key=lambda p: p.published_at or p.created_at, reverse=True)
        return posts

    @staticmethod
    def get_post_by_id(db: Session, post_id: int) -> Optional[BlogPost]:
        return db.query(BlogPost).filter(BlogPost.id == post_id).first()

    @staticmethod
    def get_post_by_slug(db: Session, slug: str) -> Optional[BlogPost]:
        return db.query(BlogPost).filter(BlogPost.slug == slug).first()

    @staticmethod
    def slug_taken(db: Session, slug: str, exclude_id: Optional[int] = None) -> bool:
        query = db.query(BlogPost.id).filter(BlogPost.slug == slug)
        if exclude_id is not None:
            query = query.filter(BlogPost.id != exclude_id)
        return query.first() is not None

    @staticmethod
    def create_post(db: Session, **data) -> BlogPost:
        post = BlogPost(**data)
        db.add(post)
        db.commit()
        db.refresh(post)
        return post

    @staticmethod
    def update_post(db: Session, post: BlogPost, **updates) -> BlogPost:
        for key, value in updates.items():
            setattr(post, key, value)
        db.commit()
        db.refresh(post)
        return post

    @staticmethod
    def delete_post(db: Session, post: BlogPost) -> None:
        db.delete(post)
        db.commit()
