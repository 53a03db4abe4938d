from datetime import datetime, timedelta
from types import SimpleNamespace

from visit_dzaleka.domain.blog.service import POSTS_PER_PAGE, paginate, search_posts
from visit_dzaleka.models import BlogPost


def _post(title, content="", excerpt=None):
    return SimpleNamespace(title=title, content=content, excerpt=excerpt)


def test_search_matches_title_content_or_excerpt():
    posts = [
        _post("Tumaini Festival returns", "Music and dance"),
        _post("Market day", "Fresh produce", excerpt="A walk through the FESTIVAL grounds"),
        _post("Weaving", "Baskets"),
    ]
    assert [p.title for p in search_posts(posts, "festival")] == ["Tumaini Festival returns", "Market day"]
    assert len(search_posts(posts, "  ")) == 3
    assert search_posts(posts, "nothing here") == []


def test_pagination_six_per_page():
    items = list(range(14))
    first, pages = paginate(items, 1)
    assert POSTS_PER_PAGE == 6
    assert first == [0, 1, 2, 3, 4, 5]
    assert pages == 3
    assert paginate(items, 3)[0] == [12, 13]
    assert paginate(items, 4)[0] == []
    assert paginate([], 1) == ([], 0)


class TestBlogApi:
    def _seed(self, db, admin_user, published=8, drafts=2):
        now = datetime.utcnow()
        for i in range(published):
            db.add(
                BlogPost(
                    title=f"Story {i}",
                    slug=f"story-{i}",
                    content="Life in Dzaleka",
                    author_id=admin_user.id,
                    published=True,
                    published_at=now - timedelta(days=i),
                )
            )
        for i in range(drafts):
            db.add(BlogPost(title=f"Draft {i}", slug=f"draft-{i}", content="WIP", published=False))
        db.commit()

    def test_public_list_is_published_newest_first(self, client, db, admin):
        admin_user, _ = admin
        self._seed(db, admin_user)

        page_one = client.get("/api/blog").json()
        assert page_one["total"] == 8
        assert page_one["totalPages"] == 2
        assert [p["slug"] for p in page_one["posts"]] == [f"story-{i}" for i in range(6)]
        assert page_one["posts"][0]["authorName"] == admin_user.full_name

        page_two = client.get("/api/blog", params={"page": 2}).json()
        assert [p["slug"] for p in page_two["posts"]] == ["story-6", "story-7"]

    def test_staff_also_see_drafts(self, client, db, admin):
        admin_user, headers = admin
        self._seed(db, admin_user)
        assert client.get("/api/blog", headers=headers).json()["total"] == 10

    def test_search(self, client, db, admin):
        admin_user, _ = admin
        self._seed(db, admin_user)
        body = client.get("/api/blog", params={"search": "story 3"}).json()
        assert [p["slug"] for p in body["posts"]] == ["story-3"]

    def test_draft_is_hidden_from_public(self, client, db, admin):
        admin_user, headers = admin
        self._seed(db, admin_user, published=0, drafts=1)
        assert client.get("/api/blog/draft-0").status_code == 404
        assert client.get("/api/blog/draft-0", headers=headers).status_code == 200

    def test_create_sanitises_and_dedupes_slug(self, client, coordinator):
        _, headers = coordinator
        payload = {
            "title": "Sunset at Dzaleka",
            "content": "<p>Golden hour</p><script>alert(1)</script>",
            "published": True,
        }

        first = client.post("/api/blog", json=payload, headers=headers)
        second = client.post("/api/blog", json=payload, headers=headers)
        third = client.post("/api/blog", json=payload, headers=headers)

        assert first.status_code == 201
        assert first.json()["slug"] == "sunset-at-dzaleka"
        assert second.json()["slug"] == "sunset-at-dzaleka-2"
        assert third.json()["slug"] == "sunset-at-dzaleka-3"
        assert "<script>" not in first.json()["content"]
        assert "<p>Golden hour</p>" in first.json()["content"]
        assert first.json()["publishedAt"] is not None

    def test_unpublish_clears_publish_date_and_delete_is_hard(self, client, db, coordinator):
        _, headers = coordinator
        post = client.post(
            "/api/blog", json={"title": "News", "content": "Body", "published": True}, headers=headers
        ).json()

        draft = client.patch(f"/api/blog/{post['id']}", json={"published": False}, headers=headers).json()
        assert draft["published"] is False
        assert draft["publishedAt"] is None

        assert client.delete(f"/api/blog/{post['id']}", headers=headers).status_code == 204
        db.expire_all()
        assert db.get(BlogPost, post["id"]) is None
        assert client.get(f"/api/blog/id/{post['id']}", headers=headers).status_code == 404

    def test_visitors_cannot_write(self, client, visitor):
        _, headers = visitor
        response = client.post("/api/blog", json={"title": "Hi", "content": "x"}, headers=headers)
        assert response.status_code == 403
