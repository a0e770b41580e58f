from atlascore.main import app


def test_users_activity_route_precedes_user_id():
    paths = [getattr(r, "path", "") for r in app.router.routes]
    assert "/api/v1/users/activity" in paths
    assert "/api/v1/users/{user_id}" in paths
    assert paths.index("/api/v1/users/activity") < paths.index("/api/v1/users/{user_id}")


def test_wiki_pages_by_category_route_precedes_page_id():
    paths = [getattr(r, "path", "") for r in app.router.routes]
    assert paths.index("/api/v1/wiki/pages/by-category/{category_id}") < paths.index("/api/v1/wiki/pages/{page_id}")
