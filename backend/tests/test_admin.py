from datetime import timedelta

from atlascore.models import Order, ServerStats, User, WikiPage
from atlascore.utils import now_utc

from conftest import STATS_SECRET, auth_headers, make_category, make_product, make_user

ADMIN_URL = "/api/v1/admin"


def test_dashboard_counts(client, db, admin, player):
    make_product(db)
    db.add_all([
        Order(user_id=player.id, products=[], total_amount=5, payment_method="crypto", status="completed"),
        Order(user_id=player.id, products=[], total_amount=5, payment_method="paypal", status="pending"),
        Order(user_id=player.id, products=[], total_amount=5, payment_method="paypal", status="pending"),
    ])
    db.commit()

    r = client.get(f"{ADMIN_URL}/dashboard", headers=auth_headers(admin))

    data = r.json()["data"]
    assert data["totalUsers"] == 2
    assert data["totalProducts"] == 1
    assert data["totalOrders"] == 3
    assert data["orderStatusCounts"] == {"completed": 1, "pending": 2}
    assert data["onlinePlayers"] == 0


def test_admin_routes_reject_players(client, player):
    r = client.get(f"{ADMIN_URL}/dashboard", headers=auth_headers(player))

    assert r.status_code == 403


def test_registration_trend_covers_a_week(client, admin):
    r = client.get(f"{ADMIN_URL}/trends/registrations", headers=auth_headers(admin))

    series = r.json()["data"]
    assert len(series) == 7
    today = now_utc()
    assert series[-1]["name"] == f"{today:%b} {today.day}"
    assert series[-1]["New Registrations"] == 1


def test_admin_status_must_be_zero_or_one(client, db, admin, player):
    headers = auth_headers(admin)

    bad = client.put(f"{ADMIN_URL}/users/{player.id}/admin-status", json={"is_admin": 2}, headers=headers)
    flag = client.put(f"{ADMIN_URL}/users/{player.id}/admin-status", json={"is_admin": True}, headers=headers)
    ok = client.put(f"{ADMIN_URL}/users/{player.id}/admin-status", json={"is_admin": 1}, headers=headers)

    assert bad.status_code == 400
    assert bad.json()["message"] == "Invalid is_admin value"
    assert flag.status_code == 400
    assert ok.status_code == 200
    db.expire_all()
    assert db.get(User, player.id).is_admin == 1


def test_admin_user_update_ignores_password(client, db, admin, player):
    old_hash = player.password

    r = client.put(
        f"{ADMIN_URL}/users/{player.id}",
        json={"username": "steve2", "password": "hijacked"},
        headers=auth_headers(admin),
    )

    assert r.status_code == 200
    db.expire_all()
    user = db.get(User, player.id)
    assert user.username == "steve2"
    assert user.password == old_hash


def test_user_listing_hides_password_hashes(client, admin, player):
    r = client.get("/api/v1/users", headers=auth_headers(admin))

    assert r.json()["count"] == 2
    assert all("password" not in u for u in r.json()["users"])


def test_product_crud_and_catalog(client, db, admin):
    headers = auth_headers(admin)
    kits = make_category(db, "Kits")

    r = client.post(
        f"{ADMIN_URL}/products",
        json={"name": "Starter Kit", "price": 4.99, "stock": 10, "category": kits.id, "in_game_commands": ["kit starter {player}"]},
        headers=headers,
    )
    assert r.status_code == 201
    product_id = r.json()["product"]["id"]

    r = client.put(f"{ADMIN_URL}/products/{product_id}", json={"stock": ""}, headers=headers)
    assert r.json()["product"]["stock"] is None
    assert r.json()["product"]["name"] == "Starter Kit"

    catalog = client.get("/api/v1/products").json()["products"]
    assert [p["name"] for p in catalog["Kits"]] == ["Starter Kit"]

    assert client.get(f"/api/v1/products/{product_id}").status_code == 200
    assert client.delete(f"{ADMIN_URL}/products/{product_id}", headers=headers).status_code == 200
    assert client.get(f"/api/v1/products/{product_id}").status_code == 404


def test_negative_stock_is_rejected(client, admin):
    r = client.post(f"{ADMIN_URL}/products", json={"name": "Bad", "price": 1, "stock": -1}, headers=auth_headers(admin))

    assert r.status_code == 400


def test_category_crud(client, admin):
    headers = auth_headers(admin)

    created = client.post(f"{ADMIN_URL}/categories", json={"name": "Ranks"}, headers=headers).json()["category"]
    client.put(f"{ADMIN_URL}/categories/{created['id']}", json={"description": "VIP ranks"}, headers=headers)

    listing = client.get(f"{ADMIN_URL}/categories", headers=headers).json()
    assert listing["categories"] == [{"id": created["id"], "name": "Ranks", "description": "VIP ranks"}]
    assert client.delete(f"{ADMIN_URL}/categories/{created['id']}", headers=headers).status_code == 200
    assert client.delete(f"{ADMIN_URL}/categories/{created['id']}", headers=headers).status_code == 404


def test_settings_upsert_by_key(client, admin):
    headers = auth_headers(admin)

    bad = client.put("/api/v1/settings/admin", json={"settings": {"storeName": "Atlas"}}, headers=headers)
    assert bad.status_code == 400

    client.put("/api/v1/settings/admin", json={"settings": [{"key": "storeName", "value": "Atlas"}]}, headers=headers)
    client.put(
        "/api/v1/settings/admin",
        json={"settings": [{"key": "storeName", "value": "AtlasCore"}, {"key": "discord", "value": "https://discord.gg/x"}]},
        headers=headers,
    )

    assert client.get("/api/v1/settings").json() == {"storeName": "AtlasCore", "discord": "https://discord.gg/x"}
    assert len(client.get("/api/v1/settings/admin", headers=headers).json()) == 2


def test_server_stats_report_and_staleness(client, db, admin):
    headers = auth_headers(admin)
    assert client.get("/api/v1/server/public-stats").json()["data"]["serverStatus"] == "offline"
    assert client.get("/api/v1/server/stats", headers=headers).json()["data"]["serverStatus"] == "offline"

    body = {"secret": STATS_SECRET, "onlinePlayers": 12, "maxPlayers": 50, "newPlayersToday": 4}
    assert client.post(f"{ADMIN_URL}/stats", json=body).status_code == 200

    public = client.get("/api/v1/server/public-stats").json()["data"]
    assert public == {"onlinePlayers": 12, "serverStatus": "online"}
    assert client.get("/api/v1/server/stats", headers=headers).json()["data"]["maxPlayers"] == 50

    trend = client.get(f"{ADMIN_URL}/trends/new-players", headers=headers).json()["data"]
    assert trend[-1]["New Players"] == 4

    db.expire_all()
    stats = db.get(ServerStats, "stats")
    stats.last_updated = now_utc() - timedelta(minutes=5)
    db.commit()
    assert client.get("/api/v1/server/public-stats").json()["data"]["serverStatus"] == "offline"


def test_server_stats_must_be_numbers(client):
    body = {"secret": STATS_SECRET, "onlinePlayers": "12", "maxPlayers": 50, "newPlayersToday": 4}

    r = client.post("/api/v1/server/stats", json=body)

    assert r.status_code == 400
    assert r.json()["message"] == "Invalid stats data format"


def test_wiki_tree_and_cascading_delete(client, db, admin):
    headers = auth_headers(admin)
    guides = client.post("/api/v1/wiki/categories", json={"name": "Guides", "parentId": ""}, headers=headers).json()["category"]
    pvp = client.post(
        "/api/v1/wiki/categories", json={"name": "PvP", "parentId": guides["id"]}, headers=headers
    ).json()["category"]
    client.post("/api/v1/wiki/pages", json={"title": "Dueling", "content": "...", "categoryId": pvp["id"]}, headers=headers)
    client.post("/api/v1/wiki/pages", json={"title": "Rules"}, headers=headers)

    tree = client.get("/api/v1/wiki/categories").json()["categories"]
    assert guides["parentId"] is None
    assert [c["name"] for c in tree] == ["Guides"]
    assert [c["name"] for c in tree[0]["children"]] == ["PvP"]

    assert len(client.get("/api/v1/wiki/pages/by-category/all").json()["pages"]) == 2
    assert len(client.get(f"/api/v1/wiki/pages/by-category/{pvp['id']}").json()["pages"]) == 1

    assert client.delete(f"/api/v1/wiki/categories/{pvp['id']}", headers=headers).status_code == 200
    db.expire_all()
    assert [p.title for p in db.query(WikiPage).all()] == ["Rules"]


def test_wiki_writes_require_admin(client, player):
    r = client.post("/api/v1/wiki/pages", json={"title": "Spam"}, headers=auth_headers(player))

    assert r.status_code == 403


def test_player_stats_requires_linked_account(client, db):
    unlinked = make_user(db, "jeb")

    r = client.post("/api/v1/player-stats", headers=auth_headers(unlinked))

    assert r.status_code == 404


def test_profile_survives_plugin_outage(client, player, monkeypatch):
    from atlascore.plugin import PluginError

    async def offline(endpoint, payload):
        raise PluginError("Could not connect to the game server. It may be offline or starting up.", 503)

    monkeypatch.setattr("atlascore.routers.profile.call_plugin", offline)

    r = client.get("/api/v1/profile", headers=auth_headers(player))

    assert r.status_code == 200
    body = r.json()
    assert body["data"] == {"playerStats": None, "activityFeed": []}
    assert body["error"].startswith("Could not connect")


def test_null_fields_do_not_clear_required_columns(client, db, admin):
    headers = auth_headers(admin)
    product = make_product(db, name="Starter Kit", price=4.99)
    category = make_category(db, "Kits")

    r = client.put(f"{ADMIN_URL}/products/{product.id}", json={"name": None, "price": None, "stock": 7}, headers=headers)
    assert r.status_code == 200
    assert r.json()["product"]["name"] == "Starter Kit"
    assert r.json()["product"]["price"] == 4.99
    assert r.json()["product"]["stock"] == 7

    r = client.put(f"{ADMIN_URL}/categories/{category.id}", json={"name": None}, headers=headers)
    assert r.status_code == 200
    assert r.json()["category"]["name"] == "Kits"


def test_user_update_rejects_taken_username(client, db, admin, player):
    headers = auth_headers(admin)

    taken = client.put(f"{ADMIN_URL}/users/{player.id}", json={"username": "alex"}, headers=headers)
    cleared = client.put(f"{ADMIN_URL}/users/{player.id}", json={"email": None}, headers=headers)

    assert taken.status_code == 400
    assert taken.json()["message"] == "Username or email is already in use."
    assert cleared.status_code == 200
    db.expire_all()
    user = db.get(User, player.id)
    assert user.username == "steve"
    assert user.email == "steve@example.com"
