def _create_asset(client, name, category, description=None):
    r = client.post("/assets", json={"name": name, "category": category, "description": description})
    assert r.status_code == 201, r.text
    return r.json()


def test_create_and_get_asset(client):
    a = _create_asset(client, "  HDMI Cable ", "Cable", "2m")
    assert a["name"] == "HDMI Cable"
    assert a["status"] == "available"

    r = client.get(f"/assets/{a['id']}")
    assert r.status_code == 200
    assert r.json()["description"] == "2m"

    r = client.get("/assets/nope")
    assert r.status_code == 404

    r = client.post("/assets", json={"name": "", "category": "Cable"})
    assert r.status_code == 422


def test_list_filters_sort_and_meta(client):
    _create_asset(client, "HDMI Cable", "Cable")
    _create_asset(client, "USB Hub", "Adapter", "four ports")
    _create_asset(client, "VGA Cable", "Cable")

    r = client.get("/assets", params={"category": "Cable", "sort": "name", "order": "desc"})
    assert [d["name"] for d in r.json()] == ["VGA Cable", "HDMI Cable"]

    r = client.get("/assets", params={"q": "ports"})
    assert [d["name"] for d in r.json()] == ["USB Hub"]

    # 空文字や不正値のフィルタでも落ちない
    r = client.get("/assets", params={"status": "", "category": "", "sort": "bogus", "order": "sideways"})
    assert r.status_code == 200
    assert [d["name"] for d in r.json()] == ["HDMI Cable", "USB Hub", "VGA Cable"]

    r = client.get("/assets/meta", params={"limit": 2})
    assert r.json() == {"total": 3, "limit": 2, "offset": 0, "total_pages": 2}

    r = client.get("/assets", params={"limit": 2, "offset": 2})
    assert [d["name"] for d in r.json()] == ["VGA Cable"]


def test_ui_list_renders_and_filters(client):
    _create_asset(client, "HDMI Cable", "Cable")
    _create_asset(client, "USB Hub", "Adapter")

    r = client.get("/ui/assets", params={"category": "Adapter"})
    assert r.status_code == 200
    assert "USB Hub" in r.text
    assert "HDMI Cable" not in r.text

    r = client.get("/ui/assets", params={"page": 99, "status": ""})
    assert r.status_code == 200
    assert "page 1 / 1" in r.text
