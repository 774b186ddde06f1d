async def test_create_poll_returns_options_in_order(client, make_user, create_poll):
    user, headers = await make_user()
    poll = await create_poll(headers, options=["  Python ", "Go", "", "Rust"])

    assert poll["title"] == "Favourite language?"
    assert [o["text"] for o in poll["options"]] == ["Python", "Go", "Rust"]
    assert [o["order_index"] for o in poll["options"]] == [0, 1, 2]
    assert poll["created_by_uuid"] == user["uuid"]
    assert poll["total_votes"] == 0
    assert poll["is_expired"] is False


async def test_poll_needs_two_options(client, make_user):
    _, headers = await make_user()
    response = await client.post("/polls", json={"title": "Lonely", "options": ["Only", "  "]}, headers=headers)
    assert response.status_code == 422


async def test_poll_needs_a_title(client, make_user):
    _, headers = await make_user()
    response = await client.post("/polls", json={"title": "   ", "options": ["A", "B"]}, headers=headers)
    assert response.status_code == 422


async def test_too_many_options_are_rejected(client, make_user):
    _, headers = await make_user()
    options = [f"Option {i}" for i in range(11)]
    response = await client.post("/polls", json={"title": "Big", "options": options}, headers=headers)
    assert response.status_code == 422


async def test_creating_a_poll_requires_login(client):
    response = await client.post("/polls", json={"title": "Anon", "options": ["A", "B"]})
    assert response.status_code == 401


async def test_public_listing_hides_private_polls(client, make_user, create_poll):
    _, headers = await make_user()
    public = await create_poll(headers, title="Public one")
    private = await create_poll(headers, title="Private one", is_public=False)

    response = await client.get("/polls")
    assert response.status_code == 200
    page = response.json()
    uuids = [item["uuid"] for item in page["items"]]
    assert public["uuid"] in uuids
    assert private["uuid"] not in uuids
    assert page["total"] == 1
    assert len(page["items"][0]["options"]) == 3

    response = await client.get("/polls/mine", headers=headers)
    assert response.json()["total"] == 2


async def test_only_the_owner_can_edit(client, make_user, create_poll):
    _, owner_headers = await make_user()
    _, other_headers = await make_user(name="Bob", email="bob@example.com")
    poll = await create_poll(owner_headers)

    update = {"title": "Renamed", "options": ["Yes", "No"]}
    response = await client.put(f"/polls/{poll['uuid']}", json=update, headers=other_headers)
    assert response.status_code == 403

    response = await client.put(f"/polls/{poll['uuid']}", json=update, headers=owner_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["title"] == "Renamed"
    assert [o["text"] for o in body["options"]] == ["Yes", "No"]


async def test_deleted_poll_is_gone(client, make_user, create_poll):
    _, owner_headers = await make_user()
    _, other_headers = await make_user(name="Bob", email="bob@example.com")
    poll = await create_poll(owner_headers)
    option_uuid = poll["options"][0]["uuid"]
    await client.post(f"/polls/{poll['uuid']}/vote", json={"option_uuid": option_uuid}, headers=other_headers)
    await client.post(f"/polls/{poll['uuid']}/comments", json={"content": "Nice"}, headers=other_headers)

    response = await client.delete(f"/polls/{poll['uuid']}", headers=other_headers)
    assert response.status_code == 403

    response = await client.delete(f"/polls/{poll['uuid']}", headers=owner_headers)
    assert response.status_code == 200

    response = await client.get(f"/polls/{poll['uuid']}")
    assert response.status_code == 404


async def test_unknown_poll_is_not_found(client):
    response = await client.get("/polls/00000000-0000-0000-0000-000000000000")
    assert response.status_code == 404
    assert response.json()["detail"] == "Poll not found"


async def test_stats_and_preview(client, make_user, create_poll):
    _, headers = await make_user()
    poll = await create_poll(headers, description=None)
    await client.post(f"/polls/{poll['uuid']}/vote", json={"option_uuid": poll["options"][1]["uuid"]}, headers=headers)

    stats = (await client.get(f"/polls/{poll['uuid']}/stats")).json()
    assert stats["option_count"] == 3
    assert stats["total_votes"] == 1
    assert stats["unique_voters"] == 1
    assert stats["is_expired"] is False

    preview = (await client.get(f"/polls/{poll['uuid']}/preview")).json()
    assert preview["title"] == "Favourite language? - Polling App"
    assert preview["description"] == 'Vote on "Favourite language?" - 3 options available (1 votes so far)'
    assert preview["url"].endswith(f"/polls/{poll['uuid']}")
    assert preview["open_graph"]["og:image"] == preview["image_url"]


async def test_editing_options_drops_their_votes(client, make_user, create_poll):
    _, owner = await make_user()
    _, voter = await make_user(name="Bob", email="bob@example.com")
    poll = await create_poll(owner)
    for headers in (owner, voter):
        response = await client.post(
            f"/polls/{poll['uuid']}/vote", json={"option_uuid": poll["options"][0]["uuid"]}, headers=headers
        )
        assert response.status_code == 201

    update = {"title": "Favourite language?", "options": ["Python", "Go", "Zig"]}
    response = await client.put(f"/polls/{poll['uuid']}", json=update, headers=owner)
    assert response.status_code == 200
    body = response.json()
    assert body["total_votes"] == 0
    assert sum(r["vote_count"] for r in body["results"]) == body["total_votes"]
    assert {o["uuid"] for o in body["options"]}.isdisjoint(o["uuid"] for o in poll["options"])

    results = (await client.get(f"/polls/{poll['uuid']}/results")).json()
    assert results["total_votes"] == 0

    response = await client.post(
        f"/polls/{poll['uuid']}/vote", json={"option_uuid": body["options"][2]["uuid"]}, headers=voter
    )
    assert response.status_code == 201
