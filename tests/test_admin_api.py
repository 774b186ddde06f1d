from core.permissions import Role


async def test_user_list_is_admin_only(client, make_user, set_role):
    _, user_headers = await make_user()
    _, admin_headers = await make_user(name="Root", email="root@example.com")
    await set_role("root@example.com", Role.ADMIN)

    response = await client.get("/admin/users", headers=user_headers)
    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"

    response = await client.get("/admin/users", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["total"] == 2
    assert {u["email"] for u in response.json()["items"]} == {"alice@example.com", "root@example.com"}


async def test_admin_changes_roles(client, make_user, set_role):
    alice, alice_headers = await make_user()
    admin, admin_headers = await make_user(name="Root", email="root@example.com")
    await set_role("root@example.com", Role.ADMIN)

    response = await client.patch(
        "/admin/users", json={"user_uuid": admin["uuid"], "role": "user"}, headers=alice_headers
    )
    assert response.status_code == 403

    response = await client.patch(
        "/admin/users", json={"user_uuid": alice["uuid"], "role": "moderator"}, headers=admin_headers
    )
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "moderator"
    assert (await client.get("/auth/me", headers=alice_headers)).json()["role"] == "moderator"


async def test_admin_cannot_change_own_role(client, make_user, set_role):
    admin, admin_headers = await make_user(name="Root", email="root@example.com")
    await set_role("root@example.com", Role.ADMIN)

    response = await client.patch(
        "/admin/users", json={"user_uuid": admin["uuid"], "role": "user"}, headers=admin_headers
    )
    assert response.status_code == 400

    response = await client.patch(
        "/admin/users",
        json={"user_uuid": "00000000-0000-0000-0000-000000000000", "role": "user"},
        headers=admin_headers,
    )
    assert response.status_code == 404


async def test_moderation_queue_and_stats(client, make_user, create_poll, set_role):
    _, author = await make_user()
    _, mod = await make_user(name="Mod", email="mod@example.com")
    await set_role("mod@example.com", Role.MODERATOR)
    poll = await create_poll(author)

    quiet = (await client.post(f"/polls/{poll['uuid']}/comments", json={"content": "Fine"}, headers=author)).json()
    loud = (await client.post(f"/polls/{poll['uuid']}/comments", json={"content": "Spam"}, headers=author)).json()
    await client.post(f"/comments/{loud['uuid']}/report", json={"reason": "spam"}, headers=mod)

    response = await client.get("/admin/comments/reported", headers=author)
    assert response.status_code == 403

    page = (await client.get("/admin/comments/reported", headers=mod)).json()
    assert page["total"] == 1
    assert page["items"][0]["uuid"] == loud["uuid"]
    assert page["items"][0]["poll_uuid"] == poll["uuid"]
    assert page["items"][0]["report_count"] == 1
    assert quiet["uuid"] not in [c["uuid"] for c in page["items"]]

    stats = (await client.get("/admin/comments/stats", headers=mod)).json()
    assert stats == {"total_comments": 2, "comments_today": 2, "comments_this_week": 2}
