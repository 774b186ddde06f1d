from datetime import datetime, timedelta, timezone

from sqlalchemy import update

from models import PollShare


async def share(client, poll, headers, **body):
    return await client.post(f"/polls/{poll['uuid']}/share", json=body, headers=headers)


async def test_share_code_is_reused_while_active(client, make_user, create_poll):
    _, headers = await make_user()
    poll = await create_poll(headers)

    first = await share(client, poll, headers)
    assert first.status_code == 201
    code = first.json()["share_code"]
    assert len(code) == 8
    assert first.json()["share_url"] == f"http://localhost:3000/share/{code}"

    second = await share(client, poll, headers)
    assert second.status_code == 200
    assert second.json()["share_code"] == code

    stats = (await client.get(f"/polls/{poll['uuid']}/share/stats", headers=headers)).json()
    assert stats["share_count"] == 1


async def test_only_owner_can_share_public_polls(client, make_user, create_poll):
    _, owner = await make_user()
    _, other = await make_user(name="Bob", email="bob@example.com")
    poll = await create_poll(owner)
    private = await create_poll(owner, is_public=False)

    assert (await share(client, poll, other)).status_code == 403
    response = await share(client, private, owner)
    assert response.status_code == 400
    assert response.json()["detail"] == "Only public polls can be shared"


async def test_resolving_a_share_code(client, make_user, create_poll):
    _, headers = await make_user()
    poll = await create_poll(headers)
    code = (await share(client, poll, headers)).json()["share_code"]

    response = await client.get(f"/share/{code.lower()}/poll")
    assert response.status_code == 200
    assert response.json()["poll"]["uuid"] == poll["uuid"]

    validation = (await client.get(f"/share/{code}/validate")).json()
    assert validation == {"is_valid": True, "poll_uuid": poll["uuid"]}

    response = await client.get(f"/share/{code}")
    assert response.status_code == 307
    assert response.headers["location"] == f"http://localhost:3000/polls/{poll['uuid']}"

    response = await client.get(f"/share/{code}/qr.png")
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


async def test_unknown_and_expired_codes(client, session_factory, make_user, create_poll):
    _, headers = await make_user()
    poll = await create_poll(headers)

    response = await client.get("/share/NOPE0000/poll")
    assert response.status_code == 404
    assert (await client.get("/share/NOPE0000/validate")).json()["is_valid"] is False

    response = await client.get("/share/NOPE0000")
    assert response.status_code == 307
    assert response.headers["location"].startswith("http://localhost:3000/polls?error=")

    code = (await share(client, poll, headers)).json()["share_code"]
    async with session_factory() as session:
        await session.execute(
            update(PollShare)
            .where(PollShare.share_code == code)
            .values(expires_at=datetime.now(timezone.utc) - timedelta(days=1))
        )
        await session.commit()

    response = await client.get(f"/share/{code}/poll")
    assert response.status_code == 410
    assert response.json()["detail"] == "Share code has expired"

    fresh = await share(client, poll, headers)
    assert fresh.status_code == 201
    assert fresh.json()["share_code"] != code


async def test_share_creation_is_rate_limited(client, make_user, create_poll):
    _, headers = await make_user()
    for i in range(10):
        poll = await create_poll(headers, title=f"Poll {i}")
        assert (await share(client, poll, headers)).status_code == 201

    poll = await create_poll(headers, title="One too many")
    assert (await share(client, poll, headers)).status_code == 429


async def test_only_creator_can_delete_a_share(client, make_user, create_poll):
    _, owner = await make_user()
    _, other = await make_user(name="Bob", email="bob@example.com")
    poll = await create_poll(owner)
    code = (await share(client, poll, owner)).json()["share_code"]

    assert (await client.delete(f"/share/{code}", headers=other)).status_code == 403
    response = await client.delete(f"/share/{code}", headers=owner)
    assert response.status_code == 200
    assert response.json()["share_code"] == code
    assert (await client.get(f"/share/{code}/poll")).status_code == 404


async def test_share_expiry_must_be_in_the_future(client, make_user, create_poll):
    _, headers = await make_user()
    poll = await create_poll(headers)

    response = await share(client, poll, headers, expires_at="2000-01-01T00:00:00Z")
    assert response.status_code == 422

    later = (datetime.now(timezone.utc) + timedelta(days=7)).isoformat()
    response = await share(client, poll, headers, expires_at=later)
    assert response.status_code == 201
    assert response.json()["expires_at"] is not None
