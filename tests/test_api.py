"""
End-to-end over HTTP (in-process ASGI), fake Gemini, in-memory DB.
"""
from __future__ import annotations

import json

import pytest

from services.auth import create_token
from services.db import UserProfile, UserRoutine
from services.gemini import GeminiError

PAYLOAD = {
    "username": "alice",
    "age": 30,
    "weight": 70,
    "height": 175,
    "objective": "lose fat",
    "training_days": 4,
    "profiling_form": 1,
}
URL = "/api/v1/user/userProfile/{}"
ROUTINE_URL = "/api/v1/user/userRoutines/{}"


async def test_health(client):
    r = await client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert "timestamp" in body


# ── scenario A: happy path ──────────────────────────────────────────
async def test_update_profile_generates_routine(client, user, llm, auth, count):
    r = await client.post(URL.format(42), json=PAYLOAD, headers=auth(42))
    assert r.status_code == 200
    body = r.json()
    assert body["message"] == "User profile update successfully"
    profile = body["profile"]
    assert (profile["age"], profile["weight"], profile["height"]) == (30, 70, 175)
    assert (profile["objective"], profile["training_days"]) == ("lose fat", 4)
    assert 1 <= len(body["routine"]["routines"]) <= 4

    prompt, _ = llm.calls[0]
    for part in ("30 years", "70 kg", "175 cm", "lose fat", "4 days"):
        assert part in prompt
    assert await count(UserRoutine) == 1


async def test_update_twice_keeps_one_row(client, user, auth, count):
    await client.post(URL.format(42), json=PAYLOAD, headers=auth(42))
    r = await client.post(
        URL.format(42), json={**PAYLOAD, "weight": 68, "objective": "run 10k"}, headers=auth(42)
    )
    assert r.status_code == 200
    assert await count(UserProfile) == 1
    assert await count(UserRoutine) == 1

    r = await client.get(URL.format(42), headers=auth(42))
    assert (r.json()["profile"]["weight"], r.json()["profile"]["objective"]) == (68, "run 10k")


# ── scenario B: someone else's id ───────────────────────────────────
async def test_update_other_user_forbidden(client, user, llm, auth, count):
    r = await client.post(URL.format(43), json=PAYLOAD, headers=auth(42))
    assert r.status_code == 403
    assert r.json() == {"message": "User not allowed"}
    assert llm.calls == []
    assert await count(UserProfile) == 0


@pytest.mark.parametrize("url", [URL, ROUTINE_URL])
async def test_reads_of_other_user_leak_nothing(client, user, auth, url):
    await client.post(URL.format(42), json=PAYLOAD, headers=auth(42))
    r = await client.get(url.format(42), headers=auth(43))
    assert r.status_code == 403
    assert r.json() == {"message": "User not allowed"}


# ── scenario C: generator down ──────────────────────────────────────
async def test_generation_failure_keeps_profile(client, user, llm, auth, count, doc):
    llm.reply = GeminiError("down")
    r = await client.post(URL.format(42), json=PAYLOAD, headers=auth(42))
    assert r.status_code == 404
    assert set(r.json()) == {"message"}
    assert await count(UserRoutine) == 0

    r = await client.get(URL.format(42), headers=auth(42))
    assert r.status_code == 200
    assert r.json()["profile"]["objective"] == "lose fat"
    assert r.json()["profile"]["routine_status"] == "failed"

    r = await client.get(ROUTINE_URL.format(42), headers=auth(42))
    assert r.status_code == 404

    # compensating retry
    llm.reply = None
    r = await client.post(ROUTINE_URL.format(42) + "/regenerate", headers=auth(42))
    assert r.status_code == 404
    llm.reply = json.dumps(doc(4))
    r = await client.post(ROUTINE_URL.format(42) + "/regenerate", headers=auth(42))
    assert r.status_code == 200
    assert r.json()["profile"]["routine_status"] == "ready"


# ── auth / validation surface ───────────────────────────────────────
@pytest.mark.parametrize(
    "headers",
    [
        {},
        {"Authorization": "Bearer garbage"},
        {"Authorization": f"Bearer {create_token(42, ttl_minutes=-1)}"},
        {"Authorization": "Basic Zm9vOmJhcg=="},
    ],
)
async def test_unauthenticated(client, user, llm, count, headers):
    r = await client.post(URL.format(42), json=PAYLOAD, headers=headers)
    assert r.status_code == 401
    assert set(r.json()) == {"message"}
    assert llm.calls == []
    assert await count(UserProfile) == 0


async def test_cookie_token_accepted(client, user):
    r = await client.post(
        URL.format(42), json=PAYLOAD, headers={"Cookie": f"token={create_token(42)}"}
    )
    assert r.status_code == 200


async def test_validation_errors(client, user, auth, llm):
    r = await client.post(
        URL.format(42), json={**PAYLOAD, "username": "al", "age": "old"}, headers=auth(42)
    )
    assert r.status_code == 400
    fields = {e["field"] for e in r.json()["errors"]}
    assert fields == {"username", "age"}
    assert llm.calls == []


@pytest.mark.parametrize(
    "field,literal", [("age", "1e999"), ("age", "true"), ("training_days", "true")]
)
async def test_non_finite_or_boolean_numbers_rejected(client, user, auth, llm, count, field, literal):
    rest = json.dumps({k: v for k, v in PAYLOAD.items() if k != field})
    body = rest[:-1] + f', "{field}": {literal}}}'
    r = await client.post(
        URL.format(42),
        content=body.encode(),
        headers={**auth(42), "Content-Type": "application/json"},
    )
    assert r.status_code == 400
    assert [e["field"] for e in r.json()["errors"]] == [field]
    assert llm.calls == []
    assert await count(UserProfile) == 0


async def test_overlong_username_rejected(client, user, auth, llm):
    r = await client.post(URL.format(42), json={**PAYLOAD, "username": "a" * 65}, headers=auth(42))
    assert r.status_code == 400
    assert [e["field"] for e in r.json()["errors"]] == ["username"]
    assert llm.calls == []


async def test_non_json_body(client, user, auth):
    r = await client.post(URL.format(42), content=b"not json", headers=auth(42))
    assert r.status_code == 400
    assert r.json()["errors"][0]["field"] == "body"


async def test_read_routine_roundtrip(client, user, auth):
    r = await client.post(URL.format(42), json=PAYLOAD, headers=auth(42))
    written = r.json()["routine"]

    r = await client.get(ROUTINE_URL.format(42), headers=auth(42))
    assert r.status_code == 200
    assert r.json()["profile"] == written


async def test_read_profile_missing(client, user, auth):
    r = await client.get(URL.format(42), headers=auth(42))
    assert r.status_code == 404
    assert r.json() == {"message": "User not found"}
