"""Integration tests for the analytics endpoint."""

from datetime import UTC, datetime, timedelta

import pytest

from tests.fixtures.auth import bearer, make_token


@pytest.mark.asyncio
async def test_analytics_report(client, user, auth_headers, add_pattern, add_project):
    socks = await add_pattern(user, name="Socks")
    hat = await add_pattern(user, name="Hat")
    now = datetime.now(UTC)
    await add_project(
        user,
        name="Socks #1",
        pattern_id=socks.id,
        started_at=now - timedelta(days=20),
        finished_at=now - timedelta(days=5),
    )
    await add_project(user, name="Hat", pattern_id=hat.id, started_at=now - timedelta(days=3))
    await add_project(
        user,
        name="Socks #2",
        pattern_id=socks.id,
        started_at=now - timedelta(days=40),
        finished_at=now - timedelta(days=24),
    )

    response = await client.get(f"/api/analytics/{user.id}", headers=auth_headers)

    assert response.status_code == 200  # noqa: PLR2004
    data = response.json()
    assert data["userId"] == user.id
    assert data["completionRate"] == {"percentage": 67, "completed": 2, "total": 3}
    assert data["currentProjects"] == {"inProgress": 1, "completed": 2, "total": 3}
    assert data["mostUsedPatterns"][0] == {
        "patternId": socks.id,
        "patternName": "Socks",
        "projectCount": 2,
    }
    assert data["averageDuration"]["count"] == 2  # noqa: PLR2004
    assert data["averageDuration"]["avgDuration"] == pytest.approx(15.5)
    assert data["recentActivity"]["projectsStarted"] == 2  # noqa: PLR2004
    assert data["recentActivity"]["patternsCreated"] == 2  # noqa: PLR2004
    assert sum(bucket["started"] for bucket in data["activityByMonth"]) == 3  # noqa: PLR2004
    assert all("_id" in bucket for bucket in data["activityByMonth"])


@pytest.mark.asyncio
async def test_analytics_for_user_without_data(client, user, auth_headers):
    response = await client.get(f"/api/analytics/{user.id}", headers=auth_headers)

    assert response.status_code == 200  # noqa: PLR2004
    data = response.json()
    assert data["completionRate"]["percentage"] == 0
    assert data["activityByMonth"] == []
    assert data["mostUsedPatterns"] == []
    assert data["averageDuration"]["count"] == 0


@pytest.mark.asyncio
async def test_analytics_requires_token(client, user):
    response = await client.get(f"/api/analytics/{user.id}")

    assert response.status_code == 401  # noqa: PLR2004
    assert response.json() == {"error": "token missing"}


@pytest.mark.asyncio
async def test_analytics_rejects_expired_token(client, user):
    headers = bearer(make_token(user.id, expires_in=-60))

    response = await client.get(f"/api/analytics/{user.id}", headers=headers)

    assert response.status_code == 401  # noqa: PLR2004
    assert response.json() == {"error": "token expired"}


@pytest.mark.asyncio
async def test_analytics_rejects_forged_token(client, user):
    forged = "not-the-secret-but-also-32-bytes-long"  # noqa: S105
    headers = bearer(make_token(user.id, secret=forged))

    response = await client.get(f"/api/analytics/{user.id}", headers=headers)

    assert response.status_code == 401  # noqa: PLR2004
    assert response.json() == {"error": "token invalid"}


@pytest.mark.asyncio
async def test_analytics_rejects_unknown_user(client, user):
    response = await client.get(f"/api/analytics/{user.id}", headers=bearer(make_token(9999)))

    assert response.status_code == 401  # noqa: PLR2004


@pytest.mark.asyncio
async def test_analytics_of_another_user_is_forbidden(
    client, user, other_user, other_auth_headers, add_project
):
    await add_project(user, name="Private")

    response = await client.get(f"/api/analytics/{user.id}", headers=other_auth_headers)

    assert response.status_code == 403  # noqa: PLR2004
    assert response.json() == {"error": "forbidden"}
