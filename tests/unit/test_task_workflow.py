"""End-to-end task workflow through the API against an in-memory store."""

import re
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest

from taskmanager.models.task import utc_today
from taskmanager.services.task_service import TASK_COLUMNS

PASSWORD = "Secret1!x"
TASK_KEYS = [c.strip() for c in TASK_COLUMNS.split(",")]


class InMemoryConnection:
    """asyncpg connection stand-in that answers the services' queries from dicts.

    Deleting a user also deletes their tasks, as the tasks.user_id foreign key
    does in Postgres.
    """

    def __init__(self):
        self.users: dict = {}
        self.tasks: dict = {}

    async def fetchrow(self, query, *args):
        sql = " ".join(query.split())

        if sql.startswith("INSERT INTO users"):
            user_id, email, password_hash, created_at = args
            self.users[user_id] = {
                "id": user_id,
                "email": email,
                "password_hash": password_hash,
                "created_at": created_at,
            }
            return {k: self.users[user_id][k] for k in ("id", "email", "created_at")}

        if sql.startswith("SELECT id, email, password_hash, created_at FROM users WHERE email"):
            return next((dict(u) for u in self.users.values() if u["email"] == args[0]), None)

        if sql.startswith("SELECT id, email, created_at FROM users WHERE id"):
            user = self.users.get(args[0])
            if user is None:
                return None
            return {k: user[k] for k in ("id", "email", "created_at")}

        if sql.startswith("INSERT INTO tasks"):
            row = dict(zip(TASK_KEYS, args))
            self.tasks[row["id"]] = row
            return dict(row)

        if sql.startswith(f"SELECT {TASK_COLUMNS} FROM tasks WHERE id = $1"):
            row = self.tasks.get(args[0])
            return dict(row) if row is not None else None

        if sql.startswith("UPDATE tasks SET status = $1"):
            status, task_id = args
            row = self.tasks.get(task_id)
            if row is None:
                return None
            row["status"] = status
            row["updated_at"] = datetime.now(timezone.utc)
            return dict(row)

        raise AssertionError(f"unexpected fetchrow: {sql}")

    async def fetch(self, query, *args):
        sql = " ".join(query.split())
        owned = [t for t in self.tasks.values() if t["user_id"] == args[0]]

        if "GROUP BY status" in sql:
            counts: dict = {}
            for task in owned:
                counts[task["status"]] = counts.get(task["status"], 0) + 1
            return [{"status": s, "count": c} for s, c in counts.items()]

        if "due_date < $2" in sql:
            today, completed = args[1], args[2]
            rows = [
                t for t in owned
                if t["due_date"] is not None and t["due_date"] < today and t["status"] != completed
            ]
            return [dict(t) for t in sorted(rows, key=lambda t: t["due_date"])]

        if "ORDER BY created_at DESC" in sql:
            for column in ("status", "priority"):
                match = re.search(rf"\b{column} = \$(\d+)", sql)
                if match:
                    value = args[int(match.group(1)) - 1]
                    owned = [t for t in owned if t[column] == value]
            rows = sorted(owned, key=lambda t: t["created_at"], reverse=True)
            return [dict(t) for t in rows]

        raise AssertionError(f"unexpected fetch: {sql}")

    async def execute(self, query, *args):
        sql = " ".join(query.split())

        if sql == "DELETE FROM users WHERE id = $1":
            if self.users.pop(args[0], None) is None:
                return "DELETE 0"
            for task_id in [k for k, t in self.tasks.items() if t["user_id"] == args[0]]:
                del self.tasks[task_id]
            return "DELETE 1"

        raise AssertionError(f"unexpected execute: {sql}")

    async def fetchval(self, query, *args):
        raise AssertionError(f"unexpected fetchval: {' '.join(query.split())}")


class InMemoryDatabase:
    def __init__(self, conn: InMemoryConnection):
        self.conn = conn
        self.is_connected = True
        self.health_check = AsyncMock(return_value=True)

    @asynccontextmanager
    async def acquire(self):
        yield self.conn


@pytest.fixture
def mock_db():
    """Replace the shared mock store with a stateful in-memory one."""
    conn = InMemoryConnection()
    return InMemoryDatabase(conn), conn


def _register(client, email: str) -> dict:
    response = client.post(
        "/api/auth/register",
        json={"email": email, "password": PASSWORD, "confirmPassword": PASSWORD},
    )
    assert response.status_code == 201
    data = response.json()["data"]
    return {"Authorization": f"Bearer {data['accessToken']}"}


def _create(client, headers, title, priority, due_date) -> dict:
    response = client.post(
        "/api/tasks",
        json={"title": title, "priority": priority, "due_date": due_date.isoformat()},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["data"]["task"]


class TestTaskWorkflow:
    def test_register_filter_complete_overdue_and_delete(self, client, mock_db):
        _, conn = mock_db
        tomorrow = utc_today() + timedelta(days=1)
        headers = _register(client, "Dana@Example.com")

        release = _create(client, headers, "Ship release", "high", tomorrow)
        plants = _create(client, headers, "Water plants", "low", tomorrow)

        response = client.get("/api/tasks?priority=high", headers=headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert [t["id"] for t in data["tasks"]] == [release["id"]]
        assert data["count"] == 1
        assert data["stats"]["pending"] == 2

        response = client.patch(
            f"/api/tasks/{release['id']}/status",
            json={"status": "completed"},
            headers=headers,
        )
        assert response.status_code == 200
        assert response.json()["data"]["task"]["status"] == "completed"

        with patch(
            "taskmanager.services.task_service.utc_today",
            return_value=tomorrow + timedelta(days=2),
        ):
            response = client.get("/api/tasks/overdue", headers=headers)

        assert response.status_code == 200
        overdue = response.json()["data"]
        assert [t["id"] for t in overdue["tasks"]] == [plants["id"]]
        assert overdue["count"] == 1

        response = client.delete("/api/auth/me", headers=headers)
        assert response.status_code == 200
        assert conn.users == {}
        assert conn.tasks == {}

        response = client.get("/api/tasks", headers=headers)
        assert response.status_code == 401
        assert response.json()["message"] == "User no longer exists."

    def test_users_only_see_their_own_tasks(self, client, mock_db):
        _, conn = mock_db
        due = utc_today() + timedelta(days=3)
        alice = _register(client, "alice@example.com")
        bob = _register(client, "bob@example.com")

        task = _create(client, alice, "Quarterly report", "medium", due)

        response = client.get("/api/tasks", headers=bob)
        assert response.json()["data"]["tasks"] == []

        response = client.patch(
            f"/api/tasks/{task['id']}/status",
            json={"status": "completed"},
            headers=bob,
        )
        assert response.status_code == 403

        client.delete("/api/auth/me", headers=bob)
        assert len(conn.tasks) == 1
