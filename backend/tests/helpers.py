import uuid
from typing import Any, Dict, List, Optional

from fastapi.testclient import TestClient

from walky.models.user import User
from walky.services.connection import LiveConnection, PresenceRegistry
from walky.services.core.repositories import UserRepository


def unique_username(prefix: str = 'user') -> str:
    return f"{prefix}_{uuid.uuid4().hex[:6]}"


def create_user(client: TestClient, username: Optional[str] = None, device_id: str = 'device-1'):
    if username is None:
        username = unique_username()
    return client.post('/api/users', json={'username': username, 'deviceId': device_id})


def register(client: TestClient, username: Optional[str] = None) -> Dict[str, Any]:
    """Create a user over REST and return its JSON body."""
    r = create_user(client, username)
    assert r.status_code == 200, r.text
    return r.json()


def auth(user: Dict[str, Any]) -> Dict[str, str]:
    return {'X-User-ID': user['id']}


def befriend(client: TestClient, a: Dict[str, Any], b: Dict[str, Any]) -> str:
    r = client.post('/api/friends', json={'friendUsername': b['username']}, headers=auth(a))
    assert r.status_code == 200, r.text
    friendship_id = r.json()['friendshipId']
    r = client.post(f'/api/friends/{friendship_id}/accept', headers=auth(b))
    assert r.status_code == 200, r.text
    return friendship_id


async def make_user(session_factory, username: Optional[str] = None) -> User:
    async with session_factory() as db:
        return await UserRepository(db).create_user(username or unique_username(), 'device-1')


class FakeWebSocket:
    """Stands in for a Starlette WebSocket; records what is sent."""

    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, Any]] = []
        self.fail = fail

    async def send_json(self, data):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def of_type(self, event: str) -> List[Dict[str, Any]]:
        return [m for m in self.sent if m.get('type') == event]


async def connect(registry: PresenceRegistry, user_id: str, fail: bool = False):
    ws = FakeWebSocket(fail=fail)
    conn = LiveConnection(ws)
    await registry.register(conn, user_id)
    return conn, ws


def receive_until(ws, event: str, limit: int = 10) -> Dict[str, Any]:
    """Read TestClient websocket messages until one of the given type arrives."""
    for _ in range(limit):
        message = ws.receive_json()
        if message.get('type') == event:
            return message
    raise AssertionError(f"no {event} message within {limit} messages")
