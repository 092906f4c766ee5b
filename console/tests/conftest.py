"""
User Console 测试基础配置

提供进程内的假用户服务（FastAPI 实现 /api/users REST 契约）和通过 ASGITransport
连接它的 UserApiClient，测试不依赖真实网络或外部服务。
"""
import math
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from httpx import ASGITransport

from user_console.api_client import UserApiClient
from user_console.query_store import InMemoryQueryStore
from user_console.schemas import UserForm


# ── 假用户服务 ────────────────────────────────────────────────────────

_SORT_KEYS = {
    "name": "name",
    "email": "email",
    "birthday": "birthday",
    "country": "country",
    "createdAt": "createdAt",
}


class FakeUserDB:
    """内存用户表，记录收到的请求，并支持注入下一次响应。"""

    def __init__(self):
        self.users: Dict[int, dict] = {}
        self._next_id = 1
        self.requests: List[Tuple[str, str, Dict[str, str]]] = []
        self.next_response: Optional[Tuple[int, Any]] = None

    def add(self, **fields) -> dict:
        now = (datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc) + timedelta(days=self._next_id)).isoformat()
        user = {
            "id": self._next_id,
            "name": "Jane Doe",
            "email": f"user{self._next_id}@example.com",
            "mobileNumber": f"+1555000{self._next_id:04d}",
            "country": "Canada",
            "aboutYou": "Enjoys hiking and long walks.",
            "birthday": "1990-05-17",
            "createdAt": now,
            "updatedAt": now,
        }
        user.update(fields)
        self.users[self._next_id] = user
        self._next_id += 1
        return user

    def find_duplicate(self, body: dict, exclude_id: Optional[int] = None) -> Optional[str]:
        for u in self.users.values():
            if u["id"] == exclude_id:
                continue
            if body.get("email") and u["email"] == body["email"]:
                return "User with this email already exists"
            if body.get("mobileNumber") and u["mobileNumber"] == body["mobileNumber"]:
                return "User with this mobile number already exists"
        return None

    def query(self, params: Dict[str, str]) -> dict:
        items = list(self.users.values())
        search = params.get("search", "").lower()
        if search:
            items = [
                u for u in items
                if search in u["name"].lower() or search in u["email"].lower() or search in u["country"].lower()
            ]
        for key in ("name", "email", "country"):
            if params.get(key):
                items = [u for u in items if params[key].lower() in u[key].lower()]
        if params.get("fromDate"):
            items = [u for u in items if u["createdAt"][:10] >= params["fromDate"]]
        if params.get("toDate"):
            items = [u for u in items if u["createdAt"][:10] <= params["toDate"]]

        sort_key = _SORT_KEYS.get(params.get("sortBy", "createdAt"), "createdAt")
        items.sort(key=lambda u: u[sort_key], reverse=params.get("sortOrder", "DESC") == "DESC")

        page = int(params.get("page", 1))
        limit = int(params.get("limit", 10))
        total = len(items)
        total_pages = math.ceil(total / limit)
        start = (page - 1) * limit
        return {
            "users": items[start:start + limit],
            "pagination": {
                "currentPage": page,
                "totalPages": total_pages,
                "totalItems": total,
                "itemsPerPage": limit,
                "hasNextPage": page < total_pages,
                "hasPrevPage": page > 1,
                "nextPage": page + 1 if page < total_pages else None,
                "prevPage": page - 1 if page > 1 else None,
            },
        }


def build_app(db: FakeUserDB) -> FastAPI:
    app = FastAPI()

    def ok(payload: Any, status: int = 200) -> JSONResponse:
        return JSONResponse(status_code=status, content={"error": False, "payload": payload})

    def fail(status: int, message: str) -> JSONResponse:
        return JSONResponse(status_code=status, content={"error": True, "payload": message})

    @app.middleware("http")
    async def record_and_inject(request: Request, call_next):
        db.requests.append((request.method, request.url.path, dict(request.query_params)))
        if db.next_response is not None:
            status, content = db.next_response
            db.next_response = None
            if isinstance(content, (bytes, str)):
                return Response(status_code=status, content=content)
            return JSONResponse(status_code=status, content=content)
        return await call_next(request)

    @app.get("/api/users")
    async def list_users(request: Request):
        return ok(db.query(dict(request.query_params)))

    @app.get("/api/users/{user_id}")
    async def get_user(user_id: int):
        if user_id not in db.users:
            return fail(404, "User not found")
        return ok(db.users[user_id])

    @app.post("/api/users")
    async def create_user(request: Request):
        body = await request.json()
        missing = [k for k in ("name", "email", "mobileNumber", "country", "birthday", "aboutYou") if not body.get(k)]
        if missing:
            return fail(400, f"Missing required fields: {', '.join(missing)}")
        duplicate = db.find_duplicate(body)
        if duplicate:
            return fail(409, duplicate)
        return ok(db.add(**body), status=201)

    @app.put("/api/users/{user_id}")
    async def update_user(user_id: int, request: Request):
        if user_id not in db.users:
            return fail(404, "User not found")
        body = await request.json()
        duplicate = db.find_duplicate(body, exclude_id=user_id)
        if duplicate:
            return fail(409, duplicate)
        user = db.users[user_id]
        user.update(body)
        user["updatedAt"] = datetime(2024, 6, 1, tzinfo=timezone.utc).isoformat()
        return ok(user)

    @app.delete("/api/users/{user_id}")
    async def delete_user(user_id: int):
        if user_id not in db.users:
            return fail(404, "User not found")
        del db.users[user_id]
        return ok({"message": "User deleted successfully"})

    return app


# ── Fixtures ──────────────────────────────────────────────────────────

@pytest.fixture
def db() -> FakeUserDB:
    return FakeUserDB()


@pytest.fixture
def app(db: FakeUserDB) -> FastAPI:
    return build_app(db)


@pytest.fixture
def transport(app: FastAPI) -> ASGITransport:
    return ASGITransport(app=app)


@pytest_asyncio.fixture
async def api(transport: ASGITransport):
    """连接假用户服务的 API 客户端。"""
    async with UserApiClient(base_url="http://test", transport=transport) as client:
        yield client


@pytest.fixture
def store() -> InMemoryQueryStore:
    return InMemoryQueryStore()


@pytest.fixture
def seeded(db: FakeUserDB) -> List[dict]:
    """三个用户：Jane（加拿大）、John（美国）、Alice（加拿大）。"""
    return [
        db.add(name="Jane Doe", email="jane@example.com", country="Canada"),
        db.add(name="John Smith", email="john@example.com", country="USA"),
        db.add(name="Alice Jones", email="alice@example.com", country="Canada"),
    ]


@pytest.fixture
def valid_form() -> UserForm:
    return UserForm(
        name="Jane Doe",
        email="new.user@example.com",
        mobile_number="+15551234567",
        country="Canada",
        birthday=date(1990, 5, 17),
        about_you="I enjoy building things.",
    )
