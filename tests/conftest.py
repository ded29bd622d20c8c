"""
Test configuration and fixtures for the marketplace storefront API.
Provides an in-memory stand-in for the managed backend, test data factories,
and common test utilities.
"""

import os

os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_ANON_KEY", "test-anon-key")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ["SUPABASE_JWT_SECRET"] = ""

import io
import re
import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from postgrest.exceptions import APIError
from supabase import AuthApiError

from app.main import app
from app.config import settings
from app.models.user import AuthUser
from app.services.auth import AuthService
from app.services.listing import ListingService
from app.services.image import ImageService
from app.utils.dependencies import get_backend_factory


# In-memory backend

class FakeResponse:
    """Shape of a postgrest APIResponse: rows plus optional exact count."""

    def __init__(self, data: Any, count: Optional[int] = None):
        self.data = data
        self.count = count


def _ilike(value: Any, pattern: str) -> bool:
    if value is None:
        return False
    regex = ".*".join(re.escape(part) for part in pattern.split("%"))
    return re.fullmatch(regex, str(value), re.IGNORECASE | re.DOTALL) is not None


def _equals(value: Any, expected: Any) -> bool:
    if isinstance(value, bool) or isinstance(expected, bool):
        return value is expected or str(value).lower() == str(expected).lower()
    return value == expected or str(value) == str(expected)


class FakeQuery:
    """Fluent query builder evaluated against in-memory rows."""

    def __init__(self, backend: "FakeBackend", table_name: str):
        self.backend = backend
        self.table_name = table_name
        self.operation = "select"
        self.payload: Any = None
        self.columns = "*"
        self.count_mode: Optional[str] = None
        self.predicates: List[Callable[[Dict[str, Any]], bool]] = []
        self.orders: List[tuple] = []
        self.offset = 0
        self.row_limit: Optional[int] = None

    def select(self, *columns, count=None):
        self.columns = ",".join(columns) or "*"
        self.count_mode = count
        return self

    def insert(self, data):
        self.operation = "insert"
        self.payload = data
        return self

    def update(self, data):
        self.operation = "update"
        self.payload = data
        return self

    def delete(self):
        self.operation = "delete"
        return self

    def eq(self, column, value):
        self.predicates.append(lambda row: _equals(row.get(column), value))
        return self

    def ilike(self, column, pattern):
        self.predicates.append(lambda row: _ilike(row.get(column), pattern))
        return self

    def gte(self, column, value):
        self.predicates.append(
            lambda row: row.get(column) is not None and Decimal(str(row[column])) >= Decimal(str(value))
        )
        return self

    def lte(self, column, value):
        self.predicates.append(
            lambda row: row.get(column) is not None and Decimal(str(row[column])) <= Decimal(str(value))
        )
        return self

    def or_(self, filters):
        clauses = []
        for clause in filters.split(","):
            column, operator, value = clause.split(".", 2)
            if operator == "ilike":
                clauses.append(lambda row, c=column, v=value: _ilike(row.get(c), v))
            elif operator == "eq":
                clauses.append(lambda row, c=column, v=value: _equals(row.get(c), v))
            else:
                raise NotImplementedError(operator)
        self.predicates.append(lambda row: any(clause(row) for clause in clauses))
        return self

    def order(self, column, desc=False):
        self.orders.append((column, desc))
        return self

    def range(self, start, end):
        self.offset = start
        self.row_limit = end - start + 1
        return self

    def limit(self, size):
        self.row_limit = size
        return self

    def _matches(self, row):
        return all(predicate(row) for predicate in self.predicates)

    def _project(self, row):
        if self.columns == "*":
            return dict(row)
        return {column.strip(): row.get(column.strip()) for column in self.columns.split(",")}

    async def execute(self):
        self.backend.calls.append((self.table_name, self.operation))
        error = self.backend.table_errors.get(self.table_name)
        if error is not None:
            raise error

        rows = self.backend.tables.setdefault(self.table_name, [])

        if self.operation == "insert":
            records = self.payload if isinstance(self.payload, list) else [self.payload]
            inserted = [self.backend.build_row(self.table_name, record) for record in records]
            rows.extend(inserted)
            return FakeResponse([dict(row) for row in inserted])

        if self.operation == "update":
            updated = []
            for row in rows:
                if self._matches(row):
                    row.update(self.payload)
                    row["updated_at"] = self.backend.now().isoformat()
                    updated.append(dict(row))
            return FakeResponse(updated)

        if self.operation == "delete":
            deleted = [row for row in rows if self._matches(row)]
            self.backend.tables[self.table_name] = [row for row in rows if not self._matches(row)]
            return FakeResponse([dict(row) for row in deleted])

        matched = [row for row in rows if self._matches(row)]
        for column, descending in reversed(self.orders):
            matched.sort(
                key=lambda row: (row.get(column) is not None, row.get(column)),
                reverse=descending
            )
        count = len(matched) if self.count_mode else None
        end = None if self.row_limit is None else self.offset + self.row_limit
        page = matched[self.offset:end]
        if self.backend.max_rows is not None:
            page = page[:self.backend.max_rows]
        return FakeResponse([self._project(row) for row in page], count)


class FakeRpc:
    def __init__(self, backend: "FakeBackend", name: str, params: Dict[str, Any], token: Optional[str]):
        self.backend = backend
        self.name = name
        self.params = params
        self.token = token

    async def execute(self):
        self.backend.calls.append(("rpc", self.name))
        if self.backend.rpc_error is not None:
            raise self.backend.rpc_error
        if self.name != settings.admin_status_rpc:
            raise APIError({"message": f"function {self.name} does not exist", "code": "42883", "hint": None, "details": None})
        account = self.backend.account_for_token(self.token)
        return FakeResponse(self.backend.rpc_shape(account["is_admin"]) if account else None)


class FakeBucket:
    def __init__(self, backend: "FakeBackend", bucket: str):
        self.backend = backend
        self.bucket = bucket

    async def upload(self, path, file, file_options=None):
        if self.backend.storage_error is not None:
            raise self.backend.storage_error
        self.backend.objects.setdefault(self.bucket, {})[path] = {
            "content": file,
            "options": file_options or {},
        }
        return SimpleNamespace(path=path, full_path=f"{self.bucket}/{path}")

    async def remove(self, paths):
        if self.backend.storage_error is not None:
            raise self.backend.storage_error
        stored = self.backend.objects.setdefault(self.bucket, {})
        return [{"name": path} for path in paths if stored.pop(path, None) is not None]


class FakeStorage:
    def __init__(self, backend: "FakeBackend"):
        self.backend = backend

    def from_(self, bucket):
        return FakeBucket(self.backend, bucket)


class FakeAuthAdmin:
    def __init__(self, backend: "FakeBackend"):
        self.backend = backend

    async def sign_out(self, jwt, scope="global"):
        if self.backend.account_for_token(jwt) is None:
            raise AuthApiError("Invalid JWT", 401, "bad_jwt")
        self.backend.revoked_tokens.add(jwt)


class FakeAuth:
    """Account flows of the backend auth API, keyed by email."""

    def __init__(self, backend: "FakeBackend"):
        self.backend = backend
        self.admin = FakeAuthAdmin(backend)

    async def sign_in_with_password(self, credentials):
        account = self.backend.accounts.get(credentials["email"])
        if account is None or account["password"] != credentials["password"]:
            raise AuthApiError("Invalid login credentials", 400, "invalid_credentials")
        return SimpleNamespace(user=self.backend.user_object(account), session=self.backend.open_session(account))

    async def sign_up(self, credentials):
        email = credentials["email"]
        if email in self.backend.accounts:
            raise AuthApiError("User already registered", 422, "user_already_exists")
        full_name = credentials.get("options", {}).get("data", {}).get("full_name")
        account = self.backend.add_account(email, credentials["password"], full_name=full_name)
        session = None if self.backend.confirm_email else self.backend.open_session(account)
        return SimpleNamespace(user=self.backend.user_object(account), session=session)

    async def get_user(self, jwt=None):
        if jwt in self.backend.expired_tokens:
            raise AuthApiError("invalid JWT: unable to parse or verify signature, token has expired", 403, "bad_jwt")
        account = self.backend.account_for_token(jwt)
        if account is None:
            raise AuthApiError("invalid JWT: unable to parse or verify signature", 403, "bad_jwt")
        return SimpleNamespace(user=self.backend.user_object(account))

    async def refresh_session(self, refresh_token=None):
        email = self.backend.refresh_tokens.pop(refresh_token, None)
        if email is None:
            raise AuthApiError("Invalid Refresh Token: Refresh Token Not Found", 400, "refresh_token_not_found")
        account = self.backend.accounts[email]
        return SimpleNamespace(user=self.backend.user_object(account), session=self.backend.open_session(account))


class FakeClient:
    """What the app sees as the backend AsyncClient."""

    def __init__(self, backend: "FakeBackend", access_token: Optional[str] = None):
        self.backend = backend
        self.access_token = access_token
        self.auth = FakeAuth(backend)
        self.storage = FakeStorage(backend)

    def table(self, name):
        return FakeQuery(self.backend, name)

    def rpc(self, name, params=None):
        return FakeRpc(self.backend, name, params or {}, self.access_token)


class FakeBackend:
    """
    In-memory backend: tables, an admin-status procedure, a storage bucket
    and auth accounts. Errors can be injected per table, for the procedure
    and for storage.
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {settings.listings_table: [], settings.profiles_table: []}
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, str] = {}
        self.refresh_tokens: Dict[str, str] = {}
        self.expired_tokens = set()
        self.revoked_tokens = set()
        self.table_errors: Dict[str, Exception] = {}
        self.rpc_error: Optional[Exception] = None
        self.storage_error: Optional[Exception] = None
        self.rpc_shape: Callable[[bool], Any] = lambda is_admin: is_admin
        self.confirm_email = False
        # Server-side cap on rows per select, like PostgREST max-rows
        self.max_rows: Optional[int] = None
        self.clients: List[FakeClient] = []
        self.calls: List[tuple] = []
        self._clock = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    async def create_client(self, access_token: Optional[str] = None) -> FakeClient:
        client = FakeClient(self, access_token)
        self.clients.append(client)
        return client

    def client(self, access_token: Optional[str] = None) -> FakeClient:
        return FakeClient(self, access_token)

    def build_row(self, table_name: str, record: Dict[str, Any]) -> Dict[str, Any]:
        timestamp = self.now().isoformat()
        row = {"id": str(uuid.uuid4()), "created_at": timestamp, "updated_at": timestamp}
        if table_name == settings.listings_table:
            row.update({
                "currency": "KSH",
                "images": [],
                "features": [],
                "specifications": {},
                "whatsapp_number": settings.default_whatsapp_number,
                "featured": False,
                "status": "active",
                "description": None,
                "user_id": None,
            })
        row.update(record)
        return row

    # Accounts

    def add_account(
        self,
        email: str,
        password: str = "secret123",
        full_name: Optional[str] = None,
        is_admin: bool = False
    ) -> Dict[str, Any]:
        account = {
            "id": str(uuid.uuid4()),
            "email": email,
            "password": password,
            "full_name": full_name,
            "is_admin": is_admin,
        }
        self.accounts[email] = account
        self.tables[settings.profiles_table].append({
            "id": account["id"],
            "email": email,
            "full_name": full_name,
            "role": "admin" if is_admin else "user",
        })
        return account

    def open_session(self, account: Dict[str, Any]) -> SimpleNamespace:
        access_token = f"access-{uuid.uuid4().hex}"
        refresh_token = f"refresh-{uuid.uuid4().hex}"
        self.tokens[access_token] = account["email"]
        self.refresh_tokens[refresh_token] = account["email"]
        return SimpleNamespace(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=3600,
            token_type="bearer"
        )

    def token_for(self, email: str) -> str:
        return self.open_session(self.accounts[email]).access_token

    def account_for_token(self, token: Optional[str]) -> Optional[Dict[str, Any]]:
        if not token or token in self.revoked_tokens:
            return None
        email = self.tokens.get(token)
        return self.accounts.get(email) if email else None

    @staticmethod
    def user_object(account: Dict[str, Any]) -> SimpleNamespace:
        metadata = {"full_name": account["full_name"]} if account["full_name"] else {}
        return SimpleNamespace(id=account["id"], email=account["email"], user_metadata=metadata)

    # Listings

    def add_listing(self, **overrides) -> Dict[str, Any]:
        record = ListingFactory.create_listing_data(**overrides)
        row = self.build_row(settings.listings_table, record)
        self.tables[settings.listings_table].append(row)
        return dict(row)

    def listing_rows(self) -> List[Dict[str, Any]]:
        return self.tables[settings.listings_table]

    def find_listing(self, listing_id: str) -> Optional[Dict[str, Any]]:
        return next((row for row in self.listing_rows() if row["id"] == listing_id), None)


def backend_error(code: str = "PGRST000", message: str = "backend failure") -> APIError:
    """An APIError as raised by the REST layer."""
    return APIError({"message": message, "code": code, "hint": None, "details": None})


# Test data factories

class ListingFactory:
    """Factory for listing column values."""

    @staticmethod
    def create_listing_data(
        title: str = "Toyota Camry 2020",
        type: str = "car",
        price: float = 3200000,
        location: str = "Nairobi, Kenya",
        description: Optional[str] = "Excellent condition with low mileage",
        images: Optional[List[str]] = None,
        features: Optional[List[str]] = None,
        specifications: Optional[Dict[str, Any]] = None,
        whatsapp_number: str = "+254712345678",
        featured: bool = False,
        status: str = "active",
        **extra
    ) -> Dict[str, Any]:
        data = {
            "title": title,
            "type": type,
            "price": price,
            "currency": "KSH",
            "location": location,
            "description": description,
            "images": images or [],
            "features": features or [],
            "specifications": specifications or {},
            "whatsapp_number": whatsapp_number,
            "featured": featured,
            "status": status,
        }
        data.update(extra)
        return data

    @staticmethod
    def create_form_data(**overrides) -> Dict[str, str]:
        """Admin form fields, all as text."""
        form = {
            "type": "car",
            "title": "Mazda CX-5 2019",
            "price": "2800000",
            "location": "Nakuru, Kenya",
            "description": "Clean example, one owner",
            "images": "https://cdn.example.com/a.jpg, https://cdn.example.com/b.jpg",
            "features": "AWD, Sunroof, Leather Seats",
            "specifications": '{"Year": "2019", "Mileage": "45,000 km"}',
            "whatsapp_number": "+254700000001",
            "featured": "on",
        }
        form.update(overrides)
        return form


def make_image_bytes(fmt: str = "PNG", size=(40, 30), color=(200, 30, 30)) -> bytes:
    """Encode a small solid image with Pillow."""
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return buffer.getvalue()


# Fixtures

@pytest.fixture
def fake_backend() -> FakeBackend:
    """Fresh in-memory backend for each test."""
    return FakeBackend()


@pytest.fixture
def client(fake_backend: FakeBackend) -> TestClient:
    """Create a test client wired to the in-memory backend."""
    app.dependency_overrides[get_backend_factory] = lambda: fake_backend.create_client
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def admin_account(fake_backend: FakeBackend) -> Dict[str, Any]:
    return fake_backend.add_account("admin@example.com", "adminpass1", full_name="Site Admin", is_admin=True)


@pytest.fixture
def user_account(fake_backend: FakeBackend) -> Dict[str, Any]:
    return fake_backend.add_account("buyer@example.com", "buyerpass1", full_name="Jane Buyer")


@pytest.fixture
def admin_headers(fake_backend: FakeBackend, admin_account: Dict[str, Any]) -> Dict[str, str]:
    """Authorization header of a signed-in admin."""
    return {"Authorization": f"Bearer {fake_backend.token_for(admin_account['email'])}"}


@pytest.fixture
def user_headers(fake_backend: FakeBackend, user_account: Dict[str, Any]) -> Dict[str, str]:
    """Authorization header of a signed-in non-admin."""
    return {"Authorization": f"Bearer {fake_backend.token_for(user_account['email'])}"}


@pytest.fixture
def admin_user(admin_account: Dict[str, Any]) -> AuthUser:
    return AuthUser(id=admin_account["id"], email=admin_account["email"])


@pytest.fixture
def sample_catalog(fake_backend: FakeBackend) -> Dict[str, Dict[str, Any]]:
    """A small catalog covering both types and every status."""
    return {
        "camry": fake_backend.add_listing(
            title="Toyota Camry 2020", type="car", price=3200000,
            location="Nairobi, Kenya", featured=True,
            description="Excellent condition Toyota Camry with low mileage"
        ),
        "crv": fake_backend.add_listing(
            title="Honda CR-V 2019", type="car", price=3800000,
            location="Mombasa, Kenya", description="Spacious and reliable family SUV"
        ),
        "apartment": fake_backend.add_listing(
            title="3BR Modern Apartment - Kilimani", type="property", price=18000000,
            location="Kilimani, Nairobi", featured=True,
            description="Luxurious apartment with pool and gym"
        ),
        "house": fake_backend.add_listing(
            title="4BR Family House - Karen", type="property", price=45000000,
            location="Karen, Nairobi", description="Stunning family home with a large garden"
        ),
        "sold_car": fake_backend.add_listing(
            title="Nissan X-Trail 2021", type="car", price=4200000,
            location="Kisumu, Kenya", status="sold"
        ),
        "inactive_property": fake_backend.add_listing(
            title="Commercial Building - CBD", type="property", price=120000000,
            location="Nairobi CBD", status="inactive"
        ),
    }


@pytest.fixture
def listing_service(fake_backend: FakeBackend, admin_account) -> ListingService:
    return ListingService(fake_backend.client(fake_backend.token_for(admin_account["email"])))


@pytest.fixture
def auth_service(fake_backend: FakeBackend) -> AuthService:
    return AuthService(fake_backend.client())


@pytest.fixture
def image_service(fake_backend: FakeBackend) -> ImageService:
    return ImageService(fake_backend.client())


# Utility functions for tests

def assert_error_envelope(response, status_code: int, code: str) -> Dict[str, Any]:
    """Assert a structured error response and return its error body."""
    assert response.status_code == status_code, response.text
    body = response.json()
    assert "error" in body
    assert body["error"]["code"] == code
    assert body["error"]["message"]
    assert body["error"]["timestamp"].endswith("Z")
    return body["error"]
