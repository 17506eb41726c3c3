"""
Shared test fixtures for Obras.

Provides an in-memory fake of the REST backend, seed data, a CLI runner,
and a Flask test client wired to the fake.
"""

import copy
import re
import uuid
from unittest.mock import patch
from urllib.parse import unquote

import pytest

from obras.core.http import ApiError

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

_FILTER_RE = re.compile(r"^(\w+)\[(\w+)\](.*)$")


def _not_found():
    return ApiError("API Error: 404 Not Found", 404, "Not Found", {"message": "Not found"})


class FakeApi:
    """In-memory stand-in for ApiClient over the four backend collections."""

    def __init__(self, clients=None, offices=None, projects=None, billings=None):
        self.clients = {c["_id"]: copy.deepcopy(c) for c in clients or []}
        self.offices = {o["id"]: copy.deepcopy(o) for o in offices or []}
        self.projects = {p["id"]: copy.deepcopy(p) for p in projects or []}
        self.billings = {b["id_proyecto"]: copy.deepcopy(b) for b in billings or []}
        self.calls = []
        self._failures = {}

    def fail(self, method, endpoint, status, reason="Internal Server Error"):
        """Make ``method endpoint`` answer with an error status."""
        self._failures[(method, endpoint)] = (status, reason)

    # --- ApiClient surface ---

    def request(self, method, endpoint, json=None, params=None):
        self.calls.append((method, endpoint, json, params))
        if (method, endpoint) in self._failures:
            status, reason = self._failures[(method, endpoint)]
            raise ApiError(f"API Error: {status} {reason}", status, reason)
        return copy.deepcopy(self._route(method, endpoint, json, params))

    def download(self, method, endpoint, json=None):
        self.calls.append((method, endpoint, json, None))
        if (method, endpoint) in self._failures:
            status, reason = self._failures[(method, endpoint)]
            raise ApiError(f"API Error: {status} {reason}", status, reason)
        if "/presupuesto/" in endpoint:
            return b"%PDF-1.4 fake budget", "application/pdf"
        if endpoint.endswith("/excel-export"):
            return b"PK\x03\x04 fake workbook", XLSX_MIMETYPE
        raise _not_found()

    def get(self, endpoint, params=None):
        return self.request("GET", endpoint, params=params)

    def post(self, endpoint, json=None):
        return self.request("POST", endpoint, json=json)

    def put(self, endpoint, json=None):
        return self.request("PUT", endpoint, json=json)

    def delete(self, endpoint):
        return self.request("DELETE", endpoint)

    # --- Routing ---

    def _route(self, method, endpoint, body, params):
        parts = [unquote(p) for p in endpoint.strip("/").split("/")]
        resource, rest = parts[0], parts[2:]
        handler = getattr(self, f"_{resource}", None)
        if handler is None:
            raise _not_found()
        return handler(method, rest, body, params)

    def _clientes(self, method, rest, body, params):
        if not rest:
            if method == "GET":
                rows = list(self.clients.values())
                match = _FILTER_RE.match((params or {}).get("filter", ""))
                if match:
                    field, _, value = match.groups()
                    rows = [c for c in rows if str(c.get(field)) == value]
                return rows
            if method == "POST":
                created = {**body, "_id": uuid.uuid4().hex[:24]}
                created["nombre_completo"] = " ".join(
                    p for p in (body.get("nombre"), body.get("apellido1"), body.get("apellido2")) if p
                )
                self.clients[created["_id"]] = created
                return created
        if len(rest) == 2 and rest[0] == "id":
            client = self.clients.get(rest[1])
            if client is None:
                raise _not_found()
            if method == "GET":
                return client
            if method == "PUT":
                self.clients[rest[1]] = body
                return body
            if method == "DELETE":
                del self.clients[rest[1]]
                return None
        if method == "GET" and len(rest) == 1:
            for c in self.clients.values():
                if c.get("dni") == rest[0]:
                    return c
        raise _not_found()

    def _oficinas(self, method, rest, body, params):
        if not rest:
            if method == "GET":
                return list(self.offices.values())
            if method in ("POST", "PUT"):
                self.offices[body["id"]] = body
                return body
        elif rest[0] in self.offices:
            if method == "GET":
                return self.offices[rest[0]]
            if method == "DELETE":
                del self.offices[rest[0]]
                return None
        raise _not_found()

    def _proyectos(self, method, rest, body, params):
        if not rest:
            if method == "GET":
                return list(self.projects.values())
            if method == "POST":
                created = {
                    **body,
                    "id": uuid.uuid4().hex,
                    "estado": "presupuesto",
                    "presupuestos": [],
                    "created_at": "2025-07-01T09:00:00.000Z",
                }
                self.projects[created["id"]] = created
                return created
            if method == "PUT":
                if body.get("id") not in self.projects:
                    raise _not_found()
                self.projects[body["id"]] = body
                return body
        elif rest[0] in self.projects:
            if method == "GET":
                return self.projects[rest[0]]
            if method == "DELETE":
                del self.projects[rest[0]]
                return None
        raise _not_found()

    def _facturacion(self, method, rest, body, params):
        if not rest and method == "POST":
            created = {**body, "id": uuid.uuid4().hex}
            self.billings[created["id_proyecto"]] = created
            return created
        if not rest and method == "PUT":
            self.billings[body["id_proyecto"]] = body
            return body
        if method == "GET" and len(rest) == 2 and rest[0] == "proyecto":
            if rest[1] not in self.billings:
                raise _not_found()
            return self.billings[rest[1]]
        raise _not_found()


# ---------------------------------------------------------------------------
# Seed data
# ---------------------------------------------------------------------------

SEED_CLIENTS = [
    {
        "_id": "c1",
        "nombre": "Ana",
        "apellido1": "García",
        "apellido2": "López",
        "nombre_completo": "Ana García López",
        "dni": "12345678A",
        "email": "ana@example.com",
        "telefono": "600111222",
    },
    {
        "_id": "c2",
        "nombre": "Luis",
        "apellido1": "Pérez",
        "dni": "87654321B",
        "email": "luis@example.com",
    },
]

SEED_OFFICES = [
    {"id": "o1", "nombre": "Sugate Central", "color": "#1F4E79", "email": "central@sugate.es"},
    {"id": "o2", "nombre": "Oficina Norte", "color": "#3366FF"},
]

BUDGET_B1 = {
    "id": "b1",
    "nombre": "Presupuesto v1",
    "estado": "aprobado",
    "sections": [
        {
            "id": "s1",
            "name": "Demolición",
            "concepts": [
                {"id": "k1", "description": "Retirada de escombros", "quantity": 10, "unitPrice": 100, "cost": 1000},
            ],
        },
    ],
    "taxRate": 21,
    "discountRate": 0,
    "total": 1000,
    "total_con_iva": 1210,
    "created_at": "2025-03-01T10:00:00.000Z",
}

BUDGET_B2 = {
    "id": "b2",
    "nombre": "Presupuesto v1",
    "estado": "borrador",
    "total": 500,
    "total_con_iva": 605,
    "created_at": "2025-05-21T10:00:00.000Z",
}

SEED_PROJECTS = [
    {
        "id": "p1",
        "id_cliente": "c1",
        "direccion": "Calle Mayor 1",
        "ciudad": "Madrid",
        "oficina": "Oficina Norte",
        "estado": "en_ejecucion",
        "created_at": "2025-03-10T09:00:00.000Z",
        "updated_at": "2025-04-01T09:00:00.000Z",
        "prevision": {"fecha_inicio": "2025-03-17", "dias_ejecucion": 10},
        "ejecucion": {"fecha_inicio": "2025-03-18T08:00:00.000Z"},
        "presupuestos": [BUDGET_B1],
        "budget_id_aprobado": "b1",
        "fechas_cambio_estado": [{"estado": "en_ejecucion", "fecha": "2025-03-18T08:00:00.000Z"}],
    },
    {
        "id": "p2",
        "id_cliente": "c2",
        "direccion": "Avenida del Puerto 22",
        "ciudad": "Valencia",
        "oficina": "Sugate Central",
        "estado": "presupuesto",
        "created_at": "2025-05-20T12:00:00.000Z",
        "prevision": {"fecha_inicio": "2025-06-02", "dias_ejecucion": 5},
        "presupuestos": [BUDGET_B2],
    },
    {
        "id": "p3",
        "id_cliente": "ghost",
        "direccion": "Plaza Sol 3",
        "ciudad": "Sevilla",
        "oficina": "",
        "estado": "finalizado",
        "created_at": "2024-11-05T08:00:00.000Z",
        "presupuestos": [],
    },
]

SEED_BILLINGS = [
    {
        "id": "f1",
        "id_proyecto": "p1",
        "direccion_facturacion": "Calle Mayor 1",
        "codigo_postal": "28013",
        "presupuesto": BUDGET_B1,
        "hitos_facturacion": [
            {"id": "m1", "nombre": "Hito 1 (30%)", "tipo_de_importe": "porcentaje", "importe": 30,
             "total": 363, "estado": "cobrado", "fecha_facturacion": "2025-03-20T10:00:00.000Z",
             "created_at": "2025-03-15T10:00:00.000Z", "updated_at": "2025-03-25T10:00:00.000Z"},
            {"id": "m2", "nombre": "Hito 2 (40%)", "tipo_de_importe": "porcentaje", "importe": 40,
             "total": 484, "estado": "facturado", "fecha_facturacion": "2025-04-02T10:00:00.000Z",
             "created_at": "2025-03-15T10:00:00.000Z", "updated_at": "2025-04-02T10:00:00.000Z"},
            {"id": "m3", "nombre": "Remate final", "tipo_de_importe": "euro", "importe": 100,
             "total": 100, "estado": "pendiente",
             "created_at": "2025-03-15T10:00:00.000Z", "updated_at": "2025-03-15T10:00:00.000Z"},
        ],
    },
]


@pytest.fixture
def fake_api():
    """Backend fake seeded with two clients, two offices, three projects and one billing plan."""
    return FakeApi(SEED_CLIENTS, SEED_OFFICES, SEED_PROJECTS, SEED_BILLINGS)


@pytest.fixture
def mock_api(fake_api):
    """Patch get_api so CLI commands talk to the fake backend."""
    with patch("obras.core.get_api", return_value=fake_api), \
         patch("obras.core.http.get_api", return_value=fake_api):
        yield fake_api


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def app(fake_api, monkeypatch):
    """Flask app bound to the fake backend."""
    from obras.api import create_app

    monkeypatch.setenv("OBRAS_SECRET_KEY", "test-secret")
    web = create_app(api_client=fake_api)
    web.config["TESTING"] = True
    return web


@pytest.fixture
def client(app):
    return app.test_client()
