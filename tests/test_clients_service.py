"""Tests for client CRUD, filters, validation and display helpers."""

import pytest

from obras.clients.service import (
    build_filter, client_name_map, create_client, delete_client, display_name,
    get_client, get_client_by_dni, list_clients, search_clients, update_client,
    validate_client,
)


class TestBackend:
    def test_list_all(self, fake_api):
        assert {c["_id"] for c in list_clients(fake_api)} == {"c1", "c2"}
        assert fake_api.calls[-1][3] is None

    def test_list_with_filter(self, fake_api):
        rows = list_clients(fake_api, filter={"field": "dni", "value": "87654321B", "operand": "eq"})
        assert [c["_id"] for c in rows] == ["c2"]
        assert fake_api.calls[-1][3] == {"filter": "dni[eq]87654321B"}

    def test_incomplete_filter_not_sent(self, fake_api):
        list_clients(fake_api, filter={"field": "dni", "value": ""})
        assert fake_api.calls[-1][3] is None

    def test_get_by_id_and_dni(self, fake_api):
        assert get_client(fake_api, "c1")["dni"] == "12345678A"
        assert get_client_by_dni(fake_api, "12345678A")["_id"] == "c1"
        assert fake_api.calls[-1][1] == "/clientes/v1/12345678A"

    def test_get_missing_is_none(self, fake_api):
        assert get_client(fake_api, "nope") is None

    def test_create_strips_server_fields(self, fake_api):
        created = create_client(fake_api, {
            "_id": "forged", "nombre": "Eva", "apellido1": "Ruiz",
            "nombre_completo": "x", "created_at": "2020-01-01",
        })
        sent = fake_api.calls[-1][2]
        assert "_id" not in sent and "nombre_completo" not in sent and "created_at" not in sent
        assert created["_id"] != "forged"

    def test_update_requires_id(self, fake_api):
        with pytest.raises(ValueError):
            update_client(fake_api, {"nombre": "Sin id"})

    def test_update_and_delete(self, fake_api):
        client = get_client(fake_api, "c2")
        client["telefono"] = "699000111"
        update_client(fake_api, client)
        assert fake_api.calls[-1][:2] == ("PUT", "/clientes/v1/id/c2")
        assert fake_api.clients["c2"]["telefono"] == "699000111"

        delete_client(fake_api, "c2")
        assert "c2" not in fake_api.clients


class TestHelpers:
    def test_build_filter(self):
        assert build_filter("ciudad", "Madrid") == "ciudad[eq]Madrid"
        assert build_filter("total", "100", "gt") == "total[gt]100"
        assert build_filter(None, "x") is None

    def test_validate_required_and_email(self):
        errors = validate_client({"nombre": " ", "apellido1": "", "email": "not-an-email"})
        assert len(errors) == 3

    def test_validate_ok_without_email(self):
        assert validate_client({"nombre": "Eva", "apellido1": "Ruiz"}) == []

    def test_display_name(self):
        assert display_name({"nombre_completo": "Ana García López"}) == "Ana García López"
        assert display_name({"nombre": "Luis", "apellido1": "Pérez"}) == "Luis Pérez"
        assert display_name(None) == ""

    def test_search_is_case_insensitive(self, fake_api):
        rows = list_clients(fake_api)
        assert [c["_id"] for c in search_clients(rows, "GARCÍA")] == ["c1"]
        assert [c["_id"] for c in search_clients(rows, "8765")] == ["c2"]
        assert len(search_clients(rows, "")) == 2

    def test_name_map(self, fake_api):
        names = client_name_map(list_clients(fake_api))
        assert names == {"c1": "Ana García López", "c2": "Luis Pérez"}
