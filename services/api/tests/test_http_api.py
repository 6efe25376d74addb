import json
import logging

import pytest
from fastapi.testclient import TestClient

from rcm_api.db.store import Store
from rcm_api.main import create_app


def _assert_success(response, status_code: int = 200):
    assert response.status_code == status_code, response.text
    body = response.json()
    assert set(body) == {"request_id", "data", "meta"}
    assert body["request_id"] == response.headers["X-Request-Id"]
    assert "X-Process-Time-Ms" in response.headers
    return body["data"]


def _assert_error(response, status_code: int, code: str, kind: str | None = None):
    assert response.status_code == status_code, response.text
    body = response.json()
    assert set(body) == {"request_id", "error"}
    assert body["error"]["code"] == code
    if kind is not None:
        assert body["error"]["details"]["kind"] == kind
    return body["error"]


def _create_menu(client: TestClient, code: str, parent_id: int | None = None, **fields) -> dict:
    payload = {"name": fields.pop("name", code), "code": code, "parent_id": parent_id, **fields}
    return _assert_success(client.post("/api/menus", json=payload), 201)


def test_health_probes(client: TestClient):
    assert _assert_success(client.get("/api/health/live")) == {"status": "ok"}
    assert _assert_success(client.get("/api/health/ready")) == {"status": "ready"}


def test_request_id_header_is_echoed(client: TestClient):
    response = client.get("/api/health/live", headers={"X-Request-Id": "trace-123"})
    assert response.headers["X-Request-Id"] == "trace-123"
    assert response.json()["request_id"] == "trace-123"


def test_menu_lifecycle(client: TestClient):
    root = _create_menu(client, "system", path="/system")
    child = _create_menu(client, "system.user", root["id"])

    assert [menu["code"] for menu in _assert_success(client.get("/api/menus"))] == ["system", "system.user"]
    assert _assert_success(client.get(f"/api/menus/{child['id']}"))["parent_id"] == root["id"]

    tree = _assert_success(client.get("/api/menus/tree"))
    assert tree[0]["code"] == "system"
    assert tree[0]["children"][0]["code"] == "system.user"

    updated = _assert_success(client.put(f"/api/menus/{child['id']}", json={"name": "Users", "parent_id": None}))
    assert updated["name"] == "Users" and updated["parent_id"] is None

    assert _assert_success(client.delete(f"/api/menus/{root['id']}")) == {"id": root["id"]}
    assert [menu["code"] for menu in _assert_success(client.get("/api/menus"))] == ["system.user"]


def test_menu_cycle_is_validation_failure(client: TestClient):
    a = _create_menu(client, "a")
    b = _create_menu(client, "b", a["id"])

    error = _assert_error(
        client.put(f"/api/menus/{a['id']}", json={"parent_id": b["id"]}), 400, "VALIDATION_FAILED", "validation"
    )
    assert error["message"] == "parentId would create a cycle"

    error = _assert_error(
        client.put(f"/api/menus/{a['id']}", json={"parent_id": a["id"]}), 400, "VALIDATION_FAILED", "validation"
    )
    assert error["message"] == "parentId cannot be self"


def test_menu_reorder_route(client: TestClient):
    parent = _create_menu(client, "p")
    ids = [_create_menu(client, code, parent["id"])["id"] for code in ("x", "y", "z")]
    order = [ids[2], ids[0], ids[1]]

    data = _assert_success(client.put("/api/menus/reorder", json={"parent_id": parent["id"], "ids": order}))
    assert data == [{"id": order[0], "sort": 10}, {"id": order[1], "sort": 20}, {"id": order[2], "sort": 30}]

    _assert_error(
        client.put("/api/menus/reorder", json={"parent_id": None, "ids": order}), 400, "VALIDATION_FAILED"
    )


def test_duplicate_code_maps_to_conflict(client: TestClient):
    _create_menu(client, "dup")
    error = _assert_error(client.post("/api/menus", json={"name": "again", "code": "dup"}), 400, "CONFLICT", "conflict")
    assert "UNIQUE" in error["message"]


def test_missing_records_map_to_not_found(client: TestClient):
    _assert_error(client.get("/api/menus/99"), 404, "NOT_FOUND", "not_found")
    _assert_error(client.delete("/api/permissions/99"), 404, "NOT_FOUND", "not_found")
    _assert_error(client.put("/api/roles/99", json={"name": "x"}), 404, "NOT_FOUND", "not_found")
    _assert_error(client.get("/api/roles/99/menus"), 404, "NOT_FOUND", "not_found")


def test_schema_errors_map_to_validation_error(client: TestClient):
    error = _assert_error(client.post("/api/menus", json={"code": "no-name"}), 422, "VALIDATION_ERROR", "validation")
    assert any(item["field"] == "name" for item in error["details"]["errors"])

    _assert_error(
        client.post("/api/permissions", json={"name": "x", "code": "x", "level": "field"}), 422, "VALIDATION_ERROR"
    )
    _assert_error(
        client.post("/api/roles/bulk/menus", json={"role_ids": [], "target_ids": [1], "action": "bind"}),
        422,
        "VALIDATION_ERROR",
    )
    _assert_error(client.post("/api/roles", json={"name": "x", "code": "x", "enabled": 2}), 422, "VALIDATION_ERROR")


def test_unknown_route_uses_error_envelope(client: TestClient):
    _assert_error(client.get("/api/unknown"), 404, "NOT_FOUND")


def test_permission_routes(client: TestClient):
    cls = _assert_success(client.post("/api/permissions", json={"name": "User", "code": "user", "level": "class"}), 201)
    method = _assert_success(
        client.post(
            "/api/permissions",
            json={"name": "List", "code": "user:list", "level": "method", "parent_id": cls["id"]},
        ),
        201,
    )
    error = _assert_error(
        client.post(
            "/api/permissions",
            json={"name": "Deep", "code": "user:deep", "level": "method", "parent_id": method["id"]},
        ),
        400,
        "VALIDATION_FAILED",
    )
    assert error["message"] == "method parent must be class level"

    tree = _assert_success(client.get("/api/permissions/tree"))
    assert tree[0]["children"][0]["code"] == "user:list"
    updated = _assert_success(client.put(f"/api/permissions/{method['id']}", json={"description": "list users"}))
    assert updated["description"] == "list users" and updated["level"] == "method"


def test_role_association_routes(client: TestClient):
    role = _assert_success(client.post("/api/roles", json={"name": "Admin", "code": "admin"}), 201)
    menus = [_create_menu(client, code)["id"] for code in ("m1", "m2")]

    replaced = _assert_success(client.put(f"/api/roles/{role['id']}/menus", json={"ids": menus}))
    assert replaced == {"role_id": role["id"], "ids": menus}
    assert _assert_success(client.get(f"/api/roles/{role['id']}/menus")) == sorted(menus)

    bulk = {"role_ids": [role["id"]], "target_ids": menus, "action": "bind"}
    assert _assert_success(client.post("/api/roles/bulk/menus", json=bulk))["inserted"] == 0
    bulk["action"] = "unbind"
    assert _assert_success(client.post("/api/roles/bulk/menus", json=bulk))["deleted"] == 2

    error = _assert_error(
        client.put(f"/api/roles/{role['id']}/permissions", json={"ids": [5]}), 400, "VALIDATION_FAILED"
    )
    assert error["details"]["missing"] == [5]


def _seed_for_export(client: TestClient) -> None:
    root = _create_menu(client, "root")
    _create_menu(client, "child", root["id"])
    role = _assert_success(client.post("/api/roles", json={"name": "Admin", "code": "admin"}), 201)
    client.put(f"/api/roles/{role['id']}/menus", json={"ids": [root["id"]]})


def test_export_is_json_attachment(client: TestClient):
    _seed_for_export(client)
    response = client.get("/api/export")
    assert response.status_code == 200
    disposition = response.headers["Content-Disposition"]
    assert disposition.startswith('attachment; filename="role-config-export-')
    assert disposition.endswith('.json"')
    document = response.json()
    assert document["version"] == 1
    assert [menu["code"] for menu in document["menus"]] == ["root", "child"]
    assert document["roleMenus"] == [{"roleCode": "admin", "menuCode": "root"}]


def test_import_accepts_json_body_and_uploaded_file(client: TestClient, tmp_path):
    _seed_for_export(client)
    document = client.get("/api/export").json()

    target = Store(f"sqlite+aiosqlite:///{tmp_path / 'target.db'}")
    with TestClient(create_app(store=target)) as other:
        data = _assert_success(other.post("/api/import", json=document))
        assert data == {
            "imported": True,
            "counts": {"menus": 2, "permissions": 0, "roles": 1, "role_menus": 1, "role_permissions": 0},
        }
        upload = {"file": ("config.json", json.dumps(document).encode("utf-8"), "application/json")}
        assert _assert_success(other.post("/api/import", files=upload))["imported"] is True
        menus = _assert_success(other.get("/api/menus"))
        assert {menu["code"]: menu["parent_id"] is not None for menu in menus} == {"root": False, "child": True}


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"content": b"{oops", "headers": {"content-type": "application/json"}}, "Invalid JSON file"),
        ({"content": b"", "headers": {"content-type": "application/json"}}, "Missing import payload"),
        ({"json": {"menus": [{"name": "no code"}]}}, "Invalid import payload"),
        ({"files": {"other": ("x.json", b"{}", "application/json")}}, "Missing import payload"),
    ],
)
def test_import_rejects_bad_payloads(client: TestClient, kwargs, message):
    error = _assert_error(client.post("/api/import", **kwargs), 400, "VALIDATION_FAILED", "validation")
    assert error["message"] == message


def test_failed_import_changes_nothing(client: TestClient):
    document = {
        "menus": [{"code": "reports", "name": "Reports"}],
        "permissions": [{"code": "orphan", "name": "Orphan", "level": "method", "parentCode": "ghost"}],
    }
    _assert_error(client.post("/api/import", json=document), 400, "VALIDATION_FAILED")
    assert _assert_success(client.get("/api/menus")) == []


def test_uploaded_file_content_is_what_gets_imported(client: TestClient):
    broken = {"file": ("config.json", b"{oops", "application/json")}
    error = _assert_error(client.post("/api/import", files=broken), 400, "VALIDATION_FAILED", "validation")
    assert error["message"] == "Invalid JSON file"

    document = {"menus": [{"code": "uploaded", "name": "Uploaded"}]}
    upload = {"file": ("config.json", json.dumps(document).encode("utf-8"), "application/json")}
    data = _assert_success(client.post("/api/import", files=upload))
    assert data["counts"]["menus"] == 1
    assert [menu["code"] for menu in _assert_success(client.get("/api/menus"))] == ["uploaded"]


def test_unexpected_error_is_logged_with_traceback(store: Store, caplog):
    app = create_app(store=store)

    @app.get("/api/boom")
    async def boom():
        raise RuntimeError("exploded")

    with caplog.at_level(logging.ERROR, logger="rcm_api.exceptions"):
        with TestClient(app, raise_server_exceptions=False) as test_client:
            response = test_client.get("/api/boom")

    error = _assert_error(response, 500, "INTERNAL_ERROR")
    assert error["details"]["exception"] == "RuntimeError"
    records = [record for record in caplog.records if record.name == "rcm_api.exceptions"]
    assert records and records[0].exc_info is not None
    assert records[0].exc_info[0] is RuntimeError
