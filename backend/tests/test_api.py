"""
test_api.py — HTTP routes driven through FastAPI's TestClient.

Each test gets a fresh app over an InMemoryRepository, so persistence can be
asserted by reading the repository directly.
"""

import asyncio
import io
import zipfile

import pytest
from fastapi.testclient import TestClient

from pic_budget import config as cfg
from pic_budget.main import create_app
from pic_budget.services.repository import InMemoryRepository


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def client(repo):
    with TestClient(create_app(repo)) as c:
        yield c


@pytest.fixture
def demo_client(client):
    client.post("/api/products/demo")
    client.put("/api/export/config", json={"entityName": "E.S.E. HOSPITAL SAN RAFAEL"})
    return client


CUADERNO = {"producto": "Cuaderno A4", "cantidad": 10, "categoria": "papeleria", "valorCosto": 1500, "margen": 25}


# ===========================================================================
# Class 1: Health and tracing
# ===========================================================================

class TestHealth:

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "active"
        assert body["line_items"] == 0
        assert "exports_generated" in body["exports"]

    def test_request_id_header(self, client):
        response = client.get("/api/products", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"
        assert float(response.headers["X-Process-Time"]) >= 0


# ===========================================================================
# Class 2: Products
# ===========================================================================

class TestProducts:

    def test_create_and_get(self, client):
        created = client.post("/api/products", json=CUADERNO)
        assert created.status_code == 201
        body = created.json()
        assert body["id"] == "prod-1"
        assert body["valorTotal"] == 1875.0
        assert client.get("/api/products/prod-1").json()["producto"] == "Cuaderno A4"

    def test_create_persists(self, client, repo):
        client.post("/api/products", json=CUADERNO)
        state = asyncio.run(repo.load())
        assert state["productos"][0]["producto"] == "Cuaderno A4"
        assert state["contadorItems"] == 2

    def test_invalid_payload(self, client):
        response = client.post("/api/products", json={**CUADERNO, "valorCosto": -1})
        assert response.status_code == 422

    @pytest.mark.parametrize("changes", [{"cantidad": 0}, {"valorCosto": 0}])
    def test_create_and_update_bounds(self, client, changes):
        assert client.post("/api/products", json={**CUADERNO, **changes}).status_code == 422
        assert client.post("/api/products/bulk", json=[{**CUADERNO, **changes}]).status_code == 422
        client.post("/api/products", json=CUADERNO)
        assert client.put("/api/products/prod-1", json=changes).status_code == 422
        assert client.get("/api/products/prod-1").json()["valorTotal"] == 1875.0

    def test_import_defaults_missing_cost(self, client):
        body = client.post("/api/products/import", json={"data": [{"producto": "Lápiz"}]}).json()
        assert body["items"][0]["valorCosto"] == 0.0
        assert body["items"][0]["cantidad"] == 1

    def test_update_recomputes_total(self, client):
        client.post("/api/products", json=CUADERNO)
        body = client.put("/api/products/prod-1", json={"margen": 40}).json()
        assert body["valorTotal"] == 2100.0

    def test_unknown_id(self, client):
        assert client.get("/api/products/nope").status_code == 404
        assert client.put("/api/products/nope", json={"margen": 1}).status_code == 404
        assert client.delete("/api/products/nope").status_code == 404

    def test_delete_and_clear(self, client):
        client.post("/api/products", json=CUADERNO)
        client.post("/api/products", json=CUADERNO)
        assert client.delete("/api/products/prod-1").json() == {"deleted": "prod-1"}
        assert len(client.get("/api/products").json()) == 1
        client.delete("/api/products")
        assert client.get("/api/products").json() == []

    def test_filter(self, demo_client):
        names = [p["producto"] for p in demo_client.get("/api/products", params={"category": "alimentos"}).json()]
        assert names == ["Arroz 500g"]
        assert len(demo_client.get("/api/products", params={"search": "bolí"}).json()) == 1

    def test_bulk_and_replace(self, demo_client):
        added = demo_client.post("/api/products/bulk", json=[CUADERNO, CUADERNO]).json()
        assert [p["item"] for p in added] == [4, 5]
        replaced = demo_client.put("/api/products", json=[CUADERNO]).json()
        assert [p["item"] for p in replaced] == [1]

    def test_import_with_mapping(self, client):
        payload = {
            "data": {"result": {"rows": [{"name": "Resma", "cost": 18000, "qty": 3}]}},
            "mapping": {"arrayPath": "result.rows", "fields": {"producto": "name", "valor_costo": "cost", "cantidad": "qty"}},
        }
        body = client.post("/api/products/import", json=payload).json()
        assert body["imported"] == 1
        assert body["items"][0]["presentacion"] == "UNIDAD"
        assert body["items"][0]["valorTotal"] == 18000.0

    def test_import_rejects_malformed_rows(self, client):
        payload = {"data": [{"producto": "X", "valorCosto": "abc"}]}
        response = client.post("/api/products/import", json=payload)
        assert response.status_code == 422
        assert response.json()["detail"]["errors"][0].startswith("Row 1")
        assert client.get("/api/products").json() == []

    def test_validate_file(self, client):
        body = client.post("/api/products/validate", json=[]).json()
        assert body == {"valid": False, "issues": ["The file is empty"]}


# ===========================================================================
# Class 3: Budget
# ===========================================================================

class TestBudget:

    def test_summary(self, demo_client):
        body = demo_client.get("/api/budget/summary").json()
        assert body["total_items"] == 3
        assert abs(body["budget_total"] - 97_250) < 1e-6

    def test_statistics(self, demo_client):
        body = demo_client.get("/api/budget/statistics").json()
        assert body["most_expensive"]["name"] == "Arroz 500g"
        assert set(cfg.KNOWN_CATEGORIES) <= set(body["categories"])

    def test_proportional_adjust_and_restore(self, demo_client):
        result = demo_client.post(
            "/api/budget/adjust", json={"type": "proporcional", "presupuestoObjetivo": 48_625},
        ).json()
        assert result["changed"] is True
        assert abs(result["factor"] - 0.5) < 1e-12
        assert abs(demo_client.get("/api/budget/summary").json()["budget_total"] - 48_625) < 1e-6

        restored = demo_client.post("/api/budget/restore").json()
        assert restored["restored"] is True
        assert abs(restored["summary"]["budget_total"] - 97_250) < 1e-6

    def test_missing_parameter_is_noop(self, demo_client):
        result = demo_client.post("/api/budget/adjust", json={"type": "margen_fijo"}).json()
        assert result["changed"] is False

    def test_zero_budget_is_bad_request(self, client):
        response = client.post("/api/budget/adjust", json={"type": "proporcional", "presupuestoObjetivo": 100})
        assert response.status_code == 400

    def test_unknown_method(self, client):
        assert client.post("/api/budget/adjust", json={"type": "magia"}).status_code == 422

    def test_nan_margin_rejected(self, demo_client):
        response = demo_client.post(
            "/api/budget/adjust",
            content='{"type": "margen_fijo", "margenFijo": NaN}',
            headers={"Content-Type": "application/json"},
        )
        assert response.status_code == 422
        margins = [p["margen"] for p in demo_client.get("/api/products").json()]
        assert margins == [25.0, 30.0, 15.0]


# ===========================================================================
# Class 4: Export
# ===========================================================================

class TestExport:

    def test_default_config_is_exportable(self, client):
        body = client.get("/api/export/config").json()
        assert body["config"]["fileName"] == cfg.DEFAULT_FILE_NAME
        assert body["config"]["entityName"] == cfg.DEFAULT_ENTITY_NAME
        assert body["issues"] == []
        client.post("/api/products/demo")
        assert client.post("/api/export/xlsx").status_code == 200

    def test_update_config(self, client, repo):
        body = client.put("/api/export/config", json={"entityName": "Hospital", "scale": 90}).json()
        assert body["config"]["entityName"] == "Hospital"
        assert body["config"]["scale"] == 90
        assert body["config"]["lastUpdated"] is not None
        assert asyncio.run(repo.load_config())["entityName"] == "Hospital"

    def test_invalid_color_rejected(self, client):
        response = client.put("/api/export/config", json={"headerBgColor": "green"})
        assert response.status_code == 422

    def test_theme(self, client):
        body = client.post("/api/export/config/theme/Azul Profesional").json()
        assert body["config"]["headerBgColor"] == "#2196F3"
        assert client.post("/api/export/config/theme/Rosa").status_code == 404

    def test_reset(self, client):
        client.put("/api/export/config", json={"fileName": "OTRO"})
        body = client.post("/api/export/config/reset").json()
        assert body["config"]["fileName"] == cfg.DEFAULT_FILE_NAME

    def test_summary(self, demo_client):
        body = demo_client.get("/api/export/summary").json()
        assert body["product_count"] == 3
        assert body["can_export"] is True

    def test_download(self, demo_client):
        response = demo_client.post("/api/export/xlsx")
        assert response.status_code == 200
        assert response.headers["content-type"] == cfg.XLSX_MEDIA_TYPE
        assert 'filename="PRESUPUESTO_PIC_' in response.headers["content-disposition"]
        with zipfile.ZipFile(io.BytesIO(response.content)) as zf:
            assert "xl/worksheets/sheet1.xml" in zf.namelist()

    def test_download_name_with_quotes_and_accents(self, demo_client):
        demo_client.put("/api/export/config", json={
            "fileName": 'Presupuesto "Año"', "includeDateInFileName": False,
        })
        response = demo_client.post("/api/export/xlsx")
        assert response.status_code == 200
        disposition = response.headers["content-disposition"]
        assert disposition.startswith('attachment; filename="Presupuesto _A?o_.xlsx"')
        assert disposition.endswith("filename*=UTF-8''Presupuesto%20%22A%C3%B1o%22.xlsx")

    def test_no_items(self, client):
        client.put("/api/export/config", json={"entityName": "Hospital"})
        response = client.post("/api/export/xlsx")
        assert response.status_code == 422
        assert response.json()["detail"]["message"] == "No line items to export"

    def test_invalid_config(self, demo_client):
        demo_client.put("/api/export/config", json={"maxColumnWidth": 5})
        response = demo_client.post("/api/export/xlsx")
        assert response.status_code == 422
        assert response.json()["detail"]["issues"]

    def test_export_in_progress(self, demo_client):
        demo_client.app.state.workspace.exporter.is_generating = True
        assert demo_client.post("/api/export/xlsx").status_code == 409


# ===========================================================================
# Class 5: Backup
# ===========================================================================

class TestBackup:

    def test_download_backup(self, demo_client):
        response = demo_client.get("/api/backup")
        assert "respaldo_sistema_pic_" in response.headers["content-disposition"]
        body = response.json()
        assert body["metadata"]["appName"] == cfg.APP_NAME
        assert cfg.STORE_KEY_PRODUCTS in body["products"]
        assert cfg.STORE_KEY_EXCEL_CONFIG in body["config"]

    def test_restore_into_fresh_app(self, demo_client):
        backup = demo_client.get("/api/backup").json()
        with TestClient(create_app(InMemoryRepository())) as other:
            body = other.post("/api/backup/restore", json=backup).json()
            assert body["items_restored"] == 3
            assert len(other.get("/api/products").json()) == 3
            assert other.get("/api/export/config").json()["config"]["entityName"] == "E.S.E. HOSPITAL SAN RAFAEL"

    def test_restore_with_invalid_rows(self, demo_client, repo):
        before = asyncio.run(repo.dump())
        backup = demo_client.get("/api/backup").json()
        del backup["products"][cfg.STORE_KEY_PRODUCTS]["state"]["productos"][0]["id"]
        response = demo_client.post("/api/backup/restore", json=backup)
        assert response.status_code == 422
        assert response.json()["detail"]["errors"][0].startswith("Row 1")
        assert asyncio.run(repo.dump()) == before
        assert len(demo_client.get("/api/products").json()) == 3

    def test_restore_rejects_missing_metadata(self, client):
        assert client.post("/api/backup/restore", json={"products": {}}).status_code == 422
