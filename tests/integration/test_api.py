"""Integration tests for API endpoints"""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def day(recent_weekday) -> str:
    return recent_weekday.isoformat()


def create_escompte(client: TestClient, day: str, amount: float, label: str = "Effet EFF001"):
    return client.post("/api/escomptes", json={"dateRemise": day, "libelle": label, "montant": amount})


def create_refinancement(client: TestClient, day: str, amount: float, **extra):
    body = {
        "dateRefinancement": day,
        "libelle": "Refinancement Q1",
        "montantRefinance": amount,
        "tauxInteret": 10,
        "dureeEnMois": 12,
        "encoursRefinance": amount,
    }
    body.update(extra)
    return client.post("/api/refinancements", json=body)


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "X-Request-ID" in response.headers


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    client.get("/api/dashboard/kpi")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "escompte_ceiling_utilization_percent" in response.text


def test_escompte_crud_flow(client: TestClient, day: str):
    created = create_escompte(client, day, 45_000)
    assert created.status_code == 201
    data = created.json()
    assert data["montant"] == 45_000
    assert data["ordreSaisie"] == 1
    assert data["warnings"] == {"montant": ["This amount represents more than 10% of the bank authorization"]}

    escompte_id = data["id"]
    fetched = client.get(f"/api/escomptes/{escompte_id}")
    assert fetched.status_code == 200
    assert fetched.json()["libelle"] == "Effet EFF001"

    updated = client.put(f"/api/escomptes/{escompte_id}", json={"montant": 10_000})
    assert updated.status_code == 200
    assert updated.json()["montant"] == 10_000
    assert updated.json()["libelle"] == "Effet EFF001"

    deleted = client.delete(f"/api/escomptes/{escompte_id}")
    assert deleted.status_code == 200
    assert deleted.json()["id"] == escompte_id
    assert client.get(f"/api/escomptes/{escompte_id}").status_code == 404


def test_unknown_escompte_is_404(client: TestClient):
    assert client.get("/api/escomptes/missing").status_code == 404
    assert client.put("/api/escomptes/missing", json={"montant": 1}).status_code == 404
    assert client.delete("/api/escomptes/missing").status_code == 404


def test_escompte_over_ceiling_is_422(client: TestClient, day: str):
    assert create_escompte(client, day, 80_000).status_code == 201

    response = create_escompte(client, day, 120_000.01, label="Effet EFF002")

    assert response.status_code == 422
    detail = response.json()["detail"]
    assert "0.01" in detail["errors"]["montant"][0]
    assert client.get("/api/escomptes").json()["total"] == 1


def test_missing_fields_are_reported_per_field(client: TestClient):
    response = client.post("/api/escomptes", json={"libelle": "ab"})

    assert response.status_code == 422
    errors = response.json()["detail"]["errors"]
    assert set(errors) == {"dateRemise", "libelle", "montant"}


def test_escompte_listing_filters_and_pagination(client: TestClient, day: str):
    for index, amount in enumerate([10_000, 20_000, 30_000]):
        create_escompte(client, day, amount, label=f"Effet EFF00{index + 1}")

    response = client.get(
        "/api/escomptes",
        params={"montantMin": 15_000, "sortField": "montant", "sortDirection": "desc", "limit": 1},
    )
    data = response.json()
    assert data["total"] == 2
    assert data["totalPages"] == 2
    assert [e["montant"] for e in data["escomptes"]] == [30_000]

    searched = client.get("/api/escomptes", params={"recherche": "eff002"}).json()
    assert [e["libelle"] for e in searched["escomptes"]] == ["Effet EFF002"]


def test_escompte_validate_and_impact(client: TestClient, day: str):
    existing = create_escompte(client, day, 80_000).json()

    validation = client.post("/api/escomptes/validate", json={"dateRemise": day, "libelle": "Effet", "montant": 200_000})
    assert validation.status_code == 200
    assert validation.json()["valid"] is False

    impact = client.post("/api/escomptes/calculate-impact", json={"montant": 120_000})
    assert impact.json() == {
        "nouveauCumul": 200_000,
        "nouvelEncours": 0,
        "nouveauPourcentage": 100.0,
        "depassement": False,
        "depassementMontant": 0,
    }

    edit_impact = client.post(
        "/api/escomptes/calculate-impact", json={"montant": 200_000.5, "excludeId": existing["id"]}
    )
    assert edit_impact.json()["depassement"] is True
    assert edit_impact.json()["depassementMontant"] == 0.5


def test_bulk_delete(client: TestClient, day: str):
    ids = [create_escompte(client, day, 1_000, label=f"Effet {i}").json()["id"] for i in range(2)]

    response = client.post("/api/escomptes/bulk-delete", json={"ids": ids + ["missing"]})

    assert response.json() == {"deleted": ids, "notFound": ["missing"]}


def test_escompte_export(client: TestClient, day: str):
    create_escompte(client, day, 1_000)

    csv_response = client.get("/api/escomptes/export", params={"format": "csv"})
    assert csv_response.status_code == 200
    assert csv_response.headers["content-type"].startswith("text/csv")
    assert "attachment" in csv_response.headers["content-disposition"]

    xlsx_response = client.get("/api/escomptes/export", params={"format": "excel"})
    assert xlsx_response.status_code == 200
    assert xlsx_response.content[:2] == b"PK"

    assert client.get("/api/escomptes/export", params={"format": "pdf"}).status_code == 400


def test_refinancement_flow(client: TestClient, day: str):
    created = create_refinancement(client, day, 60_000)
    assert created.status_code == 201
    data = created.json()
    assert data["totalInterets"] == 6_000
    assert data["statut"] == "ACTIF"
    assert data["fraisDossier"] == 0

    updated = client.put(f"/api/refinancements/{data['id']}", json={"tauxInteret": 12, "dureeEnMois": 24})
    assert updated.json()["totalInterets"] == 14_400

    suspended = client.put(f"/api/refinancements/{data['id']}", json={"statut": "SUSPENDU"})
    assert suspended.json()["statut"] == "SUSPENDU"

    filtered = client.get("/api/refinancements", params={"statut": "SUSPENDU", "tauxMin": 11})
    assert filtered.json()["total"] == 1

    assert client.get("/api/refinancements", params={"statut": "ACTIF"}).json()["total"] == 0


def test_refinancement_validation_errors(client: TestClient, day: str):
    response = create_refinancement(client, day, 10_000, dureeEnMois=12.5, tauxInteret=150, statut="CLOSED")

    assert response.status_code == 422
    assert {"dureeEnMois", "tauxInteret", "statut"} <= set(response.json()["detail"]["errors"])


def test_global_ceiling_spans_both_collections(client: TestClient, day: str):
    create_escompte(client, day, 45_000)
    create_escompte(client, day, 35_000, label="Effet EFF002")
    create_refinancement(client, day, 60_000)

    near = create_refinancement(client, day, 40_000, tauxInteret=12, dureeEnMois=24)
    assert near.status_code == 201
    assert any("90.0%" in w for w in near.json()["warnings"]["montantRefinance"])

    kpi = client.get("/api/dashboard/kpi").json()
    assert kpi == {
        "cumulTotal": 80_000,
        "encoursRestant": 120_000,
        "autorisationBancaire": 200_000,
        "nombreEscomptes": 2,
        "pourcentageUtilisation": 40.0,
        "cumulRefinancements": 100_000,
        "nombreRefinancements": 2,
        "cumulGlobal": 180_000,
        "encoursRestantGlobal": 20_000,
        "pourcentageUtilisationGlobal": 90.0,
    }

    over = create_escompte(client, day, 20_000.01, label="Effet EFF003")
    assert over.status_code == 422

    stats = client.get("/api/dashboard/stats").json()
    assert stats["totalInterets"] == 15_600
    assert stats["escomptes"]["nombre"] == 2


def test_configuration_endpoints(client: TestClient, day: str):
    assert client.get("/api/configuration").json()["autorisationBancaire"] == 200_000
    create_escompte(client, day, 80_000)

    lowered = client.put("/api/configuration", json={"autorisationBancaire": 50_000})
    assert lowered.status_code == 422
    assert "autorisationBancaire" in lowered.json()["detail"]["errors"]

    raised = client.put("/api/configuration", json={"autorisationBancaire": 250_000})
    assert raised.status_code == 200
    assert raised.json()["autorisationBancaire"] == 250_000

    validation = client.post("/api/configuration/validate-autorisation", json={"autorisationBancaire": 500})
    assert validation.json()["valid"] is False

    impact = client.post("/api/configuration/calculate-impact", json={"nouvelleAutorisation": 100_000}).json()
    assert impact["ancienneAutorisation"] == 250_000
    assert impact["cumulActuel"] == 80_000
    assert impact["nouvelEncours"] == 20_000
    assert impact["impactPourcentage"] == -60.0
    assert impact["nouveauPourcentageUtilisation"] == 80.0
    assert impact["depassement"] is False

    reset = client.post("/api/configuration/reset")
    assert reset.json()["autorisationBancaire"] == 200_000


def test_writes_are_audited(client: TestClient, day: str):
    escompte_id = create_escompte(client, day, 1_000).json()["id"]
    client.put(f"/api/escomptes/{escompte_id}", json={"libelle": "Effet renommé"})
    client.delete(f"/api/escomptes/{escompte_id}")

    logs = client.get("/api/logs", params={"entityType": "ESCOMPTE"}).json()
    assert logs["total"] == 3
    assert {entry["action"] for entry in logs["logs"]} == {"CREATE", "UPDATE", "DELETE"}
    assert all(entry["entityId"] == escompte_id for entry in logs["logs"])


def test_log_administration(client: TestClient):
    missing = client.post("/api/logs", json={"action": "LOGIN"})
    assert missing.status_code == 400

    created = client.post(
        "/api/logs",
        json={"action": "LOGIN", "category": "ui", "message": "User signed in", "userId": "admin"},
    )
    assert created.status_code == 201
    entry = created.json()
    assert entry["description"] == "User signed in"
    assert entry["severity"] == "LOW"

    stats = client.get("/api/logs/stats").json()
    assert stats["total"] == 1
    assert stats["byAction"] == {"LOGIN": 1}
    assert stats["last24Hours"] == 1

    assert client.delete("/api/logs").status_code == 400
    assert client.delete(f"/api/logs/{entry['id']}").json() == {"success": True}
    assert client.delete(f"/api/logs/{entry['id']}").status_code == 404

    client.post("/api/logs", json={"action": "LOGOUT", "category": "ui", "description": "User signed out"})
    cleared = client.delete("/api/logs", params={"confirm": "true"})
    assert cleared.json()["deleted"] == 1
    assert client.get("/api/logs").json()["total"] == 0
