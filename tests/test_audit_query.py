"""Filtering and paging of the audit log."""

from datetime import datetime, timedelta, timezone

import pytest

from helpers import OPERATOR_HEADERS, make_row


@pytest.fixture
def seeded(client, import_file):
    """One import by Maria, plus three FAQ creations and an update by Joao."""
    joao = {"X-Operator-Id": "8", "X-Operator-Name": "Joao Lima"}
    batch_key = import_file(make_row()).json()["batchKey"]
    faq_ids = [
        client.post("/faq", json={"pergunta": f"Pergunta {i}?", "resposta": "Sim."}, headers=joao).json()["id"]
        for i in range(3)
    ]
    client.put(f"/faq/{faq_ids[0]}", json={"pergunta": "Nova?", "resposta": "Nao."}, headers=joao)
    return {"batch_key": batch_key, "faq_ids": faq_ids}


def test_newest_entries_come_first(client, seeded):
    content = client.get("/auditoria").json()["content"]
    ids = [e["id"] for e in content]
    assert ids == sorted(ids, reverse=True)
    assert content[0]["action"] == "UPDATE"
    assert content[-1]["action"] == "IMPORT_BATCH"


def test_page_envelope(client, seeded):
    first = client.get("/auditoria", params={"size": 2}).json()
    assert first["totalElements"] == 5
    assert first["totalPages"] == 3
    assert first["pageNumber"] == 0
    assert first["isFirst"] is True
    assert first["isLast"] is False
    assert len(first["content"]) == 2

    last = client.get("/auditoria", params={"size": 2, "page": 2}).json()
    assert last["isLast"] is True
    assert last["isFirst"] is False
    assert len(last["content"]) == 1


def test_filter_by_entity_type_and_action(client, seeded):
    body = client.get("/auditoria", params={"entityType": "FAQ", "action": "CREATE"}).json()
    assert body["totalElements"] == 3
    assert {e["entityType"] for e in body["content"]} == {"FAQ"}


def test_action_not_valid_for_entity_type_is_rejected(client, seeded):
    resp = client.get("/auditoria", params={"entityType": "CONFIGURACAO", "action": "DELETE"})
    assert resp.status_code == 400
    assert resp.json()["errors"][0]["column"] == "action"


def test_unknown_entity_type_is_rejected(client):
    resp = client.get("/auditoria", params={"entityType": "BOLETO"})
    assert resp.status_code == 400


def test_filter_by_operator_substring_ignores_case(client, seeded):
    body = client.get("/auditoria", params={"operator": "souza"}).json()
    assert body["totalElements"] == 1
    assert body["content"][0]["actor"] == "Maria Souza"
    assert body["content"][0]["actorId"] == OPERATOR_HEADERS["X-Operator-Id"]


def test_filter_by_entity_id(client, seeded):
    body = client.get("/auditoria", params={"entityType": "FAQ", "entityId": str(seeded["faq_ids"][0])}).json()
    assert [e["action"] for e in body["content"]] == ["UPDATE", "CREATE"]


def test_filter_by_date_range(client, seeded):
    today = datetime.now(timezone.utc).date()
    tomorrow = today + timedelta(days=1)

    assert client.get("/auditoria", params={"dateFrom": str(today), "dateTo": str(today)}).json()["totalElements"] == 5
    assert client.get("/auditoria", params={"dateFrom": str(tomorrow)}).json()["totalElements"] == 0


def test_single_entry_is_rendered_for_display(client, seeded):
    entry_id = client.get("/auditoria", params={"action": "UPDATE", "entityType": "FAQ"}).json()["content"][0]["id"]

    entry = client.get(f"/auditoria/{entry_id}").json()

    assert entry["renderedBefore"]["kind"] == "fields"
    fields = {f["field"]: f["value"] for f in entry["renderedAfter"]["fields"]}
    assert fields["pergunta"] == "Nova?"
    assert entry["originAddress"] == "testclient"


def test_missing_entry_is_not_found(client):
    assert client.get("/auditoria/999").status_code == 404


def test_action_vocabulary(client):
    vocab = client.get("/auditoria/acoes").json()
    assert vocab["RECEITA"] == ["DELETE", "IMPORT_BATCH", "REVOKE_BATCH", "UPDATE"]
    assert vocab["CONFIGURACAO"] == ["UPDATE"]
