"""Audited administrative edits: users, FAQ, entity settings and single revenue records."""

from portal_ledger.auth import verify_password
from portal_ledger.models import Usuario
from portal_ledger.redaction import WITHHELD_TEXT

from helpers import OPERATOR_HEADERS, make_row


def _new_user(client, email="ana@prefeitura.gov.br"):
    resp = client.post(
        "/usuarios",
        json={"nome": "Ana", "email": email, "senha": "segredo123"},
        headers=OPERATOR_HEADERS,
    )
    assert resp.status_code == 201
    return resp.json()


class TestUsuarios:
    def test_create_is_audited_without_the_hash(self, client, audit_entries):
        user = _new_user(client)

        assert "senha_hash" not in user
        entry = audit_entries(entity_type="USUARIO")[0]
        assert entry.action == "CREATE"
        assert entry.entity_id == str(user["id"])
        assert "senha_hash" not in entry.snapshot_after["payload"]

    def test_duplicate_email_is_rejected(self, client):
        _new_user(client)
        resp = client.post("/usuarios", json={"nome": "Outra", "email": "ANA@prefeitura.gov.br", "senha": "abcdef"})
        assert resp.status_code == 400
        assert resp.json()["errors"][0]["column"] == "email"

    def test_status_toggle_is_audited(self, client, audit_entries):
        user = _new_user(client)

        resp = client.patch(f"/usuarios/{user['id']}/status")

        assert resp.json()["ativo"] is False
        entry = audit_entries(action="STATUS_CHANGE")[0]
        assert entry.snapshot_before["payload"]["ativo"] is True
        assert entry.snapshot_after["payload"]["ativo"] is False

    def test_password_change_is_audited_redacted(self, client, session_factory, audit_entries):
        user = _new_user(client)

        resp = client.put(f"/usuarios/{user['id']}/senha", json={"senha": "novaSenha9"}, headers=OPERATOR_HEADERS)

        assert resp.status_code == 204
        with session_factory() as s:
            assert verify_password("novaSenha9", s.get(Usuario, user["id"]).senha_hash)

        entry = audit_entries(entity_type="USUARIO", action="UPDATE")[0]
        assert "novaSenha9" not in str(entry.snapshot_after)
        rendered = client.get(f"/auditoria/{entry.id}").json()
        assert rendered["renderedAfter"]["fields"] == [{"field": "senha", "value": WITHHELD_TEXT}]

    def test_unknown_user_is_not_found(self, client):
        assert client.patch("/usuarios/404/status").status_code == 404


class TestFaqAndConfig:
    def test_faq_lifecycle_is_audited(self, client, audit_entries):
        faq = client.post("/faq", json={"pergunta": "Onde ver receitas?", "resposta": "No portal."}).json()
        client.put(f"/faq/{faq['id']}", json={"pergunta": "Onde ver receitas?", "resposta": "Menu Receitas."})
        assert client.delete(f"/faq/{faq['id']}").status_code == 204

        assert [e.action for e in audit_entries(entity_type="FAQ")] == ["CREATE", "UPDATE", "DELETE"]
        assert client.get("/faq").json() == []

    def test_faq_search(self, client):
        client.post("/faq", json={"pergunta": "Horario de atendimento?", "resposta": "8h as 14h."})
        client.post("/faq", json={"pergunta": "Como pedir informacao?", "resposta": "Pelo e-SIC."})

        found = client.get("/faq", params={"busca": "e-sic"}).json()
        assert [f["pergunta"] for f in found] == ["Como pedir informacao?"]

    def test_config_update_is_audited(self, client, audit_entries):
        resp = client.put("/configuracoes", json={"nome_entidade": "Prefeitura de Exemplo", "cnpj": "00.000.000/0001-00"})

        assert resp.status_code == 200
        assert client.get("/configuracoes").json()["nome_entidade"] == "Prefeitura de Exemplo"
        entry = audit_entries(entity_type="CONFIGURACAO")[0]
        assert entry.action == "UPDATE"
        assert entry.snapshot_before["payload"]["nome_entidade"] == ""
        assert entry.snapshot_after["payload"]["cnpj"] == "00.000.000/0001-00"


class TestReceitaEdits:
    def test_update_records_before_and_after(self, client, import_file, audit_entries):
        batch_key = import_file(make_row()).json()["batchKey"]
        row = client.get(f"/receitas/lotes/{batch_key}").json()["rows"][0]
        payload = {k: v for k, v in row.items() if k not in ("id", "batch_key", "created_at")}
        payload["valor_arrecadado"] = "999.99"

        resp = client.put(f"/receitas/{row['id']}", json=payload)

        assert resp.status_code == 200
        assert resp.json()["valor_arrecadado"] == "999.99"
        assert resp.json()["batch_key"] == batch_key
        entry = audit_entries(entity_type="RECEITA", action="UPDATE")[0]
        assert entry.snapshot_before["payload"]["valor_arrecadado"] == "1234.56"
        assert entry.snapshot_after["payload"]["valor_arrecadado"] == "999.99"

    def test_delete_keeps_the_removed_row_in_the_ledger(self, client, import_file, audit_entries):
        batch_key = import_file(make_row(), make_row()).json()["batchKey"]
        row = client.get(f"/receitas/lotes/{batch_key}").json()["rows"][0]

        assert client.delete(f"/receitas/{row['id']}").status_code == 204

        assert client.get(f"/receitas/{row['id']}").status_code == 404
        entry = audit_entries(entity_type="RECEITA", action="DELETE")[0]
        assert entry.snapshot_before["payload"] == row

    def test_list_filters_by_batch(self, client, import_file):
        first = import_file(make_row(), make_row()).json()["batchKey"]
        import_file(make_row())

        body = client.get("/receitas", params={"batchKey": first}).json()
        assert body["totalElements"] == 2
        assert {r["batch_key"] for r in body["content"]} == {first}
