from decimal import Decimal

from portal_ledger.redaction import (
    REDACTED,
    WITHHELD_TEXT,
    Redacted,
    encode_snapshot,
    find_unredacted,
    is_marker,
    render_snapshot,
)


def test_marker_is_a_singleton_distinct_from_none():
    assert Redacted() is REDACTED
    assert is_marker(REDACTED)
    assert is_marker({"$redacted": True})
    assert not is_marker(None)
    assert not is_marker({"$redacted": True, "other": 1})


def test_encode_tags_each_shape():
    assert encode_snapshot(None) is None
    assert encode_snapshot(REDACTED) == {"kind": "redacted"}
    assert encode_snapshot({"valor": Decimal("1.50")}) == {"kind": "object", "payload": {"valor": "1.50"}}
    assert encode_snapshot([{"id": 1}]) == {"kind": "list", "payload": [{"id": 1}]}
    assert encode_snapshot(7) == {"kind": "value", "payload": 7}


def test_find_unredacted_ignores_marked_fields():
    assert find_unredacted({"senha": REDACTED, "nome": "Ana"}, ["senha"]) == []
    assert find_unredacted({"Senha": "x"}, ["senha"]) == ["Senha"]
    assert find_unredacted(None, ["senha"]) == []


def test_render_object_as_field_list_with_withheld_text():
    stored = encode_snapshot({"nome": "Ana", "senha": REDACTED})
    assert render_snapshot(stored) == {
        "kind": "fields",
        "fields": [{"field": "nome", "value": "Ana"}, {"field": "senha", "value": WITHHELD_TEXT}],
    }


def test_render_list_as_table_with_union_of_columns():
    stored = encode_snapshot([{"id": 1, "origem": "Impostos"}, {"id": 2, "historico": "x"}])
    assert render_snapshot(stored) == {
        "kind": "table",
        "columns": ["id", "origem", "historico"],
        "rows": [[1, "Impostos", None], [2, None, "x"]],
    }


def test_render_redacted_and_unknown_shapes_withhold_everything():
    assert render_snapshot({"kind": "redacted"}) == {"kind": "redacted", "display": WITHHELD_TEXT}
    assert render_snapshot({"kind": "blob", "payload": "secret"}) == {"kind": "redacted", "display": WITHHELD_TEXT}
    assert render_snapshot(None) is None


def test_render_scalar_value():
    assert render_snapshot(encode_snapshot("ativo")) == {"kind": "value", "value": "ativo"}
