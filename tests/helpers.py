"""Builders for revenue import files used across the test suite."""

HEADER = (
    "exercicio;mes;data_lancamento;categoria_economica;origem;especie;rubrica;alinea;"
    "fonte_recursos;valor_previsto_inicial;valor_previsto_atualizado;valor_arrecadado;historico"
)

DEFAULT_ROW = {
    "exercicio": "2025",
    "mes": "3",
    "data_lancamento": "15/03/2025",
    "categoria_economica": "Receitas Correntes",
    "origem": "Impostos",
    "especie": "IPTU",
    "rubrica": "1112",
    "alinea": "01",
    "fonte_recursos": "Recursos Ordinarios",
    "valor_previsto_inicial": "1.000,00",
    "valor_previsto_atualizado": "1.200,50",
    "valor_arrecadado": "1.234,56",
    "historico": "Arrecadacao do mes",
}

OPERATOR_HEADERS = {"X-Operator-Id": "7", "X-Operator-Name": "Maria Souza"}


def make_row(**overrides) -> str:
    row = {**DEFAULT_ROW, **overrides}
    return ";".join(row[k] for k in DEFAULT_ROW)


def make_csv(*rows: str, encoding: str = "utf-8") -> bytes:
    return "\n".join((HEADER, *rows)).encode(encoding) + b"\n"
